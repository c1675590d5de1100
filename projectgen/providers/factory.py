"""
Provider selection by configuration name
"""

import logging
from typing import Dict, Optional, Type

from ..core.config import Config
from ..core.errors import ProviderError
from ..utils.rate_limiter import ProviderRateLimitManager
from .azure import AzureProvider
from .base import BaseProvider
from .gemini import GeminiProvider
from .groq import GroqProvider
from .ollama import OllamaProvider

logger = logging.getLogger(__name__)

PROVIDERS: Dict[str, Type[BaseProvider]] = {
    "gemini": GeminiProvider,
    "azure": AzureProvider,
    "groq": GroqProvider,
    "ollama": OllamaProvider,
}


def available_providers():
    return list(PROVIDERS)


def create_provider(name: str, config: Config,
                    rate_limiter: Optional[ProviderRateLimitManager] = None) -> BaseProvider:
    """Build the provider registered under ``name``.

    Raises ProviderError(CONFIG_ERROR) for an unknown name or a missing credential.
    """
    key = (name or "").strip().lower()
    provider_cls = PROVIDERS.get(key)
    if provider_cls is None:
        raise ProviderError(
            name, ProviderError.CONFIG_ERROR,
            f"Unknown provider '{name}'. Available: {', '.join(PROVIDERS)}"
        )
    logger.info(f"🔌 Creating {key} provider")
    return provider_cls(config, rate_limiter)
