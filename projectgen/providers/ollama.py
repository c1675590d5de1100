"""
Ollama provider (local server, no credential)
"""

import logging
from typing import Any, Dict, Optional

import aiohttp

from ..core.errors import ProviderError
from .base import BaseProvider

logger = logging.getLogger(__name__)

STATUS_ERROR_TYPES = {
    401: ProviderError.AUTH_FAILED,
    403: ProviderError.AUTH_FAILED,
    429: ProviderError.RATE_LIMIT,
}


class OllamaProvider(BaseProvider):
    """Talks to a local Ollama server through its /api/generate endpoint"""

    name = "ollama"

    def __init__(self, config, rate_limiter=None):
        super().__init__(config, rate_limiter)
        self.api_url = config.api.ollama_url.rstrip("/")
        self.model_name = config.api.ollama_model
        logger.info(f"✅ Using Ollama with model: {self.model_name} at {self.api_url}")

    async def _complete(self, prompt: str, system_prompt: Optional[str] = None,
                        json_object: bool = False, temperature: Optional[float] = None) -> Optional[str]:
        body: Dict[str, Any] = {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.config.api.temperature if temperature is None else temperature,
                "num_predict": self.config.api.max_tokens,
            },
        }
        if system_prompt:
            body["system"] = system_prompt
        if json_object:
            body["format"] = "json"

        timeout = aiohttp.ClientTimeout(total=self.config.api.request_timeout)
        url = f"{self.api_url}/api/generate"

        async with aiohttp.ClientSession(timeout=timeout, trust_env=not self.config.api.disable_proxy) as session:
            async with session.post(url, json=body) as response:
                if response.status != 200:
                    error_text = await response.text()
                    if not error_text.strip():
                        error_text = f"HTTP {response.status} error with empty response"
                    error_type = STATUS_ERROR_TYPES.get(response.status, ProviderError.HTTP_ERROR)
                    raise ProviderError(self.name, error_type, f"HTTP {response.status}: {error_text}")
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise ProviderError(self.name, ProviderError.INVALID_RESPONSE, f"Ollama returned non-JSON body: {e}", e)

        if not isinstance(data, dict) or "response" not in data:
            raise ProviderError(self.name, ProviderError.INVALID_RESPONSE, "Ollama response has no 'response' field")
        return data["response"]
