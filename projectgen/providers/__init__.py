"""
LLM provider adapters
"""

from .base import BaseProvider, classify_provider_exception
from .factory import create_provider, available_providers, PROVIDERS
from .prompts import enhance_prompt

__all__ = [
    "BaseProvider",
    "classify_provider_exception",
    "create_provider",
    "available_providers",
    "PROVIDERS",
    "enhance_prompt",
]
