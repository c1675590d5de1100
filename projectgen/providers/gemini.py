"""
Google Gemini provider
"""

import asyncio
import functools
import logging
from typing import Any, Dict, Optional

import google.generativeai as genai

from ..core.errors import ProviderError
from .base import BaseProvider

logger = logging.getLogger(__name__)


class GeminiProvider(BaseProvider):
    """Gemini through google-generativeai; the blocking SDK call runs in a thread pool"""

    name = "gemini"

    def __init__(self, config, rate_limiter=None):
        super().__init__(config, rate_limiter)
        api_key = self._require(config.api.gemini_api_key, "GEMINI_API_KEY")
        genai.configure(api_key=api_key)

        # Ensure proper model name format for Gemini API
        model_name = config.api.gemini_model
        if not model_name.startswith('models/'):
            model_name = f"models/{model_name}"
        self.model_name = model_name
        logger.info(f"✅ Using Gemini model: {self.model_name}")

    async def _complete(self, prompt: str, system_prompt: Optional[str] = None,
                        json_object: bool = False, temperature: Optional[float] = None) -> Optional[str]:
        generation_config = genai.types.GenerationConfig(
            temperature=self.config.api.temperature if temperature is None else temperature,
            max_output_tokens=self.config.api.max_tokens,
        )
        model = genai.GenerativeModel(model_name=self.model_name, generation_config=generation_config)

        full_prompt = prompt
        if system_prompt:
            full_prompt = f"{system_prompt}\n\n{prompt}"

        request_kwargs: Dict[str, Any] = {}
        if self.config.api.request_timeout:
            request_kwargs["request_options"] = {"timeout": self.config.api.request_timeout}

        # Run Gemini call in thread pool to avoid blocking the event loop
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None, functools.partial(model.generate_content, full_prompt, **request_kwargs)
        )
        try:
            return response.text
        except ValueError as e:
            # Raised when the candidate was blocked or carries no text parts
            raise ProviderError(self.name, ProviderError.INVALID_RESPONSE, f"Gemini returned no text: {e}", e)
