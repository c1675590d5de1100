"""
Groq provider (OpenAI-compatible endpoint)
"""

import logging
from typing import Any, Dict, Optional

import openai

from .base import BaseProvider, build_http_client, openai_chat_completion

logger = logging.getLogger(__name__)


class GroqProvider(BaseProvider):
    name = "groq"

    def __init__(self, config, rate_limiter=None):
        super().__init__(config, rate_limiter)
        api = config.api
        api_key = self._require(api.groq_api_key, "GROQ_API_KEY")
        self.model_name = api.groq_model

        client_kwargs: Dict[str, Any] = {
            "api_key": api_key,
            "base_url": api.groq_base_url.rstrip("/"),
        }
        if api.request_timeout:
            client_kwargs["timeout"] = api.request_timeout
        http_client = build_http_client(config)
        if http_client is not None:
            client_kwargs["http_client"] = http_client

        self.client = openai.AsyncOpenAI(**client_kwargs)
        logger.info(f"✅ Using Groq model: {self.model_name}")

    async def _complete(self, prompt: str, system_prompt: Optional[str] = None,
                        json_object: bool = False, temperature: Optional[float] = None) -> Optional[str]:
        return await openai_chat_completion(
            self.client,
            model=self.model_name,
            prompt=prompt,
            system_prompt=system_prompt,
            max_tokens=self.config.api.max_tokens,
            temperature=self.config.api.temperature if temperature is None else temperature,
            json_object=json_object,
        )
