"""
Azure OpenAI provider
"""

import logging
from typing import Any, Dict, Optional

import openai

from .base import BaseProvider, build_http_client, openai_chat_completion

logger = logging.getLogger(__name__)

# Slightly below 4096 to be safe across deployments
AZURE_MAX_TOKENS = 4000


class AzureProvider(BaseProvider):
    """Azure OpenAI chat deployment; requires key, endpoint and deployment id"""

    name = "azure"

    def __init__(self, config, rate_limiter=None):
        super().__init__(config, rate_limiter)
        api = config.api
        api_key = self._require(api.azure_api_key, "AZURE_OPENAI_API_KEY")
        endpoint = self._require(api.azure_endpoint, "AZURE_OPENAI_ENDPOINT")
        self.deployment = self._require(api.azure_deployment, "AZURE_OPENAI_DEPLOYMENT_ID")
        self.model_name = api.azure_model or self.deployment
        self.max_tokens = min(api.max_tokens, AZURE_MAX_TOKENS)

        client_kwargs: Dict[str, Any] = {
            "api_key": api_key,
            "azure_endpoint": endpoint,
            "azure_deployment": self.deployment,
            "api_version": api.azure_api_version,
        }
        if api.request_timeout:
            client_kwargs["timeout"] = api.request_timeout
        http_client = build_http_client(config)
        if http_client is not None:
            client_kwargs["http_client"] = http_client

        self.client = openai.AsyncAzureOpenAI(**client_kwargs)
        logger.info(f"✅ Using Azure OpenAI with deployment ID: {self.deployment}, model: {self.model_name}")

    async def _complete(self, prompt: str, system_prompt: Optional[str] = None,
                        json_object: bool = False, temperature: Optional[float] = None) -> Optional[str]:
        return await openai_chat_completion(
            self.client,
            model=self.model_name,
            prompt=prompt,
            system_prompt=system_prompt,
            max_tokens=self.max_tokens,
            temperature=self.config.api.temperature if temperature is None else temperature,
            json_object=json_object,
        )
