"""
Provider interface shared by every LLM backend

Each operation builds its prompt, sends it through the provider's rate
limiter and returns the raw response text. Parsing is left to the caller.
Provider failures are raised as ProviderError and never retried here.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp
import httpx
import openai

from ..core.config import Config
from ..core.errors import ProviderError
from ..core.models import ProjectPlan, ProjectStructure
from ..utils.filesystem import list_files, read_file
from ..utils.rate_limiter import ProviderRateLimitManager
from . import prompts

logger = logging.getLogger(__name__)

AUTH_PATTERNS = [
    "auth", "unauthorized", "forbidden", "invalid api key", "api key",
    "authentication failed", "credentials", "access denied", "token expired",
    "permission denied",
]
RATE_LIMIT_PATTERNS = ["rate limit", "too many requests", "quota", "resource exhausted", "too many tokens"]
TIMEOUT_PATTERNS = ["timeout", "timed out", "deadline exceeded"]
CONNECTION_PATTERNS = ["connection", "network", "unreachable", "name resolution"]
SERVER_PATTERNS = ["502", "503", "504", "internal error", "server error", "bad gateway"]


def _status_code(error: Exception) -> Optional[int]:
    for attr in ("status_code", "status", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def classify_provider_exception(provider: str, error: Exception) -> ProviderError:
    """Map an SDK or transport exception onto the ProviderError taxonomy"""
    if isinstance(error, ProviderError):
        return error

    message = str(error) or type(error).__name__

    if isinstance(error, (openai.APITimeoutError, httpx.TimeoutException, aiohttp.ServerTimeoutError, asyncio.TimeoutError)):
        return ProviderError(provider, ProviderError.TIMEOUT, message, error)
    if isinstance(error, (openai.APIConnectionError, httpx.TransportError, aiohttp.ClientConnectionError, ConnectionError)):
        return ProviderError(provider, ProviderError.CONNECTION_ERROR, message, error)

    status = _status_code(error)
    if status in (401, 403):
        return ProviderError(provider, ProviderError.AUTH_FAILED, message, error)
    if status == 429:
        return ProviderError(provider, ProviderError.RATE_LIMIT, message, error)
    if status is not None and 400 <= status < 600:
        return ProviderError(provider, ProviderError.HTTP_ERROR, f"HTTP {status}: {message}", error)

    error_str = message.lower()
    if any(pattern in error_str for pattern in RATE_LIMIT_PATTERNS):
        return ProviderError(provider, ProviderError.RATE_LIMIT, message, error)
    if any(pattern in error_str for pattern in AUTH_PATTERNS):
        return ProviderError(provider, ProviderError.AUTH_FAILED, message, error)
    if any(pattern in error_str for pattern in TIMEOUT_PATTERNS):
        return ProviderError(provider, ProviderError.TIMEOUT, message, error)
    if any(pattern in error_str for pattern in CONNECTION_PATTERNS):
        return ProviderError(provider, ProviderError.CONNECTION_ERROR, message, error)
    if any(pattern in error_str for pattern in SERVER_PATTERNS):
        return ProviderError(provider, ProviderError.HTTP_ERROR, message, error)
    return ProviderError(provider, ProviderError.UNKNOWN_ERROR, f"Unexpected error: {message}", error)


def build_http_client(config: Config) -> Optional[httpx.AsyncClient]:
    """HTTP client for OpenAI-compatible SDKs that ignores proxy variables when asked to"""
    if not config.api.disable_proxy:
        return None
    logger.info("🚫 Proxy usage disabled for OpenAI-compatible clients")
    return httpx.AsyncClient(trust_env=False)


async def openai_chat_completion(client, model: str, prompt: str, system_prompt: Optional[str],
                                 max_tokens: int, temperature: float, json_object: bool = False,
                                 timeout: Optional[float] = None) -> Optional[str]:
    """One chat completion against an OpenAI-compatible client; returns the message text"""
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})

    request_kwargs: Dict[str, Any] = {}
    if json_object:
        request_kwargs["response_format"] = {"type": "json_object"}
    if timeout:
        request_kwargs["timeout"] = timeout

    response = await client.chat.completions.create(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        **request_kwargs
    )
    if not response.choices:
        return None
    return response.choices[0].message.content


class BaseProvider(ABC):
    """Capability set every backend implements"""

    name = "base"

    def __init__(self, config: Config, rate_limiter: Optional[ProviderRateLimitManager] = None):
        self.config = config
        self.rate_limiter = rate_limiter or ProviderRateLimitManager(config)

    @abstractmethod
    async def _complete(self, prompt: str, system_prompt: Optional[str] = None,
                        json_object: bool = False, temperature: Optional[float] = None) -> Optional[str]:
        """Send one prompt to the backend and return the raw text"""

    def _require(self, value: Optional[str], variable: str) -> str:
        if not value:
            raise ProviderError(self.name, ProviderError.CONFIG_ERROR, f"{variable} is not configured")
        return value

    async def _send(self, prompt: str, operation: str, system_prompt: Optional[str] = prompts.SYSTEM_PROMPT,
                    json_object: bool = True, temperature: Optional[float] = None) -> str:
        logger.info(f"🤖 {self.name}: {operation}")
        logger.debug("📝 Prompt length: %d chars", len(prompt))

        async with self.rate_limiter.acquire(self.name):
            try:
                content = await self._complete(prompt, system_prompt, json_object, temperature)
            except Exception as e:
                error = classify_provider_exception(self.name, e)
                logger.error(f"❌ {self.name} {operation} failed: {error}")
                raise error from e

        if content is None or not content.strip():
            logger.warning(f"⚠️ {self.name} returned empty content for {operation}")
            raise ProviderError(self.name, ProviderError.EMPTY_RESPONSE, f"Empty response for {operation}")

        logger.info(f"📤 {self.name} response length: {len(content)} chars")
        return content

    async def generate_plan(self, requirements: str) -> str:
        return await self._send(prompts.plan_prompt(requirements), "generate_plan")

    async def generate_structure(self, plan: ProjectPlan) -> str:
        return await self._send(prompts.structure_prompt(plan), "generate_structure")

    async def fix_errors(self, errors: List[str], structure: ProjectStructure) -> str:
        return await self._send(
            prompts.fix_errors_prompt(errors, structure),
            "fix_errors",
            system_prompt=prompts.FIX_SYSTEM_PROMPT,
            temperature=0.3,
        )

    async def generate_docs(self, structure: ProjectStructure) -> str:
        return await self._send(prompts.documentation_prompt(structure), "generate_docs")

    async def suggest_enhancements(self, structure: ProjectStructure) -> str:
        return await self._send(
            prompts.enhancements_prompt(structure),
            "suggest_enhancements",
            system_prompt=prompts.MARKDOWN_SYSTEM_PROMPT,
            json_object=False,
        )

    async def scan(self, path: str) -> str:
        """Ask for issues and suggestions about the project at ``path``"""
        file_contents = self.collect_scan_files(path)
        logger.info(f"🔍 Scanning {len(file_contents)} files in {path}")
        return await self._send(
            prompts.scan_prompt(path, file_contents, self.config.scan.max_chars_per_file),
            "scan",
        )

    def collect_scan_files(self, path: str) -> Dict[str, str]:
        root = Path(path)
        scan = self.config.scan
        contents: Dict[str, str] = {}
        for file_path in list_files(root, recursive=True, ignored_dirs=scan.ignored_dirs):
            if len(contents) >= scan.max_files:
                break
            if file_path.suffix not in scan.scan_extensions:
                continue
            try:
                contents[file_path.relative_to(root).as_posix()] = read_file(file_path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"⚠️ Error reading file {file_path}: {e}")
        return contents
