"""
Tests for provider adapters, error classification and the factory
"""
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from projectgen.core.config import Config
from projectgen.core.errors import ProviderError
from projectgen.core.models import ProjectPlan, ProjectStructure
from projectgen.providers import prompts
from projectgen.providers.azure import AzureProvider
from projectgen.providers.base import classify_provider_exception
from projectgen.providers.factory import available_providers, create_provider
from projectgen.providers.gemini import GeminiProvider
from projectgen.providers.groq import GroqProvider
from projectgen.providers.ollama import OllamaProvider

from conftest import PLAN, STRUCTURE, ScriptedProvider


class _StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"request failed with status {status_code}")
        self.status_code = status_code


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestClassification:
    @pytest.mark.parametrize("error, expected", [
        (httpx.ConnectTimeout("timed out"), ProviderError.TIMEOUT),
        (asyncio.TimeoutError(), ProviderError.TIMEOUT),
        (httpx.ConnectError("connection refused"), ProviderError.CONNECTION_ERROR),
        (ConnectionResetError("reset by peer"), ProviderError.CONNECTION_ERROR),
        (_StatusError(401), ProviderError.AUTH_FAILED),
        (_StatusError(403), ProviderError.AUTH_FAILED),
        (_StatusError(429), ProviderError.RATE_LIMIT),
        (_StatusError(503), ProviderError.HTTP_ERROR),
        (Exception("429 Resource exhausted: quota exceeded"), ProviderError.RATE_LIMIT),
        (Exception("Invalid API key provided"), ProviderError.AUTH_FAILED),
        (Exception("Deadline exceeded while waiting"), ProviderError.TIMEOUT),
        (Exception("something odd"), ProviderError.UNKNOWN_ERROR),
    ])
    def test_taxonomy(self, error, expected):
        classified = classify_provider_exception("gemini", error)
        assert classified.error_type == expected
        assert classified.provider == "gemini"
        assert classified.original_error is error

    def test_provider_errors_pass_through(self):
        error = ProviderError("groq", ProviderError.EMPTY_RESPONSE, "empty")
        assert classify_provider_exception("groq", error) is error

    def test_helpers(self):
        assert ProviderError("x", ProviderError.CONFIG_ERROR, "").is_auth_error
        assert ProviderError("x", ProviderError.RATE_LIMIT, "").is_rate_limit
        assert ProviderError("x", ProviderError.TIMEOUT, "").is_transport_error


class TestFactory:
    def test_available_providers(self):
        assert available_providers() == ["gemini", "azure", "groq", "ollama"]

    def test_unknown_provider(self):
        with pytest.raises(ProviderError) as exc_info:
            create_provider("claude-9000", Config())
        assert exc_info.value.error_type == ProviderError.CONFIG_ERROR

    @pytest.mark.parametrize("name, variable", [
        ("gemini", "GEMINI_API_KEY"),
        ("azure", "AZURE_OPENAI_API_KEY"),
        ("groq", "GROQ_API_KEY"),
    ])
    def test_missing_credentials_fail_at_construction(self, name, variable):
        with pytest.raises(ProviderError) as exc_info:
            create_provider(name, Config())
        assert exc_info.value.error_type == ProviderError.CONFIG_ERROR
        assert variable in exc_info.value.message

    def test_azure_needs_endpoint_and_deployment(self):
        config = Config()
        config.api.azure_api_key = "key"
        with pytest.raises(ProviderError) as exc_info:
            create_provider("azure", config)
        assert "AZURE_OPENAI_ENDPOINT" in exc_info.value.message

    def test_ollama_needs_no_credential(self):
        provider = create_provider("OLLAMA", Config())
        assert isinstance(provider, OllamaProvider)


class TestSharedBehaviour:
    @pytest.mark.asyncio
    async def test_empty_content_is_an_error(self):
        config = Config()
        config.api.groq_api_key = "key"
        with patch("projectgen.providers.groq.openai.AsyncOpenAI") as client_cls:
            client_cls.return_value.chat.completions.create = AsyncMock(return_value=_chat_response("   "))
            provider = GroqProvider(config)
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate_plan("A CLI todo app")
        assert exc_info.value.error_type == ProviderError.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_sdk_exceptions_are_classified(self):
        config = Config()
        config.api.groq_api_key = "key"
        with patch("projectgen.providers.groq.openai.AsyncOpenAI") as client_cls:
            client_cls.return_value.chat.completions.create = AsyncMock(side_effect=_StatusError(429))
            provider = GroqProvider(config)
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate_docs(ProjectStructure())
        assert exc_info.value.is_rate_limit

    def test_collect_scan_files(self, tmp_path):
        (tmp_path / "node_modules").mkdir()
        (tmp_path / "node_modules" / "dep.js").write_text("vendored")
        (tmp_path / "index.ts").write_text("x" * 1500)
        (tmp_path / "image.png").write_bytes(b"\x89PNG")
        for index in range(25):
            (tmp_path / f"module{index:02d}.ts").write_text("export {};")

        provider = ScriptedProvider(Config())
        files = provider.collect_scan_files(str(tmp_path))

        assert len(files) == 20
        assert "index.ts" in files
        assert not any(name.startswith("node_modules") for name in files)
        assert "image.png" not in files

        prompt = prompts.scan_prompt(str(tmp_path), files, max_chars=1000)
        assert "x" * 1000 + "... (truncated)" in prompt


class TestGemini:
    @pytest.mark.asyncio
    async def test_generate_plan(self):
        config = Config()
        config.api.gemini_api_key = "key"
        with patch("projectgen.providers.gemini.genai") as genai:
            model = genai.GenerativeModel.return_value
            model.generate_content.return_value = SimpleNamespace(text='{"projectName": "x"}')

            provider = GeminiProvider(config)
            text = await provider.generate_plan("A CLI todo app")

        assert text == '{"projectName": "x"}'
        genai.configure.assert_called_once_with(api_key="key")
        assert provider.model_name == "models/gemini-2.0-flash"
        sent_prompt = model.generate_content.call_args.args[0]
        assert sent_prompt.startswith(prompts.SYSTEM_PROMPT)
        assert "A CLI todo app" in sent_prompt

    @pytest.mark.asyncio
    async def test_blocked_response(self):
        class _Blocked:
            @property
            def text(self):
                raise ValueError("response was blocked")

        config = Config()
        config.api.gemini_api_key = "key"
        with patch("projectgen.providers.gemini.genai") as genai:
            genai.GenerativeModel.return_value.generate_content.return_value = _Blocked()
            provider = GeminiProvider(config)
            with pytest.raises(ProviderError) as exc_info:
                await provider.generate_plan("A CLI todo app")
        assert exc_info.value.error_type == ProviderError.INVALID_RESPONSE


class TestOpenAICompatible:
    @pytest.mark.asyncio
    async def test_azure_client_and_request(self):
        config = Config()
        config.api.azure_api_key = "key"
        config.api.azure_endpoint = "https://example.openai.azure.com"
        config.api.azure_deployment = "gpt-4o"
        config.api.max_tokens = 8000

        with patch("projectgen.providers.azure.openai.AsyncAzureOpenAI") as client_cls:
            create = AsyncMock(return_value=_chat_response('{"files": []}'))
            client_cls.return_value.chat.completions.create = create
            provider = AzureProvider(config)
            text = await provider.generate_structure(ProjectPlan.from_dict(PLAN))

        assert text == '{"files": []}'
        client_kwargs = client_cls.call_args.kwargs
        assert client_kwargs["azure_endpoint"] == "https://example.openai.azure.com"
        assert client_kwargs["azure_deployment"] == "gpt-4o"
        assert client_kwargs["api_version"] == "2024-02-01"
        assert "http_client" not in client_kwargs

        request = create.call_args.kwargs
        assert request["model"] == "gpt-4o"
        assert request["max_tokens"] == 4000
        assert request["response_format"] == {"type": "json_object"}
        assert request["messages"][0] == {"role": "system", "content": prompts.SYSTEM_PROMPT}

    @pytest.mark.asyncio
    async def test_groq_markdown_and_fix_requests(self):
        config = Config()
        config.api.groq_api_key = "key"
        config.api.disable_proxy = True

        with patch("projectgen.providers.groq.openai.AsyncOpenAI") as client_cls:
            create = AsyncMock(return_value=_chat_response("# Enhancement Suggestions"))
            client_cls.return_value.chat.completions.create = create
            provider = GroqProvider(config)
            structure = ProjectStructure.from_dict(STRUCTURE)
            await provider.suggest_enhancements(structure)
            enhance_request = create.call_args.kwargs
            await provider.fix_errors(["error TS2322"], structure)
            fix_request = create.call_args.kwargs

        client_kwargs = client_cls.call_args.kwargs
        assert client_kwargs["base_url"] == "https://api.groq.com/openai/v1"
        assert isinstance(client_kwargs["http_client"], httpx.AsyncClient)

        assert "response_format" not in enhance_request
        assert enhance_request["messages"][0]["content"] == prompts.MARKDOWN_SYSTEM_PROMPT
        assert "Next Steps" in enhance_request["messages"][1]["content"]

        assert fix_request["temperature"] == 0.3
        assert "error TS2322" in fix_request["messages"][1]["content"]


class _FakeResponse:
    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self.payload = payload
        self._text = text

    async def json(self, content_type=None):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _FakeSession:
    def __init__(self, response):
        self.response = response
        self.posts = []
        self.session_kwargs = {}

    def __call__(self, *args, **kwargs):
        self.session_kwargs = kwargs
        return self

    def post(self, url, json=None):
        self.posts.append((url, json))
        return self.response

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class TestOllama:
    async def _call(self, response, config=None):
        session = _FakeSession(response)
        with patch("projectgen.providers.ollama.aiohttp.ClientSession", new=session):
            provider = OllamaProvider(config or Config())
            text = await provider.generate_plan("A CLI todo app")
        return text, session

    @pytest.mark.asyncio
    async def test_generate_request(self):
        text, session = await self._call(_FakeResponse(payload={"response": '{"projectName": "x"}'}))

        assert text == '{"projectName": "x"}'
        url, body = session.posts[0]
        assert url == "http://localhost:11434/api/generate"
        assert body["model"] == "llama3"
        assert body["stream"] is False
        assert body["format"] == "json"
        assert body["system"] == prompts.SYSTEM_PROMPT
        assert session.session_kwargs["trust_env"] is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, expected", [
        (401, ProviderError.AUTH_FAILED),
        (429, ProviderError.RATE_LIMIT),
        (500, ProviderError.HTTP_ERROR),
    ])
    async def test_http_errors(self, status, expected):
        with pytest.raises(ProviderError) as exc_info:
            await self._call(_FakeResponse(status=status, text="nope"))
        assert exc_info.value.error_type == expected

    @pytest.mark.asyncio
    async def test_missing_response_field(self):
        with pytest.raises(ProviderError) as exc_info:
            await self._call(_FakeResponse(payload={"done": True}))
        assert exc_info.value.error_type == ProviderError.INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        with pytest.raises(ProviderError) as exc_info:
            await self._call(_FakeResponse(payload=ValueError("Expecting value")))
        assert exc_info.value.error_type == ProviderError.INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_disable_proxy(self):
        config = Config()
        config.api.disable_proxy = True
        _, session = await self._call(_FakeResponse(payload={"response": "{}"}), config)
        assert session.session_kwargs["trust_env"] is False


class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_limiter_per_provider(self):
        provider = ScriptedProvider(Config())
        limiters = provider.rate_limiter
        assert limiters.limiter_for("gemini") is limiters.limiter_for("gemini")
        assert limiters.limiter_for("gemini") is not limiters.limiter_for("groq")

        limiter = limiters.limiter_for("gemini")
        async with limiters.acquire("gemini"):
            assert limiter.semaphore.locked() is False
            assert len(limiter.request_timestamps) == 1
        assert limiter.semaphore._value == Config().api.max_concurrent_requests

    @pytest.mark.asyncio
    async def test_concurrency_cap(self):
        config = Config()
        config.api.max_concurrent_requests = 1
        limiter = ScriptedProvider(config).rate_limiter.limiter_for("ollama")

        async with limiter.acquire():
            assert limiter.semaphore.locked()
            waiter = asyncio.ensure_future(limiter.acquire().__aenter__())
            await asyncio.sleep(0)
            assert not waiter.done()
        await asyncio.wait_for(waiter, timeout=1)
        assert limiter.semaphore.locked()
        limiter.semaphore.release()
