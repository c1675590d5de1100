# tests/conftest.py
"""
Common test fixtures for project-gen.
"""
import json
from pathlib import Path

import pytest

from projectgen.core.config import Config
from projectgen.core.models import CompilationResult
from projectgen.providers.base import BaseProvider

PROVIDER_ENV_VARS = [
    "GEMINI_API_KEY", "GEMINI_MODEL",
    "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_DEPLOYMENT_ID",
    "AZURE_OPENAI_API_VERSION", "AZURE_OPENAI_MODEL",
    "GROQ_API_KEY", "GROQ_MODEL", "GROQ_BASE_URL",
    "OLLAMA_API_URL", "OLLAMA_MODEL",
    "PROJECTGEN_REQUEST_TIMEOUT", "PROJECTGEN_DISABLE_PROXY", "DEBUG",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep real credentials from the developer shell out of every test."""
    for var in PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class ScriptedProvider(BaseProvider):
    """Provider that answers from a script instead of a model.

    Each operation maps to one response or a tuple of responses consumed in
    order (the last one repeats). A response may be a string, a JSON-able
    value, or an exception to raise.
    """

    name = "scripted"

    def __init__(self, config=None, **responses):
        super().__init__(config or Config())
        self.responses = {
            operation: list(value) if isinstance(value, tuple) else [value]
            for operation, value in responses.items()
        }
        self.calls = []

    async def _complete(self, prompt, system_prompt=None, json_object=False, temperature=None):
        raise AssertionError("ScriptedProvider never talks to a backend")

    async def _reply(self, operation, *args):
        self.calls.append((operation, args))
        queue = self.responses.get(operation)
        if not queue:
            raise AssertionError(f"Unexpected {operation} call")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response if isinstance(response, str) else json.dumps(response)

    @property
    def operations(self):
        return [operation for operation, _ in self.calls]

    def args_for(self, operation):
        return [args for op, args in self.calls if op == operation]

    async def generate_plan(self, requirements):
        return await self._reply("generate_plan", requirements)

    async def generate_structure(self, plan):
        return await self._reply("generate_structure", plan)

    async def fix_errors(self, errors, structure):
        return await self._reply("fix_errors", errors, structure)

    async def generate_docs(self, structure):
        return await self._reply("generate_docs", structure)

    async def suggest_enhancements(self, structure):
        return await self._reply("suggest_enhancements", structure)

    async def scan(self, path):
        return await self._reply("scan", path)


class FakeCompiler:
    """Returns scripted CompilationResults; the last one repeats"""

    def __init__(self, *results):
        self.results = list(results) or [CompilationResult(True)]
        self.calls = []

    async def compile(self, project_dir):
        self.calls.append(Path(project_dir))
        return self.results.pop(0) if len(self.results) > 1 else self.results[0]


class FakePackageManager:
    def __init__(self, error=None, outdated=None, installed_versions=None):
        self.error = error
        self.outdated = outdated or {}
        self.versions = installed_versions or {}
        self.installed = []

    async def install(self, project_dir, dependencies):
        self.installed.append((Path(project_dir), dependencies))
        if self.error is not None:
            raise self.error

    async def check_outdated(self, project_dir):
        return dict(self.outdated)

    async def installed_versions(self, project_dir):
        return dict(self.versions)


PLAN = {
    "projectName": "todo-cli",
    "description": "CLI todo app",
    "technologies": ["Node", "TypeScript"],
    "architecture": "Single CLI entry point with a JSON file store",
    "components": [{"name": "TodoStore", "description": "Persists todos", "responsibilities": ["load", "save"]}],
    "dataModels": [{"name": "Todo", "fields": [{"name": "title", "type": "string", "description": "Todo text"}]}],
}

STRUCTURE = {
    "directories": ["src"],
    "files": [
        {"path": "package.json", "content": '{"name": "todo-cli", "scripts": {"build": "tsc"}}'},
        {"path": "tsconfig.json", "content": '{"compilerOptions": {"strict": true}}'},
        {"path": "src/index.ts", "content": "const count: number = 'one';\n"},
    ],
    "dependencies": {
        "dependencies": {"commander": "^12.0.0"},
        "devDependencies": {"typescript": "^5.4.0"},
    },
}

DOCS = {
    "readme": "# todo-cli\n\nA CLI todo app.",
    "additional": [{"path": "docs/ARCHITECTURE.md", "content": "# Architecture"}],
}


@pytest.fixture
def config(tmp_path):
    config = Config()
    config.logging.log_dir = str(tmp_path / "logs")
    return config


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "generated-project"


@pytest.fixture
def existing_project(tmp_path):
    """An on-disk project with a manifest and two TypeScript files."""
    project = tmp_path / "existing"
    project.mkdir()
    (project / "package.json").write_text(json.dumps({
        "name": "existing",
        "version": "1.0.0",
        "dependencies": {"express": "^4.18.0"},
        "devDependencies": {"typescript": "^5.0.0"},
    }, indent=2))
    (project / "a.ts").write_text("export const a = 1;\n")
    (project / "b.ts").write_text("export const b = 1;\n")
    return project
