"""
Configuration management for project-gen
"""

import os
import yaml
from pathlib import Path
from typing import Dict, List, Optional
from dataclasses import dataclass, field, asdict

from dotenv import find_dotenv, load_dotenv


@dataclass
class APIConfig:
    """Credentials and model settings for every LLM backend"""
    # Google Gemini
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"

    # Azure OpenAI
    azure_api_key: Optional[str] = None
    azure_endpoint: Optional[str] = None
    azure_deployment: Optional[str] = None
    azure_api_version: str = "2024-02-01"
    azure_model: Optional[str] = None

    # Groq (OpenAI-compatible)
    groq_api_key: Optional[str] = None
    groq_model: str = "llama3-70b-8192"
    groq_base_url: str = "https://api.groq.com/openai/v1"

    # Ollama (local, no credential)
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama3"

    # Shared generation parameters
    temperature: float = 0.7
    max_tokens: int = 4000
    request_timeout: Optional[float] = None
    disable_proxy: bool = False

    # Rate limiting settings
    max_requests_per_minute: int = 60
    max_concurrent_requests: int = 4


@dataclass
class PipelineConfig:
    """Behaviour of the generation/update pipeline"""
    max_fix_attempts: int = 1
    max_error_length: int = 5000
    readme_file: str = "README.md"
    suggestions_file: str = "ENHANCEMENTS.md"
    enhance: bool = True


@dataclass
class ToolchainConfig:
    """External installer and compiler commands run inside the target directory"""
    manifest_file: str = "package.json"
    install_command: List[str] = field(default_factory=lambda: ["npm", "install"])
    build_command: List[str] = field(default_factory=lambda: ["npm", "run", "build"])
    typecheck_command: List[str] = field(default_factory=lambda: ["npx", "tsc", "--noEmit"])
    typecheck_config_file: str = "tsconfig.json"
    outdated_command: List[str] = field(default_factory=lambda: ["npm", "outdated", "--json"])
    list_command: List[str] = field(default_factory=lambda: ["npm", "list", "--json"])
    command_timeout: Optional[float] = None


@dataclass
class ScanConfig:
    """Limits for reading an existing project back into prompts"""
    max_files: int = 20
    max_chars_per_file: int = 1000
    key_files: List[str] = field(default_factory=lambda: ["package.json", "tsconfig.json", "README.md"])
    snapshot_extensions: List[str] = field(default_factory=lambda: [
        ".ts", ".js", ".json", ".md", ".yaml", ".yml"
    ])
    scan_extensions: List[str] = field(default_factory=lambda: [
        ".ts", ".tsx", ".js", ".jsx", ".json", ".md", ".html", ".css"
    ])
    ignored_dirs: List[str] = field(default_factory=lambda: ["node_modules", "dist"])


@dataclass
class LoggingConfig:
    log_dir: str = "logs"
    debug: bool = False


@dataclass
class Config:
    """Main configuration class"""
    api: APIConfig = field(default_factory=APIConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path: str = None) -> 'Config':
        """Load configuration from a YAML file, then apply environment overrides.

        Without an explicit path ``config.yaml`` is used when it exists,
        otherwise the defaults. An explicit path that does not exist is an error.
        """
        if config_path is None:
            default_path = Path("config.yaml")
            yaml_data = cls._read_yaml(default_path) if default_path.exists() else {}
        else:
            config_path = Path(config_path)
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            yaml_data = cls._read_yaml(config_path)

        # .env values never override variables already exported in the shell
        load_dotenv(find_dotenv(usecwd=True), override=False)

        api_config = dict(yaml_data.get('api') or {})

        def _apply_env(var_name: str, key: str, cast=None):
            value = os.getenv(var_name)
            if value is None or value == "":
                return
            if cast is not None:
                try:
                    value = cast(value)
                except ValueError:
                    # Keep original string; validate() surfaces the problem
                    pass
            api_config[key] = value

        _apply_env('GEMINI_API_KEY', 'gemini_api_key')
        _apply_env('GEMINI_MODEL', 'gemini_model')
        _apply_env('AZURE_OPENAI_API_KEY', 'azure_api_key')
        _apply_env('AZURE_OPENAI_ENDPOINT', 'azure_endpoint')
        _apply_env('AZURE_OPENAI_DEPLOYMENT_ID', 'azure_deployment')
        _apply_env('AZURE_OPENAI_API_VERSION', 'azure_api_version')
        _apply_env('AZURE_OPENAI_MODEL', 'azure_model')
        _apply_env('GROQ_API_KEY', 'groq_api_key')
        _apply_env('GROQ_MODEL', 'groq_model')
        _apply_env('GROQ_BASE_URL', 'groq_base_url')
        _apply_env('OLLAMA_API_URL', 'ollama_url')
        _apply_env('OLLAMA_MODEL', 'ollama_model')
        _apply_env('PROJECTGEN_REQUEST_TIMEOUT', 'request_timeout', float)

        disable_proxy_env = os.getenv('PROJECTGEN_DISABLE_PROXY')
        if disable_proxy_env is not None:
            api_config['disable_proxy'] = disable_proxy_env.lower() in {'1', 'true', 'yes', 'on'}

        logging_config = dict(yaml_data.get('logging') or {})
        if os.getenv('DEBUG', '').lower() == 'true':
            logging_config['debug'] = True

        return cls(
            api=APIConfig(**api_config),
            pipeline=PipelineConfig(**(yaml_data.get('pipeline') or {})),
            toolchain=ToolchainConfig(**(yaml_data.get('toolchain') or {})),
            scan=ScanConfig(**(yaml_data.get('scan') or {})),
            logging=LoggingConfig(**logging_config),
        )

    @staticmethod
    def _read_yaml(path: Path) -> Dict:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def save_to_file(self, path: str):
        """Write the configuration as YAML, leaving credentials out"""
        data = asdict(self)
        for key in ('gemini_api_key', 'azure_api_key', 'groq_api_key'):
            data['api'][key] = None
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, sort_keys=False)

    def provider_status(self) -> Dict[str, bool]:
        """Whether each backend has what it needs to be constructed"""
        return {
            'gemini': bool(self.api.gemini_api_key),
            'azure': bool(self.api.azure_api_key and self.api.azure_endpoint and self.api.azure_deployment),
            'groq': bool(self.api.groq_api_key),
            'ollama': True,
        }

    def summary(self):
        """Return a human-readable summary of the configuration"""
        configured = [name for name, ready in self.provider_status().items() if ready]
        return {
            'providers': ', '.join(configured),
            'models': (f"Gemini: {self.api.gemini_model}, Groq: {self.api.groq_model}, "
                       f"Ollama: {self.api.ollama_model}, Azure: {self.api.azure_model or self.api.azure_deployment}"),
            'rate_limits': f"{self.api.max_requests_per_minute} req/min, {self.api.max_concurrent_requests} concurrent",
            'fix_attempts': str(self.pipeline.max_fix_attempts),
            'toolchain': f"install: {' '.join(self.toolchain.install_command)}, build: {' '.join(self.toolchain.build_command)}",
            'logs': self.logging.log_dir,
        }

    def validate(self):
        """Validate configuration and return list of errors"""
        errors = []

        if not (0.0 <= self.api.temperature <= 2.0):
            errors.append("api.temperature must be between 0 and 2")
        if self.api.max_tokens <= 0:
            errors.append("api.max_tokens must be positive")
        if self.api.request_timeout is not None and not isinstance(self.api.request_timeout, (int, float)):
            errors.append(f"api.request_timeout must be a number, got {self.api.request_timeout!r}")
        if self.api.max_requests_per_minute <= 0 or self.api.max_concurrent_requests <= 0:
            errors.append("Rate limits must be positive")

        if self.pipeline.max_fix_attempts < 0:
            errors.append("pipeline.max_fix_attempts cannot be negative")
        if self.pipeline.max_error_length <= 0:
            errors.append("pipeline.max_error_length must be positive")

        for name in ('install_command', 'build_command', 'typecheck_command'):
            if not getattr(self.toolchain, name):
                errors.append(f"toolchain.{name} cannot be empty")

        if self.scan.max_files <= 0:
            errors.append("scan.max_files must be positive")

        return errors
