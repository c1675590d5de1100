"""
Package-manager collaborator: manifest merging, install, outdated/installed queries
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.config import ToolchainConfig
from ..core.errors import InstallError
from ..core.models import Dependencies
from ..utils.filesystem import write_file
from .commands import run_command

logger = logging.getLogger(__name__)


def default_manifest(project_dir: Path) -> Dict[str, Any]:
    return {
        "name": project_dir.name,
        "version": "1.0.0",
        "description": "Generated project",
        "main": "index.js",
        "scripts": {
            "test": "echo \"Error: no test specified\" && exit 1"
        },
        "keywords": [],
        "author": "",
        "license": "ISC",
        "dependencies": {},
        "devDependencies": {},
    }


def merge_manifest_dependencies(manifest: Dict[str, Any], dependencies: Optional[Dependencies]) -> Dict[str, Any]:
    """Return a copy of ``manifest`` with declared dependencies merged in (declarations win)"""
    dependencies = dependencies or Dependencies()
    merged = dict(manifest)
    merged["dependencies"] = {**(manifest.get("dependencies") or {}), **dependencies.dependencies}
    merged["devDependencies"] = {**(manifest.get("devDependencies") or {}), **dependencies.dev_dependencies}
    return merged


def _parse_json_output(output: str) -> Dict[str, Any]:
    if not output.strip():
        return {}
    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


class PackageManager:
    """Runs the configured installer inside a project directory"""

    def __init__(self, toolchain: Optional[ToolchainConfig] = None):
        self.toolchain = toolchain or ToolchainConfig()

    def manifest_path(self, project_dir) -> Path:
        return Path(project_dir) / self.toolchain.manifest_file

    def load_manifest(self, project_dir) -> Dict[str, Any]:
        """Existing manifest, or the default skeleton when it is absent or unreadable"""
        path = self.manifest_path(project_dir)
        if path.is_file():
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    manifest = json.load(f)
                if isinstance(manifest, dict):
                    return manifest
                logger.warning(f"⚠️ {path} is not a JSON object, starting from a default manifest")
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"⚠️ Could not read {path} ({e}), starting from a default manifest")
        return default_manifest(Path(project_dir).resolve())

    async def install(self, project_dir, dependencies: Optional[Dependencies]) -> None:
        """Merge dependencies into the manifest and run the installer.

        Raises InstallError when the manifest cannot be written or the installer fails.
        """
        if dependencies is None or dependencies.is_empty():
            logger.warning("⚠️ No dependencies specified, installing from the manifest as-is")

        manifest = merge_manifest_dependencies(self.load_manifest(project_dir), dependencies)
        path = self.manifest_path(project_dir)
        try:
            write_file(path, json.dumps(manifest, indent=2))
        except OSError as e:
            raise InstallError(f"Failed to write {path}: {e}") from e

        logger.info("📦 Installing dependencies...")
        result = await run_command(self.toolchain.install_command, project_dir, self.toolchain.command_timeout)
        if not result.ok:
            raise InstallError(f"Failed to install packages: {result.failure_message()}", output=result.stdout)
        logger.info("✅ Dependencies installed successfully")

    async def check_outdated(self, project_dir) -> Dict[str, Dict[str, Any]]:
        """Outdated packages keyed by name ({current, wanted, latest})"""
        result = await run_command(self.toolchain.outdated_command, project_dir, self.toolchain.command_timeout)
        # npm outdated exits with code 1 when outdated packages exist
        if result.ok or result.returncode == 1:
            return _parse_json_output(result.stdout)
        logger.error(f"❌ Error checking outdated packages: {result.failure_message()}")
        return {}

    async def installed_versions(self, project_dir) -> Dict[str, Any]:
        result = await run_command(self.toolchain.list_command, project_dir, self.toolchain.command_timeout)
        data = _parse_json_output(result.stdout)
        if not data and not result.ok:
            logger.error(f"❌ Error getting installed versions: {result.failure_message()}")
        return data.get("dependencies") or {}
