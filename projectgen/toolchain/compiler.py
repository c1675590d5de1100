"""
Compiler collaborator: decides how (and whether) a generated project is built
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.config import ToolchainConfig
from ..core.models import CompilationResult
from .commands import run_command

logger = logging.getLogger(__name__)

NO_COMPILATION_NEEDED = "JavaScript project, no compilation needed"


class ProjectCompiler:
    """Compiles a project directory with its build script or the type-checker.

    Decision order: a ``build`` script is run when the manifest has one; a
    manifest without one that depends on ``react`` or lacks a ``typescript``
    dev dependency is plain JavaScript; a project without a type-checker
    config is plain JavaScript; everything else is type-checked.
    """

    def __init__(self, toolchain: Optional[ToolchainConfig] = None):
        self.toolchain = toolchain or ToolchainConfig()

    async def compile(self, project_dir) -> CompilationResult:
        project_dir = Path(project_dir)
        start = time.time()
        logger.info(f"🔨 Compiling project in {project_dir}...")

        manifest = self._read_manifest(project_dir)
        if manifest is not None:
            scripts = manifest.get("scripts") or {}
            if isinstance(scripts, dict) and scripts.get("build"):
                return await self._run(self.toolchain.build_command, project_dir, start, "Build command")

            dependencies = manifest.get("dependencies") or {}
            dev_dependencies = manifest.get("devDependencies") or {}
            if "react" in dependencies or "typescript" not in dev_dependencies:
                logger.info("📦 JavaScript project detected, skipping TypeScript compilation")
                return CompilationResult(True, output=NO_COMPILATION_NEEDED, execution_time=time.time() - start)

        if not (project_dir / self.toolchain.typecheck_config_file).is_file():
            logger.info(f"📦 No {self.toolchain.typecheck_config_file} found, assuming JavaScript project")
            return CompilationResult(True, output=NO_COMPILATION_NEEDED, execution_time=time.time() - start)

        return await self._run(self.toolchain.typecheck_command, project_dir, start, "TypeScript compilation")

    async def _run(self, command, project_dir: Path, start: float, label: str) -> CompilationResult:
        result = await run_command(command, project_dir, self.toolchain.command_timeout)
        elapsed = time.time() - start
        if result.ok:
            logger.info(f"✅ {label} succeeded")
            return CompilationResult(True, output=result.stdout, execution_time=elapsed)

        message = result.failure_message()
        logger.error(f"❌ {label} failed: {message[:500]}")
        return CompilationResult(False, errors=[message], output=result.stdout or None, execution_time=elapsed)

    def _read_manifest(self, project_dir: Path) -> Optional[Dict[str, Any]]:
        manifest_path = project_dir / self.toolchain.manifest_file
        if not manifest_path.is_file():
            return None
        try:
            with open(manifest_path, 'r', encoding='utf-8') as f:
                manifest = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️ Could not read {manifest_path}: {e}")
            return None
        return manifest if isinstance(manifest, dict) else None
