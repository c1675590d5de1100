"""
Analysis of an existing project: model review, outdated packages, compile check
and optional enhancement suggestions
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..core.config import Config
from ..core.errors import ReconciliationError
from ..core.models import CompilationResult, ProjectAnalysis, ProjectStructure
from ..providers.base import BaseProvider
from ..toolchain.compiler import ProjectCompiler
from ..toolchain.package_manager import PackageManager
from ..utils.filesystem import write_file
from ..utils.llm_parsing import ExpectedShape, LLMResponseParser
from .reconciler import extract_existing_structure

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    """Everything ``analyze`` found out about a project"""
    project_path: str
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    outdated_packages: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    installed_packages: Dict[str, str] = field(default_factory=dict)
    compilation: Optional[CompilationResult] = None
    enhancements: Optional[str] = None
    enhancements_path: Optional[str] = None

    @property
    def compiles(self) -> bool:
        return self.compilation is not None and self.compilation.success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_path": self.project_path,
            "issues": list(self.issues),
            "suggestions": list(self.suggestions),
            "outdated_packages": dict(self.outdated_packages),
            "installed_packages": dict(self.installed_packages),
            "compiles": self.compiles,
            "compilation_errors": list(self.compilation.errors) if self.compilation else [],
            "enhancements_path": self.enhancements_path,
        }


class ProjectAnalyzer:
    """Runs scan -> package versions -> compile check -> (enhancements) over a directory"""

    def __init__(self, provider: BaseProvider, config: Optional[Config] = None,
                 parser: Optional[LLMResponseParser] = None,
                 compiler: Optional[ProjectCompiler] = None,
                 package_manager: Optional[PackageManager] = None):
        self.provider = provider
        self.config = config or Config()
        self.parser = parser or LLMResponseParser()
        self.compiler = compiler or ProjectCompiler(self.config.toolchain)
        self.package_manager = package_manager or PackageManager(self.config.toolchain)

    async def analyze(self, path, suggest_enhancements: bool = False) -> AnalysisReport:
        project_path = Path(path)
        report = AnalysisReport(project_path=str(project_path))

        logger.info(f"🔍 Scanning project files in {project_path}...")
        raw = await self.provider.scan(str(project_path))
        analysis = ProjectAnalysis.from_dict(self.parser.recover(raw, ExpectedShape.ANALYSIS))
        report.issues = analysis.issues
        report.suggestions = analysis.suggestions

        logger.info("📦 Checking for outdated packages...")
        report.outdated_packages = await self.package_manager.check_outdated(project_path)
        if report.outdated_packages:
            logger.info(f"📦 Found {len(report.outdated_packages)} outdated packages")
        else:
            logger.info("📦 All packages are up to date")

        installed = await self.package_manager.installed_versions(project_path)
        report.installed_packages = {
            name: str(info.get("version", "unknown")) if isinstance(info, dict) else str(info)
            for name, info in installed.items()
        }
        logger.debug(f"📦 {len(report.installed_packages)} installed packages")

        logger.info("🔨 Verifying compilation...")
        report.compilation = await self.compiler.compile(project_path)

        if suggest_enhancements:
            await self.enhance(project_path, report)

        logger.info(f"✅ Project analysis completed: {len(report.issues)} issues, {len(report.suggestions)} suggestions")
        return report

    async def enhance(self, path, report: Optional[AnalysisReport] = None) -> AnalysisReport:
        """Ask for enhancement suggestions based on the on-disk snapshot and save them"""
        project_path = Path(path)
        report = report or AnalysisReport(project_path=str(project_path))

        try:
            structure = extract_existing_structure(
                project_path, self.config.scan, self.config.toolchain.manifest_file
            )
        except ReconciliationError as e:
            logger.warning(f"⚠️ Could not snapshot {project_path} ({e}); asking for generic suggestions")
            structure = ProjectStructure()

        logger.info("💡 Generating enhancement suggestions...")
        report.enhancements = await self.provider.suggest_enhancements(structure)
        suggestions_path = project_path / self.config.pipeline.suggestions_file
        write_file(suggestions_path, report.enhancements)
        report.enhancements_path = str(suggestions_path)
        logger.info(f"💾 Enhancement suggestions saved to {suggestions_path}")
        return report
