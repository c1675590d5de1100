"""
Generation/update pipeline

PLAN -> STRUCTURE -> INSTALL -> COMPILE -> (FIX_RETRY) -> DOCUMENT -> ENHANCE

Every stage reads from and writes to one PipelineContext owned by the
orchestrator for the duration of a run. PLAN, STRUCTURE, INSTALL, DOCUMENT and
ENHANCE failures are fatal; compilation problems only produce warnings.
"""

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..core.config import Config
from ..core.errors import InstallError, ProviderError, ReconciliationError, StageFatalError
from ..core.models import (
    ChangeType,
    CompilationResult,
    Documentation,
    FileChange,
    ProjectFile,
    ProjectPlan,
    ProjectStructure,
    coerce_file_list,
)
from ..providers.base import BaseProvider
from ..toolchain.compiler import ProjectCompiler
from ..toolchain.package_manager import PackageManager
from ..utils.filesystem import ensure_directory, has_content_changed, write_file
from ..utils.llm_parsing import ExpectedShape, LLMResponseParser, default_value
from .reconciler import StructureReconciler, diff_structures, extract_existing_structure

logger = logging.getLogger(__name__)

UPDATE_STRUCTURE_PROMPT = (
    "Update the existing project structure based on the new requirements. "
    "Only add or modify files that need to change."
)


class PipelineStage(Enum):
    INIT = "INIT"
    PLAN = "PLAN"
    STRUCTURE = "STRUCTURE"
    INSTALL = "INSTALL"
    COMPILE = "COMPILE"
    FIX_RETRY = "FIX_RETRY"
    DOCUMENT = "DOCUMENT"
    ENHANCE = "ENHANCE"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class PipelineContext:
    """State accumulated by one pipeline run"""
    requirements: str
    output_dir: Path
    is_update: bool = False
    stage: PipelineStage = PipelineStage.INIT
    existing_structure: Optional[ProjectStructure] = None
    plan: Optional[ProjectPlan] = None
    structure: Optional[ProjectStructure] = None
    compilation: Optional[CompilationResult] = None
    recompilation: Optional[CompilationResult] = None
    fixed_files: List[ProjectFile] = field(default_factory=list)
    documentation: Optional[Documentation] = None
    enhancements: Optional[str] = None
    written_files: List[str] = field(default_factory=list)
    skipped_files: List[str] = field(default_factory=list)
    changes: List[FileChange] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    history: List[PipelineStage] = field(default_factory=list)
    error: Optional[Exception] = None

    def enter(self, stage: PipelineStage) -> None:
        self.stage = stage
        self.history.append(stage)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(f"⚠️ {message}")

    @property
    def succeeded(self) -> bool:
        return self.stage == PipelineStage.DONE

    @property
    def compiled_cleanly(self) -> bool:
        final = self.recompilation or self.compilation
        return final is not None and final.success


def build_update_requirements(existing: ProjectStructure, requirements: str) -> str:
    """Requirements text that shows the model the project it is updating"""
    return (
        "I have an existing project with the following structure:\n"
        f"{json.dumps(existing.to_dict(), indent=2)}\n\n"
        f"Please update this project based on these requirements:\n{requirements}\n\n"
        "IMPORTANT: Do not recreate files that don't need changes. "
        "Only modify or add files that are relevant to the requirements."
    )


class PipelineOrchestrator:
    """Drives one generation or update run against a single target directory"""

    def __init__(self, provider: BaseProvider, config: Optional[Config] = None,
                 parser: Optional[LLMResponseParser] = None,
                 compiler: Optional[ProjectCompiler] = None,
                 package_manager: Optional[PackageManager] = None,
                 reconciler: Optional[StructureReconciler] = None):
        self.provider = provider
        self.config = config or Config()
        self.parser = parser or LLMResponseParser()
        self.compiler = compiler or ProjectCompiler(self.config.toolchain)
        self.package_manager = package_manager or PackageManager(self.config.toolchain)
        self.reconciler = reconciler or StructureReconciler()

    async def run(self, requirements: str, output_dir, is_update: bool = False) -> PipelineContext:
        """Run every stage in order and return the final context.

        Raises StageFatalError (with the failing stage attached) when a fatal
        stage fails; the context's stage is FAILED in that case.
        """
        ctx = PipelineContext(requirements=requirements, output_dir=Path(output_dir), is_update=is_update)
        ctx.enter(PipelineStage.INIT)
        logger.info(f"🚀 {'Updating' if is_update else 'Generating'} project in {ctx.output_dir}")

        stages = [
            (PipelineStage.PLAN, self._plan),
            (PipelineStage.STRUCTURE, self._structure),
            (PipelineStage.INSTALL, self._install),
            (PipelineStage.COMPILE, self._compile),
            (PipelineStage.DOCUMENT, self._document),
            (PipelineStage.ENHANCE, self._enhance),
        ]

        try:
            try:
                ensure_directory(ctx.output_dir)
            except OSError as e:
                raise StageFatalError(PipelineStage.INIT.value, f"Cannot create {ctx.output_dir}: {e}", e) from e
            if is_update:
                self._load_existing(ctx)

            for stage, handler in stages:
                if stage == PipelineStage.ENHANCE and not self._should_enhance(ctx):
                    logger.info("⏭️ Skipping enhancement suggestions")
                    continue
                ctx.enter(stage)
                try:
                    await handler(ctx)
                except StageFatalError:
                    raise
                except (ProviderError, InstallError, OSError) as e:
                    raise StageFatalError(stage.value, str(e), e) from e
        except StageFatalError as e:
            ctx.error = e
            ctx.enter(PipelineStage.FAILED)
            logger.error(f"❌ Pipeline failed at {e.stage}: {e.message}")
            raise

        ctx.enter(PipelineStage.DONE)
        if ctx.warnings:
            logger.warning(f"⚠️ Project {'updated' if is_update else 'generated'} with {len(ctx.warnings)} warning(s)")
        else:
            logger.info(f"✅ Project {'updated' if is_update else 'generated'} successfully in {ctx.output_dir.resolve()}")
        return ctx

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _load_existing(self, ctx: PipelineContext) -> None:
        manifest = ctx.output_dir / self.config.toolchain.manifest_file
        if not manifest.is_file():
            logger.info(f"📂 No {manifest.name} in {ctx.output_dir}, treating update as a fresh generation")
            return
        try:
            ctx.existing_structure = extract_existing_structure(
                ctx.output_dir, self.config.scan, self.config.toolchain.manifest_file
            )
        except ReconciliationError as e:
            ctx.warn(f"Failed to load existing project structure ({e}); continuing as a fresh generation")
            ctx.existing_structure = None

    async def _plan(self, ctx: PipelineContext) -> None:
        logger.info("🧠 Analyzing requirements...")
        requirements = ctx.requirements
        if ctx.existing_structure is not None:
            requirements = build_update_requirements(ctx.existing_structure, ctx.requirements)

        raw = await self.provider.generate_plan(requirements)
        ctx.plan = ProjectPlan.from_dict(self.parser.recover(raw, ExpectedShape.PLAN))
        logger.info(f"📋 Plan ready: {ctx.plan.project_name} ({', '.join(ctx.plan.technologies) or 'no technologies listed'})")

    async def _structure(self, ctx: PipelineContext) -> None:
        updating = ctx.existing_structure is not None
        logger.info("🏗️ Updating project structure..." if updating else "🏗️ Generating project structure...")

        plan = ctx.plan
        if updating:
            plan = dataclasses.replace(ctx.plan, update_prompt=UPDATE_STRUCTURE_PROMPT)

        raw = await self.provider.generate_structure(plan)
        structure = ProjectStructure.from_dict(self.parser.recover(raw, ExpectedShape.STRUCTURE))
        if not structure.files:
            ctx.warn("The model returned a structure without files")

        if updating:
            structure = self.reconciler.merge(ctx.existing_structure, structure)
            ctx.changes = [
                change for change in diff_structures(ctx.existing_structure, structure)
                if change.type != ChangeType.DELETE
            ]
            added = sum(1 for c in ctx.changes if c.type == ChangeType.ADD)
            logger.info(f"📝 Update touches {added} new and {len(ctx.changes) - added} modified file(s)")
        ctx.structure = structure

        for directory in structure.directories:
            target = self._contained_path(ctx, directory)
            if target is not None:
                ensure_directory(target)

        # Sequential: each unchanged-check reads the file before its own write
        for project_file in structure.files:
            self._write_project_file(ctx, project_file, skip_unchanged=ctx.is_update)

    async def _install(self, ctx: PipelineContext) -> None:
        logger.info("📦 Installing packages...")
        await self.package_manager.install(ctx.output_dir, ctx.structure.dependencies)

    async def _compile(self, ctx: PipelineContext) -> None:
        result = await self.compiler.compile(ctx.output_dir)
        ctx.compilation = result
        if result.success:
            logger.info("✅ Project compiled successfully")
            return

        logger.debug(f"🔍 Compilation errors: {result.errors}")
        if not self._is_fixable(result.errors):
            ctx.warn("Compilation failed without a fixable diagnostic; skipping automatic fix")
            return

        max_attempts = self.config.pipeline.max_fix_attempts
        if max_attempts <= 0:
            ctx.warn("Compilation failed and automatic fixing is disabled")
            return

        errors = result.errors
        for attempt in range(1, max_attempts + 1):
            ctx.enter(PipelineStage.FIX_RETRY)
            logger.info(f"🔧 Fixing compilation errors (attempt {attempt}/{max_attempts})...")
            try:
                raw = await self.provider.fix_errors(errors, ctx.structure)
            except ProviderError as e:
                ctx.warn(f"Error fixing compilation errors: {e}")
                return

            fixed_files = coerce_file_list(self.parser.recover(raw, ExpectedShape.FILES))
            if not fixed_files:
                ctx.warn("No fixes provided by the model; continuing with compilation warnings")
                return

            for project_file in fixed_files:
                if self._write_project_file(ctx, project_file, skip_unchanged=False):
                    ctx.structure.upsert_file(project_file)
                    ctx.fixed_files.append(project_file)

            result = await self.compiler.compile(ctx.output_dir)
            ctx.recompilation = result
            if result.success:
                logger.info("✅ Fixed compilation errors and compiled successfully")
                return
            if not self._is_fixable(result.errors):
                break
            errors = result.errors

        ctx.warn("Compilation still has issues, but continuing with project generation")

    async def _document(self, ctx: PipelineContext) -> None:
        logger.info("📚 Generating documentation...")
        raw = await self.provider.generate_docs(ctx.structure)
        documentation = Documentation.from_dict(self.parser.recover(raw, ExpectedShape.DOCUMENTATION))
        if not documentation.readme.strip():
            documentation.readme = default_value(ExpectedShape.DOCUMENTATION)["readme"]
        ctx.documentation = documentation

        readme = ProjectFile(self.config.pipeline.readme_file, documentation.readme)
        self._write_project_file(ctx, readme, skip_unchanged=ctx.is_update)
        for doc in documentation.additional:
            self._write_project_file(ctx, doc, skip_unchanged=ctx.is_update)

    async def _enhance(self, ctx: PipelineContext) -> None:
        logger.info("💡 Generating enhancement suggestions...")
        ctx.enhancements = await self.provider.suggest_enhancements(ctx.structure)
        suggestions = ProjectFile(self.config.pipeline.suggestions_file, ctx.enhancements)
        self._write_project_file(ctx, suggestions, skip_unchanged=False)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _should_enhance(self, ctx: PipelineContext) -> bool:
        return self.config.pipeline.enhance and not ctx.is_update

    def _is_fixable(self, errors: List[str]) -> bool:
        """A non-empty list of diagnostics, none larger than the size ceiling"""
        if not errors:
            return False
        return not any(len(error) > self.config.pipeline.max_error_length for error in errors)

    def _contained_path(self, ctx: PipelineContext, relative_path: str) -> Optional[Path]:
        """Resolve a model-supplied path; None (with a warning) when it leaves the output directory"""
        root = ctx.output_dir.resolve()
        target = (root / relative_path).resolve()
        if not relative_path or target == root or root not in target.parents:
            ctx.warn(f"Refusing to write outside the project directory: {relative_path!r}")
            return None
        return target

    def _write_project_file(self, ctx: PipelineContext, project_file: ProjectFile, skip_unchanged: bool) -> bool:
        """Write one file below the output directory; failures become warnings, not exceptions"""
        target = self._contained_path(ctx, project_file.path)
        if target is None:
            return False

        if skip_unchanged and not has_content_changed(target, project_file.content):
            logger.debug(f"⏭️ File unchanged: {project_file.path}")
            ctx.skipped_files.append(project_file.path)
            return False

        try:
            write_file(target, project_file.content)
        except OSError as e:
            ctx.warn(f"Error writing file {project_file.path}: {e}")
            return False
        ctx.written_files.append(project_file.path)
        logger.debug(f"💾 Wrote {project_file.path}")
        return True
