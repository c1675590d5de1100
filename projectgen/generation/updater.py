"""
Update requests for existing projects
"""

import logging
from typing import Optional

from ..core.config import Config
from ..providers.base import BaseProvider
from ..providers.prompts import enhance_prompt
from .pipeline import PipelineContext, PipelineOrchestrator

logger = logging.getLogger(__name__)

CHANGE_TYPE_PREFIXES = {
    "features": "Add the following new features to the existing project:",
    "bugs": "Fix the following bugs in the existing project:",
    "ui": "Enhance the UI/UX of the existing project as follows:",
    "performance": "Improve the performance of the existing project as follows:",
    "security": "Add the following security measures to the existing project:",
}

# Prompt framing used for each kind of change
CHANGE_TYPE_OPERATIONS = {
    "features": "add",
    "bugs": "fix",
    "ui": "enhance",
    "performance": "enhance",
    "security": "update",
}

CHANGE_TYPES = list(CHANGE_TYPE_PREFIXES)


def format_update_prompt(change_type: str, changes: str) -> str:
    prefix = CHANGE_TYPE_PREFIXES.get(change_type, "Make the following changes to the existing project:")
    return f"{prefix}\n\n{changes}\n\nOnly modify files that need to be changed."


def append_change(requirements: str, change_type: str, changes: str) -> str:
    """Fold one more change request into an interactive session's requirements"""
    return f"{requirements}\n\nAdditional requirements ({change_type}): {changes}"


async def update_project(provider: BaseProvider, config: Config, project_dir, change_type: str,
                         changes: str, base_requirements: Optional[str] = None,
                         orchestrator: Optional[PipelineOrchestrator] = None) -> PipelineContext:
    """Run the pipeline in update mode for one change request"""
    logger.info(f"🔄 Updating project with {change_type} changes...")
    requirements = enhance_prompt(
        format_update_prompt(change_type, changes),
        CHANGE_TYPE_OPERATIONS.get(change_type, "update"),
    )
    if base_requirements:
        requirements = f"{base_requirements}\n\n{requirements}"

    orchestrator = orchestrator or PipelineOrchestrator(provider, config)
    return await orchestrator.run(requirements, project_dir, is_update=True)
