"""
Core data model, configuration and errors for project-gen
"""

from .config import Config
from .errors import (
    ProviderError,
    RecoveryExhaustion,
    StageFatalError,
    ReconciliationError,
    InstallError,
)
from .models import (
    ProjectPlan,
    ProjectFile,
    ProjectStructure,
    Dependencies,
    Documentation,
    ProjectAnalysis,
    CompilationResult,
    ChangeType,
    FileChange,
)

__all__ = [
    "Config",
    "ProviderError",
    "RecoveryExhaustion",
    "StageFatalError",
    "ReconciliationError",
    "InstallError",
    "ProjectPlan",
    "ProjectFile",
    "ProjectStructure",
    "Dependencies",
    "Documentation",
    "ProjectAnalysis",
    "CompilationResult",
    "ChangeType",
    "FileChange",
]
