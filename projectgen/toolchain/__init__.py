"""
External toolchain collaborators (installer and compiler)
"""

from .commands import CommandResult, run_command
from .compiler import ProjectCompiler
from .package_manager import PackageManager, merge_manifest_dependencies

__all__ = [
    "CommandResult",
    "run_command",
    "ProjectCompiler",
    "PackageManager",
    "merge_manifest_dependencies",
]
