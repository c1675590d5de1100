"""
Project generation, update and analysis flows
"""

from .reconciler import StructureReconciler, extract_existing_structure, diff_structures
from .pipeline import PipelineOrchestrator, PipelineContext, PipelineStage
from .analyzer import ProjectAnalyzer, AnalysisReport
from .updater import format_update_prompt, update_project, CHANGE_TYPES

__all__ = [
    "StructureReconciler",
    "extract_existing_structure",
    "diff_structures",
    "PipelineOrchestrator",
    "PipelineContext",
    "PipelineStage",
    "ProjectAnalyzer",
    "AnalysisReport",
    "format_update_prompt",
    "update_project",
    "CHANGE_TYPES",
]
