"""
project-gen: an LLM-driven project generator

Turns a natural-language description into a working TypeScript/Node
project: plan, file tree, dependency install, compile with one automated
fix round, and documentation. Existing projects can be updated, analyzed
and given enhancement suggestions.
"""

__version__ = "1.0.0"
__author__ = "project-gen Team"

from .core import *

__all__ = [
    "__version__",
    "__author__",
]
