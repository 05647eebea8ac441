"""Orchestration of a complete generation run."""

from .assembly import assemble_project
from .orchestrator import Orchestrator

__all__ = [
    "Orchestrator",
    "assemble_project",
]
