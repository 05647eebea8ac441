"""Scheduler layer for task scheduling.

This module provides the task dependency graph and the parallel scheduler
that drives it.
"""

from .task_graph import TaskGraph
from .task_scheduler import Scheduler, OUTPUT_IMPORTANCE, output_key

__all__ = [
    "TaskGraph",
    "Scheduler",
    "OUTPUT_IMPORTANCE",
    "output_key",
]
