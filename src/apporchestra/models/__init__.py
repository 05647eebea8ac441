"""Data models for the apporchestra system."""

from .task import (
    AgentType,
    TaskStatus,
    Task,
    TaskStatistics,
    task_id_for,
    MIN_PRIORITY,
    MAX_PRIORITY,
    DEFAULT_PRIORITY,
)
from .context import ContextEntry
from .plan import (
    PlanStep,
    ExecutionPlan,
    ProjectRequirements,
)
from .result import (
    GeneratedFile,
    AgentResult,
    OrchestratorContext,
    GeneratedProject,
    OrchestrationResult,
)

__all__ = [
    # Task models
    "AgentType",
    "TaskStatus",
    "Task",
    "TaskStatistics",
    "task_id_for",
    "MIN_PRIORITY",
    "MAX_PRIORITY",
    "DEFAULT_PRIORITY",
    # Context models
    "ContextEntry",
    # Plan models
    "PlanStep",
    "ExecutionPlan",
    "ProjectRequirements",
    # Result models
    "GeneratedFile",
    "AgentResult",
    "OrchestratorContext",
    "GeneratedProject",
    "OrchestrationResult",
]
