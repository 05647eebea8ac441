"""Dependency-aware orchestration of code generation agents."""

from .agents import CallableAgent, GenerationAgent, LLMPlanner, Planner, ResponsePlanner
from .context import ContextPolicy, ContextStore, MemoryArchive
from .models import (
    AgentResult,
    AgentType,
    ExecutionPlan,
    GeneratedFile,
    OrchestrationResult,
    ProjectRequirements,
    Task,
    TaskStatus,
)
from .orchestrator import Orchestrator, assemble_project
from .planning import build_fallback_plan, parse_execution_plan
from .scheduler import Scheduler, TaskGraph

__version__ = "0.1.0"

__all__ = [
    "CallableAgent",
    "GenerationAgent",
    "LLMPlanner",
    "Planner",
    "ResponsePlanner",
    "ContextPolicy",
    "ContextStore",
    "MemoryArchive",
    "AgentResult",
    "AgentType",
    "ExecutionPlan",
    "GeneratedFile",
    "OrchestrationResult",
    "ProjectRequirements",
    "Task",
    "TaskStatus",
    "Orchestrator",
    "assemble_project",
    "build_fallback_plan",
    "parse_execution_plan",
    "Scheduler",
    "TaskGraph",
]
