"""Core utilities for the apporchestra system."""

from .exceptions import (
    AgentError,
    LLMError,
    LLMTimeoutError,
    LLMRateLimitError,
    PlanParseError,
    StateError,
    CorruptContextError,
    TaskError,
    InvalidTaskTransitionError,
    AgentExecutionError,
    AgentTimeoutError,
    TaskGraphError,
    DeadlockError,
    IncompleteRunError,
)
from .logger import AgentLogger, LOGGER_NAME

__all__ = [
    # Exceptions
    "AgentError",
    "LLMError",
    "LLMTimeoutError",
    "LLMRateLimitError",
    "PlanParseError",
    "StateError",
    "CorruptContextError",
    "TaskError",
    "InvalidTaskTransitionError",
    "AgentExecutionError",
    "AgentTimeoutError",
    "TaskGraphError",
    "DeadlockError",
    "IncompleteRunError",
    # Logger
    "AgentLogger",
    "LOGGER_NAME",
]
