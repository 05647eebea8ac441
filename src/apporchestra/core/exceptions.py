"""Custom exceptions for the orchestration engine."""

from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from apporchestra.models import OrchestrationResult, OrchestratorContext


class AgentError(Exception):
    """Base exception for orchestration errors."""

    def __init__(self, message: str, retryable: bool = False, original_error: Optional[Exception] = None):
        """
        Initialize agent error.

        Args:
            message: Error message
            retryable: Whether this error is retryable
            original_error: Original exception that caused this error
        """
        super().__init__(message)
        self.retryable = retryable
        self.original_error = original_error


class LLMError(AgentError):
    """Error related to LLM API calls."""

    def __init__(self, message: str, retryable: bool = True, original_error: Optional[Exception] = None):
        super().__init__(message, retryable=retryable, original_error=original_error)


class LLMTimeoutError(LLMError):
    """Timeout error for LLM API calls."""

    def __init__(self, timeout: float, original_error: Optional[Exception] = None):
        message = f"LLM API call timed out after {timeout} seconds"
        super().__init__(message, retryable=True, original_error=original_error)


class LLMRateLimitError(LLMError):
    """Rate limit error for LLM API calls."""

    def __init__(self, message: str = "Rate limit exceeded", original_error: Optional[Exception] = None):
        super().__init__(message, retryable=True, original_error=original_error)


class PlanParseError(AgentError):
    """Planner output could not be turned into a valid execution plan."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(f"Invalid execution plan: {message}", retryable=False, original_error=original_error)


class StateError(AgentError):
    """Error related to context state management."""

    def __init__(self, message: str, retryable: bool = False, original_error: Optional[Exception] = None):
        super().__init__(message, retryable=retryable, original_error=original_error)


class CorruptContextError(StateError):
    """Error when an exported context payload cannot be restored."""

    def __init__(self, reason: str, original_error: Optional[Exception] = None):
        message = f"Context payload corrupted: {reason}"
        super().__init__(message, retryable=False, original_error=original_error)


class TaskError(AgentError):
    """Error related to task execution."""

    def __init__(self, task_id: str, message: str, retryable: bool = False, original_error: Optional[Exception] = None):
        full_message = f"Task {task_id}: {message}"
        super().__init__(full_message, retryable=retryable, original_error=original_error)
        self.task_id = task_id


class InvalidTaskTransitionError(TaskError):
    """A task status change that would move backwards or skip a state."""

    def __init__(self, task_id: str, current: str, requested: str):
        super().__init__(task_id, f"cannot move from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class AgentExecutionError(TaskError):
    """An agent invocation failed or returned errors."""

    def __init__(self, task_id: str, agent_type: str, message: str, original_error: Optional[Exception] = None):
        super().__init__(task_id, f"[{agent_type}] {message}", retryable=False, original_error=original_error)
        self.agent_type = agent_type


class AgentTimeoutError(AgentExecutionError):
    """An agent invocation did not finish within its timeout."""

    def __init__(self, task_id: str, agent_type: str, timeout: float):
        super().__init__(task_id, agent_type, f"timed out after {timeout} seconds")
        self.timeout = timeout


class TaskGraphError(AgentError):
    """The task graph is structurally invalid."""


class DeadlockError(AgentError):
    """Pending tasks remain but none of them can ever become ready."""

    def __init__(
        self,
        stuck_tasks: Dict[str, List[str]],
        failed_tasks: Optional[List[str]] = None,
        context: Optional["OrchestratorContext"] = None,
    ):
        """
        Initialize deadlock error.

        Args:
            stuck_tasks: Pending task id mapped to its unmet dependency ids
            failed_tasks: Ids of tasks that failed and block the stuck ones
            context: Partial orchestrator context at the time of the deadlock
        """
        details = ", ".join(
            f"{task_id} (waiting on: {', '.join(deps) or 'nothing'})"
            for task_id, deps in stuck_tasks.items()
        )
        message = f"Task execution deadlock: {details}"
        if failed_tasks:
            message += f"; failed prerequisites: {', '.join(failed_tasks)}"
        super().__init__(message, retryable=False)
        self.stuck_tasks = stuck_tasks
        self.failed_tasks = failed_tasks or []
        self.context = context


class IncompleteRunError(AgentError):
    """A run finished with failed tasks while partial results were not allowed."""

    def __init__(self, message: str, result: Optional["OrchestrationResult"] = None):
        super().__init__(message, retryable=False)
        self.result = result
