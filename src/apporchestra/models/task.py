"""Task-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional

from apporchestra.core.exceptions import InvalidTaskTransitionError

MIN_PRIORITY = 1
MAX_PRIORITY = 10
DEFAULT_PRIORITY = 5


class AgentType(str, Enum):
    """Generation agents known to the orchestrator."""
    DATABASE = "database"
    BACKEND = "backend"
    AUTH = "auth"
    FRONTEND = "frontend"
    INTEGRATIONS = "integrations"
    DEVOPS = "devops"

    @classmethod
    def from_string(cls, value: str) -> "AgentType":
        """Create from string, ignoring case and surrounding whitespace.

        Raises:
            ValueError: If the value names no known agent
        """
        return cls(str(value).strip().lower())


class TaskStatus(str, Enum):
    """Task status enumeration."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed forward moves; anything else is rejected.
_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.RUNNING},
    TaskStatus.RUNNING: {TaskStatus.COMPLETED, TaskStatus.FAILED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: set(),
}


def task_id_for(agent_type: "AgentType") -> str:
    """Task id used for an agent's task in a plan."""
    return f"task_{AgentType(agent_type).value}"


@dataclass
class Task:
    """One scheduled invocation of an agent."""
    id: str
    agent_type: AgentType
    description: str = ""
    dependencies: List[str] = field(default_factory=list)
    priority: int = DEFAULT_PRIORITY
    status: TaskStatus = TaskStatus.PENDING
    error: Optional[str] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    failed_at: Optional[str] = None

    def __post_init__(self):
        """Post-initialization processing."""
        if not isinstance(self.agent_type, AgentType):
            self.agent_type = AgentType.from_string(self.agent_type)
        if isinstance(self.status, str) and not isinstance(self.status, TaskStatus):
            self.status = TaskStatus(self.status)
        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise ValueError(f"Task {self.id}: priority must be an integer, got {self.priority!r}")
        if not MIN_PRIORITY <= self.priority <= MAX_PRIORITY:
            raise ValueError(
                f"Task {self.id}: priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}, "
                f"got {self.priority}"
            )
        # Dependencies form a set; keep the declared order for readable logs
        deduplicated: List[str] = []
        for dep_id in self.dependencies:
            if dep_id not in deduplicated:
                deduplicated.append(dep_id)
        self.dependencies = deduplicated
        if self.created_at is None:
            self.created_at = datetime.now().isoformat()

    def _transition(self, new_status: TaskStatus) -> None:
        if new_status not in _TRANSITIONS[self.status]:
            raise InvalidTaskTransitionError(self.id, self.status.value, new_status.value)
        self.status = new_status

    def start(self) -> None:
        """Move from pending to running."""
        self._transition(TaskStatus.RUNNING)
        self.started_at = datetime.now().isoformat()

    def complete(self) -> None:
        """Move from running to completed."""
        self._transition(TaskStatus.COMPLETED)
        self.completed_at = datetime.now().isoformat()

    def fail(self, error: str) -> None:
        """Move from running to failed, recording the error."""
        self._transition(TaskStatus.FAILED)
        self.error = error
        self.failed_at = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            "id": self.id,
            "agent_type": self.agent_type.value,
            "description": self.description,
            "dependencies": list(self.dependencies),
            "priority": self.priority,
            "status": self.status.value,
            "created_at": self.created_at,
        }

        # Only include optional fields if they have values
        if self.started_at:
            data["started_at"] = self.started_at
        if self.completed_at:
            data["completed_at"] = self.completed_at
        if self.failed_at:
            data["failed_at"] = self.failed_at
        if self.error:
            data["error"] = self.error

        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create Task from dictionary."""
        return cls(
            id=data["id"],
            agent_type=data["agent_type"],
            description=data.get("description", ""),
            dependencies=list(data.get("dependencies", [])),
            priority=data.get("priority", DEFAULT_PRIORITY),
            status=TaskStatus(data.get("status", "pending")),
            error=data.get("error"),
            created_at=data.get("created_at"),
            started_at=data.get("started_at"),
            completed_at=data.get("completed_at"),
            failed_at=data.get("failed_at"),
        )

    def is_pending(self) -> bool:
        """Check if task is pending."""
        return self.status == TaskStatus.PENDING

    def is_running(self) -> bool:
        """Check if task is running."""
        return self.status == TaskStatus.RUNNING

    def is_completed(self) -> bool:
        """Check if task is completed."""
        return self.status == TaskStatus.COMPLETED

    def is_failed(self) -> bool:
        """Check if task is failed."""
        return self.status == TaskStatus.FAILED


@dataclass
class TaskStatistics:
    """Task execution statistics."""
    total: int = 0
    completed: int = 0
    failed: int = 0
    pending: int = 0
    running: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "pending": self.pending,
            "running": self.running,
        }

    @classmethod
    def from_tasks(cls, tasks: List[Task]) -> "TaskStatistics":
        """Calculate statistics from task list."""
        return cls(
            total=len(tasks),
            completed=len([t for t in tasks if t.is_completed()]),
            failed=len([t for t in tasks if t.is_failed()]),
            pending=len([t for t in tasks if t.is_pending()]),
            running=len([t for t in tasks if t.is_running()]),
        )
