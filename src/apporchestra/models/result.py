"""Result data models for agent runs and orchestration."""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from .plan import ExecutionPlan
from .task import Task


@dataclass(frozen=True)
class GeneratedFile:
    """A file produced by an agent."""
    path: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary."""
        return {"path": self.path, "content": self.content}

    @classmethod
    def from_value(cls, value: Any) -> "GeneratedFile":
        """Create from a GeneratedFile or a ``{"path", "content"}`` mapping.

        Raises:
            ValueError: If the value is not a usable file description
        """
        if isinstance(value, GeneratedFile):
            return value
        if isinstance(value, dict) and isinstance(value.get("path"), str):
            return cls(path=value["path"], content=str(value.get("content", "")))
        raise ValueError(f"Not a generated file: {value!r}")


@dataclass
class AgentResult:
    """What an agent returns from ``generate``."""
    files: List[GeneratedFile] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {"files": [f.to_dict() for f in self.files]}
        if self.errors:
            data["errors"] = list(self.errors)
        return data

    @classmethod
    def from_value(cls, value: Any) -> "AgentResult":
        """Normalize an agent's return value.

        Accepts an AgentResult or a ``{"files": [...], "errors": [...]}`` mapping.

        Raises:
            ValueError: If the value has neither shape
        """
        if isinstance(value, AgentResult):
            return value
        if not isinstance(value, dict):
            raise ValueError(f"Agent returned {type(value).__name__}, expected a mapping with 'files'")
        files = [GeneratedFile.from_value(f) for f in value.get("files") or []]
        errors = [str(e) for e in value.get("errors") or []]
        return cls(files=files, errors=errors)


@dataclass
class OrchestratorContext:
    """Run-wide accumulator. Files and errors are only ever appended."""
    project_id: str = ""
    current_phase: str = "initialization"
    completed_task_ids: List[str] = field(default_factory=list)
    generated_files: List[GeneratedFile] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)

    def record_completion(self, task_id: str, files: List[GeneratedFile]) -> None:
        """Record a completed task and its files."""
        self.generated_files.extend(files)
        self.completed_task_ids.append(task_id)

    def record_error(self, error: Exception) -> None:
        """Record a task failure."""
        self.errors.append(error)

    def is_completed(self, task_id: str) -> bool:
        """Check whether a task id has completed."""
        return task_id in self.completed_task_ids


@dataclass
class GeneratedProject:
    """Descriptor handed to the packaging step."""
    name: str
    structure: List[GeneratedFile] = field(default_factory=list)
    package_json: Dict[str, Any] = field(default_factory=dict)
    readme: str = ""
    env_example: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "structure": [f.to_dict() for f in self.structure],
            "package_json": self.package_json,
            "readme": self.readme,
            "env_example": self.env_example,
        }


@dataclass
class OrchestrationResult:
    """Outcome of one orchestration run."""
    files: List[GeneratedFile] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)
    completed_tasks: List[str] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    plan: Optional[ExecutionPlan] = None
    project: Optional[GeneratedProject] = None

    @property
    def success(self) -> bool:
        """True only if nothing failed and every task completed."""
        return not self.errors and all(task.is_completed() for task in self.tasks)

    @property
    def is_partial(self) -> bool:
        """True when some work completed but the run did not fully succeed."""
        return not self.success and bool(self.completed_tasks)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "files": [f.to_dict() for f in self.files],
            "errors": [str(e) for e in self.errors],
            "completed_tasks": list(self.completed_tasks),
            "success": self.success,
        }
