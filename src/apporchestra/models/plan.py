"""Planning data models."""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from .task import AgentType, Task, task_id_for, DEFAULT_PRIORITY


@dataclass(frozen=True)
class PlanStep:
    """One (agent, priority, dependencies) entry of an execution plan."""
    agent_type: AgentType
    priority: int = DEFAULT_PRIORITY
    dependencies: Tuple[AgentType, ...] = ()
    description: str = ""

    @property
    def task_id(self) -> str:
        return task_id_for(self.agent_type)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "agent": self.agent_type.value,
            "priority": self.priority,
            "dependencies": [dep.value for dep in self.dependencies],
            "description": self.description,
        }


@dataclass(frozen=True)
class ExecutionPlan:
    """Ordered, validated plan used to seed the task graph.

    Built once per orchestration run by ``parse_execution_plan`` or
    ``build_fallback_plan``; never modified afterwards.
    """
    steps: Tuple[PlanStep, ...]
    source: str = "planner"

    @property
    def agent_types(self) -> List[AgentType]:
        return [step.agent_type for step in self.steps]

    def get_step(self, agent_type: AgentType) -> Optional[PlanStep]:
        """Get the step for an agent, if the plan has one."""
        for step in self.steps:
            if step.agent_type == agent_type:
                return step
        return None

    def to_tasks(self) -> List[Task]:
        """Create fresh pending tasks in plan order."""
        return [
            Task(
                id=step.task_id,
                agent_type=step.agent_type,
                description=step.description or f"Generate {step.agent_type.value} code",
                dependencies=[task_id_for(dep) for dep in step.dependencies],
                priority=step.priority,
            )
            for step in self.steps
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "source": self.source,
            "tasks": [step.to_dict() for step in self.steps],
        }


@dataclass
class ProjectRequirements:
    """What the caller wants generated."""
    name: str
    template: str = "custom"
    description: str = ""
    features: List[str] = field(default_factory=list)
    auth: bool = False
    integrations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "template": self.template,
            "description": self.description,
            "features": list(self.features),
            "auth": self.auth,
            "integrations": list(self.integrations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectRequirements":
        """Create ProjectRequirements from dictionary.

        Features may be plain names or ``{"name": ...}`` mappings.
        """
        features = []
        for feature in data.get("features") or []:
            if isinstance(feature, dict):
                feature = feature.get("name", "")
            if feature:
                features.append(str(feature))

        return cls(
            name=data.get("name", "untitled-project"),
            template=data.get("template", "custom"),
            description=data.get("description", ""),
            features=features,
            auth=bool(data.get("auth", False)),
            integrations=[str(i) for i in data.get("integrations") or []],
        )
