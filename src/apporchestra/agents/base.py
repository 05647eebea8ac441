"""Base classes for generation agents."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Union

from apporchestra.models import AgentResult, AgentType


class GenerationAgent(ABC):
    """Turns accumulated context into generated files for one concern.

    The scheduler only relies on ``generate``; any object with that method
    can stand in for an agent.
    """

    agent_type: AgentType

    def __init__(self, agent_type: Union[AgentType, str]):
        self.agent_type = AgentType.from_string(getattr(agent_type, "value", agent_type))

    @abstractmethod
    def generate(self, context: Dict[str, Any]) -> Union[AgentResult, Dict[str, Any]]:
        """
        Generate files for a task.

        Args:
            context: ``task_id``, ``agent_type``, ``description`` and
                ``previous_results`` (the agent's context view)

        Returns:
            AgentResult or ``{"files": [{"path", "content"}], "errors": [...]}``
        """
        raise NotImplementedError("Subclasses must implement generate")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.agent_type.value})"


class CallableAgent(GenerationAgent):
    """Wraps a plain function as an agent."""

    def __init__(
        self,
        agent_type: Union[AgentType, str],
        func: Callable[[Dict[str, Any]], Union[AgentResult, Dict[str, Any]]],
    ):
        super().__init__(agent_type)
        self.func = func

    def generate(self, context: Dict[str, Any]) -> Union[AgentResult, Dict[str, Any]]:
        return self.func(context)
