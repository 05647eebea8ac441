"""Abstract base class for LLM clients."""

from abc import ABC, abstractmethod
from typing import Optional


class LLMClient(ABC):
    """Abstract base class for LLM clients.

    The orchestration core never talks to a provider directly; the planner is
    handed an implementation of this interface.
    """

    @abstractmethod
    def call_agent(
        self,
        prompt: str,
        mode: str = "plan",
        model: Optional[str] = None,
        **kwargs
    ) -> str:
        """
        Send a prompt and get the completion text.

        Args:
            prompt: Prompt string
            mode: Mode hint for the backend ("plan", "agent", "ask")
            model: Model to use (optional, depends on backend)
            **kwargs: Other options

        Returns:
            Completion text

        Raises:
            LLMError: If the call fails
        """
        pass
