"""Agent modules for the apporchestra system."""

from .base import GenerationAgent, CallableAgent
from .planner import Planner, LLMPlanner, ResponsePlanner, PLANNER_PROMPT

__all__ = [
    "GenerationAgent",
    "CallableAgent",
    "Planner",
    "LLMPlanner",
    "ResponsePlanner",
    "PLANNER_PROMPT",
]
