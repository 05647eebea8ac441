"""Planner implementations."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

import apporchestra.config as config
from apporchestra.core.exceptions import AgentError, LLMError
from apporchestra.core.logger import AgentLogger
from apporchestra.llm import LLMClient
from apporchestra.models import ExecutionPlan, ProjectRequirements
from apporchestra.planning import parse_execution_plan

logger = logging.getLogger("agent_system.planner")

PLANNER_PROMPT = """Analyze this project configuration and create an optimal execution plan.

Project: {name}
Template: {template}
Description: {description}
Features: {features}
Authentication: {auth}
Integrations: {integrations}

Available Agents:
1. database - Creates database schemas, relationships, migrations
2. backend - Builds REST APIs, business logic, validation
3. auth - Implements authentication and authorization
4. frontend - Creates UI components, state management
5. integrations - Sets up third-party services
6. devops - Configures containers, CI/CD, deployment

Requirements:
- database must run FIRST (others depend on it)
- auth should run AFTER database if authentication is needed
- backend can run AFTER database and auth
- frontend can run in PARALLEL with integrations (both depend on backend)
- devops runs LAST

Create a JSON execution plan:
{{"tasks": [{{"agent": "database", "priority": 10, "dependencies": [], "description": "..."}}]}}
- agent: which agent to use (each agent at most once)
- priority: 1-10 (higher = more important)
- dependencies: agents this task depends on

Return ONLY valid JSON, no explanation.
"""


class Planner(ABC):
    """Produces an execution plan for project requirements."""

    @abstractmethod
    def plan(self, requirements: ProjectRequirements) -> ExecutionPlan:
        """
        Plan the agent tasks for a project.

        Raises:
            PlanParseError: If the planner output is unusable
            LLMError: If the planner backend is unavailable
        """
        raise NotImplementedError("Subclasses must implement plan")


class LLMPlanner(Planner):
    """Asks an LLM for the plan and validates its answer."""

    def __init__(
        self,
        llm_client: LLMClient,
        model: Optional[str] = config.PLANNER_MODEL,
        max_retries: int = config.PLANNER_MAX_RETRIES,
        logger: Optional[AgentLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize planner.

        Args:
            llm_client: LLM client instance
            model: Model to request (backend default when None)
            max_retries: Attempts for retryable LLM errors
            logger: Structured run logger
            sleep: Wait function used between retries
        """
        self.name = "Planner"
        self.llm_client = llm_client
        self.model = model
        self.max_retries = max(1, max_retries)
        self.run_logger = logger
        self._sleep = sleep

    def build_prompt(self, requirements: ProjectRequirements) -> str:
        """Build prompt for planner."""
        return PLANNER_PROMPT.format(
            name=requirements.name,
            template=requirements.template,
            description=requirements.description or "-",
            features=", ".join(requirements.features) or "none",
            auth="required" if requirements.auth else "not required",
            integrations=", ".join(requirements.integrations) or "none",
        )

    def plan(self, requirements: ProjectRequirements) -> ExecutionPlan:
        """
        Ask the LLM for a plan, retrying retryable LLM errors.

        Returns:
            Validated execution plan

        Raises:
            PlanParseError: If the response is not a valid plan
            LLMError: If the LLM call fails after all retries
        """
        prompt = self.build_prompt(requirements)
        start_time = time.time()

        for attempt in range(self.max_retries):
            try:
                response = self.llm_client.call_agent(prompt=prompt, mode="plan", model=self.model)
                break
            except LLMError as e:
                if e.retryable and attempt < self.max_retries - 1:
                    wait_time = 2 ** attempt  # Exponential backoff: 1s, 2s, 4s, ...
                    logger.warning(
                        f"[{self.name}] LLM error (attempt {attempt + 1}/{self.max_retries}), "
                        f"retrying in {wait_time} seconds: {e}"
                    )
                    self._sleep(wait_time)
                    continue
                if self.run_logger:
                    self.run_logger.log_error_with_traceback(
                        self.name, e, context={"attempt": attempt + 1, "max_retries": self.max_retries}
                    )
                raise
            except AgentError:
                raise
            except Exception as e:
                raise LLMError(f"Unexpected planner error: {e}", retryable=False, original_error=e)

        plan = parse_execution_plan(response)
        logger.info(
            f"[{self.name}] Created execution plan with {len(plan.steps)} tasks "
            f"in {time.time() - start_time:.2f}s"
        )
        return plan


class ResponsePlanner(Planner):
    """Plans from a previously captured planner response."""

    def __init__(self, response: str, source: str = "file"):
        self.response = response
        self.source = source

    def plan(self, requirements: ProjectRequirements) -> ExecutionPlan:
        return parse_execution_plan(self.response, source=self.source)
