"""Composition root: plan, schedule and assemble one generation run."""

import logging
import time
import uuid
from typing import Any, Dict, Mapping, Optional, Union

import apporchestra.config as config
from apporchestra.agents.planner import Planner
from apporchestra.context import ContextStore
from apporchestra.core.exceptions import DeadlockError, IncompleteRunError, PlanParseError
from apporchestra.core.logger import AgentLogger
from apporchestra.models import (
    AgentType,
    ExecutionPlan,
    OrchestrationResult,
    OrchestratorContext,
    ProjectRequirements,
)
from apporchestra.planning import build_fallback_plan
from apporchestra.scheduler import Scheduler, TaskGraph
from .assembly import assemble_project

logger = logging.getLogger("agent_system.orchestrator")

# Requirements are visible to every agent view
PROJECT_CONFIG_KEY = "project_config"
PROJECT_CONFIG_IMPORTANCE = 10

EXECUTION_PLAN_KEY = "execution_plan"
EXECUTION_PLAN_IMPORTANCE = 8


class Orchestrator:
    """Runs the planning, execution and assembly phases for one project."""

    def __init__(
        self,
        requirements: ProjectRequirements,
        agents: Mapping[Union[AgentType, str], Any],
        planner: Optional[Planner] = None,
        project_id: Optional[str] = None,
        context_store: Optional[ContextStore] = None,
        max_parallel: int = config.MAX_PARALLEL,
        task_timeout: Optional[float] = config.agent_timeout(),
        allow_partial: bool = config.ALLOW_PARTIAL_RESULTS,
        logger: Optional[AgentLogger] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            requirements: What to generate
            agents: Agent per agent type
            planner: Planner to ask for the execution plan (fallback plan when None)
            project_id: Run identifier (generated when None)
            context_store: Shared context store (a new one by default)
            max_parallel: Maximum number of concurrently running agent tasks
            task_timeout: Seconds to wait for one agent invocation (None waits forever)
            allow_partial: Return partial results instead of raising IncompleteRunError
            logger: Structured run logger
        """
        self.requirements = requirements
        self.agents = agents
        self.planner = planner
        self.project_id = project_id or f"project_{uuid.uuid4().hex[:12]}"
        self.context_store = context_store if context_store is not None else ContextStore(project_id=self.project_id)
        if not self.context_store.project_id:
            self.context_store.project_id = self.project_id
        self.max_parallel = max_parallel
        self.task_timeout = task_timeout
        self.allow_partial = allow_partial
        self.run_logger = logger
        self.context = OrchestratorContext(project_id=self.project_id)
        self.plan: Optional[ExecutionPlan] = None
        self.graph: Optional[TaskGraph] = None

    def orchestrate(self) -> OrchestrationResult:
        """
        Plan, execute and assemble the project.

        Returns:
            Files, errors and completed task ids of the run, plus the project descriptor

        Raises:
            DeadlockError: If failed prerequisites leave pending tasks unrunnable
            IncompleteRunError: If the run did not fully succeed and partial results are not allowed
        """
        start_time = time.time()
        logger.info(
            f"Starting orchestration (project={self.project_id}, template={self.requirements.template})"
        )

        # Phase 1: planning
        plan = self.plan or self.analyze_and_plan()

        # Phase 2: execution
        self.graph = TaskGraph.from_plan(plan)
        scheduler = Scheduler(
            self.agents,
            self.context_store,
            max_parallel=self.max_parallel,
            task_timeout=self.task_timeout,
            logger=self.run_logger,
            context=self.context,
        )
        try:
            scheduler.run(self.graph)
        except DeadlockError as e:
            self.context.current_phase = "deadlocked"
            logger.error(f"Orchestration aborted (project={self.project_id}): {e}")
            raise

        # Phase 3: assembly
        self.context.current_phase = "assembly"
        logger.info("Assembling final project...")
        result = OrchestrationResult(
            files=list(self.context.generated_files),
            errors=list(self.context.errors),
            completed_tasks=list(self.context.completed_task_ids),
            tasks=self.graph.tasks,
            plan=plan,
            project=assemble_project(self.requirements, self.context.generated_files),
        )
        self.context.current_phase = "completed" if result.success else "completed_with_errors"

        logger.info(
            f"Orchestration finished in {time.time() - start_time:.2f}s "
            f"(project={self.project_id}, tasks completed={len(result.completed_tasks)}/{len(result.tasks)}, "
            f"files={len(result.files)}, errors={len(result.errors)}, peak parallel={scheduler.peak_running})"
        )

        if not result.success and not self.allow_partial:
            raise IncompleteRunError(
                f"Run finished with {len(result.errors)} errors and "
                f"{len(result.completed_tasks)}/{len(result.tasks)} tasks completed",
                result=result,
            )
        return result

    def analyze_and_plan(self) -> ExecutionPlan:
        """
        Record the requirements in the context store and obtain the execution plan.

        Planner failures never abort the run; the deterministic fallback plan
        is used instead.
        """
        self.context.current_phase = "planning"
        self.context_store.add(
            PROJECT_CONFIG_KEY,
            self.requirements.to_dict(),
            importance=PROJECT_CONFIG_IMPORTANCE,
        )

        plan = None
        if self.planner is not None:
            try:
                plan = self.planner.plan(self.requirements)
            except PlanParseError as e:
                logger.warning(f"Planner output unusable, using fallback plan: {e}")
            except Exception as e:
                logger.error(f"Planner failed, using fallback plan: {e}")
                if self.run_logger:
                    self.run_logger.log_error_with_traceback(
                        "Orchestrator", e, context={"phase": "planning", "project_id": self.project_id}
                    )
        if plan is None:
            plan = build_fallback_plan(self.requirements)

        self.context_store.add(
            EXECUTION_PLAN_KEY,
            plan.to_dict(),
            importance=EXECUTION_PLAN_IMPORTANCE,
        )
        logger.info(
            f"Execution plan ({plan.source}): "
            + ", ".join(f"{step.agent_type.value}[p{step.priority}]" for step in plan.steps)
        )
        self.plan = plan
        return plan

    def get_context(self) -> Dict[str, Any]:
        """Snapshot of the run state and context store statistics."""
        return {
            "project_id": self.project_id,
            "current_phase": self.context.current_phase,
            "completed_tasks": list(self.context.completed_task_ids),
            "files_generated": len(self.context.generated_files),
            "errors": [str(e) for e in self.context.errors],
            "context_stats": self.context_store.get_stats().to_dict(),
        }
