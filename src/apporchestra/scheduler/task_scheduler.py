"""Parallel, dependency-respecting execution of agent tasks."""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Union

import apporchestra.config as config
from apporchestra.context import ContextStore
from apporchestra.core.exceptions import AgentExecutionError, AgentTimeoutError, DeadlockError
from apporchestra.core.logger import AgentLogger
from apporchestra.models import AgentResult, AgentType, OrchestratorContext, Task
from .task_graph import TaskGraph

logger = logging.getLogger("agent_system.scheduler")

# Importance of agent outputs written back into the context store
OUTPUT_IMPORTANCE = 5


def output_key(agent_type: AgentType) -> str:
    """Context key under which an agent's result is stored."""
    return f"agent_{AgentType(agent_type).value}_output"


@dataclass
class _Dispatch:
    """Bookkeeping for one in-flight agent invocation."""
    task: Task
    started: float
    deadline: Optional[float]


def _invoke_agent(agent: Any, agent_context: Dict[str, Any]) -> AgentResult:
    """Runs on a worker thread."""
    return AgentResult.from_value(agent.generate(agent_context))


class Scheduler:
    """Drives a TaskGraph to completion.

    A single coordinating loop decides what runs; only the agent invocations
    execute on worker threads. At most ``max_parallel`` tasks are running at
    any time. The loop blocks until one of the running tasks finishes or the
    nearest timeout expires.
    """

    def __init__(
        self,
        agents: Mapping[Union[AgentType, str], Any],
        context_store: ContextStore,
        max_parallel: int = config.MAX_PARALLEL,
        task_timeout: Optional[float] = config.agent_timeout(),
        logger: Optional[AgentLogger] = None,
        context: Optional[OrchestratorContext] = None,
    ):
        """
        Initialize scheduler.

        Args:
            agents: Agent per agent type; each exposes ``generate(context)``
            context_store: Shared context read before and written after each task
            max_parallel: Maximum number of concurrently running tasks
            task_timeout: Seconds to wait for one agent invocation (None waits forever)
            logger: Structured run logger
            context: Accumulator to append to (a new one by default)

        Raises:
            ValueError: If max_parallel is below 1 or an agent type is unknown
        """
        if max_parallel < 1:
            raise ValueError(f"max_parallel must be at least 1, got {max_parallel}")
        self.agents: Dict[AgentType, Any] = {
            AgentType.from_string(getattr(agent_type, "value", agent_type)): agent
            for agent_type, agent in agents.items()
        }
        self.context_store = context_store
        self.max_parallel = max_parallel
        self.task_timeout = task_timeout
        self.run_logger = logger
        self.context = context if context is not None else OrchestratorContext()
        self.peak_running = 0

    def run(self, tasks: Union[TaskGraph, Iterable[Task]]) -> OrchestratorContext:
        """
        Execute every task the graph allows.

        Failed tasks are recorded and their dependents stay pending; the run
        continues for unaffected branches.

        Args:
            tasks: Task graph, or tasks to build one from

        Returns:
            The accumulated orchestrator context

        Raises:
            DeadlockError: If pending tasks remain and none can ever run
            TaskGraphError: If the tasks do not form a valid graph
        """
        graph = tasks if isinstance(tasks, TaskGraph) else TaskGraph(tasks)
        running: Dict[Future, _Dispatch] = {}
        # Timed-out invocations keep their thread, so size the pool by task count
        executor = ThreadPoolExecutor(
            max_workers=max(1, len(graph)),
            thread_name_prefix="agent-task",
        )
        logger.info(f"Scheduling {len(graph)} tasks (max_parallel={self.max_parallel})")

        try:
            while graph.has_pending() or running:
                ready = graph.ready_tasks()

                if not ready and not running:
                    raise self._deadlock(graph)

                for task in ready[: self.max_parallel - len(running)]:
                    dispatched = self._dispatch(executor, task)
                    if dispatched:
                        running[dispatched[0]] = dispatched[1]
                self.peak_running = max(self.peak_running, len(running))

                if not running:
                    continue

                done, _ = wait(
                    list(running),
                    timeout=self._next_timeout(running),
                    return_when=FIRST_COMPLETED,
                )
                for future in done:
                    self._finish(running.pop(future), future)
                self._expire_overdue(running)
                self._log_progress(graph)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            f"Scheduling finished: {len(self.context.completed_task_ids)} completed, "
            f"{len(self.context.errors)} errors"
        )
        return self.context

    def _dispatch(self, executor: ThreadPoolExecutor, task: Task):
        task.start()
        agent_type = task.agent_type
        self.context.current_phase = f"executing_{agent_type.value}"
        started = time.monotonic()

        agent = self.agents.get(agent_type)
        if agent is None:
            self._fail(task, AgentExecutionError(task.id, agent_type.value, "agent not found"), 0.0)
            return None

        agent_context = {
            "task_id": task.id,
            "agent_type": agent_type.value,
            "description": task.description,
            "previous_results": self.context_store.get_context_for_agent(agent_type.value),
        }
        logger.info(f"Executing task {task.id} ({agent_type.value}): {task.description}")

        future = executor.submit(_invoke_agent, agent, agent_context)
        deadline = started + self.task_timeout if self.task_timeout else None
        return future, _Dispatch(task=task, started=started, deadline=deadline)

    def _finish(self, dispatch: _Dispatch, future: Future) -> None:
        task = dispatch.task
        agent_type = task.agent_type.value
        duration = time.monotonic() - dispatch.started

        try:
            result = future.result()
        except AgentExecutionError as e:
            self._fail(task, e, duration)
            return
        except Exception as e:
            message = str(e) or type(e).__name__
            self._fail(task, AgentExecutionError(task.id, agent_type, message, original_error=e), duration)
            return

        if not result.success:
            self._fail(task, AgentExecutionError(task.id, agent_type, "; ".join(result.errors)), duration)
            return

        self.context_store.add(
            output_key(task.agent_type),
            result.to_dict(),
            owner_agent_type=agent_type,
            importance=OUTPUT_IMPORTANCE,
        )
        self.context.record_completion(task.id, result.files)
        task.complete()

        logger.info(f"Task completed: {task.id} ({len(result.files)} files)")
        if self.run_logger:
            self.run_logger.log_task_run(
                task_id=task.id,
                agent_type=agent_type,
                status=task.status.value,
                duration=duration,
                files_generated=len(result.files),
            )

    def _fail(self, task: Task, error: AgentExecutionError, duration: float) -> None:
        task.fail(str(error))
        self.context.record_error(error)

        logger.error(f"Task failed: {task.id}: {error}")
        if self.run_logger:
            self.run_logger.log_error_with_traceback(
                task.agent_type.value,
                error,
                context={"task_id": task.id, "duration_seconds": round(duration, 3)},
            )
            self.run_logger.log_task_run(
                task_id=task.id,
                agent_type=task.agent_type.value,
                status=task.status.value,
                duration=duration,
                error=str(error),
            )

    def _next_timeout(self, running: Dict[Future, _Dispatch]) -> Optional[float]:
        deadlines = [d.deadline for d in running.values() if d.deadline is not None]
        if not deadlines:
            return None
        return max(0.0, min(deadlines) - time.monotonic())

    def _expire_overdue(self, running: Dict[Future, _Dispatch]) -> None:
        now = time.monotonic()
        for future, dispatch in list(running.items()):
            if future.done():
                self._finish(running.pop(future), future)
            elif dispatch.deadline is not None and now >= dispatch.deadline:
                running.pop(future)
                # The worker thread cannot be interrupted; its late result is ignored
                future.cancel()
                task = dispatch.task
                self._fail(
                    task,
                    AgentTimeoutError(task.id, task.agent_type.value, self.task_timeout),
                    now - dispatch.started,
                )

    def _deadlock(self, graph: TaskGraph) -> DeadlockError:
        stuck = graph.stuck_tasks()
        failed = [task.id for task in graph.failed_tasks()]
        cycle = graph.find_cycle()
        if cycle:
            logger.error(f"Dependency cycle: {' -> '.join(cycle)}")
        error = DeadlockError(stuck, failed, context=self.context)
        logger.error(str(error))
        if self.run_logger:
            self.run_logger.log_error_with_traceback("Scheduler", error, context={"stuck_tasks": stuck})
        return error

    def _log_progress(self, graph: TaskGraph) -> None:
        if not self.run_logger:
            return
        stats = graph.statistics()
        self.run_logger.log_progress(
            total_tasks=stats.total,
            completed_tasks=stats.completed,
            failed_tasks=stats.failed,
            pending_tasks=stats.pending,
            running_tasks=stats.running,
        )
