"""Dependency graph of agent tasks."""

from typing import Dict, Iterable, List, Optional

from apporchestra.core.exceptions import TaskGraphError
from apporchestra.models import ExecutionPlan, Task, TaskStatistics, TaskStatus


class TaskGraph:
    """Tasks with declared dependencies, priorities and status.

    Tasks are never removed; the graph keeps their final status for reporting.
    Insertion order is remembered and breaks priority ties.
    """

    def __init__(self, tasks: Optional[Iterable[Task]] = None):
        """
        Initialize the graph.

        Args:
            tasks: Initial tasks; dependencies must reference tasks in the same set

        Raises:
            TaskGraphError: On duplicate ids or unknown dependencies
        """
        self._tasks: Dict[str, Task] = {}
        self._order: Dict[str, int] = {}
        for task in tasks or []:
            self._insert(task)
        self.validate()

    @classmethod
    def from_plan(cls, plan: ExecutionPlan) -> "TaskGraph":
        """Create a graph of fresh pending tasks from an execution plan."""
        return cls(plan.to_tasks())

    def _insert(self, task: Task) -> None:
        if task.id in self._tasks:
            raise TaskGraphError(f"Duplicate task id: {task.id}")
        self._order[task.id] = len(self._order)
        self._tasks[task.id] = task

    def add_task(self, task: Task) -> None:
        """
        Add a task whose dependencies are already in the graph.

        Raises:
            TaskGraphError: On duplicate id or unknown dependency
        """
        missing = [dep_id for dep_id in task.dependencies if dep_id not in self._tasks]
        if missing:
            raise TaskGraphError(f"Task {task.id} depends on unknown tasks: {', '.join(missing)}")
        self._insert(task)

    def validate(self) -> None:
        """
        Check that every dependency references a task in the graph.

        Raises:
            TaskGraphError: If a dependency is unknown or a task depends on itself
        """
        for task in self._tasks.values():
            if task.id in task.dependencies:
                raise TaskGraphError(f"Task {task.id} depends on itself")
            missing = [dep_id for dep_id in task.dependencies if dep_id not in self._tasks]
            if missing:
                raise TaskGraphError(f"Task {task.id} depends on unknown tasks: {', '.join(missing)}")

    def get_task(self, task_id: str) -> Optional[Task]:
        """Get a task by id."""
        return self._tasks.get(task_id)

    @property
    def tasks(self) -> List[Task]:
        """All tasks in insertion order."""
        return list(self._tasks.values())

    def tasks_with_status(self, status: TaskStatus) -> List[Task]:
        return [t for t in self._tasks.values() if t.status == status]

    def pending_tasks(self) -> List[Task]:
        return self.tasks_with_status(TaskStatus.PENDING)

    def running_tasks(self) -> List[Task]:
        return self.tasks_with_status(TaskStatus.RUNNING)

    def failed_tasks(self) -> List[Task]:
        return self.tasks_with_status(TaskStatus.FAILED)

    def has_pending(self) -> bool:
        return any(t.is_pending() for t in self._tasks.values())

    def completed_ids(self) -> List[str]:
        """Ids of completed tasks, in insertion order."""
        return [t.id for t in self._tasks.values() if t.is_completed()]

    def unmet_dependencies(self, task: Task) -> List[str]:
        """Dependencies of a task that have not completed."""
        return [
            dep_id for dep_id in task.dependencies
            if not self._tasks[dep_id].is_completed()
        ]

    def ready_tasks(self) -> List[Task]:
        """
        Pending tasks whose dependencies have all completed.

        Returns:
            Ready tasks, highest priority first, insertion order among equals
        """
        ready = [
            task for task in self._tasks.values()
            if task.is_pending() and not self.unmet_dependencies(task)
        ]
        ready.sort(key=lambda t: (-t.priority, self._order[t.id]))
        return ready

    def stuck_tasks(self) -> Dict[str, List[str]]:
        """Pending tasks mapped to their unmet dependencies."""
        return {task.id: self.unmet_dependencies(task) for task in self.pending_tasks()}

    def find_cycle(self) -> Optional[List[str]]:
        """
        Look for a dependency cycle.

        Returns:
            Task ids forming a cycle (first id repeated at the end), or None
        """
        visiting: List[str] = []
        done = set()

        def visit(task_id: str) -> Optional[List[str]]:
            if task_id in done:
                return None
            if task_id in visiting:
                return visiting[visiting.index(task_id):] + [task_id]
            visiting.append(task_id)
            for dep_id in self._tasks[task_id].dependencies:
                cycle = visit(dep_id)
                if cycle:
                    return cycle
            visiting.pop()
            done.add(task_id)
            return None

        for task_id in self._tasks:
            cycle = visit(task_id)
            if cycle:
                return cycle
        return None

    def execution_waves(self) -> List[List[Task]]:
        """
        Group tasks into dependency levels.

        Every task in a wave depends only on tasks of earlier waves, so a wave
        can run concurrently given enough workers. Tasks on a cycle are left out.

        Returns:
            Waves in execution order, each sorted by priority
        """
        level: Dict[str, int] = {}
        remaining = dict(self._tasks)
        while remaining:
            progressed = False
            for task_id, task in list(remaining.items()):
                if all(dep_id in level for dep_id in task.dependencies):
                    level[task_id] = 1 + max((level[d] for d in task.dependencies), default=-1)
                    del remaining[task_id]
                    progressed = True
            if not progressed:
                break

        waves: List[List[Task]] = []
        for task_id, depth in level.items():
            while len(waves) <= depth:
                waves.append([])
            waves[depth].append(self._tasks[task_id])
        for wave in waves:
            wave.sort(key=lambda t: (-t.priority, self._order[t.id]))
        return waves

    def statistics(self) -> TaskStatistics:
        """Counters by status."""
        return TaskStatistics.from_tasks(self.tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._tasks
