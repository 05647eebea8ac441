"""Turning planner output into a validated execution plan."""

import json
import re
from typing import Any, Dict, List

from apporchestra.core.exceptions import PlanParseError, TaskGraphError
from apporchestra.models import (
    AgentType,
    ExecutionPlan,
    PlanStep,
    DEFAULT_PRIORITY,
    MIN_PRIORITY,
    MAX_PRIORITY,
)
from apporchestra.scheduler import TaskGraph

_FENCED_JSON = re.compile(r'```(?:json)?\s*\n(.*?)\n\s*```', re.DOTALL)
_BARE_OBJECT = re.compile(r'\{.*\}', re.DOTALL)


def extract_json(response: str) -> Dict[str, Any]:
    """
    Pull the JSON object out of a model response.

    Looks for a fenced code block first, then for the outermost braces.

    Raises:
        PlanParseError: If no JSON object can be decoded
    """
    match = _FENCED_JSON.search(response) or _BARE_OBJECT.search(response)
    if not match:
        raise PlanParseError("no JSON found in planner response")
    text = match.group(1) if match.re is _FENCED_JSON else match.group(0)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PlanParseError(f"JSON decode failed: {e}", e)
    if not isinstance(data, dict):
        raise PlanParseError("planner JSON is not an object")
    return data


def _agent_of(value: Any) -> AgentType:
    """Accept 'backend' as well as 'task_backend'."""
    name = str(value).strip().lower()
    if name.startswith("task_"):
        name = name[len("task_"):]
    try:
        return AgentType.from_string(name)
    except ValueError:
        raise PlanParseError(f"unknown agent type: {value!r}")


def _priority_of(agent_type: AgentType, value: Any) -> int:
    if value is None:
        return DEFAULT_PRIORITY
    if isinstance(value, bool) or not isinstance(value, int):
        raise PlanParseError(f"priority of {agent_type.value} is not an integer: {value!r}")
    if not MIN_PRIORITY <= value <= MAX_PRIORITY:
        raise PlanParseError(
            f"priority of {agent_type.value} must be between {MIN_PRIORITY} and {MAX_PRIORITY}, got {value}"
        )
    return value


def plan_from_dict(data: Dict[str, Any], source: str = "planner") -> ExecutionPlan:
    """
    Validate a decoded plan of the form ``{"tasks": [{"agent", "priority", "dependencies"}]}``.

    Args:
        data: Decoded plan
        source: Label recorded on the plan

    Returns:
        The validated plan

    Raises:
        PlanParseError: On any structural problem (unknown or duplicate agent,
            unknown dependency, bad priority, cycle, empty plan)
    """
    items = data.get("tasks")
    if not isinstance(items, list) or not items:
        raise PlanParseError("plan has no 'tasks' list")

    steps: List[PlanStep] = []
    seen = set()
    for item in items:
        if not isinstance(item, dict):
            raise PlanParseError(f"task entry is not an object: {item!r}")
        agent_type = _agent_of(item.get("agent") or item.get("agent_type") or item.get("type"))
        if agent_type in seen:
            raise PlanParseError(f"agent {agent_type.value} appears more than once")
        seen.add(agent_type)

        raw_deps = item.get("dependencies") or []
        if not isinstance(raw_deps, list):
            raise PlanParseError(f"dependencies of {agent_type.value} are not a list")
        dependencies = []
        for dep in raw_deps:
            dep_type = _agent_of(dep)
            if dep_type == agent_type:
                raise PlanParseError(f"{agent_type.value} depends on itself")
            if dep_type not in dependencies:
                dependencies.append(dep_type)

        steps.append(PlanStep(
            agent_type=agent_type,
            priority=_priority_of(agent_type, item.get("priority")),
            dependencies=tuple(dependencies),
            description=str(item.get("description") or ""),
        ))

    planned = {step.agent_type for step in steps}
    for step in steps:
        missing = [dep.value for dep in step.dependencies if dep not in planned]
        if missing:
            raise PlanParseError(f"{step.agent_type.value} depends on agents not in the plan: {', '.join(missing)}")

    plan = ExecutionPlan(steps=tuple(steps), source=source)
    try:
        cycle = TaskGraph.from_plan(plan).find_cycle()
    except TaskGraphError as e:
        raise PlanParseError(str(e), e)
    if cycle:
        raise PlanParseError(f"dependency cycle: {' -> '.join(cycle)}")
    return plan


def parse_execution_plan(response: str, source: str = "planner") -> ExecutionPlan:
    """
    Parse a planner response into a validated execution plan.

    Raises:
        PlanParseError: If the response is unusable
    """
    return plan_from_dict(extract_json(response), source=source)
