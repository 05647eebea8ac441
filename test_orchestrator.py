"""End-to-end tests for the orchestrator."""

import threading

import pytest

from apporchestra.agents import CallableAgent, Planner, ResponsePlanner
from apporchestra.context import ContextPolicy, ContextStore
from apporchestra.core.exceptions import DeadlockError, IncompleteRunError, LLMError
from apporchestra.models import AgentType, ProjectRequirements
from apporchestra.orchestrator import Orchestrator, assemble_project


def requirements(**overrides):
    data = dict(name="shop", template="Ecommerce", description="Online shop",
                features=["cart"], auth=True, integrations=["stripe"])
    data.update(overrides)
    return ProjectRequirements(**data)


class Collector:
    """Builds agents that record the context they were given."""

    def __init__(self):
        self.lock = threading.Lock()
        self.seen = {}

    def agent(self, agent_type, func=None):
        def generate(context):
            with self.lock:
                self.seen[agent_type] = context
            if func is not None:
                return func(context)
            return {"files": [{"path": f"{agent_type}/index.ts", "content": f"// {agent_type}"}]}
        return CallableAgent(agent_type, generate)

    def agents(self, **overrides):
        return {
            agent_type.value: self.agent(agent_type.value, overrides.get(agent_type.value))
            for agent_type in AgentType
        }


def test_end_to_end_with_fallback_plan():
    """Without a planner the fallback plan drives all six agents."""
    collector = Collector()
    orchestrator = Orchestrator(requirements(), collector.agents(), project_id="proj-1", task_timeout=10)

    result = orchestrator.orchestrate()

    assert result.success, f"Run failed: {result.errors}"
    assert result.plan.source == "fallback"
    assert sorted(result.completed_tasks) == sorted(f"task_{t.value}" for t in AgentType)
    assert len(result.files) == 6
    assert result.to_dict()["success"] is True

    devops_view = collector.seen["devops"]["previous_results"]
    assert devops_view["project_config"]["name"] == "shop", "Requirements reach every agent"
    assert "agent_frontend_output" in devops_view, "Upstream output reaches downstream agents"

    snapshot = orchestrator.get_context()
    assert snapshot["project_id"] == "proj-1" and snapshot["current_phase"] == "completed"
    assert snapshot["context_stats"]["active_entries"] >= 8
    assert orchestrator.context_store.project_id == "proj-1"


def test_project_assembly():
    collector = Collector()
    result = Orchestrator(requirements(), collector.agents(), task_timeout=10).orchestrate()
    project = result.project

    assert project.name == "shop"
    assert project.structure == result.files
    assert project.package_json["name"] == "shop"
    assert project.package_json["keywords"] == ["ecommerce"]
    assert project.package_json["license"] == "MIT"
    assert "dev" in project.package_json["scripts"]
    assert project.readme.startswith("# shop")
    assert set(project.env_example) == {"NODE_ENV", "PORT", "DATABASE_URL"}

    empty = assemble_project(requirements(description=""), [])
    assert empty.structure == [] and empty.package_json["description"] == ""


def test_frontend_and_integrations_run_concurrently():
    """Both agents must be inside generate at the same time to pass the barrier."""
    barrier = threading.Barrier(2, timeout=5)

    def meet(context):
        barrier.wait()
        return {"files": [{"path": f"{context['agent_type']}.ts", "content": ""}]}

    collector = Collector()
    agents = collector.agents(frontend=meet, integrations=meet)

    result = Orchestrator(requirements(), agents, max_parallel=3, task_timeout=10).orchestrate()

    assert result.success, f"frontend and integrations did not overlap: {result.errors}"


def test_planner_output_is_used():
    response = """```json
{"tasks": [
  {"agent": "database", "priority": 10, "dependencies": []},
  {"agent": "backend", "priority": 8, "dependencies": ["database"]}
]}
```"""
    collector = Collector()
    orchestrator = Orchestrator(requirements(), collector.agents(), planner=ResponsePlanner(response), task_timeout=10)

    result = orchestrator.orchestrate()

    assert result.plan.source == "file"
    assert sorted(result.completed_tasks) == ["task_backend", "task_database"]
    assert set(collector.seen) == {"database", "backend"}, "Only planned agents run"


def test_unparseable_plan_falls_back():
    orchestrator = Orchestrator(
        requirements(auth=False, integrations=[]),
        Collector().agents(),
        planner=ResponsePlanner("I'd rather not"),
        task_timeout=10,
    )

    result = orchestrator.orchestrate()

    assert result.plan.source == "fallback"
    assert result.success
    assert "task_auth" not in result.completed_tasks


def test_planner_failure_falls_back():
    class BrokenPlanner(Planner):
        def plan(self, requirements):
            raise LLMError("service unavailable", retryable=False)

    plan = Orchestrator(requirements(), Collector().agents(), planner=BrokenPlanner()).analyze_and_plan()
    assert plan.source == "fallback"


def test_plan_is_recorded_in_context():
    store = ContextStore(project_id="")
    orchestrator = Orchestrator(requirements(), Collector().agents(), context_store=store, project_id="proj-2")
    orchestrator.analyze_and_plan()

    config_entry = next(e for e in store.entries() if e.key == "project_config")
    assert config_entry.importance == 10
    assert store.archive.contains(config_entry.id), "Project config is kept in the archive"
    assert store.get_all_context()["execution_plan"]["source"] == "fallback"
    assert store.project_id == "proj-2"


def test_empty_context_store_is_kept():
    """A caller's store keeps its policy and receives the run's context."""
    store = ContextStore(policy=ContextPolicy(max_context_size=1000))
    orchestrator = Orchestrator(requirements(), Collector().agents(), context_store=store, task_timeout=10)
    assert orchestrator.context_store is store

    orchestrator.orchestrate()

    assert orchestrator.context_store.max_context_size == 1000
    assert len(store) > 0
    assert store.total_tokens <= 1000


def failing_devops(context):
    return {"files": [], "errors": ["docker daemon unreachable"]}


def test_partial_results_allowed():
    """With partial results allowed, a failed leaf task still yields the other files."""
    result = Orchestrator(
        requirements(), Collector().agents(devops=failing_devops), allow_partial=True, task_timeout=10,
    ).orchestrate()

    assert not result.success
    assert result.is_partial
    assert len(result.files) == 5
    assert len(result.errors) == 1 and "docker daemon unreachable" in str(result.errors[0])
    assert "task_devops" not in result.completed_tasks


def test_partial_results_rejected():
    with pytest.raises(IncompleteRunError) as exc_info:
        Orchestrator(
            requirements(), Collector().agents(devops=failing_devops), allow_partial=False, task_timeout=10,
        ).orchestrate()

    result = exc_info.value.result
    assert result is not None and len(result.files) == 5, "The partial result travels with the error"
    assert not result.success


def test_deadlock_aborts_run():
    def broken(context):
        raise RuntimeError("schema generation failed")

    orchestrator = Orchestrator(requirements(), Collector().agents(database=broken), task_timeout=10)

    with pytest.raises(DeadlockError) as exc_info:
        orchestrator.orchestrate()

    assert "task_backend" in exc_info.value.stuck_tasks
    assert exc_info.value.failed_tasks == ["task_database"]
    assert orchestrator.get_context()["current_phase"] == "deadlocked"
