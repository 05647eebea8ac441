"""Tests for execution plans: fallback shape, parsing and the LLM planner."""

import json

import pytest

from apporchestra.agents import LLMPlanner, ResponsePlanner
from apporchestra.core.exceptions import LLMError, LLMRateLimitError, LLMTimeoutError, PlanParseError
from apporchestra.llm import LLMClient
from apporchestra.models import AgentType, ProjectRequirements
from apporchestra.planning import build_fallback_plan, extract_json, parse_execution_plan
from apporchestra.scheduler import TaskGraph


def deps_of(plan, agent_type):
    return set(plan.get_step(agent_type).dependencies)


def test_fallback_plan_with_auth():
    """With auth requested, backend waits for both database and auth."""
    plan = build_fallback_plan(ProjectRequirements(name="shop", auth=True, integrations=["stripe"]))

    assert plan.source == "fallback"
    assert plan.agent_types == [
        AgentType.DATABASE, AgentType.AUTH, AgentType.BACKEND,
        AgentType.FRONTEND, AgentType.INTEGRATIONS, AgentType.DEVOPS,
    ]
    assert deps_of(plan, AgentType.DATABASE) == set()
    assert deps_of(plan, AgentType.AUTH) == {AgentType.DATABASE}
    assert deps_of(plan, AgentType.BACKEND) == {AgentType.DATABASE, AgentType.AUTH}
    assert deps_of(plan, AgentType.FRONTEND) == {AgentType.BACKEND}
    assert deps_of(plan, AgentType.INTEGRATIONS) == {AgentType.BACKEND}
    assert deps_of(plan, AgentType.DEVOPS) == {AgentType.BACKEND, AgentType.FRONTEND}
    assert [step.priority for step in plan.steps] == [10, 9, 8, 7, 6, 5]


def test_fallback_plan_without_auth_or_integrations():
    plan = build_fallback_plan(ProjectRequirements(name="blog"))

    assert plan.get_step(AgentType.AUTH) is None
    assert plan.get_step(AgentType.INTEGRATIONS) is None
    assert deps_of(plan, AgentType.BACKEND) == {AgentType.DATABASE}, "Backend depends only on database"


def test_fallback_plan_lets_frontend_and_integrations_run_together():
    """frontend and integrations share no dependency path and land in the same wave."""
    plan = build_fallback_plan(ProjectRequirements(name="shop", auth=True, integrations=["sendgrid"]))
    graph = TaskGraph.from_plan(plan)

    frontend = graph.get_task("task_frontend")
    integrations = graph.get_task("task_integrations")
    assert "task_integrations" not in frontend.dependencies
    assert "task_frontend" not in integrations.dependencies

    waves = [{t.id for t in wave} for wave in graph.execution_waves()]
    assert {"task_frontend", "task_integrations"} in waves, f"Unexpected waves: {waves}"
    assert graph.find_cycle() is None


def test_parse_plan_from_fenced_response():
    response = """Here is the plan:
```json
{"tasks": [
  {"agent": "database", "priority": 10, "dependencies": []},
  {"agent": "backend", "priority": 8, "dependencies": ["task_database"], "description": "REST API"},
  {"agent": "frontend", "dependencies": ["backend"]}
]}
```
"""
    plan = parse_execution_plan(response)

    assert plan.source == "planner"
    assert plan.agent_types == [AgentType.DATABASE, AgentType.BACKEND, AgentType.FRONTEND]
    assert deps_of(plan, AgentType.BACKEND) == {AgentType.DATABASE}, "task_ prefixed names are accepted"
    assert plan.get_step(AgentType.FRONTEND).priority == 5, "Missing priority defaults to 5"

    tasks = {t.id: t for t in plan.to_tasks()}
    assert tasks["task_backend"].description == "REST API"
    assert tasks["task_frontend"].dependencies == ["task_backend"]
    assert tasks["task_frontend"].description == "Generate frontend code"


def test_extract_json_bare_object():
    assert extract_json('Sure! {"tasks": []} Hope that helps.') == {"tasks": []}


@pytest.mark.parametrize("response", [
    "I cannot help with that.",
    "```json\n{not json}\n```",
    "[1, 2, 3]",
    json.dumps({"steps": []}),
    json.dumps({"tasks": []}),
    json.dumps({"tasks": ["database"]}),
    json.dumps({"tasks": [{"agent": "mobile"}]}),
    json.dumps({"tasks": [{"agent": "database"}, {"agent": "database"}]}),
    json.dumps({"tasks": [{"agent": "database", "priority": 11}]}),
    json.dumps({"tasks": [{"agent": "database", "priority": "high"}]}),
    json.dumps({"tasks": [{"agent": "database", "dependencies": "backend"}]}),
    json.dumps({"tasks": [{"agent": "database", "dependencies": ["database"]}]}),
    json.dumps({"tasks": [{"agent": "backend", "dependencies": ["database"]}]}),
    json.dumps({"tasks": [
        {"agent": "database", "dependencies": ["devops"]},
        {"agent": "backend", "dependencies": ["database"]},
        {"agent": "devops", "dependencies": ["backend"]},
    ]}),
])
def test_invalid_plans_are_rejected(response):
    with pytest.raises(PlanParseError):
        parse_execution_plan(response)


class FakeLLMClient(LLMClient):
    """Returns queued responses; exceptions in the queue are raised."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.prompts = []

    def call_agent(self, prompt, mode="plan", model=None, **kwargs):
        self.prompts.append((prompt, mode, model))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


VALID_RESPONSE = json.dumps({"tasks": [
    {"agent": "database", "priority": 10, "dependencies": []},
    {"agent": "backend", "priority": 8, "dependencies": ["database"]},
]})


def test_llm_planner_builds_prompt_and_parses():
    client = FakeLLMClient([VALID_RESPONSE])
    requirements = ProjectRequirements(
        name="crm", template="saas", features=["contacts", "deals"], auth=True, integrations=["stripe"],
    )

    plan = LLMPlanner(client, model="planner-model", sleep=lambda s: None).plan(requirements)

    assert plan.agent_types == [AgentType.DATABASE, AgentType.BACKEND]
    prompt, mode, model = client.prompts[0]
    assert mode == "plan" and model == "planner-model"
    for expected in ("Project: crm", "Template: saas", "contacts, deals", "stripe", "devops"):
        assert expected in prompt, f"Prompt is missing {expected!r}"


def test_llm_planner_retries_retryable_errors():
    waits = []
    client = FakeLLMClient([LLMTimeoutError(30), LLMRateLimitError(), VALID_RESPONSE])

    plan = LLMPlanner(client, max_retries=3, sleep=waits.append).plan(ProjectRequirements(name="x"))

    assert len(plan.steps) == 2
    assert waits == [1, 2], f"Expected exponential backoff, got {waits}"


def test_llm_planner_gives_up():
    client = FakeLLMClient([LLMRateLimitError(), LLMRateLimitError()])
    with pytest.raises(LLMRateLimitError):
        LLMPlanner(client, max_retries=2, sleep=lambda s: None).plan(ProjectRequirements(name="x"))

    client = FakeLLMClient([LLMError("bad request", retryable=False), VALID_RESPONSE])
    with pytest.raises(LLMError):
        LLMPlanner(client, max_retries=3, sleep=lambda s: None).plan(ProjectRequirements(name="x"))
    assert len(client.responses) == 1, "Non-retryable errors are not retried"


def test_llm_planner_wraps_unexpected_errors():
    client = FakeLLMClient([ConnectionError("reset")])
    with pytest.raises(LLMError) as exc_info:
        LLMPlanner(client, sleep=lambda s: None).plan(ProjectRequirements(name="x"))
    assert isinstance(exc_info.value.original_error, ConnectionError)


def test_llm_planner_rejects_unparseable_output():
    client = FakeLLMClient(["no plan today"])
    with pytest.raises(PlanParseError):
        LLMPlanner(client, sleep=lambda s: None).plan(ProjectRequirements(name="x"))


def test_response_planner():
    plan = ResponsePlanner(VALID_RESPONSE).plan(ProjectRequirements(name="x"))
    assert plan.source == "file"


def test_requirements_from_dict():
    requirements = ProjectRequirements.from_dict({
        "name": "shop",
        "template": "ecommerce",
        "features": [{"name": "cart"}, "checkout"],
        "auth": True,
        "integrations": ["stripe"],
    })
    assert requirements.features == ["cart", "checkout"]
    assert requirements.auth is True
    assert ProjectRequirements.from_dict({}).name == "untitled-project"
