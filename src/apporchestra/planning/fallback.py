"""Deterministic plan used when the planner is unavailable."""

from apporchestra.models import AgentType, ExecutionPlan, PlanStep, ProjectRequirements


def build_fallback_plan(requirements: ProjectRequirements) -> ExecutionPlan:
    """
    Build the fixed dependency graph for a project.

    database -> [auth] -> backend -> frontend -> devops, with integrations
    hanging off backend so it can run alongside frontend.

    Args:
        requirements: Decides whether auth and integrations are planned

    Returns:
        Fallback execution plan
    """
    steps = [
        PlanStep(AgentType.DATABASE, 10, (), "Generate database schema"),
    ]

    if requirements.auth:
        steps.append(PlanStep(
            AgentType.AUTH, 9, (AgentType.DATABASE,), "Generate authentication system",
        ))

    backend_deps = (AgentType.DATABASE, AgentType.AUTH) if requirements.auth else (AgentType.DATABASE,)
    steps.append(PlanStep(AgentType.BACKEND, 8, backend_deps, "Generate backend API"))
    steps.append(PlanStep(
        AgentType.FRONTEND, 7, (AgentType.BACKEND,), "Generate frontend application",
    ))

    if requirements.integrations:
        steps.append(PlanStep(
            AgentType.INTEGRATIONS, 6, (AgentType.BACKEND,), "Setup third-party integrations",
        ))

    steps.append(PlanStep(
        AgentType.DEVOPS, 5, (AgentType.BACKEND, AgentType.FRONTEND), "Generate deployment configuration",
    ))

    return ExecutionPlan(steps=tuple(steps), source="fallback")
