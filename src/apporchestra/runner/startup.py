"""Startup utilities for the orchestration runner."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

import apporchestra.config as config
from apporchestra.models import ProjectRequirements

DEFAULT_REQUIREMENTS = {
    "name": "sample-app",
    "template": "custom",
    "description": "Sample project",
    "features": ["users", "dashboard"],
    "auth": True,
    "integrations": ["stripe"],
}


def print_configuration():
    """Print configuration at startup."""
    print("\n" + "=" * 60)
    print("Configuration")
    print("=" * 60)

    # Context
    print("\n[Context]")
    print(f"  Max context size: {config.MAX_CONTEXT_SIZE} tokens")
    print(f"  Prune target ratio: {config.CONTEXT_PRUNE_TARGET_RATIO}")
    print(f"  Memory archive: {'enabled' if config.CONTEXT_ENABLE_MEMORY else 'disabled'}")
    print(f"  Archive retrieval: {'enabled' if config.CONTEXT_ENABLE_RAG else 'disabled'}")

    # Scheduling
    print("\n[Scheduling]")
    print(f"  Max parallel tasks: {config.MAX_PARALLEL}")
    timeout = config.agent_timeout()
    print(f"  Agent timeout: {f'{timeout:g}s' if timeout else '(disabled)'}")
    print(f"  Partial results: {'allowed' if config.ALLOW_PARTIAL_RESULTS else 'rejected'}")

    # Planner
    print("\n[Planner]")
    print(f"  Model: {config.PLANNER_MODEL or '(default)'}")
    print(f"  Max retries: {config.PLANNER_MAX_RETRIES}")

    # Logging
    print("\n[Logging]")
    print(f"  Log directory: {config.LOG_DIR}")
    print(f"  Log level: {config.LOG_LEVEL}")

    print("=" * 60)


def load_requirements(path: Optional[str]) -> ProjectRequirements:
    """
    Load project requirements from a YAML file.

    Args:
        path: YAML file path (built-in sample requirements when None)

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file does not hold a mapping
    """
    if path is None:
        return ProjectRequirements.from_dict(DEFAULT_REQUIREMENTS)

    with open(path, "r", encoding="utf-8") as f:
        data: Any = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Requirements file must contain a mapping: {path}")
    return ProjectRequirements.from_dict(data)


def read_plan_file(path: str) -> str:
    """Read a captured planner response."""
    return Path(path).read_text(encoding="utf-8")


def simulated_output(context: Dict[str, Any]) -> Dict[str, Any]:
    """Placeholder generation used by ``--simulate``."""
    agent_type = context["agent_type"]
    known = ", ".join(sorted(context.get("previous_results", {}))) or "none"
    return {
        "files": [
            {
                "path": f"{agent_type}/README.md",
                "content": f"# {agent_type}\n\n{context['description']}\n\nContext keys: {known}\n",
            }
        ]
    }
