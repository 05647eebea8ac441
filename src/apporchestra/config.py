"""Configuration for the orchestration engine."""

import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_or_default(name: str, default: Optional[str]) -> Optional[str]:
    """
    Get environment variable value or default, treating empty string as unset.

    Compose files often pass empty values (``LOG_LEVEL=""``); those still fall
    back to the default.
    """
    value = os.getenv(name, None)
    if value is None or value == "":
        return default
    return value


def _env_flag(name: str, default: bool) -> bool:
    return _env_or_default(name, "true" if default else "false").lower() == "true"


# Context Configuration
MAX_CONTEXT_SIZE = int(_env_or_default("MAX_CONTEXT_SIZE", "100000"))  # tokens
CONTEXT_PRUNE_TARGET_RATIO = float(_env_or_default("CONTEXT_PRUNE_TARGET_RATIO", "0.7"))
CONTEXT_ENABLE_MEMORY = _env_flag("CONTEXT_ENABLE_MEMORY", True)
CONTEXT_ENABLE_RAG = _env_flag("CONTEXT_ENABLE_RAG", True)

# Parallel Execution Configuration
MAX_PARALLEL = int(_env_or_default("MAX_PARALLEL", "3"))  # Maximum concurrently running agent tasks
AGENT_TIMEOUT_SECONDS = float(_env_or_default("AGENT_TIMEOUT_SECONDS", "600"))  # 0 disables the timeout

# Planner Configuration
PLANNER_MODEL = _env_or_default("PLANNER_MODEL", None)  # None = backend default
PLANNER_MAX_RETRIES = int(_env_or_default("PLANNER_MAX_RETRIES", "3"))  # Retries for retryable LLM errors

# Result Policy
# When true, a run that finished with failed tasks still returns its partial file set.
ALLOW_PARTIAL_RESULTS = _env_flag("ALLOW_PARTIAL_RESULTS", True)

# Logging Configuration
LOG_DIR = _env_or_default("LOG_DIR", "logs")
LOG_LEVEL = _env_or_default("LOG_LEVEL", "INFO")
LOG_FSYNC = _env_flag("LOG_FSYNC", False)


def agent_timeout() -> Optional[float]:
    """Per-agent timeout in seconds, or None when disabled."""
    return AGENT_TIMEOUT_SECONDS if AGENT_TIMEOUT_SECONDS > 0 else None
