"""Scoring and retention policy for the context store."""

from dataclasses import dataclass

import apporchestra.config as config


@dataclass(frozen=True)
class ContextPolicy:
    """Tunable constants behind pruning, archiving and agent views.

    relevance = importance * importance_weight + max(0, recency_window_minutes - age_minutes)
    """
    max_context_size: int = 100000
    prune_target_ratio: float = 0.7
    importance_weight: int = 10
    recency_window_minutes: float = 50.0
    archive_on_insert_importance: int = 8
    archive_on_evict_importance: int = 6
    agent_view_min_importance: int = 7
    agent_view_recent_seconds: float = 5 * 60
    archive_view_min_importance: int = 9
    default_importance: int = 5
    chars_per_token: int = 4

    def __post_init__(self):
        if self.max_context_size <= 0:
            raise ValueError(f"max_context_size must be positive, got {self.max_context_size}")
        if not 0 <= self.prune_target_ratio <= 1:
            raise ValueError(f"prune_target_ratio must be within [0, 1], got {self.prune_target_ratio}")
        if self.chars_per_token <= 0:
            raise ValueError(f"chars_per_token must be positive, got {self.chars_per_token}")

    @property
    def prune_target(self) -> float:
        """Token total that pruning brings the store down to."""
        return self.max_context_size * self.prune_target_ratio

    @classmethod
    def from_config(cls) -> "ContextPolicy":
        """Build a policy from the environment-driven configuration."""
        return cls(
            max_context_size=config.MAX_CONTEXT_SIZE,
            prune_target_ratio=config.CONTEXT_PRUNE_TARGET_RATIO,
        )
