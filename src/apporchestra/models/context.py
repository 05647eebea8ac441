"""Context-related data models."""

from dataclasses import dataclass
from typing import Dict, Any, Optional


@dataclass(frozen=True)
class ContextEntry:
    """One immutable unit of information produced during a run.

    ``token_count`` is derived from ``data`` when the entry is created and is
    never changed afterwards. Updates are new entries under the same key.
    """
    id: str
    key: str
    data: Any
    created_at: float
    token_count: int
    importance: int
    owner_agent_type: Optional[str] = None

    def age_seconds(self, now: float) -> float:
        """Age of the entry relative to ``now`` (epoch seconds)."""
        return now - self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "id": self.id,
            "key": self.key,
            "data": self.data,
            "created_at": self.created_at,
            "token_count": self.token_count,
            "importance": self.importance,
        }
        if self.owner_agent_type:
            data["owner_agent_type"] = self.owner_agent_type
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextEntry":
        """Create ContextEntry from dictionary.

        Raises:
            KeyError: If a required field is missing
            TypeError: If a field has the wrong type
            ValueError: If importance is outside 1-10
        """
        entry_id = data["id"]
        key = data["key"]
        if not isinstance(entry_id, str) or not isinstance(key, str):
            raise TypeError("id and key must be strings")
        created_at = data["created_at"]
        if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
            raise TypeError(f"created_at must be a number, got {created_at!r}")
        importance = data["importance"]
        if isinstance(importance, bool) or not isinstance(importance, int):
            raise TypeError(f"importance must be an integer, got {importance!r}")
        if not 1 <= importance <= 10:
            raise ValueError(f"importance must be between 1 and 10, got {importance}")
        owner = data.get("owner_agent_type")
        if owner is not None and not isinstance(owner, str):
            raise TypeError(f"owner_agent_type must be a string, got {owner!r}")
        token_count = data.get("token_count", 0)
        if isinstance(token_count, bool) or not isinstance(token_count, int):
            raise TypeError(f"token_count must be an integer, got {token_count!r}")

        return cls(
            id=entry_id,
            key=key,
            data=data["data"],
            created_at=float(created_at),
            token_count=token_count,
            importance=importance,
            owner_agent_type=owner,
        )
