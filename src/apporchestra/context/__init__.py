"""Context layer: bounded working set and long-term memory."""

from .policy import ContextPolicy
from .archive import MemoryArchive
from .store import ContextStore, ContextStats, estimate_tokens, serialize

__all__ = [
    "ContextPolicy",
    "MemoryArchive",
    "ContextStore",
    "ContextStats",
    "estimate_tokens",
    "serialize",
]
