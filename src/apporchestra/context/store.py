"""Bounded, thread-safe context store with relevance-based pruning."""

import dataclasses
import itertools
import json
import logging
import math
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Pattern, Union

import apporchestra.config as config
from apporchestra.core.exceptions import CorruptContextError
from apporchestra.models import ContextEntry
from .archive import MemoryArchive
from .policy import ContextPolicy

logger = logging.getLogger("agent_system.context")

EXPORT_FORMAT_VERSION = 1


def serialize(data: Any) -> str:
    """Compact JSON form used for token estimation and export."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)


def estimate_tokens(data: Any, chars_per_token: int = 4) -> int:
    """Approximate token count: serialized UTF-8 length divided by ``chars_per_token``, rounded up."""
    return math.ceil(len(serialize(data).encode("utf-8")) / chars_per_token)


@dataclass
class ContextStats:
    """Snapshot of store utilisation."""
    active_entries: int
    memory_entries: int
    total_tokens: int
    max_tokens: int

    @property
    def utilization_percent(self) -> float:
        return self.total_tokens / self.max_tokens * 100 if self.max_tokens else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "active_entries": self.active_entries,
            "memory_entries": self.memory_entries,
            "total_tokens": self.total_tokens,
            "max_tokens": self.max_tokens,
            "utilization_percent": round(self.utilization_percent, 2),
        }


class ContextStore:
    """Working set of context entries shared by every running task.

    All reads and writes go through one re-entrant lock, so concurrent ``add``
    calls keep the running token total consistent and readers never see a
    half-inserted entry. The archive has its own lock and is always taken
    after this one.
    """

    def __init__(
        self,
        project_id: str = "",
        policy: Optional[ContextPolicy] = None,
        archive: Optional[MemoryArchive] = None,
        enable_memory: Optional[bool] = None,
        enable_rag: Optional[bool] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the context store.

        Args:
            project_id: Project the context belongs to
            policy: Scoring and retention constants (defaults from configuration)
            archive: Memory archive to use (a new one by default)
            enable_memory: Copy important entries into the archive
            enable_rag: Include archived entries in agent views and searches
            clock: Time source in epoch seconds
        """
        self.project_id = project_id
        self.policy = policy if policy is not None else ContextPolicy.from_config()
        self.enable_memory = config.CONTEXT_ENABLE_MEMORY if enable_memory is None else enable_memory
        self.enable_rag = config.CONTEXT_ENABLE_RAG if enable_rag is None else enable_rag
        self._clock = clock
        self.archive = archive if archive is not None else MemoryArchive(clock=clock)

        self._entries: Dict[str, ContextEntry] = {}
        self._total_tokens = 0
        self._sequence = itertools.count(1)
        self._lock = threading.RLock()

        logger.info(
            f"Context store initialized (project={project_id or '-'}, "
            f"max_tokens={self.policy.max_context_size}, "
            f"memory={self.enable_memory}, rag={self.enable_rag})"
        )

    @property
    def max_context_size(self) -> int:
        return self.policy.max_context_size

    @property
    def total_tokens(self) -> int:
        with self._lock:
            return self._total_tokens

    def add(
        self,
        key: str,
        data: Any,
        owner_agent_type: Optional[str] = None,
        importance: Optional[int] = None,
    ) -> ContextEntry:
        """
        Add data to the context.

        Args:
            key: Logical name; several entries may share a key
            data: JSON-serializable payload
            owner_agent_type: Agent that produced the data
            importance: 1-10, defaults to the policy default; fractional
                values are rounded and out-of-range values clamped

        Returns:
            The stored entry

        Raises:
            TypeError: If importance is not a number
        """
        if importance is None:
            importance = self.policy.default_importance
        if isinstance(importance, bool) or not isinstance(importance, (int, float)):
            raise TypeError(f"Importance for '{key}' must be a number, got {importance!r}")
        importance = int(round(importance))
        if not 1 <= importance <= 10:
            logger.warning(f"Importance {importance} for '{key}' outside 1-10, clamping")
            importance = min(10, max(1, importance))
        owner = getattr(owner_agent_type, "value", owner_agent_type)
        token_count = estimate_tokens(data, self.policy.chars_per_token)

        with self._lock:
            entry = ContextEntry(
                id=f"{key}_{next(self._sequence)}",
                key=key,
                data=data,
                created_at=self._clock(),
                token_count=token_count,
                importance=importance,
                owner_agent_type=owner,
            )
            self._entries[entry.id] = entry
            self._total_tokens += token_count

            logger.debug(f"Added to context: key={key}, tokens={token_count}, total={self._total_tokens}")

            if self.enable_memory and importance >= self.policy.archive_on_insert_importance:
                self.archive.archive(entry)

            if self._total_tokens > self.policy.max_context_size:
                self._prune_locked()

        return entry

    def relevance_score(self, entry: ContextEntry, now: Optional[float] = None) -> float:
        """Higher score means more worth keeping."""
        if now is None:
            now = self._clock()
        age_minutes = entry.age_seconds(now) / 60
        recency = max(0.0, self.policy.recency_window_minutes - age_minutes)
        return entry.importance * self.policy.importance_weight + recency

    def prune(self) -> List[ContextEntry]:
        """
        Evict the least relevant entries until the total is at or below the prune target.

        Returns:
            Evicted entries, in eviction order
        """
        with self._lock:
            return self._prune_locked()

    def _prune_locked(self) -> List[ContextEntry]:
        target = self.policy.prune_target
        logger.info(
            f"Pruning context (tokens={self._total_tokens}, max={self.policy.max_context_size}, "
            f"target={target:g})"
        )

        now = self._clock()
        # sorted() is stable, so equal scores evict the oldest insertion first
        candidates = sorted(self._entries.values(), key=lambda e: self.relevance_score(e, now))

        evicted: List[ContextEntry] = []
        for entry in candidates:
            if self._total_tokens <= target:
                break
            if self.enable_memory and entry.importance >= self.policy.archive_on_evict_importance:
                self.archive.archive(entry)
            del self._entries[entry.id]
            self._total_tokens -= entry.token_count
            evicted.append(entry)

        logger.info(
            f"Context pruned (removed={len(evicted)}, remaining={len(self._entries)}, "
            f"tokens={self._total_tokens})"
        )
        return evicted

    def get_context_for_agent(self, agent_type: str) -> Dict[str, Any]:
        """
        Build the relevance-filtered view for one agent.

        Live entries are included when owned by the agent, important enough, or
        recent. Archived entries are included when owned by the agent or very
        important. Live entries win over archived ones with the same key, and
        newer entries win over older ones.

        Args:
            agent_type: Agent the view is for

        Returns:
            Mapping of key to data
        """
        agent_type = getattr(agent_type, "value", agent_type)
        policy = self.policy

        with self._lock:
            now = self._clock()
            active: Dict[str, Any] = {}
            for entry in self._entries.values():
                if (
                    entry.owner_agent_type == agent_type
                    or entry.importance >= policy.agent_view_min_importance
                    or entry.age_seconds(now) < policy.agent_view_recent_seconds
                ):
                    active[entry.key] = entry.data

            archived: Dict[str, Any] = {}
            if self.enable_rag:
                for entry in self.archive.retrieve(agent_type, policy.archive_view_min_importance):
                    archived[entry.key] = entry.data

        view = {**archived, **active}
        logger.debug(f"Retrieved context for {agent_type}: {len(view)} keys")
        return view

    def get_all_context(self) -> Dict[str, Any]:
        """Every live entry, newest value per key."""
        with self._lock:
            return {entry.key: entry.data for entry in self._entries.values()}

    def search_by_key_pattern(self, pattern: Union[str, Pattern[str]]) -> Dict[str, Any]:
        """
        Find live and archived entries whose key matches a pattern.

        Strings are treated as case-insensitive regular expressions; a string
        that is not a valid expression is matched literally.

        Args:
            pattern: Regular expression or plain substring

        Returns:
            Mapping of key to data, live entries taking precedence
        """
        if isinstance(pattern, str):
            try:
                regex = re.compile(pattern, re.IGNORECASE)
            except re.error:
                regex = re.compile(re.escape(pattern), re.IGNORECASE)
        else:
            regex = pattern

        with self._lock:
            results: Dict[str, Any] = {}
            if self.enable_rag:
                for entry in self.archive.find_by_key(regex):
                    results[entry.key] = entry.data
            for entry in self._entries.values():
                if regex.search(entry.key):
                    results[entry.key] = entry.data
        return results

    def entries(self) -> List[ContextEntry]:
        """Snapshot of live entries in insertion order."""
        with self._lock:
            return list(self._entries.values())

    def get_entry(self, entry_id: str) -> Optional[ContextEntry]:
        """Get a live entry by id."""
        with self._lock:
            return self._entries.get(entry_id)

    def get_stats(self) -> ContextStats:
        """Get context statistics."""
        with self._lock:
            return ContextStats(
                active_entries=len(self._entries),
                memory_entries=len(self.archive),
                total_tokens=self._total_tokens,
                max_tokens=self.policy.max_context_size,
            )

    def clear_context(self) -> None:
        """Drop every live entry. The archive is kept."""
        with self._lock:
            self._entries.clear()
            self._total_tokens = 0
        logger.warning(f"Context cleared (project={self.project_id or '-'})")

    def clear_memory(self) -> None:
        """Drop every archived entry."""
        with self._lock:
            self.archive.clear()
        logger.warning(f"Memory cleared (project={self.project_id or '-'})")

    def export_context(self) -> str:
        """Serialize live and archived entries for a later ``import_context``."""
        with self._lock:
            payload = {
                "version": EXPORT_FORMAT_VERSION,
                "project_id": self.project_id,
                "context": [entry.to_dict() for entry in self._entries.values()],
                "memory": self.archive.export_records(),
                "stats": self.get_stats().to_dict(),
            }
        return json.dumps(payload, ensure_ascii=False, default=str)

    def import_context(self, blob: str) -> None:
        """
        Replace the store's content with an exported payload.

        Token counts and the running total are recomputed from the restored
        data. Either everything is replaced or nothing is.

        Args:
            blob: String produced by ``export_context``

        Raises:
            CorruptContextError: If the payload is malformed
        """
        try:
            parsed = json.loads(blob)
        except (TypeError, ValueError) as e:
            raise CorruptContextError("not valid JSON", e)

        if not isinstance(parsed, dict):
            raise CorruptContextError("top level is not an object")
        context_records = parsed.get("context")
        memory_records = parsed.get("memory", [])
        if not isinstance(context_records, list) or not isinstance(memory_records, list):
            raise CorruptContextError("'context' and 'memory' must be lists")

        entries = [self._restore_entry(record) for record in context_records]
        archived = [self._restore_entry(record) for record in memory_records]
        for name, restored in (("context", entries), ("memory", archived)):
            ids = [entry.id for entry in restored]
            if len(ids) != len(set(ids)):
                raise CorruptContextError(f"duplicate entry ids in '{name}'")

        archived_at: Dict[str, float] = {}
        for record in memory_records:
            value = record.get("archived_at")
            if value is not None:
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise CorruptContextError(f"archived_at of {record.get('id')} is not a number")
                archived_at[record["id"]] = float(value)

        with self._lock:
            self._entries = {entry.id: entry for entry in entries}
            self._total_tokens = sum(entry.token_count for entry in entries)
            self.archive.replace(archived, archived_at)
            self._sequence = itertools.count(self._next_sequence(entries + archived))
            project_id = parsed.get("project_id")
            if isinstance(project_id, str) and project_id:
                self.project_id = project_id

        logger.info(f"Context imported: {self.get_stats().to_dict()}")

    def _restore_entry(self, record: Any) -> ContextEntry:
        if not isinstance(record, dict):
            raise CorruptContextError(f"entry is not an object: {record!r}")
        try:
            entry = ContextEntry.from_dict(record)
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptContextError(f"invalid entry {record.get('id', '?')}: {e}", e)
        # Stored counts are not trusted
        return dataclasses.replace(
            entry, token_count=estimate_tokens(entry.data, self.policy.chars_per_token)
        )

    @staticmethod
    def _next_sequence(entries: List[ContextEntry]) -> int:
        highest = 0
        for entry in entries:
            suffix = entry.id.rsplit("_", 1)[-1]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return highest + 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
