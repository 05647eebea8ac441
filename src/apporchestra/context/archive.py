"""Long-term memory for durably important context entries."""

import logging
import re
import threading
import time
from typing import Callable, Dict, List, Optional, Pattern, Union

from apporchestra.models import ContextEntry

logger = logging.getLogger("agent_system.context")


class MemoryArchive:
    """Unbounded store of archived context entries, keyed by entry id.

    Written by ContextStore (on insert and on eviction) and queried for
    retrieval. Entries keep their original fields; the archive time is tracked
    separately so archived entries stay identical to the ones that were live.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: Dict[str, ContextEntry] = {}
        self._archived_at: Dict[str, float] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def archive(self, entry: ContextEntry) -> bool:
        """
        Archive an entry.

        Args:
            entry: Entry to copy into the archive

        Returns:
            True if the entry was newly archived, False if it was already present
        """
        with self._lock:
            if entry.id in self._entries:
                return False
            self._entries[entry.id] = entry
            self._archived_at[entry.id] = self._clock()

        logger.debug(f"Archived to memory: key={entry.key}, importance={entry.importance}")
        return True

    def contains(self, entry_id: str) -> bool:
        """Check whether an entry id is archived."""
        with self._lock:
            return entry_id in self._entries

    def get(self, entry_id: str) -> Optional[ContextEntry]:
        """Get an archived entry by id."""
        with self._lock:
            return self._entries.get(entry_id)

    def archived_at(self, entry_id: str) -> Optional[float]:
        """Time an entry was archived."""
        with self._lock:
            return self._archived_at.get(entry_id)

    def entries(self) -> List[ContextEntry]:
        """Snapshot of all archived entries, oldest first."""
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.created_at)

    def find_by_owner(self, agent_type: str) -> List[ContextEntry]:
        """Entries produced by one agent type."""
        return [e for e in self.entries() if e.owner_agent_type == agent_type]

    def find_by_importance(self, min_importance: int) -> List[ContextEntry]:
        """Entries at or above an importance level."""
        return [e for e in self.entries() if e.importance >= min_importance]

    def find_by_key(self, pattern: Union[str, Pattern[str]]) -> List[ContextEntry]:
        """Entries whose key matches a regular expression (case-insensitive for strings)."""
        regex = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
        return [e for e in self.entries() if regex.search(e.key)]

    def retrieve(self, agent_type: str, min_importance: int = 9) -> List[ContextEntry]:
        """
        Retrieval rule for an agent view.

        Args:
            agent_type: Agent asking for context
            min_importance: Entries at or above this importance are returned to every agent

        Returns:
            Entries owned by the agent or at least ``min_importance``, oldest first
        """
        relevant = [
            e for e in self.entries()
            if e.owner_agent_type == agent_type or e.importance >= min_importance
        ]
        logger.debug(f"Retrieved {len(relevant)} entries from memory for {agent_type}")
        return relevant

    def clear(self) -> None:
        """Remove every archived entry."""
        with self._lock:
            self._entries.clear()
            self._archived_at.clear()

    def export_records(self) -> List[Dict]:
        """Serializable records of all archived entries."""
        with self._lock:
            return [
                {**entry.to_dict(), "archived_at": self._archived_at[entry.id]}
                for entry in self._entries.values()
            ]

    def replace(self, entries: List[ContextEntry], archived_at: Dict[str, float]) -> None:
        """Swap in a complete new archive content."""
        with self._lock:
            self._entries = {entry.id: entry for entry in entries}
            self._archived_at = {
                entry.id: archived_at.get(entry.id, entry.created_at) for entry in entries
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
