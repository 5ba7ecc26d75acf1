"""
Partition Store

Append-only knowledge store partitioned by topic key. Each partition is
persisted as one JSON document holding the ordered entry sequence and a
``lastUpdated`` timestamp.

Operations on the same topic key are serialized by a per-key lock;
different keys never share a lock, so partitions can be read and written
fully in parallel.
"""

import os
import re
import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import get_config
from ..models import KnowledgeEntry, utc_now_iso

logger = logging.getLogger(__name__)

_TOPIC_KEY_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_\-]*$')


class PartitionStoreError(Exception):
    """Raised when a partition cannot be read from or written to disk."""
    pass


class PartitionStore:
    """
    Durable, append-only entry log per topic key.

    Features:
    - Lazy partition creation (an unwritten partition reads as empty)
    - All-or-nothing batch appends via temp file + atomic rename
    - One lock per topic key, created on first use
    - In-memory cache of partitions already read from disk
    """

    FILE_SUFFIX = '.json'

    def __init__(self, partition_dir: Optional[str] = None):
        """
        Initialize the partition store.

        Args:
            partition_dir: Directory holding one JSON file per partition
                (default: from configuration)
        """
        self.partition_dir = Path(partition_dir or get_config().partition_dir)
        self.partition_dir.mkdir(parents=True, exist_ok=True)

        # Committed state, replaced (never mutated) on every append
        self._entries: Dict[str, Tuple[KnowledgeEntry, ...]] = {}
        self._last_updated: Dict[str, Optional[str]] = {}

        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, topic_key: str) -> threading.Lock:
        """Get or create the lock guarding one partition."""
        with self._registry_lock:
            lock = self._locks.get(topic_key)
            if lock is None:
                lock = threading.Lock()
                self._locks[topic_key] = lock
            return lock

    def _path_for(self, topic_key: str) -> Path:
        if not topic_key or not _TOPIC_KEY_PATTERN.match(topic_key):
            raise ValueError(f"Invalid topic key: {topic_key!r}")
        return self.partition_dir / f"{topic_key}{self.FILE_SUFFIX}"

    def _read_partition(self, topic_key: str) -> Tuple[Tuple[KnowledgeEntry, ...], Optional[str]]:
        """
        Return the committed state of a partition. Caller must hold its lock.

        Raises:
            PartitionStoreError: If the partition file is unreadable
        """
        if topic_key in self._entries:
            return self._entries[topic_key], self._last_updated.get(topic_key)

        path = self._path_for(topic_key)
        if not path.exists():
            return (), None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            entries = tuple(KnowledgeEntry.from_dict(item) for item in data.get('entries', []))
            last_updated = data.get('lastUpdated')
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise PartitionStoreError(f"Failed to read partition '{topic_key}': {e}")

        self._entries[topic_key] = entries
        self._last_updated[topic_key] = last_updated
        logger.debug(f"Loaded partition {topic_key} with {len(entries)} entries from disk")
        return entries, last_updated

    def _write_partition(
        self,
        topic_key: str,
        entries: Tuple[KnowledgeEntry, ...],
        last_updated: str
    ) -> None:
        """
        Persist a partition with an atomic write. Caller must hold its lock.

        Raises:
            PartitionStoreError: If the file cannot be written
        """
        path = self._path_for(topic_key)
        temp_path = path.with_name(path.name + '.tmp')

        document = {
            'topicKey': topic_key,
            'entries': [entry.to_dict() for entry in entries],
            'lastUpdated': last_updated,
        }

        try:
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())

            # Atomic rename
            os.replace(temp_path, path)

        except OSError as e:
            # Clean up temp file on error
            if temp_path.exists():
                temp_path.unlink()
            raise PartitionStoreError(f"Failed to write partition '{topic_key}': {e}")

    def append(self, topic_key: str, new_entries: Iterable[KnowledgeEntry]) -> None:
        """
        Atomically append a batch of entries to a partition.

        Entries keep their relative order and follow every earlier batch.
        An empty batch leaves the partition untouched.

        Args:
            topic_key: Partition to append to
            new_entries: Entries to append, all belonging to ``topic_key``

        Raises:
            ValueError: If an entry belongs to another topic
            PartitionStoreError: If the partition cannot be read or written
        """
        batch = tuple(new_entries)
        if not batch:
            return

        for entry in batch:
            if entry.topic_key != topic_key:
                raise ValueError(
                    f"Entry {entry.id} belongs to '{entry.topic_key}', "
                    f"not partition '{topic_key}'"
                )

        with self._lock_for(topic_key):
            current, _ = self._read_partition(topic_key)
            updated = current + batch
            last_updated = utc_now_iso()

            self._write_partition(topic_key, updated, last_updated)

            # Publish only after the durable write succeeded
            self._entries[topic_key] = updated
            self._last_updated[topic_key] = last_updated

        logger.info(
            f"Appended {len(batch)} entries to partition {topic_key} "
            f"(total: {len(updated)})"
        )

    def load(self, topic_key: str) -> List[KnowledgeEntry]:
        """
        Load the full entry sequence of a partition.

        Args:
            topic_key: Partition to read

        Returns:
            Entries in arrival order, or an empty list for an unwritten partition

        Raises:
            PartitionStoreError: If the partition file is unreadable
        """
        with self._lock_for(topic_key):
            entries, _ = self._read_partition(topic_key)
        return list(entries)

    def last_updated(self, topic_key: str) -> Optional[str]:
        """Timestamp of the last append, or None if never written."""
        with self._lock_for(topic_key):
            _, last_updated = self._read_partition(topic_key)
        return last_updated

    def count(self, topic_key: str) -> int:
        """Number of entries stored in a partition."""
        return len(self.load(topic_key))

    def topic_keys(self) -> List[str]:
        """Topic keys with a persisted partition, sorted."""
        keys = {
            path.name[:-len(self.FILE_SUFFIX)]
            for path in self.partition_dir.glob(f"*{self.FILE_SUFFIX}")
        }
        keys.update(list(self._entries))
        return sorted(keys)

    def get_stats(self) -> Dict:
        """
        Get statistics about stored partitions.

        Returns:
            Dictionary with partition count, total entries and per-partition details
        """
        partitions = {}
        for topic_key in self.topic_keys():
            with self._lock_for(topic_key):
                entries, last_updated = self._read_partition(topic_key)
            partitions[topic_key] = {
                'entries': len(entries),
                'last_updated': last_updated,
            }

        return {
            'partition_dir': str(self.partition_dir),
            'total_partitions': len(partitions),
            'total_entries': sum(p['entries'] for p in partitions.values()),
            'partitions': partitions,
        }

    def __repr__(self) -> str:
        return f"PartitionStore(partition_dir={str(self.partition_dir)!r})"
