"""
Response Cache

Unbounded answer cache keyed by request fingerprints. Entries never expire;
the cache lives as long as the process. Storage is split into independently
locked shards so concurrent requests for unrelated keys do not contend.
"""

import hashlib
import json
import threading
from typing import Dict, List, Optional, Tuple

from ..models import CacheStats, Plan


class ResponseCache:
    """
    Thread-safe fingerprint → answer store.

    Args:
        shards: Number of independently locked partitions
    """

    def __init__(self, shards: int = 16):
        if shards <= 0:
            raise ValueError(f"shards must be positive, got {shards}")
        self._shards: List[Dict[str, str]] = [{} for _ in range(shards)]
        self._locks = [threading.Lock() for _ in range(shards)]
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def key(plan: Plan) -> str:
        """
        Fingerprint a plan.

        Two plans with the same intent, the same targets in any order and the
        same parameters share a fingerprint. The question text is ignored.

        Args:
            plan: Plan to fingerprint

        Returns:
            SHA-256 hex digest
        """
        canonical = json.dumps(
            {
                "intent": plan.intent.value,
                "targets": sorted(plan.targets),
                "parameters": list(plan.parameters),
            },
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
        return hashlib.sha256(f"plan:{canonical}".encode('utf-8')).hexdigest()

    @staticmethod
    def key_for_query(query: str) -> str:
        """Fingerprint raw query text (whitespace-collapsed, case-insensitive)."""
        normalized = " ".join(query.split()).lower()
        return hashlib.sha256(f"query:{normalized}".encode('utf-8')).hexdigest()

    def _shard_for(self, key: str) -> int:
        return int(key[:8], 16) % len(self._shards) if key else 0

    def get(self, key: str) -> Tuple[Optional[str], bool]:
        """
        Look up a fingerprint.

        Returns:
            (answer, True) on a hit, (None, False) on a miss
        """
        index = self._shard_for(key)
        with self._locks[index]:
            found = key in self._shards[index]
            value = self._shards[index].get(key)

        with self._stats_lock:
            if found:
                self._hits += 1
            else:
                self._misses += 1
        return value, found

    def set(self, key: str, value: str) -> None:
        index = self._shard_for(key)
        with self._locks[index]:
            self._shards[index][key] = value

    def __len__(self) -> int:
        total = 0
        for index, shard in enumerate(self._shards):
            with self._locks[index]:
                total += len(shard)
        return total

    def clear(self) -> None:
        for index, shard in enumerate(self._shards):
            with self._locks[index]:
                shard.clear()
        with self._stats_lock:
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> CacheStats:
        with self._stats_lock:
            hits, misses = self._hits, self._misses
        return CacheStats(
            hits=hits,
            misses=misses,
            total_requests=hits + misses,
            cache_size=len(self),
        )
