"""
Token Store — In-memory mapping of principal id to its active token record.

The mapping is split into lock-striped shards so operations on different
principals rarely contend. At most one record exists per principal; storing a
new record replaces the previous one.
"""
import hashlib
import threading
from datetime import datetime
from typing import Callable, Optional
from dataclasses import dataclass, field


@dataclass(frozen=True)
class TokenRecord:
    """Active token for a principal. ``repr()`` never shows the token."""

    principal_id: str
    token: str = field(repr=False)
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class _Shard:
    __slots__ = ("lock", "records")

    def __init__(self):
        self.lock = threading.Lock()
        self.records: dict[str, TokenRecord] = {}


class TokenStore:
    """Lock-striped ``principal_id -> TokenRecord`` mapping.

    Every single-principal operation takes exactly one shard lock, so it is
    atomic with respect to other operations on the same principal.
    """

    def __init__(self, stripes: int = 64):
        if stripes < 1:
            raise ValueError("stripes must be at least 1")
        self._shards = [_Shard() for _ in range(stripes)]

    def _shard(self, principal_id: str) -> _Shard:
        # stable across processes, unlike hash(); ids may hold lone surrogates
        raw = principal_id.encode("utf-8", "surrogatepass")
        digest = hashlib.blake2b(raw, digest_size=8).digest()
        return self._shards[int.from_bytes(digest, "big") % len(self._shards)]

    def get(self, principal_id: str) -> Optional[TokenRecord]:
        shard = self._shard(principal_id)
        with shard.lock:
            return shard.records.get(principal_id)

    def put(self, record: TokenRecord) -> Optional[TokenRecord]:
        """Store record, returning the record it replaced, if any."""
        shard = self._shard(record.principal_id)
        with shard.lock:
            previous = shard.records.get(record.principal_id)
            shard.records[record.principal_id] = record
            return previous

    def pop(self, principal_id: str) -> Optional[TokenRecord]:
        shard = self._shard(principal_id)
        with shard.lock:
            return shard.records.pop(principal_id, None)

    def pop_if(
        self,
        principal_id: str,
        predicate: Callable[[TokenRecord], bool],
    ) -> Optional[TokenRecord]:
        """Remove the principal's record only if predicate holds for it."""
        shard = self._shard(principal_id)
        with shard.lock:
            record = shard.records.get(principal_id)
            if record is not None and predicate(record):
                del shard.records[principal_id]
                return record
            return None

    def evict(self, predicate: Callable[[TokenRecord], bool]) -> int:
        """Remove every record matching predicate, one shard at a time.

        Returns:
            Number of records removed.
        """
        removed = 0
        for shard in self._shards:
            with shard.lock:
                stale = [pid for pid, rec in shard.records.items() if predicate(rec)]
                for pid in stale:
                    del shard.records[pid]
                removed += len(stale)
        return removed

    def count(self, predicate: Callable[[TokenRecord], bool]) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += sum(1 for rec in shard.records.values() if predicate(rec))
        return total

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.records.clear()

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.records)
        return total

    def __contains__(self, principal_id: object) -> bool:
        if not isinstance(principal_id, str):
            return False
        return self.get(principal_id) is not None
