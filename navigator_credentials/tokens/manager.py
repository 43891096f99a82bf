"""
TokenLifecycleManager — Issues, validates and revokes short-lived user tokens.

State per principal:
    no token -> active(token, expires_at) -> expired | revoked -> no token

Tokens are 32 random bytes (URL-safe text) and carry no information about
the principal. Records live only in the injected in-memory ``TokenStore``;
a caller needing durability must persist them elsewhere.

Security Note:
    Never log token values. Only log principal ids, operations and counts.
"""
import logging
import secrets
import threading
import time
from typing import Callable, Optional, Union
from datetime import datetime, timedelta, timezone

import orjson

from ..compare import constant_time_equals_str
from ..config import DEFAULT_CLEANUP_INTERVAL, DEFAULT_TOKEN_TTL, SecurityConfig
from ..exceptions import InvalidArgument
from .janitor import TokenJanitor
from .store import TokenRecord, TokenStore

logger = logging.getLogger("navigator.credentials")

TOKEN_BYTES = 32
DEFAULT_CLEANUP_EVERY = 128

TTL = Union[timedelta, int, float]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_timedelta(ttl: TTL) -> timedelta:
    if isinstance(ttl, bool) or not isinstance(ttl, (timedelta, int, float)):
        raise InvalidArgument("ttl must be a timedelta or a number of seconds")
    delta = ttl if isinstance(ttl, timedelta) else timedelta(seconds=ttl)
    if delta <= timedelta(0):
        raise InvalidArgument("ttl must be positive")
    return delta


class TokenLifecycleManager:
    """Mints and checks opaque session tokens, one live token per principal.

    Args:
        store: Token store to use; a private one is created when omitted.
        ttl: Default time-to-live for issued tokens.
        clock: Callable returning the current aware UTC datetime.
        cleanup_every: Sweep expired tokens every N issues.
        cleanup_interval: Also sweep when the last sweep is older than
            this many seconds; used as the janitor interval too.
    """

    def __init__(
        self,
        store: Optional[TokenStore] = None,
        ttl: TTL = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = _utcnow,
        cleanup_every: int = DEFAULT_CLEANUP_EVERY,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
    ):
        if cleanup_every < 1:
            raise InvalidArgument("cleanup_every must be at least 1")
        if isinstance(cleanup_interval, bool) or not cleanup_interval > 0:
            raise InvalidArgument("cleanup_interval must be positive")
        self._store = store if store is not None else TokenStore()
        self.ttl = _as_timedelta(ttl)
        self._clock = clock
        self._cleanup_every = cleanup_every
        self._cleanup_interval = cleanup_interval
        self._sweep_lock = threading.Lock()
        self._issued_since_sweep = 0
        self._last_sweep = time.monotonic()
        self._janitor: Optional[TokenJanitor] = None

    @classmethod
    def from_config(
        cls,
        config: SecurityConfig,
        store: Optional[TokenStore] = None,
    ) -> "TokenLifecycleManager":
        return cls(
            store=store,
            ttl=config.token_ttl,
            cleanup_interval=config.cleanup_interval,
        )

    def __repr__(self) -> str:
        return (
            f"<TokenLifecycleManager [ttl={self.ttl}, "
            f"active={len(self._store)}]>"
        )

    def __enter__(self) -> "TokenLifecycleManager":
        self.start_cleanup()
        return self

    def __exit__(self, *exc) -> None:
        self.stop_cleanup()

    @property
    def store(self) -> TokenStore:
        return self._store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def issue_token(self, principal_id: str, ttl: Optional[TTL] = None) -> str:
        """Issue a new token for principal_id, replacing any previous one.

        Args:
            principal_id: Opaque principal identifier (non-empty).
            ttl: Token lifetime; the manager default when None.

        Returns:
            The token string.

        Raises:
            InvalidArgument: If principal_id is empty or ttl is not positive.
        """
        if not principal_id or not isinstance(principal_id, str):
            raise InvalidArgument("Principal id cannot be null or empty")
        lifetime = self.ttl if ttl is None else _as_timedelta(ttl)
        now = self._clock()
        record = TokenRecord(
            principal_id=principal_id,
            token=secrets.token_urlsafe(TOKEN_BYTES),
            issued_at=now,
            expires_at=now + lifetime,
        )
        previous = self._store.put(record)
        logger.debug(
            "Token issued: principal=%s replaced=%s",
            principal_id, previous is not None,
        )
        self._maybe_sweep()
        return record.token

    def validate_token(self, principal_id: str, candidate: str) -> bool:
        """Check candidate against the principal's active token.

        Never raises. An expired record is evicted as a side effect.
        """
        if not principal_id or not candidate:
            return False
        if not isinstance(principal_id, str) or not isinstance(candidate, str):
            return False
        record = self._store.get(principal_id)
        if record is None:
            logger.debug("Token validation failed: principal=%s", principal_id)
            return False
        if record.is_expired(self._clock()):
            # identity check: a token reissued meanwhile must survive
            self._store.pop_if(principal_id, lambda r: r is record)
            logger.debug("Token expired: principal=%s", principal_id)
            return False
        valid = constant_time_equals_str(candidate, record.token)
        if not valid:
            logger.debug("Token validation failed: principal=%s", principal_id)
        return valid

    def revoke_token(self, principal_id: str) -> None:
        """Remove any token for principal_id. Idempotent."""
        if not principal_id:
            return
        if self._store.pop(principal_id) is not None:
            logger.debug("Token revoked: principal=%s", principal_id)

    def cleanup_expired(self) -> int:
        """Evict every expired record.

        Returns:
            Number of records evicted.
        """
        now = self._clock()
        evicted = self._store.evict(lambda r: r.is_expired(now))
        with self._sweep_lock:
            self._issued_since_sweep = 0
            self._last_sweep = time.monotonic()
        if evicted:
            logger.info("Cleaned %d expired token(s)", evicted)
        return evicted

    def get_record(self, principal_id: str) -> Optional[TokenRecord]:
        """Return the active, unexpired record for principal_id, if any."""
        if not principal_id:
            return None
        record = self._store.get(principal_id)
        if record is None or record.is_expired(self._clock()):
            return None
        return record

    def active_count(self) -> int:
        now = self._clock()
        return self._store.count(lambda r: not r.is_expired(now))

    def status(self) -> dict:
        """Non-sensitive snapshot: counts and server time only."""
        return {
            "active_tokens": self.active_count(),
            "stored_tokens": len(self._store),
            "server_time": self._clock().isoformat(),
            "cleanup_running": self._janitor is not None and self._janitor.running,
        }

    def status_json(self) -> bytes:
        return orjson.dumps(self.status())

    # ------------------------------------------------------------------
    # Cleanup scheduling
    # ------------------------------------------------------------------

    def _maybe_sweep(self) -> None:
        with self._sweep_lock:
            self._issued_since_sweep += 1
            due = (
                self._issued_since_sweep >= self._cleanup_every
                or time.monotonic() - self._last_sweep >= self._cleanup_interval
            )
        if due:
            self.cleanup_expired()

    def start_cleanup(self, interval: Optional[float] = None) -> TokenJanitor:
        """Start the periodic background sweep, returning its janitor."""
        if self._janitor is None:
            self._janitor = TokenJanitor(
                self.cleanup_expired,
                interval=self._cleanup_interval if interval is None else interval,
            )
        self._janitor.start()
        return self._janitor

    def stop_cleanup(self) -> None:
        if self._janitor is not None:
            self._janitor.stop()
            self._janitor = None
