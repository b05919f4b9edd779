"""Session tokens and the authenticated backend cache for swiftgate.

A successful login mints an opaque token. The session cache maps that token
to the identity that logged in and the identity to its backend handle. Both
maps share one time-to-live measured from the last write; reads never extend
an entry's life.
"""

import logging
import secrets
import string
import threading
import time
from collections.abc import Callable
from typing import Generic, TypeVar

from swiftgate.resolver import BackendHandle, HandleResolver, StoreHandle

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "AUTH_tk"
TOKEN_LENGTH = 32
_TOKEN_ALPHABET = string.ascii_letters + string.digits

# Sweep expired entries on write once a map holds this many
_SWEEP_THRESHOLD = 1024

K = TypeVar("K")
V = TypeVar("V")


def generate_token() -> str:
    """Return a fresh token: the prefix plus 32 random alphanumerics."""
    return TOKEN_PREFIX + "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


class ExpiringMap(Generic[K, V]):
    """Thread-safe mapping whose entries expire ``ttl`` seconds after write.

    With ``track_dropped``, values that leave the map (overwritten with a
    different value, expired on read, or swept) are kept until
    ``pop_dropped`` so the owner can release them.
    """

    def __init__(
        self,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
        track_dropped: bool = False,
    ) -> None:
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (value, written_at)
        self._entries: dict[K, tuple[V, float]] = {}
        self._track_dropped = track_dropped
        self._dropped: list[V] = []

    def put(self, key: K, value: V) -> None:
        now = self._clock()
        with self._lock:
            if len(self._entries) >= _SWEEP_THRESHOLD:
                self._sweep(now)
            old = self._entries.get(key)
            if old is not None and old[0] is not value:
                self._drop(old[0])
            self._entries[key] = (value, now)

    def get(self, key: K) -> V | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, written_at = entry
            if now - written_at >= self.ttl:
                del self._entries[key]
                self._drop(value)
                return None
            return value

    def values(self) -> list[V]:
        """Return all live values."""
        now = self._clock()
        with self._lock:
            return [v for v, written_at in self._entries.values() if now - written_at < self.ttl]

    def pop_dropped(self) -> list[V]:
        """Return and forget the values that have left the map."""
        with self._lock:
            dropped, self._dropped = self._dropped, []
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _drop(self, value: V) -> None:
        if self._track_dropped:
            self._dropped.append(value)

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, written_at) in self._entries.items() if now - written_at >= self.ttl]
        for k in expired:
            self._drop(self._entries.pop(k)[0])


class SessionCache:
    """Token -> identity and identity -> handle maps with a shared TTL.

    Attributes:
        ttl: Seconds an entry stays valid after it was last written.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._identities: ExpiringMap[str, str] = ExpiringMap(ttl, clock)
        self._handles: ExpiringMap[str, BackendHandle] = ExpiringMap(
            ttl, clock, track_dropped=True
        )

    def put_token(self, token: str, identity: str) -> None:
        self._identities.put(token, identity)

    def put_handle(self, identity: str, handle: BackendHandle) -> None:
        self._handles.put(identity, handle)

    def get_identity(self, token: str) -> str | None:
        return self._identities.get(token)

    def get_handle(self, identity: str) -> BackendHandle | None:
        return self._handles.get(identity)

    def resolve(self, token: str) -> BackendHandle | None:
        """Return the handle behind ``token``, checking both entries."""
        identity = self.get_identity(token)
        if identity is None:
            return None
        return self.get_handle(identity)

    def handles(self) -> list[BackendHandle]:
        return self._handles.values()

    def pop_dropped_handles(self) -> list[BackendHandle]:
        """Return handles replaced or expired since the last call."""
        return self._handles.pop_dropped()


async def _close_handles(handles: list[BackendHandle]) -> None:
    """Close the stores behind handles the gateway opened itself.

    Stores reached through a locator belong to the embedding application and
    are left alone.
    """
    for handle in handles:
        if not isinstance(handle, StoreHandle):
            continue
        try:
            await handle.store.close()
        except Exception:
            logger.warning("Failed to close %s blob store", handle.store.provider, exc_info=True)


class Authenticator:
    """Verifies logins through a resolver and issues session tokens.

    Attributes:
        resolver: The handle resolver chosen at application construction.
        cache: The process-wide session cache.
    """

    def __init__(self, resolver: HandleResolver, cache: SessionCache) -> None:
        self.resolver = resolver
        self.cache = cache

    async def authenticate(self, identity: str, credential: str) -> str | None:
        """Verify ``credential`` for ``identity`` and start a session.

        Handles the cache replaced or expired along the way are closed
        before returning.

        Returns:
            A new token, or None if verification failed. The cache is only
            written on success.

        Raises:
            BlobStoreError: If the backend could not be reached.
        """
        try:
            previous = self.cache.get_handle(identity)
            handle = await self.resolver.verify(identity, credential, previous)
            if handle is None:
                logger.debug("authentication failed for %s", identity)
                return None

            token = generate_token()
            self.cache.put_token(token, identity)
            self.cache.put_handle(identity, handle)
            logger.debug("issued token for %s", identity)
            return token
        finally:
            await self.release_dropped()

    def resolve(self, token: str | None) -> BackendHandle | None:
        """Return the backend handle for ``token``, or None."""
        if not token:
            return None
        return self.cache.resolve(token)

    async def release_dropped(self) -> None:
        """Close stores whose handles have left the session cache."""
        await _close_handles(self.cache.pop_dropped_handles())

    async def close(self) -> None:
        """Close every store the session cache still holds or has dropped."""
        await _close_handles(self.cache.pop_dropped_handles() + self.cache.handles())
