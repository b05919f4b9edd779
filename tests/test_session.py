"""Tests for session tokens, the session cache, and the Authenticator."""

import re

import pytest

from swiftgate.blobstore import BlobStoreError
from swiftgate.blobstore.transient import TransientBlobStore
from swiftgate.config import ProviderConfig
from swiftgate.resolver import LocatorResolver, ProviderResolver, StoreHandle
from swiftgate.session import (
    TOKEN_PREFIX,
    Authenticator,
    ExpiringMap,
    SessionCache,
    generate_token,
)


class FakeClock:
    """Manually advanced clock for deterministic expiry."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingResolver:
    """Resolver accepting one fixed credential and recording calls."""

    def __init__(self, secret: str = "secret") -> None:
        self.secret = secret
        self.calls: list[tuple[str, str, object]] = []

    async def verify(self, identity, credential, previous):
        self.calls.append((identity, credential, previous))
        if credential != self.secret:
            return None
        return StoreHandle(TransientBlobStore(identity))


class FailingResolver:
    async def verify(self, identity, credential, previous):
        raise BlobStoreError("connection refused")


class TestGenerateToken:
    """Tests for generate_token()."""

    def test_token_format(self):
        """Tokens carry the prefix followed by 32 alphanumerics."""
        token = generate_token()
        assert token.startswith(TOKEN_PREFIX)
        assert re.fullmatch(r"AUTH_tk[A-Za-z0-9]{32}", token)

    def test_tokens_are_unique(self):
        tokens = {generate_token() for _ in range(200)}
        assert len(tokens) == 200


class TestExpiringMap:
    """Tests for ExpiringMap lazy expiry."""

    def test_get_before_ttl(self):
        clock = FakeClock()
        m = ExpiringMap(ttl=10, clock=clock)
        m.put("k", "v")
        clock.advance(9.9)
        assert m.get("k") == "v"

    def test_get_after_ttl_returns_none(self):
        clock = FakeClock()
        m = ExpiringMap(ttl=10, clock=clock)
        m.put("k", "v")
        clock.advance(10)
        assert m.get("k") is None

    def test_read_does_not_extend_life(self):
        """Reads never refresh the expiry clock."""
        clock = FakeClock()
        m = ExpiringMap(ttl=10, clock=clock)
        m.put("k", "v")
        for _ in range(9):
            clock.advance(1)
            assert m.get("k") == "v"
        clock.advance(1)
        assert m.get("k") is None

    def test_write_resets_life(self):
        clock = FakeClock()
        m = ExpiringMap(ttl=10, clock=clock)
        m.put("k", "v1")
        clock.advance(8)
        m.put("k", "v2")
        clock.advance(8)
        assert m.get("k") == "v2"

    def test_missing_key(self):
        m = ExpiringMap(ttl=10)
        assert m.get("nope") is None

    def test_rejects_non_positive_ttl(self):
        with pytest.raises(ValueError):
            ExpiringMap(ttl=0)

    def test_values_skips_expired(self):
        clock = FakeClock()
        m = ExpiringMap(ttl=10, clock=clock)
        m.put("old", 1)
        clock.advance(6)
        m.put("new", 2)
        clock.advance(5)
        assert m.values() == [2]

    def test_sweep_on_large_map(self):
        """Writes past the sweep threshold drop expired entries."""
        clock = FakeClock()
        m = ExpiringMap(ttl=10, clock=clock)
        for i in range(1024):
            m.put(i, i)
        clock.advance(11)
        m.put("fresh", 1)
        assert len(m) == 1


class TestSessionCache:
    """Tests for SessionCache."""

    def test_resolve_token(self):
        cache = SessionCache(ttl=60)
        handle = StoreHandle(TransientBlobStore())
        cache.put_token("tok", "alice")
        cache.put_handle("alice", handle)
        assert cache.get_identity("tok") == "alice"
        assert cache.resolve("tok") is handle

    def test_unknown_token(self):
        cache = SessionCache(ttl=60)
        assert cache.resolve("AUTH_tkunknown") is None

    def test_identity_without_handle(self):
        cache = SessionCache(ttl=60)
        cache.put_token("tok", "alice")
        assert cache.resolve("tok") is None

    def test_expired_handle_with_live_token(self):
        """Token and handle expire independently; both are checked."""
        clock = FakeClock()
        cache = SessionCache(ttl=10, clock=clock)
        cache.put_handle("alice", StoreHandle(TransientBlobStore()))
        clock.advance(5)
        cache.put_token("tok", "alice")
        clock.advance(6)
        assert cache.get_identity("tok") == "alice"
        assert cache.resolve("tok") is None

    def test_expired_token_with_live_handle(self):
        clock = FakeClock()
        cache = SessionCache(ttl=10, clock=clock)
        cache.put_token("tok", "alice")
        clock.advance(5)
        cache.put_handle("alice", StoreHandle(TransientBlobStore()))
        clock.advance(6)
        assert cache.get_handle("alice") is not None
        assert cache.resolve("tok") is None


class TestAuthenticator:
    """Tests for Authenticator.authenticate() and resolve()."""

    async def test_valid_credentials_issue_token(self):
        resolver = RecordingResolver()
        auth = Authenticator(resolver, SessionCache(ttl=60))
        token = await auth.authenticate("alice", "secret")
        assert token
        handle = auth.resolve(token)
        assert isinstance(handle, StoreHandle)
        assert await handle.get() is handle.store

    async def test_invalid_credentials_leave_cache_untouched(self):
        cache = SessionCache(ttl=60)
        auth = Authenticator(RecordingResolver(), cache)
        assert await auth.authenticate("alice", "wrong") is None
        assert cache.get_handle("alice") is None

    async def test_token_expires_after_ttl(self):
        clock = FakeClock()
        auth = Authenticator(RecordingResolver(), SessionCache(ttl=30, clock=clock))
        token = await auth.authenticate("alice", "secret")
        clock.advance(29)
        assert auth.resolve(token) is not None
        clock.advance(1)
        assert auth.resolve(token) is None

    async def test_previous_handle_passed_to_resolver(self):
        resolver = RecordingResolver()
        auth = Authenticator(resolver, SessionCache(ttl=60))
        await auth.authenticate("alice", "secret")
        first_handle = auth.cache.get_handle("alice")
        await auth.authenticate("alice", "secret")
        assert resolver.calls[0][2] is None
        assert resolver.calls[1][2] is first_handle

    async def test_reauth_overwrites_handle_keeps_other_tokens(self):
        """Re-authenticating one identity leaves other identities' tokens valid."""
        auth = Authenticator(RecordingResolver(), SessionCache(ttl=60))
        bob_token = await auth.authenticate("bob", "secret")
        bob_handle = auth.resolve(bob_token)
        await auth.authenticate("alice", "secret")
        first_alice = auth.cache.get_handle("alice")
        alice_token = await auth.authenticate("alice", "secret")
        assert auth.resolve(alice_token) is not first_alice
        assert auth.resolve(bob_token) is bob_handle

    async def test_resolve_empty_token(self):
        auth = Authenticator(RecordingResolver(), SessionCache(ttl=60))
        assert auth.resolve(None) is None
        assert auth.resolve("") is None

    async def test_backend_failure_propagates(self):
        auth = Authenticator(FailingResolver(), SessionCache(ttl=60))
        with pytest.raises(BlobStoreError):
            await auth.authenticate("alice", "secret")
        assert auth.cache.get_handle("alice") is None

    async def test_transient_reauth_shares_namespace(self):
        """Two logins for one identity route to the same transient store."""
        auth = Authenticator(
            ProviderResolver(ProviderConfig(kind="transient")), SessionCache(ttl=60)
        )
        t1 = await auth.authenticate("alice", "a")
        t2 = await auth.authenticate("alice", "b")
        store1 = await auth.resolve(t1).get()
        store2 = await auth.resolve(t2).get()
        assert store1 is store2

    async def test_transient_distinct_identities(self):
        auth = Authenticator(
            ProviderResolver(ProviderConfig(kind="transient")), SessionCache(ttl=60)
        )
        alice = await auth.authenticate("alice", "x")
        bob = await auth.authenticate("bob", "x")
        assert auth.resolve(alice) is not auth.resolve(bob)
        assert await auth.resolve(alice).get() is not await auth.resolve(bob).get()


class ClosingStore(TransientBlobStore):
    """Transient store that counts close() calls."""

    def __init__(self, identity: str = "") -> None:
        super().__init__(identity)
        self.closed = 0

    async def close(self) -> None:
        self.closed += 1
        await super().close()


class FreshStoreResolver:
    """Resolver that opens a new store on every login, like non-transient providers."""

    def __init__(self) -> None:
        self.stores: list[ClosingStore] = []

    async def verify(self, identity, credential, previous):
        store = ClosingStore(identity)
        self.stores.append(store)
        return StoreHandle(store)


class TestDroppedValues:
    """ExpiringMap keeps values that leave it only when asked to."""

    def test_overwrite_records_old_value(self):
        m = ExpiringMap(ttl=10, track_dropped=True)
        m.put("k", "v1")
        m.put("k", "v2")
        assert m.pop_dropped() == ["v1"]
        assert m.pop_dropped() == []

    def test_same_value_not_dropped(self):
        value = object()
        m = ExpiringMap(ttl=10, track_dropped=True)
        m.put("k", value)
        m.put("k", value)
        assert m.pop_dropped() == []

    def test_expired_read_records_value(self):
        clock = FakeClock()
        m = ExpiringMap(ttl=10, clock=clock, track_dropped=True)
        m.put("k", "v")
        clock.advance(10)
        assert m.get("k") is None
        assert m.pop_dropped() == ["v"]

    def test_sweep_records_values(self):
        clock = FakeClock()
        m = ExpiringMap(ttl=10, clock=clock, track_dropped=True)
        for i in range(1024):
            m.put(i, i)
        clock.advance(11)
        m.put("fresh", 1)
        assert len(m.pop_dropped()) == 1024

    def test_untracked_map_keeps_nothing(self):
        m = ExpiringMap(ttl=10)
        m.put("k", "v1")
        m.put("k", "v2")
        assert m.pop_dropped() == []


class TestStoreRelease:
    """Stores behind replaced or expired handles are closed."""

    async def test_relogin_closes_replaced_store(self):
        resolver = FreshStoreResolver()
        auth = Authenticator(resolver, SessionCache(ttl=60))
        await auth.authenticate("alice", "k")
        await auth.authenticate("alice", "k")
        first, second = resolver.stores
        assert first.closed == 1
        assert second.closed == 0

    async def test_expired_store_closed_on_next_login(self):
        clock = FakeClock()
        resolver = FreshStoreResolver()
        auth = Authenticator(resolver, SessionCache(ttl=30, clock=clock))
        await auth.authenticate("alice", "k")
        clock.advance(31)
        await auth.authenticate("alice", "k")
        assert resolver.stores[0].closed == 1
        assert resolver.stores[1].closed == 0

    async def test_failed_login_still_releases_expired_store(self):
        clock = FakeClock()
        resolver = FreshStoreResolver()
        auth = Authenticator(resolver, SessionCache(ttl=30, clock=clock))
        await auth.authenticate("alice", "k")
        clock.advance(31)

        async def _reject(identity, credential, previous):
            return None

        resolver.verify = _reject
        assert await auth.authenticate("alice", "wrong") is None
        assert resolver.stores[0].closed == 1

    async def test_transient_reuse_keeps_store_open(self):
        auth = Authenticator(
            ProviderResolver(ProviderConfig(kind="transient")), SessionCache(ttl=60)
        )
        token = await auth.authenticate("alice", "a")
        store = await auth.resolve(token).get()
        await store.create_container("kept")
        await auth.authenticate("alice", "b")
        assert await store.list_containers() == ["kept"]

    async def test_close_releases_live_and_dropped(self):
        resolver = FreshStoreResolver()
        auth = Authenticator(resolver, SessionCache(ttl=60))
        await auth.authenticate("alice", "k")
        await auth.authenticate("bob", "k")
        await auth.close()
        assert [s.closed for s in resolver.stores] == [1, 1]

    async def test_locator_stores_left_open(self):
        store = ClosingStore()

        class Locator:
            async def locate(self, identity, container, key):
                return ("s", store)

        auth = Authenticator(LocatorResolver(Locator()), SessionCache(ttl=60))
        await auth.authenticate("alice", "s")
        await auth.authenticate("alice", "s")
        await auth.close()
        assert store.closed == 0
