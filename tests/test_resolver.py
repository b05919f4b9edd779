"""Tests for backend handles and the two handle resolvers."""

import pytest

from swiftgate.blobstore import BlobStoreAuthError, get_provider
from swiftgate.blobstore.filesystem import FilesystemBlobStore
from swiftgate.blobstore.transient import TransientBlobStore
from swiftgate.config import ProviderConfig
from swiftgate.resolver import LocatorHandle, LocatorResolver, ProviderResolver, StoreHandle


class DictLocator:
    """Locator backed by a mutable dict of identity -> (secret, store)."""

    def __init__(self) -> None:
        self.entries: dict[str, tuple[str, TransientBlobStore]] = {}
        self.calls: list[tuple[str, str | None, str | None]] = []

    async def locate(self, identity, container, key):
        self.calls.append((identity, container, key))
        return self.entries.get(identity)


class TestStoreHandle:
    async def test_ignores_scope(self):
        store = TransientBlobStore()
        handle = StoreHandle(store)
        assert await handle.get() is store
        assert await handle.get("c", "k") is store


class TestLocatorResolver:
    """Tests for LocatorResolver and LocatorHandle."""

    async def test_matching_secret(self):
        locator = DictLocator()
        store = TransientBlobStore("alice")
        locator.entries["alice"] = ("s3cret", store)
        resolver = LocatorResolver(locator)

        handle = await resolver.verify("alice", "s3cret", None)
        assert isinstance(handle, LocatorHandle)
        assert await handle.get() is store

    async def test_wrong_secret(self):
        locator = DictLocator()
        locator.entries["alice"] = ("s3cret", TransientBlobStore())
        assert await LocatorResolver(locator).verify("alice", "nope", None) is None

    async def test_unknown_identity(self):
        assert await LocatorResolver(DictLocator()).verify("ghost", "x", None) is None

    async def test_handle_passes_scope_to_locator(self):
        locator = DictLocator()
        locator.entries["alice"] = ("s", TransientBlobStore())
        handle = await LocatorResolver(locator).verify("alice", "s", None)
        await handle.get("photos", "cat.jpg")
        assert locator.calls[-1] == ("alice", "photos", "cat.jpg")

    async def test_handle_returns_none_when_locator_forgets(self):
        """A handle re-consults the locator and yields None once it is gone."""
        locator = DictLocator()
        locator.entries["alice"] = ("s", TransientBlobStore())
        handle = await LocatorResolver(locator).verify("alice", "s", None)
        del locator.entries["alice"]
        assert await handle.get() is None

    async def test_handle_follows_replaced_store(self):
        locator = DictLocator()
        locator.entries["alice"] = ("s", TransientBlobStore())
        handle = await LocatorResolver(locator).verify("alice", "s", None)
        replacement = TransientBlobStore()
        locator.entries["alice"] = ("s", replacement)
        assert await handle.get() is replacement


class TestProviderResolver:
    """Tests for ProviderResolver."""

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown blob store provider"):
            ProviderResolver(ProviderConfig(kind="carrier-pigeon"))

    async def test_transient_opens_store(self):
        resolver = ProviderResolver(ProviderConfig(kind="transient"))
        handle = await resolver.verify("alice", "anything", None)
        assert isinstance(handle, StoreHandle)
        assert isinstance(handle.store, TransientBlobStore)
        assert handle.store.identity == "alice"

    async def test_transient_reuses_previous_handle(self):
        resolver = ProviderResolver(ProviderConfig(kind="transient"))
        first = await resolver.verify("alice", "a", None)
        second = await resolver.verify("alice", "b", first)
        assert second is first

    async def test_filesystem_opens_fresh_store(self, tmp_path):
        resolver = ProviderResolver(
            ProviderConfig(kind="filesystem", filesystem_root=str(tmp_path / "root"))
        )
        first = await resolver.verify("alice", "x", None)
        second = await resolver.verify("alice", "x", first)
        assert second is not first
        assert isinstance(second.store, FilesystemBlobStore)
        assert (tmp_path / "root").is_dir()

    async def test_filesystem_login_keeps_existing_files(self, tmp_path):
        """Logins open the store without sweeping anything under the root."""
        root = tmp_path / "root"
        (root / "c1").mkdir(parents=True)
        blob = root / "c1" / "report.tmp.csv"
        in_flight = root / "c1" / "upload.bin.tmp.deadbeef"
        blob.write_bytes(b"quarterly numbers")
        in_flight.write_bytes(b"half written")

        resolver = ProviderResolver(ProviderConfig(kind="filesystem", filesystem_root=str(root)))
        await resolver.verify("alice", "x", None)
        await resolver.verify("bob", "y", None)

        assert blob.exists()
        assert in_flight.exists()

    async def test_filesystem_recover_removes_only_orphans(self, tmp_path):
        root = tmp_path / "root"
        (root / "c1").mkdir(parents=True)
        blob = root / "c1" / "report.tmp.csv"
        orphan = root / "c1" / "upload.bin.tmp.deadbeef"
        blob.write_bytes(b"quarterly numbers")
        orphan.write_bytes(b"half written")

        resolver = ProviderResolver(ProviderConfig(kind="filesystem", filesystem_root=str(root)))
        await resolver.recover()

        assert blob.exists()
        assert not orphan.exists()

    async def test_recover_without_hook_is_noop(self):
        await ProviderResolver(ProviderConfig(kind="transient")).recover()

    async def test_rejected_credentials_return_none(self, monkeypatch):
        async def _reject(config, identity, credential):
            raise BlobStoreAuthError("denied")

        resolver = ProviderResolver(ProviderConfig(kind="filesystem"))
        provider = get_provider("filesystem")
        monkeypatch.setattr(resolver, "provider", type(provider)(provider.kind, False, _reject))
        assert await resolver.verify("alice", "bad", None) is None
