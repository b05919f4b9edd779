"""Tests for account listing selection."""

from swiftgate.blobstore.filesystem import FilesystemBlobStore
from swiftgate.blobstore.transient import TransientBlobStore
from swiftgate.listing import ContainerEntry, list_account, select_entries


def _names(result):
    return [entry.name for entry in result.entries]


class TestContainerEntry:
    def test_equality_by_name(self):
        assert ContainerEntry("a") == ContainerEntry("a", count=3, bytes=10)
        assert ContainerEntry("a") != ContainerEntry("b")

    def test_hash_by_name(self):
        assert len({ContainerEntry("a"), ContainerEntry("a", 1, 1)}) == 1

    def test_str_is_name(self):
        assert str(ContainerEntry("photos")) == "photos"


class TestSelectEntries:
    """Tests for select_entries()."""

    def test_no_filters(self):
        result = select_entries(["b", "a", "c"])
        assert _names(result) == ["b", "a", "c"]
        assert result.total_count == 3

    def test_sort(self):
        result = select_entries(["b", "a", "c"], sort=True)
        assert _names(result) == ["a", "b", "c"]

    def test_prefix(self):
        result = select_entries(["apple", "banana", "apricot"], prefix="ap", sort=True)
        assert _names(result) == ["apple", "apricot"]

    def test_marker_is_exclusive(self):
        result = select_entries(["a", "b", "c"], marker="a")
        assert _names(result) == ["b", "c"]

    def test_end_marker_is_exclusive(self):
        result = select_entries(["a", "b", "c"], end_marker="c")
        assert _names(result) == ["a", "b"]

    def test_marker_and_end_marker(self):
        result = select_entries(["a", "b", "c", "d"], marker="a", end_marker="d")
        assert _names(result) == ["b", "c"]

    def test_limit_keeps_total_count(self):
        """The total reflects every match, not just the returned page."""
        result = select_entries(["c", "a", "b", "d"], limit=2, sort=True)
        assert _names(result) == ["a", "b"]
        assert result.total_count == 4

    def test_limit_zero(self):
        result = select_entries(["a", "b"], limit=0)
        assert result.entries == []
        assert result.total_count == 2

    def test_limit_larger_than_matches(self):
        result = select_entries(["a"], limit=10)
        assert _names(result) == ["a"]

    def test_sort_applies_before_limit(self):
        result = select_entries(["z", "y", "a"], limit=1, sort=True)
        assert _names(result) == ["a"]

    def test_comparisons_are_plain_string(self):
        result = select_entries(["B", "a", "C"], marker="B", sort=True)
        assert _names(result) == ["C", "a"]

    def test_empty(self):
        result = select_entries([])
        assert result.entries == []
        assert result.total_count == 0


class TestListAccount:
    async def test_unordered_store_is_sorted(self):
        store = TransientBlobStore()
        for name in ("pears", "apples", "figs"):
            await store.create_container(name)
        result = await list_account(store)
        assert _names(result) == ["apples", "figs", "pears"]

    async def test_ordered_store_with_filters(self, tmp_path):
        store = FilesystemBlobStore(tmp_path)
        await store.init()
        for name in ("a1", "a2", "a3", "b1"):
            await store.create_container(name)
        result = await list_account(store, prefix="a", marker="a1", limit=1)
        assert _names(result) == ["a2"]
        assert result.total_count == 2
