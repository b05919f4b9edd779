"""Account listing for swiftgate.

Turns the Swift account-listing parameters into a deterministic enumeration
over whatever the backend returns. Filtering uses plain string comparison on
the raw names.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from swiftgate.blobstore import BlobStore


@dataclass(eq=False)
class ContainerEntry:
    """One container in an account listing.

    ``count`` and ``bytes`` are part of the Swift listing record but are not
    known to the gateway; they stay zero. Entries compare by name only.
    """

    name: str
    count: int = 0
    bytes: int = 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContainerEntry):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name


@dataclass
class ListingResult:
    """Entries to return plus the number that matched before truncation."""

    entries: list[ContainerEntry] = field(default_factory=list)
    total_count: int = 0


def select_entries(
    names: Iterable[str],
    marker: str | None = None,
    end_marker: str | None = None,
    prefix: str | None = None,
    limit: int | None = None,
    sort: bool = False,
) -> ListingResult:
    """Filter, optionally sort, and truncate a list of container names.

    Args:
        names: Container names in backend order.
        marker: Keep only names strictly greater than this.
        end_marker: Keep only names strictly less than this.
        prefix: Keep only names starting with this.
        limit: Keep at most this many entries after filtering.
        sort: Sort the filtered names; used when the backend is unordered.

    Returns:
        The selected entries and the filtered count before truncation.
    """
    entries = [
        ContainerEntry(name)
        for name in names
        if (marker is None or name > marker)
        and (end_marker is None or name < end_marker)
        and (prefix is None or name.startswith(prefix))
    ]
    if sort:
        entries.sort(key=lambda entry: entry.name)

    total_count = len(entries)
    if limit is not None and total_count > limit:
        del entries[limit:]
    return ListingResult(entries=entries, total_count=total_count)


async def list_account(
    store: BlobStore,
    marker: str | None = None,
    end_marker: str | None = None,
    prefix: str | None = None,
    limit: int | None = None,
) -> ListingResult:
    """List the containers of a store.

    Stores that do not report ``ordered_listing`` are sorted by name.
    """
    names = await store.list_containers()
    return select_entries(
        names,
        marker=marker,
        end_marker=end_marker,
        prefix=prefix,
        limit=limit,
        sort=not store.ordered_listing,
    )
