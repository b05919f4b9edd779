"""Swift bulk delete for swiftgate.

The request body lists one target per line, either ``container`` or
``container/object``, optionally with a leading slash. Each target is
deleted independently: one failing line never stops the batch. Every line
ends up counted as deleted, not found, or errored.
"""

import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import Any

from swiftgate.blobstore import BlobStore, ContainerNotFoundError

logger = logging.getLogger(__name__)

STATUS_OK = "OK"
STATUS_BAD_GATEWAY = "Bad Gateway"

# Characters left literal when escaping targets for stores keeping escaped names
_ESCAPE_SAFE = "/:;="


@dataclass
class BulkDeleteResult:
    """Aggregate outcome of one bulk delete request."""

    number_deleted: int = 0
    number_not_found: int = 0
    errors: list[str] = field(default_factory=list)
    response_status: str = ""

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Return the Swift JSON body for this result."""
        return {
            "Response Status": self.response_status,
            "Errors": list(self.errors),
            "Number Deleted": self.number_deleted,
            "Number Not Found": self.number_not_found,
        }


def parse_targets(body: str) -> list[str]:
    """Split a request body into target lines, dropping blank lines."""
    return [line for line in body.splitlines() if line.strip()]


async def _delete_target(store: BlobStore, target: str, result: BulkDeleteResult) -> None:
    separator = target.find("/")
    if separator < 0:
        await store.delete_container(target)
        result.number_deleted += 1
        return

    container = target[:separator]
    obj = target[separator + 1 :]
    if not await store.blob_exists(container, obj):
        result.number_not_found += 1
    else:
        await store.remove_blob(container, obj)
        result.number_deleted += 1


async def bulk_delete(store: BlobStore, targets: list[str]) -> BulkDeleteResult:
    """Delete every target from ``store``.

    Args:
        store: The blob store of the authenticated identity.
        targets: Target lines as sent by the client.

    Returns:
        The aggregate result. ``response_status`` is ``"OK"`` when no target
        errored and ``"Bad Gateway"`` otherwise.
    """
    result = BulkDeleteResult()
    for line in targets:
        if store.escape_names:
            line = urllib.parse.quote(line, safe=_ESCAPE_SAFE)
        if line.startswith("/"):
            line = line[1:]
        try:
            await _delete_target(store, line, result)
        except ContainerNotFoundError:
            result.number_not_found += 1
        except Exception:
            logger.exception("Bulk delete failed for %s", line)
            result.errors.append(line)

    result.response_status = STATUS_OK if result.ok else STATUS_BAD_GATEWAY
    return result
