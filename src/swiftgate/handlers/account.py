"""Account-level Swift request handlers for swiftgate.

Implements the account operations:
    - ListContainers (GET /v1/{account})
    - HeadAccount (HEAD /v1/{account})
    - BulkDelete (POST|DELETE /v1/{account}?bulk-delete)

The account in the path is informational only: the backend is always the
one bound to the caller's token.
"""

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from swiftgate import metrics
from swiftgate.blobstore import BlobStore
from swiftgate.bulk import bulk_delete, parse_targets
from swiftgate.errors import BadRequest, NotImplementedSwiftError, Unauthorized
from swiftgate.formats import listing_response, select_format
from swiftgate.listing import list_account

logger = logging.getLogger(__name__)


def _account_headers(container_count: int) -> dict[str, str]:
    """Build the Swift account headers. Unknown values are reported as -1."""
    return {
        "X-Account-Container-Count": str(container_count),
        "X-Account-Object-Count": "-1",
        "X-Account-Bytes-Used": "-1",
        "X-Timestamp": "-1",
        "X-Trans-Id": "-1",
        "Accept-Ranges": "bytes",
    }


def _parse_limit(raw: str | None) -> int | None:
    """Parse the ``limit`` query parameter.

    Raises:
        BadRequest: If the value is not a non-negative integer.
    """
    if raw is None:
        return None
    try:
        limit = int(raw)
    except ValueError:
        raise BadRequest(f"Invalid limit: {raw}") from None
    if limit < 0:
        raise BadRequest(f"Invalid limit: {raw}")
    return limit


class AccountHandler:
    """Handles Swift account operations.

    Handlers read the backend handle that the auth middleware stored on
    ``request.state``.

    Attributes:
        app: The parent FastAPI application.
    """

    def __init__(self, app: FastAPI) -> None:
        self.app = app

    async def _store(self, request: Request) -> BlobStore:
        """Resolve the caller's blob store.

        Raises:
            Unauthorized: If no handle is bound to the request or the handle
                no longer yields a store.
        """
        handle = getattr(request.state, "handle", None)
        if handle is None:
            raise Unauthorized()
        store = await handle.get()
        if store is None:
            raise Unauthorized()
        return store

    async def get_account(self, request: Request, account: str) -> Response:
        """List the containers visible to the authenticated identity.

        Implements: GET /v1/{account}

        Args:
            request: The incoming HTTP request.
            account: The account name from the URL path.

        Returns:
            The listing in the negotiated format, or 204 for an empty
            plain-text listing.
        """
        params = request.query_params
        limit = _parse_limit(params.get("limit"))
        fmt = select_format(params.get("format"), request.headers.get("accept"))
        if "delimiter" in params:
            logger.info("delimiter not supported yet")

        store = await self._store(request)
        result = await list_account(
            store,
            marker=params.get("marker"),
            end_marker=params.get("end_marker"),
            prefix=params.get("prefix"),
            limit=limit,
        )

        metrics.record_listing(fmt)
        return listing_response(
            account,
            result.entries,
            fmt,
            headers=_account_headers(result.total_count),
        )

    async def head_account(self, request: Request, account: str) -> Response:
        """Return account headers without touching the backend.

        Implements: HEAD /v1/{account}
        """
        return Response(status_code=204, headers=_account_headers(-1))

    async def bulk_delete(self, request: Request, account: str) -> Response:
        """Delete the containers and objects listed in the request body.

        Implements: POST /v1/{account}?bulk-delete and
        DELETE /v1/{account}?bulk-delete

        Returns:
            200 with the JSON result when every target was handled, 502 with
            the same JSON body when any target errored.

        Raises:
            NotImplementedSwiftError: Without ``bulk-delete``, which would be
                an account delete.
        """
        if "bulk-delete" not in request.query_params:
            raise NotImplementedSwiftError()

        store = await self._store(request)
        body = await request.body()
        # Undecodable bytes become U+FFFD and are classified per line
        targets = parse_targets(body.decode("utf-8", errors="replace"))

        result = await bulk_delete(store, targets)
        metrics.record_bulk_delete(
            result.number_deleted, result.number_not_found, len(result.errors)
        )
        logger.info(
            "Bulk delete for %s: deleted=%d not_found=%d errors=%d",
            account,
            result.number_deleted,
            result.number_not_found,
            len(result.errors),
        )
        return JSONResponse(content=result.to_dict(), status_code=200 if result.ok else 502)
