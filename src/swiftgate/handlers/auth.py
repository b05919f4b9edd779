"""TempAuth-style login handler for swiftgate.

Implements: GET /auth/v1.0

The client sends its identity in ``X-Auth-User`` (or ``X-Storage-User``)
and its secret in ``X-Auth-Key`` (or ``X-Storage-Pass``). A successful
login returns the session token and the storage URL to use with it.
"""

import logging
import urllib.parse

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from swiftgate import metrics
from swiftgate.blobstore import BlobStoreError
from swiftgate.errors import BadGateway, Unauthorized
from swiftgate.session import Authenticator

logger = logging.getLogger(__name__)


class AuthHandler:
    """Handles login requests.

    Attributes:
        app: The parent FastAPI application.
    """

    def __init__(self, app: FastAPI) -> None:
        self.app = app

    @property
    def authenticator(self) -> Authenticator:
        """Shortcut to the Authenticator on app.state."""
        return self.app.state.authenticator

    async def login(self, request: Request) -> Response:
        """Exchange an identity/credential pair for a session token.

        Returns:
            200 with ``X-Auth-Token``, ``X-Storage-Token`` and
            ``X-Storage-Url`` headers.

        Raises:
            Unauthorized: If either header is missing or verification fails.
            BadGateway: If the backend could not be reached.
        """
        identity = request.headers.get("x-auth-user") or request.headers.get("x-storage-user")
        credential = request.headers.get("x-auth-key") or request.headers.get("x-storage-pass")
        if not identity or not credential:
            metrics.record_auth("failure")
            raise Unauthorized()

        try:
            token = await self.authenticator.authenticate(identity, credential)
        except BlobStoreError as exc:
            logger.exception("Backend unavailable while authenticating %s", identity)
            metrics.record_auth("error")
            raise BadGateway(str(exc)) from exc

        if token is None:
            metrics.record_auth("failure")
            raise Unauthorized()

        metrics.record_auth("success")
        base_url = str(request.base_url).rstrip("/")
        storage_url = f"{base_url}/v1/AUTH_{urllib.parse.quote(identity, safe='')}"
        return JSONResponse(
            content={"storage": {"default": "local", "local": storage_url}},
            status_code=200,
            headers={
                "X-Auth-Token": token,
                "X-Storage-Token": token,
                "X-Storage-Url": storage_url,
            },
        )
