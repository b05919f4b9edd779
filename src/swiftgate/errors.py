"""Swift-compatible error definitions for swiftgate."""

UNAUTHORIZED_BODY = (
    "<html><h1>Unauthorized</h1><p>This server could not verify that you are authorized "
    "to access the document you requested.</p></html>"
)

NOT_FOUND_BODY = "<html><h1>Not Found</h1><p>The resource could not be found.</p></html>"


class SwiftError(Exception):
    """An error rendered as a plain Swift error response.

    Attributes:
        http_status: The HTTP status code to return.
        body: The response body (empty for bare status responses).
        media_type: The body's content type.
    """

    def __init__(
        self,
        http_status: int,
        body: str = "",
        media_type: str = "text/html; charset=UTF-8",
    ) -> None:
        super().__init__(body or str(http_status))
        self.http_status = http_status
        self.body = body
        self.media_type = media_type


# -- Common pre-defined errors ------------------------------------------------


class Unauthorized(SwiftError):
    """Missing, unknown, or expired token; or rejected login."""

    def __init__(self) -> None:
        super().__init__(http_status=401, body=UNAUTHORIZED_BODY)


class NotFound(SwiftError):
    """The requested resource does not exist."""

    def __init__(self) -> None:
        super().__init__(http_status=404, body=NOT_FOUND_BODY)


class BadRequest(SwiftError):
    """The request parameters are malformed."""

    def __init__(self, message: str = "") -> None:
        super().__init__(http_status=400, body=message, media_type="text/plain; charset=UTF-8")


class NotImplementedSwiftError(SwiftError):
    """The requested functionality is not implemented."""

    def __init__(self) -> None:
        super().__init__(http_status=501)


class BadGateway(SwiftError):
    """The backing blob store could not be reached."""

    def __init__(self, message: str = "") -> None:
        super().__init__(http_status=502, body=message, media_type="text/plain; charset=UTF-8")
