"""Account listing response rendering for swiftgate.

Swift serves listings as plain text (one name per line), JSON (a list of
records), or XML (an ``account`` element holding ``container`` elements).
"""

import json
import logging
from xml.sax.saxutils import escape as _sax_escape
from xml.sax.saxutils import quoteattr

from fastapi.responses import Response

from swiftgate.errors import BadRequest
from swiftgate.listing import ContainerEntry

logger = logging.getLogger(__name__)

PLAIN = "plain"
JSON = "json"
XML = "xml"

MEDIA_TYPES = {
    PLAIN: "text/plain; charset=utf-8",
    JSON: "application/json; charset=utf-8",
    XML: "application/xml; charset=utf-8",
}

# Values accepted by the ``format`` query parameter
_FORMAT_PARAM = {
    "json": JSON,
    "application/json": JSON,
    "xml": XML,
    "plain": PLAIN,
}

# Media types recognised in the Accept header
_ACCEPT_TYPES = {
    "application/json": JSON,
    "application/xml": XML,
    "text/xml": XML,
    "text/plain": PLAIN,
}


def _escape_xml(value: str) -> str:
    return _sax_escape(str(value))


def select_format(format_param: str | None, accept: str | None) -> str:
    """Choose the listing format.

    An explicit ``format`` wins, then the first recognised media type in
    ``Accept``, then plain text.

    Raises:
        BadRequest: If ``format`` names an unknown format.
    """
    if format_param is not None:
        try:
            return _FORMAT_PARAM[format_param.lower()]
        except KeyError:
            raise BadRequest(f"Unsupported format: {format_param}") from None
    if accept:
        for part in accept.split(","):
            media_type = part.split(";", 1)[0].strip().lower()
            if media_type in _ACCEPT_TYPES:
                return _ACCEPT_TYPES[media_type]
    return PLAIN


def render_plain(entries: list[ContainerEntry]) -> str:
    return "".join(f"{entry.name}\n" for entry in entries)


def render_json(entries: list[ContainerEntry]) -> str:
    return json.dumps(
        [{"name": e.name, "count": e.count, "bytes": e.bytes} for e in entries]
    )


def render_xml(account: str, entries: list[ContainerEntry]) -> str:
    """Render a Swift account listing as XML.

    Args:
        account: The account name from the request path.
        entries: The containers to list.
    """
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f"<account name={quoteattr(account)}>",
    ]
    for entry in entries:
        parts.append("<container>")
        parts.append(f"<name>{_escape_xml(entry.name)}</name>")
        parts.append(f"<count>{entry.count}</count>")
        parts.append(f"<bytes>{entry.bytes}</bytes>")
        parts.append("</container>")
    parts.append("</account>")
    return "\n".join(parts)


def render_listing(account: str, entries: list[ContainerEntry], fmt: str) -> str:
    """Render entries in ``fmt``.

    Failures are logged with the offending value and format, then re-raised.
    """
    try:
        if fmt == JSON:
            return render_json(entries)
        if fmt == XML:
            return render_xml(account, entries)
        return render_plain(entries)
    except Exception:
        logger.error("could not serialize %s to format %s", entries, fmt, exc_info=True)
        raise


def listing_response(
    account: str,
    entries: list[ContainerEntry],
    fmt: str,
    headers: dict[str, str],
) -> Response:
    """Build the HTTP response for an account listing.

    An empty plain-text listing is answered with 204 No Content.
    """
    if fmt == PLAIN and not entries:
        return Response(status_code=204, headers=headers)
    return Response(
        content=render_listing(account, entries, fmt),
        status_code=200,
        media_type=MEDIA_TYPES[fmt],
        headers=headers,
    )
