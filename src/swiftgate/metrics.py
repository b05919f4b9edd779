"""Prometheus metrics definitions for swiftgate.

All custom swiftgate metrics use the ``swiftgate_`` prefix for namespace
isolation. These are gateway-level counters; the
``prometheus-fastapi-instrumentator`` package provides the HTTP-level
metrics (request count, duration, sizes).

Counters reset to zero on restart. Prometheus handles gaps via ``rate()``.
"""

from __future__ import annotations

from prometheus_client import Counter

# Flag indicating whether metrics have been initialised via init_metrics().
_initialized: bool = False

# Login attempts  (labels: outcome = success | failure | error)
auth_attempts_total: Counter | None = None

# Account listings served  (labels: format)
account_listings_total: Counter | None = None

# Bulk delete targets processed  (labels: outcome = deleted | not_found | error)
bulk_delete_items_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    This must be called once when metrics are enabled. When metrics are
    disabled in config the module-level references stay ``None`` and no
    collectors are registered in the global registry.
    """
    global _initialized
    global auth_attempts_total, account_listings_total, bulk_delete_items_total

    if _initialized:
        return

    auth_attempts_total = Counter(
        "swiftgate_auth_attempts_total",
        "Total login attempts by outcome",
        ["outcome"],
    )

    account_listings_total = Counter(
        "swiftgate_account_listings_total",
        "Total account listings served by response format",
        ["format"],
    )

    bulk_delete_items_total = Counter(
        "swiftgate_bulk_delete_items_total",
        "Total bulk delete targets processed by outcome",
        ["outcome"],
    )

    _initialized = True


def record_auth(outcome: str) -> None:
    if auth_attempts_total is not None:
        auth_attempts_total.labels(outcome=outcome).inc()


def record_listing(fmt: str) -> None:
    if account_listings_total is not None:
        account_listings_total.labels(format=fmt).inc()


def record_bulk_delete(deleted: int, not_found: int, errors: int) -> None:
    if bulk_delete_items_total is None:
        return
    if deleted:
        bulk_delete_items_total.labels(outcome="deleted").inc(deleted)
    if not_found:
        bulk_delete_items_total.labels(outcome="not_found").inc(not_found)
    if errors:
        bulk_delete_items_total.labels(outcome="error").inc(errors)
