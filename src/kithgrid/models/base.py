"""Clock helpers shared by the models and the services that stamp them."""

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    """Naive UTC now; every timestamp column is TIMESTAMP WITHOUT TIME ZONE."""
    return datetime.now(UTC).replace(tzinfo=None)


def expiry_after(days: int | None, now: datetime | None = None) -> datetime | None:
    """Expiry ``days`` from ``now``, or None when expiry is disabled."""
    if days is None:
        return None
    return (now or utc_now()) + timedelta(days=days)
