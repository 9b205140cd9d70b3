"""Time helpers shared by models and services."""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Current UTC time as a naive datetime.

    Timestamp columns are TIMESTAMP WITHOUT TIME ZONE, so the tzinfo is
    stripped after reading the aware clock.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
