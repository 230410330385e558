"""Clock helpers shared by the registry model and its identifiers."""

import time
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Naive UTC timestamp; registry columns are ``TIMESTAMP WITHOUT TIME ZONE``."""
    return datetime.now(UTC).replace(tzinfo=None)


def epoch_ms() -> int:
    """Milliseconds since the Unix epoch, as used in project ids and change events."""
    return int(time.time() * 1000)
