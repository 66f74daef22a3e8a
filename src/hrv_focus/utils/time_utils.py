import datetime as _dt
import math


def to_epoch_seconds(timestamp) -> float:
    """Return POSIX seconds for a float/int timestamp or a datetime.

    Naive datetimes are interpreted as UTC.
    """
    if isinstance(timestamp, _dt.datetime):
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=_dt.timezone.utc)
        return timestamp.timestamp()
    value = float(timestamp)
    if not math.isfinite(value):
        raise ValueError(f"Timestamp must be finite, got {timestamp!r}")
    return value


def iso_utc(timestamp: float) -> str:
    return _dt.datetime.fromtimestamp(timestamp, tz=_dt.timezone.utc).isoformat()
