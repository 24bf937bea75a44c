from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time truncated to the millisecond precision MongoDB stores."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)
