from datetime import datetime, timezone


def parse_iso_datetime(value):
    """ISO-8601 string -> naive UTC datetime. None or "" gives None."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("Expected an ISO-8601 string")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
