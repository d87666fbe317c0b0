from datetime import datetime, timezone


def get_current_timestamp() -> str:
    """Current UTC time as ISO-8601 text, the format stored in 'createdAt' columns."""
    return datetime.now(timezone.utc).isoformat()
