"""
Firestore query and value helpers shared by the services.

NOTE: For firebase_admin SDK, we use positional where() arguments which still work.
The deprecation warning is just a warning - the functionality is still supported.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "status", "==", "OPEN")
        query = where_filter(query, "created_at", ">=", cutoff)
    """
    return query.where(field_path, op_string, value)


def to_datetime(value: Any) -> Optional[datetime]:
    """
    Convert a stored timestamp to an aware datetime (UTC if naive).

    Handles datetimes (Firestore returns DatetimeWithNanoseconds, a datetime
    subclass), objects exposing to_datetime(), and ISO strings. Anything else,
    including unresolved SERVER_TIMESTAMP sentinels, becomes None.
    """
    if value is None:
        return None
    try:
        if isinstance(value, datetime):
            result = value
        elif hasattr(value, "to_datetime"):
            result = value.to_datetime()
        elif isinstance(value, str):
            result = datetime.fromisoformat(value.replace("Z", "+00:00"))
        else:
            logger.debug(f"Unknown timestamp type: {type(value)}")
            return None
    except (TypeError, ValueError) as e:
        logger.warning(f"Failed to convert timestamp {value!r}: {e}")
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=timezone.utc)
    return result


def snapshot_to_dict(doc) -> Dict:
    """Document snapshot → dict with its id under "id"."""
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data
