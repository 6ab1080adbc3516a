"""
Helpers for turning MongoDB documents into JSON-safe values
and normalising incoming timestamps.
"""
from datetime import datetime, timezone
from typing import Any, Optional
from bson import ObjectId


def to_json(obj: Any) -> Any:
    """Recursively convert ObjectId and datetime values for JSON serialization"""
    if isinstance(obj, ObjectId):
        return str(obj)
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: to_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json(item) for item in obj]
    return obj


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """
    Convert an aware datetime to naive UTC.

    Mongo returns naive UTC datetimes, so everything stored and compared is kept naive.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_object_id(value: str) -> Optional[ObjectId]:
    """Return an ObjectId for a 24-character hex string, otherwise None"""
    if not isinstance(value, str) or len(value) != 24 or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def as_datetime(value: Any) -> Optional[datetime]:
    """Read a stored timestamp that may be a datetime or an ISO-8601 string"""
    if value is None or isinstance(value, datetime):
        return to_utc_naive(value)
    try:
        return to_utc_naive(datetime.fromisoformat(str(value).replace("Z", "+00:00")))
    except ValueError:
        return None
