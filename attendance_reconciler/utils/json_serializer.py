"""
JSON serializer utility for converting Python objects to JSON-safe values
"""
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Union

from pydantic import BaseModel


def to_json_safe(value: Any) -> Any:
    """
    Recursively convert Python objects to JSON-safe values

    Args:
        value: Any Python object to convert

    Returns:
        JSON-safe equivalent of the input value
    """
    if value is None:
        return None
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, (str, int, float, bool)):
        return value
    elif isinstance(value, (date, datetime, time)):
        return value.isoformat()
    elif isinstance(value, Decimal):
        return float(value)
    elif isinstance(value, BaseModel):
        return to_json_safe(value.model_dump())
    elif hasattr(value, "_asdict"):
        # NamedTuple keys (AttendanceKey, PunchKey)
        return to_json_safe(value._asdict())
    elif isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple, set, frozenset)):
        return [to_json_safe(item) for item in value]
    return str(value)


def serialize_meta(meta: Union[Dict[str, Any], List[Any], None]) -> Union[Dict[str, Any], List[Any], None]:
    """
    Serialize metadata for activity logging. Use before saving to activity_logs.meta_json.
    """
    if meta is None:
        return None
    if isinstance(meta, (dict, list)):
        return to_json_safe(meta)
    return to_json_safe({"value": meta})
