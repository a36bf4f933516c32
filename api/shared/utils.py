"""Common utility functions."""
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from api.shared.exceptions import InvalidInputError


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Keep the first ``max_length`` characters, appending ``suffix`` if cut."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + suffix


def parse_timestamp(value: Optional[Union[str, datetime]]) -> datetime:
    """Parse an ISO-8601 timestamp; ``None`` means now. Naive values are UTC."""
    if value is None or value == "":
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise InvalidInputError(
                "Invalid created_at date format", {"created_at": value}
            )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_metadata(metadata: Optional[Union[str, Dict[str, Any]]]) -> Optional[str]:
    """Store metadata as a JSON string; strings are kept as given."""
    if metadata is None:
        return None
    if isinstance(metadata, str):
        return metadata
    return json.dumps(metadata, ensure_ascii=False)
