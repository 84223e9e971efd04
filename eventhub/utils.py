from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from .errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware datetime (naive values are taken as UTC)."""
    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid ISO date: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def drop_none(item: Dict[str, Any]) -> Dict[str, Any]:
    # DynamoDB rejects NULL for index key attributes, so absent means absent
    return {k: v for k, v in item.items() if v is not None}


def paginate(items: List[Any], page: Optional[int] = None, limit: Optional[int] = None) -> Dict[str, Any]:
    """
    Slice `items` into a 1-based page.

    Returns:
        {"total", "page", "limit", "data"} where total is len(items).
    """
    page = DEFAULT_PAGE if page is None else page
    limit = DEFAULT_LIMIT if limit is None else limit
    if page < 1 or limit < 1:
        raise ValidationError("Invalid page or limit")

    start = (page - 1) * limit
    return {
        "total": len(items),
        "page": page,
        "limit": limit,
        "data": items[start:start + limit],
    }
