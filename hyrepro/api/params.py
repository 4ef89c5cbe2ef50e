"""
Request helpers shared by the route modules
"""
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi import HTTPException, Request, status

MAX_START_INDEX = 10000
MAX_END_INDEX = 1000
MAX_PAGE_SIZE = 100


def bad_request(message: str, **extra) -> HTTPException:
    detail = {"error": message, **extra} if extra else message
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def is_blank(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def missing_fields(source: Any, fields: Iterable[str]) -> List[str]:
    """Names of `fields` that are absent or empty on a model or dict"""
    getter = source.get if isinstance(source, dict) else lambda name: getattr(source, name, None)
    return [name for name in fields if is_blank(getter(name))]


def parse_int(raw: Optional[str], default: int) -> int:
    """parseInt semantics: unparseable or zero falls back to the default"""
    try:
        value = int(str(raw).strip()) if raw is not None else default
    except ValueError:
        return default
    return value or default


def clamp_window(raw_start: Optional[str], raw_end: Optional[str], default_end: int = 20) -> Tuple[int, int]:
    """
    Offset window for list endpoints.

    Start is clamped to >= 0, end to (start, 1000]; a start past 10,000 or a
    window wider than 100 rows is rejected with 400.
    """
    start = max(0, parse_int(raw_start, 0))
    end = min(MAX_END_INDEX, max(start + 1, parse_int(raw_end, default_end)))

    if start > MAX_START_INDEX:
        raise bad_request("Start index too large. Maximum allowed is 10,000.")
    if end - start > MAX_PAGE_SIZE:
        raise bad_request(
            "Maximum page size is 100 items. Please reduce the range between startIndex and endIndex.",
            details={
                "requestedSize": end - start,
                "maxAllowed": MAX_PAGE_SIZE,
                "suggestion": f"Try endIndex: {start + MAX_PAGE_SIZE}",
            },
        )
    return start, end


def extract_count(data: Any) -> int:
    """Count procedures come back as a number, [number], [{count}] or {count}"""
    if isinstance(data, list):
        if not data:
            return 0
        data = data[0]
    if isinstance(data, dict):
        data = data.get("count", next(iter(data.values()), 0) if len(data) == 1 else 0)
    try:
        return int(data or 0)
    except (TypeError, ValueError):
        return 0


def row_dict(row) -> Optional[Dict[str, Any]]:
    """Plain dict of an ORM row; dates become ISO strings"""
    if row is None:
        return None
    result = {}
    for column in row.__table__.columns:
        value = getattr(row, column.name)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        result[column.name] = value
    return result


def to_int(value: Any) -> Optional[int]:
    """parseInt for optional numeric form fields; blank becomes None"""
    if is_blank(value):
        return None
    try:
        return int(float(str(value).strip()))
    except ValueError:
        return None


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip")
