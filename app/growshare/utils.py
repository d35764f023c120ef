from __future__ import annotations

import math
from datetime import datetime

from flask import Request
from werkzeug.datastructures import MultiDict

DEFAULT_PAGE, MAX_PAGE = 1, 100
DEFAULT_LIMIT, MAX_LIMIT = 10, 50


def _parse_int(raw: str | None, default: int) -> int | None:
    try:
        return int(raw if raw not in (None, "") else default)
    except (TypeError, ValueError):
        return None


def parse_pagination(args: MultiDict) -> tuple[int, int, int]:
    """Return (page, limit, offset); invalid values fall back to defaults and are capped."""
    page = _parse_int(args.get("page"), DEFAULT_PAGE)
    limit = _parse_int(args.get("limit"), DEFAULT_LIMIT)
    safe_page = DEFAULT_PAGE if page is None or page < 1 else min(page, MAX_PAGE)
    safe_limit = DEFAULT_LIMIT if limit is None or limit < 1 else min(limit, MAX_LIMIT)
    return safe_page, safe_limit, (safe_page - 1) * safe_limit


def pagination_meta(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "totalItems": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def read_json_body(req: Request) -> tuple[dict | None, str | None]:
    """Parse a JSON object body."""
    data = req.get_json(silent=True)
    if not isinstance(data, dict):
        return None, "Invalid JSON data"
    return data, None


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
