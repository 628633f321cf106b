# Overview: Page/limit parsing and the paginated response envelope.

from __future__ import annotations

from ..validation import ValidationError

MAX_PER_PAGE = 100


def parse_pagination(args, default_limit: int = 10) -> tuple[int, int]:
    """Read page/limit query args. page >= 1, 1 <= limit <= MAX_PER_PAGE."""
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", default_limit))
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > MAX_PER_PAGE:
        raise ValidationError(f"limit must be between 1 and {MAX_PER_PAGE}")
    return page, limit


def paginate(query, page: int, per_page: int, serialize=None) -> dict:
    """
    Run query for one page.

    Returns {"items", "count", "pagination": {page, per_page, total,
    total_pages, has_next, has_prev}}.
    """
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    serialize = serialize or (lambda obj: obj.to_dict())
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
