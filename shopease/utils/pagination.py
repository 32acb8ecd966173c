"""
Page/limit handling for list endpoints
"""
import math

MAX_LIMIT = 100


def normalize_page(page: int = 1, limit: int = 20, max_limit: int = MAX_LIMIT):
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 20), 1), max_limit)
    return page, limit, (page - 1) * limit


def pagination_meta(total: int, page: int, limit: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def paginate(query, page: int = 1, limit: int = 20, max_limit: int = MAX_LIMIT):
    """Run a SQLAlchemy query for one page. Returns (rows, pagination dict)."""
    page, limit, offset = normalize_page(page, limit, max_limit)
    total = query.order_by(None).count()
    rows = query.offset(offset).limit(limit).all()
    return rows, pagination_meta(total, page, limit)
