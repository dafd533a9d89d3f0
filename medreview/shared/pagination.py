import math
from typing import Any

from sqlalchemy.orm import Query

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def paginate(query: Query, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> dict[str, Any]:
    """Apply page/limit to an ordered query and return items with totals"""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if total else 0,
    }
