# services/pagination.py
import math
from typing import Any, Dict, List, Optional, Tuple

from . import config


def clamp_page(page: Optional[int], limit: Optional[int], limit_max: int = config.MAX_PAGE_SIZE) -> Tuple[int, int]:
    p = page if page and page > 0 else 1
    if not limit or limit < 1:
        return p, config.DEFAULT_PAGE_SIZE
    return p, min(limit, limit_max)


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def envelope(data: List[Dict[str, Any]], page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    }
