# common/pagination.py
from typing import Tuple

from sqlalchemy.orm import Query

from .result import Page

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def normalize_paging(page_number: int, page_size: int) -> Tuple[int, int]:
    """
    Clamp paging arguments to the supported range.

    Parameters
    ----------
    page_number : int
        Requested 1-based page number.
    page_size : int
        Requested page size.

    Returns
    -------
    Tuple[int, int]
        ``(page_number, page_size)`` with page_number >= 1 and
        1 <= page_size <= MAX_PAGE_SIZE.
    """
    page_number = max(page_number or 1, 1)
    if not page_size or page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    return page_number, min(page_size, MAX_PAGE_SIZE)


def paginate(query: Query, page_number: int, page_size: int) -> Page:
    """
    Run a count query plus an offset/limit slice over ``query``.

    The query must already carry its ordering.
    """
    page_number, page_size = normalize_paging(page_number, page_size)
    total = query.order_by(None).count()
    items = query.offset((page_number - 1) * page_size).limit(page_size).all()
    return Page(items=items, total_count=total, page_number=page_number, page_size=page_size)
