import math
from typing import List, Sequence, Tuple, TypeVar

T = TypeVar("T")


def paginate(items: Sequence[T], page: int, page_size: int) -> Tuple[List[T], int]:
    """
    1-based page slice. Returns (page items, total pages).
    An empty result still reports one page, like the list views that consume it.
    """
    total_pages = max(1, math.ceil(len(items) / page_size))
    start = (page - 1) * page_size
    return list(items[start:start + page_size]), total_pages
