"""
Pagination Helper

List endpoints (open orders, trade history) report the total number of
matching records next to one page of them. paginate() keeps requesting
page 0, 1, 2, ... until everything the endpoint announced has arrived.
"""

from typing import Awaitable, Callable, List, Tuple, TypeVar

from core.logging import get_logger


T = TypeVar("T")

logger = get_logger(__name__)


async def paginate(fetch_page: Callable[[int], Awaitable[Tuple[int, List[T]]]]) -> List[T]:
    """
    Accumulate all items of a paged endpoint.

    Args:
        fetch_page: Coroutine function taking a page index and returning
            (total_count, items_on_that_page)

    Returns:
        All items in page order

    Raises:
        Whatever fetch_page raises; partial results are discarded.

    Example:
        >>> async def fetch(page):
        ...     return 120, items[page * 50:(page + 1) * 50]
        >>> len(await paginate(fetch))
        120
    """
    page = 0
    total, items = await fetch_page(page)
    result: List[T] = list(items)

    while len(result) < total:
        page += 1
        _, items = await fetch_page(page)
        if not items:
            logger.warning(
                f"Page {page} came back empty with {len(result)}/{total} items collected, stopping"
            )
            break
        result.extend(items)

    return result
