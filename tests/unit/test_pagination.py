"""
Unit Tests for paginate()

Run with:
    pytest tests/unit/test_pagination.py -v
"""

import pytest

from core.errors import APIError
from core.pagination import paginate


def make_pages(total: int, page_size: int, reported_total: int = None):
    """Fake paged endpoint over range(total); records requested page indices"""
    items = list(range(total))
    requested = []

    async def fetch(page):
        requested.append(page)
        start = page * page_size
        count = total if reported_total is None else reported_total
        return count, items[start:start + page_size]

    return fetch, requested


@pytest.mark.asyncio
async def test_fetches_until_total_reached():
    """120 items in pages of 50 -> pages 0, 1, 2"""
    fetch, requested = make_pages(120, 50)

    result = await paginate(fetch)

    assert result == list(range(120))
    assert requested == [0, 1, 2]


@pytest.mark.asyncio
async def test_single_page():
    fetch, requested = make_pages(30, 50)

    result = await paginate(fetch)

    assert len(result) == 30
    assert requested == [0]


@pytest.mark.asyncio
async def test_empty_result():
    fetch, requested = make_pages(0, 50)

    assert await paginate(fetch) == []
    assert requested == [0]


@pytest.mark.asyncio
async def test_stops_on_empty_page():
    """Total overstated by the endpoint: stop instead of looping forever"""
    fetch, requested = make_pages(60, 50, reported_total=200)

    result = await paginate(fetch)

    assert len(result) == 60
    assert requested == [0, 1, 2]


@pytest.mark.asyncio
async def test_error_on_later_page_propagates():
    async def fetch(page):
        if page == 1:
            raise APIError("POST", "private/get-trades", 10001, "SYS_ERROR")
        return 100, list(range(50))

    with pytest.raises(APIError, match="SYS_ERROR"):
        await paginate(fetch)
