import asyncio
import os
from typing import Dict, List, Optional

# Never talk to a real backend during tests
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_ANON_KEY"] = ""

import pytest

from wallsearch.common.cancellation import CancellationToken
from wallsearch.search.models import ResultPage, WallpaperSummary
from wallsearch.search.query import SearchQuery


def build_page(
    prefix: str = "w",
    count: int = 3,
    total_count: Optional[int] = None,
    total_pages: int = 1,
    current_page: int = 1,
) -> ResultPage:
    items = [
        WallpaperSummary(
            id=f"{prefix}-{i}",
            title=f"{prefix} {i}",
            thumbnailUrl=f"https://cdn.example.com/{prefix}/{i}.jpg",
            fullUrl=f"https://cdn.example.com/{prefix}/{i}-full.jpg",
        )
        for i in range(count)
    ]
    return ResultPage(
        items=items,
        total_count=count if total_count is None else total_count,
        total_pages=total_pages,
        current_page=current_page,
    )


class FakeBackend:
    """Search backend double: records calls, optional per-text gates and failures."""

    def __init__(self):
        self.calls: List[SearchQuery] = []
        self.tokens: List[Optional[CancellationToken]] = []
        self.responses: Dict[str, ResultPage] = {}
        self.errors: Dict[str, Exception] = {}
        self.gates: Dict[str, asyncio.Event] = {}

    def gate(self, text: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[text] = event
        return event

    async def search(self, query: SearchQuery, token: Optional[CancellationToken] = None) -> ResultPage:
        self.calls.append(query)
        self.tokens.append(token)
        gate = self.gates.get(query.text)
        if gate is not None:
            await gate.wait()
        if query.text in self.errors:
            raise self.errors[query.text]
        if query.text in self.responses:
            return self.responses[query.text]
        return build_page(prefix=query.text or "all", current_page=query.page)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_page():
    return build_page


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
