from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Union

import pytest

from brewpager.core.config import UpstreamConfig
from brewpager.schemas.beer import Beer, Page


def beer(name: str, abv: float = 5.0) -> Beer:
    return Beer(name=name, tagline=f"{name} tagline", abv=abv, description=f"{name} description")


@dataclass
class FakeFetcher:
    """
    In-memory fetcher:
    - pages maps page index -> records, or an exception to raise
    - any page not listed comes back empty
    - every requested index is recorded in ``calls``
    """

    pages: dict[int, Union[list[Beer], Exception]]
    calls: list[int] = field(default_factory=list)
    closed: int = 0
    on_fetch: Optional[Callable[[int], None]] = None

    def fetch(self, page: int) -> Page:
        self.calls.append(page)
        if self.on_fetch is not None:
            self.on_fetch(page)
        item = self.pages.get(page, [])
        if isinstance(item, Exception):
            raise item
        return Page(index=page, records=tuple(item))

    def close(self) -> None:
        self.closed += 1


@dataclass
class FetcherFactory:
    """Hands out a fresh FakeFetcher per subscription, sharing the same page map."""

    pages: dict[int, Union[list[Beer], Exception]]
    opened: list[FakeFetcher] = field(default_factory=list)

    def __call__(self) -> FakeFetcher:
        fetcher = FakeFetcher(pages=self.pages)
        self.opened.append(fetcher)
        return fetcher

    @property
    def calls(self) -> list[int]:
        return [c for f in self.opened for c in f.calls]


@pytest.fixture
def upstream_config() -> UpstreamConfig:
    return UpstreamConfig(base_url="https://beers.test", user_agent="brewpager-tests")
