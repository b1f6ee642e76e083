from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Protocol

from brewpager.schemas.beer import Page
from brewpager.services.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class PageFetching(Protocol):
    def fetch(self, page: int) -> Page: ...

    def close(self) -> None: ...


class SourceState(str, enum.Enum):
    START = "start"
    FETCHING = "fetching"
    EMITTED = "emitted"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


_TERMINAL = frozenset({SourceState.COMPLETE, SourceState.FAILED, SourceState.CANCELLED})


@dataclass
class PaginationRunResult:
    pages_fetched: int
    records_total: int
    stopped_reason: Optional[str]


class PageSubscription(Iterator[Page]):
    """
    One pass over the upstream pages.

    A page is only requested when the consumer calls ``next``. The cursor starts at
    ``first_page`` and moves by one after every non-empty page. Once the subscription
    reaches a terminal state it never fetches again and its fetcher is closed.
    """

    def __init__(
        self,
        open_fetcher: Callable[[], PageFetching],
        *,
        first_page: int,
        max_pages: Optional[int],
        token: CancellationToken,
    ):
        self.token = token
        self.cursor = first_page
        self.state = SourceState.START
        self.pages_fetched = 0
        self.records_total = 0
        self.stopped_reason: Optional[str] = None
        self._open_fetcher = open_fetcher
        self._fetcher: Optional[PageFetching] = None
        self._max_pages = max_pages
        self._lock = threading.Lock()

    @property
    def done(self) -> bool:
        return self.state in _TERMINAL

    @property
    def result(self) -> PaginationRunResult:
        return PaginationRunResult(
            pages_fetched=self.pages_fetched,
            records_total=self.records_total,
            stopped_reason=self.stopped_reason,
        )

    def __iter__(self) -> "PageSubscription":
        return self

    def __next__(self) -> Page:
        with self._lock:
            if self.done:
                raise StopIteration
            if self.state is SourceState.FETCHING:
                # One fetch in flight per subscription; a second puller would re-request the cursor.
                raise RuntimeError("subscription already fetching")
            if self.token.cancelled:
                self._finish(SourceState.CANCELLED, "cancelled")
                raise StopIteration
            if self._max_pages is not None and self.pages_fetched >= self._max_pages:
                self._finish(SourceState.COMPLETE, "max_pages")
                raise StopIteration
            self.state = SourceState.FETCHING
            cursor = self.cursor

        # The network call runs outside the lock so close() from another thread never blocks on it.
        try:
            if self._fetcher is None:
                self._fetcher = self._open_fetcher()
            page = self._fetcher.fetch(cursor)
        except Exception as exc:
            with self._lock:
                if self.token.cancelled:
                    self._finish(SourceState.CANCELLED, "cancelled")
                    raise StopIteration from None
                logger.warning("page %d failed: %s", cursor, exc)
                self._finish(SourceState.FAILED, "error")
            raise

        with self._lock:
            self.pages_fetched += 1
            if self.token.cancelled:
                # Result of the in-flight fetch is discarded.
                self._finish(SourceState.CANCELLED, "cancelled")
                raise StopIteration
            if page.is_empty:
                self._finish(SourceState.COMPLETE, "empty_page")
                raise StopIteration
            self.cursor = cursor + 1
            self.records_total += len(page)
            self.state = SourceState.EMITTED
            return page

    def close(self) -> None:
        """Withdraw demand. Takes effect before the next page request."""
        self.token.cancel()
        with self._lock:
            if self.state is SourceState.FETCHING or self.done:
                return
            self._finish(SourceState.CANCELLED, "cancelled")

    def _finish(self, state: SourceState, reason: str) -> None:
        self.state = state
        self.stopped_reason = reason
        fetcher, self._fetcher = self._fetcher, None
        if fetcher is not None:
            fetcher.close()
        log = logger.info if state is not SourceState.FAILED else logger.warning
        log(
            "pagination %s: pages_fetched=%d records_total=%d stopped_reason=%s",
            state.value,
            self.pages_fetched,
            self.records_total,
            reason,
        )


class PaginationSource:
    """
    Cold, restartable page source.

    Building a source allocates nothing; each ``subscribe`` starts a fresh cursor and
    opens its own fetcher on first demand.
    """

    def __init__(
        self,
        open_fetcher: Callable[[], PageFetching],
        *,
        first_page: int = 1,
        max_pages: Optional[int] = None,
    ):
        if max_pages is not None and max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        self._open_fetcher = open_fetcher
        self.first_page = first_page
        self.max_pages = max_pages

    def subscribe(self, token: Optional[CancellationToken] = None) -> PageSubscription:
        return PageSubscription(
            self._open_fetcher,
            first_page=self.first_page,
            max_pages=self.max_pages,
            token=token if token is not None else CancellationToken(),
        )

    def __iter__(self) -> PageSubscription:
        return self.subscribe()
