from __future__ import annotations

import threading

import pytest

from brewpager.core.errors import NetworkError
from brewpager.services.cancellation import CancellationToken
from brewpager.services.pagination import PaginationSource, SourceState

from conftest import FakeFetcher, FetcherFactory, beer


def test_building_a_source_fetches_nothing() -> None:
    factory = FetcherFactory(pages={1: [beer("a")]})
    source = PaginationSource(factory)
    subscription = source.subscribe()

    assert factory.opened == []
    assert subscription.state is SourceState.START


def test_stops_at_first_empty_page() -> None:
    factory = FetcherFactory(pages={1: [beer("a")], 2: [beer("b")], 3: [], 4: [beer("never")]})
    subscription = PaginationSource(factory).subscribe()

    pages = list(subscription)

    assert [p.index for p in pages] == [1, 2]
    assert factory.calls == [1, 2, 3]
    assert subscription.state is SourceState.COMPLETE
    assert subscription.result.stopped_reason == "empty_page"
    assert subscription.result.pages_fetched == 3
    assert subscription.result.records_total == 2


def test_cursor_is_contiguous_from_first_page() -> None:
    factory = FetcherFactory(pages={i: [beer(str(i))] for i in range(5, 12)})
    list(PaginationSource(factory, first_page=5).subscribe())

    assert factory.calls == list(range(5, 13))


def test_fetcher_closed_once_on_completion() -> None:
    factory = FetcherFactory(pages={1: [beer("a")]})
    subscription = PaginationSource(factory).subscribe()
    list(subscription)
    subscription.close()

    assert len(factory.opened) == 1
    assert factory.opened[0].closed == 1


def test_no_fetch_after_completion() -> None:
    factory = FetcherFactory(pages={1: [beer("a")]})
    subscription = PaginationSource(factory).subscribe()
    list(subscription)

    with pytest.raises(StopIteration):
        next(subscription)
    assert factory.calls == [1, 2]


def test_failure_propagates_and_stops() -> None:
    factory = FetcherFactory(pages={1: [beer("a")], 2: NetworkError("boom", page=2), 3: [beer("c")]})
    subscription = PaginationSource(factory).subscribe()

    first = next(subscription)
    with pytest.raises(NetworkError):
        next(subscription)

    assert first.index == 1
    assert subscription.state is SourceState.FAILED
    assert subscription.result.stopped_reason == "error"
    with pytest.raises(StopIteration):
        next(subscription)
    assert factory.calls == [1, 2]
    assert factory.opened[0].closed == 1


def test_cancel_before_next_page_prevents_fetch() -> None:
    factory = FetcherFactory(pages={1: [beer("a")], 2: [beer("b")]})
    subscription = PaginationSource(factory).subscribe()

    next(subscription)
    subscription.close()

    assert list(subscription) == []
    assert factory.calls == [1]
    assert subscription.state is SourceState.CANCELLED
    assert factory.opened[0].closed == 1


def test_in_flight_page_is_discarded_after_cancel() -> None:
    token = CancellationToken()
    fetcher = FakeFetcher(pages={1: [beer("a")], 2: [beer("b")]})
    fetcher.on_fetch = lambda page: token.cancel() if page == 1 else None
    subscription = PaginationSource(lambda: fetcher).subscribe(token)

    assert list(subscription) == []
    assert fetcher.calls == [1]
    assert subscription.result.stopped_reason == "cancelled"


def test_max_pages_caps_requests() -> None:
    factory = FetcherFactory(pages={i: [beer(str(i))] for i in range(1, 10)})
    subscription = PaginationSource(factory, max_pages=3).subscribe()

    assert [p.index for p in subscription] == [1, 2, 3]
    assert factory.calls == [1, 2, 3]
    assert subscription.result.stopped_reason == "max_pages"


def test_each_subscription_starts_fresh() -> None:
    factory = FetcherFactory(pages={1: [beer("a")], 2: [beer("b")]})
    source = PaginationSource(factory)

    first = [p.index for p in source]
    second = [p.index for p in source]

    assert first == second == [1, 2]
    assert len(factory.opened) == 2
    assert factory.opened[0].calls == factory.opened[1].calls == [1, 2, 3]


def test_invalid_max_pages_rejected() -> None:
    with pytest.raises(ValueError):
        PaginationSource(FetcherFactory(pages={}), max_pages=0)


def test_concurrent_pull_refused_while_fetching() -> None:
    entered = threading.Event()
    release = threading.Event()
    fetcher = FakeFetcher(pages={1: [beer("a")], 2: [beer("b")]})

    def block_on_first(page: int) -> None:
        if page == 1:
            entered.set()
            release.wait(5)

    fetcher.on_fetch = block_on_first
    subscription = PaginationSource(lambda: fetcher).subscribe()

    pulled = []
    worker = threading.Thread(target=lambda: pulled.append(next(subscription)))
    worker.start()
    assert entered.wait(5)

    with pytest.raises(RuntimeError, match="already fetching"):
        next(subscription)

    release.set()
    worker.join(5)

    assert [p.index for p in pulled] == [1]
    assert fetcher.calls == [1]
    assert next(subscription).index == 2
    assert fetcher.calls == [1, 2]
