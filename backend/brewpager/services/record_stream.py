from __future__ import annotations

from typing import Iterator, Optional

from brewpager.schemas.beer import Beer
from brewpager.services.cancellation import CancellationToken
from brewpager.services.filter_stage import FilterStage, Predicate
from brewpager.services.pagination import PageSubscription, PaginationRunResult, PaginationSource, SourceState


class RecordSubscription(Iterator[Beer]):
    """
    Records of one page subscription, flattened and filtered.

    All records of page N come before those of page N+1; order inside a page is kept.
    """

    def __init__(self, pages: PageSubscription, stages: tuple[FilterStage, ...]):
        self._pages = pages
        self._stages = stages
        self._records = self._iterate()

    @property
    def token(self) -> CancellationToken:
        return self._pages.token

    @property
    def state(self) -> SourceState:
        return self._pages.state

    @property
    def result(self) -> PaginationRunResult:
        return self._pages.result

    def _iterate(self) -> Iterator[Beer]:
        for page in self._pages:
            records: Iterator[Beer] = iter(page.records)
            for stage in self._stages:
                records = stage.apply(records)
            for record in records:
                if self.token.cancelled:
                    # Rest of the current page is dropped; pages sees the cancel on its next step.
                    break
                yield record

    def __iter__(self) -> "RecordSubscription":
        return self

    def __next__(self) -> Beer:
        return next(self._records)

    def close(self) -> None:
        """Cancel the subscription; no page is requested after this returns."""
        self._pages.close()


class RecordStream:
    """
    Lazy record stream over a PaginationSource.

    Composition is immutable: ``filter`` returns a new stream. Each subscription
    starts a fresh pass over the source.
    """

    def __init__(self, source: PaginationSource, stages: tuple[FilterStage, ...] = ()):
        self.source = source
        self.stages = stages

    def filter(self, predicate: Predicate) -> "RecordStream":
        return RecordStream(self.source, self.stages + (FilterStage(predicate),))

    def subscribe(self, token: Optional[CancellationToken] = None) -> RecordSubscription:
        return RecordSubscription(self.source.subscribe(token), self.stages)

    def __iter__(self) -> RecordSubscription:
        return self.subscribe()
