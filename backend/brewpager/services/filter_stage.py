"""
Record filtering.

Filters are plain predicates over a single record, applied lazily so only the
record currently in flight is held.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from brewpager.schemas.beer import Beer

Predicate = Callable[[Beer], bool]


@dataclass(frozen=True)
class FilterStage:
    predicate: Predicate

    def __call__(self, record: Beer) -> bool:
        return bool(self.predicate(record))

    def apply(self, records: Iterable[Beer]) -> Iterator[Beer]:
        """Yield the records matching the predicate, in their original order."""
        for record in records:
            if self(record):
                yield record


def abv_above(threshold: float) -> Predicate:
    """
    Build the reference predicate: strictly stronger than ``threshold``.

    Examples:
        abv_above(7.0)(Beer(abv=7.2, ...)) -> True
        abv_above(7.0)(Beer(abv=7.0, ...)) -> False
    """

    def predicate(record: Beer) -> bool:
        return record.abv > threshold

    predicate.__name__ = f"abv_above_{threshold:g}"
    return predicate
