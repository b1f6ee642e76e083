from __future__ import annotations

import logging
from typing import Callable, Optional

from brewpager.core.config import UpstreamConfig
from brewpager.core.errors import PipelineCancelled
from brewpager.schemas.beer import Beer
from brewpager.services.cancellation import CancellationToken
from brewpager.services.filter_stage import abv_above
from brewpager.services.page_fetcher import PageFetcher
from brewpager.services.pagination import PageFetching, PaginationSource, SourceState
from brewpager.services.record_stream import RecordStream

logger = logging.getLogger(__name__)


def build_beer_stream(
    config: UpstreamConfig,
    *,
    abv_gt: float,
    open_fetcher: Optional[Callable[[], PageFetching]] = None,
) -> RecordStream:
    """Compose fetcher, pagination, flattening and the abv filter. Nothing is fetched yet."""
    source = PaginationSource(
        open_fetcher or (lambda: PageFetcher(config)),
        first_page=config.first_page,
        max_pages=config.max_pages,
    )
    return RecordStream(source).filter(abv_above(abv_gt))


def collect(stream: RecordStream, token: Optional[CancellationToken] = None) -> list[Beer]:
    """
    Materialize one subscription.

    Returns the complete filtered list or raises: the first upstream error propagates,
    and a cancelled run raises PipelineCancelled instead of returning a partial list.
    """
    subscription = stream.subscribe(token)
    try:
        records = list(subscription)
    finally:
        subscription.close()

    if subscription.state is SourceState.CANCELLED:
        raise PipelineCancelled("Subscription cancelled before completion")

    logger.info(
        "collected %d matching records from %d pages",
        len(records),
        subscription.result.pages_fetched,
    )
    return records
