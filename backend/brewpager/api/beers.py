from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from starlette.concurrency import iterate_in_threadpool, run_in_threadpool

from brewpager.core.config import UpstreamConfig, settings
from brewpager.schemas import Beer, ErrorResponse
from brewpager.services.beer_service import build_beer_stream, collect
from brewpager.services.cancellation import CancellationToken
from brewpager.services.page_fetcher import PageFetcher
from brewpager.services.pagination import PageFetching
from brewpager.services.record_stream import RecordStream, RecordSubscription

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/beer", tags=["beer"])

_ERROR_RESPONSES = {502: {"model": ErrorResponse, "description": "Upstream failure"}}


def get_upstream_config() -> UpstreamConfig:
    return settings.upstream()


def get_fetcher_factory(config: UpstreamConfig = Depends(get_upstream_config)) -> Callable[[], PageFetching]:
    return lambda: PageFetcher(config)


def get_abv_threshold() -> float:
    return settings.abv_threshold


def get_cancellation_token() -> CancellationToken:
    return CancellationToken()


def get_beer_stream(
    abv_gt: Optional[float] = Query(default=None, ge=0, description="Only beers with abv strictly above this value"),
    default_threshold: float = Depends(get_abv_threshold),
    config: UpstreamConfig = Depends(get_upstream_config),
    open_fetcher: Callable[[], PageFetching] = Depends(get_fetcher_factory),
) -> RecordStream:
    threshold = default_threshold if abv_gt is None else abv_gt
    return build_beer_stream(config, abv_gt=threshold, open_fetcher=open_fetcher)


async def _cancel_on_disconnect(request: Request, token: CancellationToken) -> None:
    while not token.cancelled:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            logger.info("client disconnected from %s; cancelling", request.url.path)
            token.cancel()
            return


@router.get("", response_model=list[Beer], responses=_ERROR_RESPONSES)
async def list_beers(
    request: Request,
    stream: RecordStream = Depends(get_beer_stream),
    token: CancellationToken = Depends(get_cancellation_token),
) -> list[Beer]:
    watcher = asyncio.create_task(_cancel_on_disconnect(request, token))
    try:
        # Pagination blocks on the network, so it runs on the worker pool.
        return await run_in_threadpool(collect, stream, token)
    finally:
        watcher.cancel()


async def _ndjson(subscription: RecordSubscription) -> AsyncIterator[str]:
    try:
        async for beer in iterate_in_threadpool(subscription):
            yield beer.model_dump_json() + "\n"
    except Exception as exc:
        # Headers are already sent: abort so the client sees a truncated body, not a clean end.
        logger.warning("stream aborted after %d pages: %s", subscription.result.pages_fetched, exc)
        raise
    finally:
        subscription.close()


@router.get("/stream", responses={200: {"content": {"application/x-ndjson": {}}}})
def stream_beers(stream: RecordStream = Depends(get_beer_stream)) -> StreamingResponse:
    return StreamingResponse(_ndjson(stream.subscribe()), media_type="application/x-ndjson")
