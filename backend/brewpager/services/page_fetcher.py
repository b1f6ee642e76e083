from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

import requests
from pydantic import ValidationError

from brewpager.core.config import UpstreamConfig
from brewpager.core.errors import DecodeError, NetworkError
from brewpager.schemas.beer import BeerList, Page
from brewpager.services.http_client import get_bytes

logger = logging.getLogger(__name__)


def decode_page(index: int, content: bytes) -> Page:
    """Parse an upstream body into a Page. The body must be a JSON array of beer objects."""
    try:
        payload: Any = json.loads(content.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"Page {index} is not valid JSON: {exc}", page=index) from exc

    if not isinstance(payload, list):
        raise DecodeError(f"Page {index} expected a JSON array, got {type(payload).__name__}", page=index)

    try:
        records = BeerList.validate_python(payload)
    except ValidationError as exc:
        raise DecodeError(
            f"Page {index} has {exc.error_count()} malformed record field(s): {exc.errors()[0]['msg']}",
            page=index,
        ) from exc

    return Page(index=index, records=tuple(records))


class PageFetcher:
    """
    Fetches one upstream page per call.

    Each call is exactly one network request; retries, if configured, live in the transport.
    The fetcher owns its session unless one is injected.
    """

    def __init__(self, config: UpstreamConfig, *, session: Optional[requests.Session] = None):
        self.config = config
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

    def fetch(self, page: int) -> Page:
        if page < self.config.first_page:
            raise ValueError(f"page must be >= {self.config.first_page}, got {page}")

        params: dict[str, Any] = {self.config.page_param: page}
        if self.config.per_page is not None:
            params["per_page"] = self.config.per_page

        started = time.perf_counter()
        try:
            res = get_bytes(self.config.beers_url, self.config, params=params, session=self._session)
        except NetworkError as exc:
            exc.page = page
            raise

        if not res.ok:
            raise NetworkError(
                f"Upstream returned HTTP {res.status_code} for page {page}",
                page=page,
                status_code=res.status_code,
            )

        result = decode_page(page, res.content)
        logger.debug(
            "fetched page %d: %d records in %dms",
            page,
            len(result),
            int((time.perf_counter() - started) * 1000),
        )
        return result

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "PageFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
