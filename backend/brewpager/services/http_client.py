"""
HTTP transport for upstream page requests: GET with static headers, a streamed
body size cap, and an optional retry budget for transport failures.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import requests

from brewpager.core.config import UpstreamConfig
from brewpager.core.errors import NetworkError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@dataclass
class FetchResult:
    status_code: int
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _read_capped(resp: requests.Response, max_bytes: int) -> bytes:
    body = bytearray()
    for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
        body.extend(chunk)
        if len(body) > max_bytes:
            raise NetworkError(f"Upstream body exceeds {max_bytes} bytes")
    return bytes(body)


def get_bytes(
    url: str,
    config: UpstreamConfig,
    *,
    params: Optional[dict[str, Any]] = None,
    session: Optional[requests.Session] = None,
) -> FetchResult:
    """
    GET ``url`` with the upstream headers and timeouts.

    Connection errors and timeouts are retried up to ``config.max_retries`` times;
    a body over ``config.max_bytes`` stops the download and is never retried.
    Non-2xx statuses are returned as-is for the caller to judge.
    """
    http = session if session is not None else requests
    attempt = 0
    while True:
        attempt += 1
        try:
            with http.get(
                url,
                headers=config.headers(),
                params=params,
                timeout=(config.connect_timeout_s, config.read_timeout_s),
                stream=True,
            ) as resp:
                return FetchResult(status_code=int(resp.status_code), content=_read_capped(resp, config.max_bytes))
        except requests.RequestException as exc:
            if attempt > config.max_retries:
                raise NetworkError(f"GET {url} failed after {attempt} attempt(s): {exc}") from exc
            logger.debug("GET %s attempt %d failed, retrying: %s", url, attempt, exc)
            time.sleep(config.retry_backoff_s)
