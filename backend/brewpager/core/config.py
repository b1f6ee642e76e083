from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Annotated, Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


@dataclass(frozen=True)
class UpstreamConfig:
    """Static description of the upstream collection API, injected into the pipeline."""

    base_url: str
    beers_path: str = "/v2/beers"
    page_param: str = "page"
    per_page: Optional[int] = None
    first_page: int = 1
    max_pages: Optional[int] = None
    user_agent: str = "brewpager/0.1"
    extra_headers: dict[str, str] = field(default_factory=dict)
    connect_timeout_s: float = 5.0
    read_timeout_s: float = 20.0
    max_bytes: int = 2_000_000
    max_retries: int = 0
    retry_backoff_s: float = 1.0

    @property
    def beers_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.beers_path.lstrip("/")

    def headers(self) -> dict[str, str]:
        merged = {"User-Agent": self.user_agent, "Accept": "application/json"}
        merged.update(self.extra_headers)
        return merged


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BREWPAGER_", extra="ignore")

    upstream_base_url: str = "https://api.punkapi.com"
    beers_path: str = "/v2/beers"
    page_param: str = "page"
    per_page: Optional[int] = Field(default=None, ge=1)
    first_page: int = Field(default=1, ge=0)
    max_pages: Optional[int] = Field(default=None, ge=1)

    user_agent: str = "brewpager/0.1"
    extra_headers: Annotated[dict[str, str], NoDecode] = {}

    http_connect_timeout_s: float = 5.0
    http_read_timeout_s: float = 20.0
    http_max_bytes: int = 2_000_000
    # Retries are a transport concern; the pagination core never retries.
    http_max_retries: int = Field(default=0, ge=0, le=5)
    http_retry_backoff_s: float = Field(default=1.0, ge=0)

    abv_threshold: float = 7.0

    log_level: str = "INFO"

    host: str = "127.0.0.1"
    port: int = 8000

    @field_validator("extra_headers", mode="before")
    @classmethod
    def _parse_extra_headers(cls, v: Any) -> Any:
        # Support either:
        # - JSON object (recommended): BREWPAGER_EXTRA_HEADERS='{"X-Trace": "1"}'
        # - Comma-separated pairs:     BREWPAGER_EXTRA_HEADERS='X-Trace=1,X-Team=beer'
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return {}
            if s.startswith("{"):
                return json.loads(s)
            pairs = [p.split("=", 1) for p in s.split(",") if "=" in p]
            return {k.strip(): val.strip() for k, val in pairs if k.strip()}
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    def upstream(self) -> UpstreamConfig:
        return UpstreamConfig(
            base_url=self.upstream_base_url,
            beers_path=self.beers_path,
            page_param=self.page_param,
            per_page=self.per_page,
            first_page=self.first_page,
            max_pages=self.max_pages,
            user_agent=self.user_agent,
            extra_headers=dict(self.extra_headers),
            connect_timeout_s=self.http_connect_timeout_s,
            read_timeout_s=self.http_read_timeout_s,
            max_bytes=self.http_max_bytes,
            max_retries=self.http_max_retries,
            retry_backoff_s=self.http_retry_backoff_s,
        )


settings = Settings()
