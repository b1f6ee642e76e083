from __future__ import annotations

from typing import Optional


class BrewpagerError(Exception):
    kind = "error"

    def __init__(self, message: str, *, page: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.page = page

    def to_dict(self) -> dict[str, object]:
        return {"error": self.kind, "message": self.message, "page": self.page}


class NetworkError(BrewpagerError):
    """Transport failure, timeout, or a non-2xx upstream status."""

    kind = "network_error"

    def __init__(self, message: str, *, page: Optional[int] = None, status_code: Optional[int] = None):
        super().__init__(message, page=page)
        self.status_code = status_code


class DecodeError(BrewpagerError):
    """Upstream body could not be parsed into the expected record shape."""

    kind = "decode_error"


class PipelineCancelled(BrewpagerError):
    kind = "cancelled"
