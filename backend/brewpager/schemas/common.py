from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: Literal["network_error", "decode_error", "cancelled", "error"]
    message: str
    page: Optional[int] = None
