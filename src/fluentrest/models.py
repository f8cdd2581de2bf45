"""Response models returned by the clients."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RawResponse(BaseModel):
    """Undecoded response payload together with its status code."""

    model_config = ConfigDict(frozen=True)

    content: bytes = b""
    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300
