"""Configuration for named HTTP clients."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


BASE_URL_ENV_VAR = "FLUENT_REST_BASE_URL"
TIMEOUT_ENV_VAR = "FLUENT_REST_TIMEOUT"


class HttpClientSettings(BaseModel):
    """Settings applied to one named httpx client."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str | None = Field(
        default=None,
        description="Base URL relative request URLs are resolved against",
    )
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers sent with every request made through this client",
    )
    follow_redirects: bool = True
    allow_http: bool = Field(
        default=False,
        description="Allow a plain-http base URL for hosts other than localhost",
    )

    @classmethod
    def from_env(cls, **overrides: Any) -> "HttpClientSettings":
        values: dict[str, Any] = {}
        base_url = os.getenv(BASE_URL_ENV_VAR)
        if base_url:
            values["base_url"] = base_url.rstrip("/")
        timeout = os.getenv(TIMEOUT_ENV_VAR)
        if timeout:
            values["timeout"] = float(timeout)
        values.update(overrides)
        return cls(**values)

    def client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "timeout": self.timeout,
            "follow_redirects": self.follow_redirects,
            "headers": dict(self.headers),
            "trust_env": False,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return kwargs
