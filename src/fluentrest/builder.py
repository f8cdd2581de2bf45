"""Fluent request assembly."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Mapping

import httpx

from .request_options import (
    DEFAULT_JSON_SETTINGS,
    JsonFormat,
    JsonSettings,
    MessagePackSettings,
    OptionsBuilder,
    RequestOptions,
)


def _coerce_query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return str(value)


def _coerce_query_params(query: Mapping[str, Any]) -> list[tuple[str, str]]:
    normalized: list[tuple[str, str]] = []
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            normalized.extend((key, _coerce_query_value(v)) for v in value if v is not None)
            continue
        normalized.append((key, _coerce_query_value(value)))
    return normalized


def merge_query_params(url: str, query: Mapping[str, Any]) -> str:
    """Append ``query`` to ``url`` after any query string it already carries.

    The existing query is kept as written. ``None`` values are dropped. If
    nothing is left the URL is returned as is.
    """
    params = _coerce_query_params(query)
    if not params:
        return url
    base, hash_mark, fragment = url.partition("#")
    if base.endswith(("?", "&")):
        separator = ""
    else:
        separator = "&" if "?" in base else "?"
    return f"{base}{separator}{httpx.QueryParams(params)}{hash_mark}{fragment}"


class RequestBuilder:
    """Collects a method, URL and options, then sends them through a client.

    Setters return the same builder so calls chain::

        user = await (
            RequestBuilder.create("GET", "/users/1")
            .with_client("accounts")
            .with_bearer_token(token)
            .send(client, response_type=User)
        )
    """

    def __init__(self, method: str, url: str) -> None:
        self._method = method.upper()
        self._url = url
        self._options = OptionsBuilder()

    @classmethod
    def create(cls, method: str, url: str) -> "RequestBuilder":
        return cls(method, url)

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> str:
        return self._url

    @property
    def options(self) -> RequestOptions:
        return self._options.build()

    def with_client(self, name: str) -> "RequestBuilder":
        self._options.with_client(name)
        return self

    def with_bearer_token(self, token: str) -> "RequestBuilder":
        self._options.with_bearer_token(token)
        return self

    def with_headers(self, headers: Mapping[str, str | None]) -> "RequestBuilder":
        self._options.with_headers(headers)
        return self

    def add_header(self, key: str, value: str | None) -> "RequestBuilder":
        self._options.add_header(key, value)
        return self

    def with_body(self, body: Any) -> "RequestBuilder":
        self._options.with_body(body)
        return self

    def with_encoding(self, encoding: str) -> "RequestBuilder":
        self._options.with_encoding(encoding)
        return self

    def with_json_settings(self, settings: JsonSettings) -> "RequestBuilder":
        self._options.with_json_settings(settings)
        return self

    def with_json_body(self, body: Any, settings: JsonSettings | None = None) -> "RequestBuilder":
        if settings is None:
            current = self._options.serialization
            settings = current.settings if isinstance(current, JsonFormat) else DEFAULT_JSON_SETTINGS
        self._options.with_body(body).with_json_settings(settings)
        return self

    def with_message_pack_body(self, body: Any, settings: MessagePackSettings | None = None) -> "RequestBuilder":
        self._options.with_body(body).with_message_pack_settings(settings)
        return self

    def with_message_pack_enabled(self, settings: MessagePackSettings | None = None) -> "RequestBuilder":
        self._options.with_message_pack_settings(settings)
        return self

    def with_query_params(self, query: Mapping[str, Any]) -> "RequestBuilder":
        self._url = merge_query_params(self._url, query)
        return self

    def apply_if(self, condition: bool, transform: Callable[["RequestBuilder"], "RequestBuilder"]) -> "RequestBuilder":
        return transform(self) if condition else self

    def send(self, client: Any, response_type: Any = None, **kwargs: Any) -> Any:
        """Send through ``client`` and decode the response.

        With an ``AsyncRestClient`` the result is awaitable and ``cancel=`` may
        be passed through ``kwargs``.
        """
        return client.request(self._method, self._url, self.options, response_type=response_type, **kwargs)

    def send_as_bytes(self, client: Any, **kwargs: Any) -> Any:
        """Send through ``client`` and return a :class:`RawResponse` (awaitable for async clients)."""
        return client.request_bytes(self._method, self._url, self.options, **kwargs)
