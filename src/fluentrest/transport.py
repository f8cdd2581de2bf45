"""Named httpx client factories and the per-call transport handles they hand out."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Generic, Iterator, Mapping, TypeVar

import httpx
import structlog

from .exceptions import ClientConfigurationError, FactoryClosedError
from .security import validate_base_url
from .settings import HttpClientSettings


logger = structlog.get_logger(__name__)

ClientT = TypeVar("ClientT", httpx.Client, httpx.AsyncClient)


def _normalize_name(name: str | None) -> str | None:
    if name is None or not name.strip():
        return None
    return name


class _BaseTransportHandle(Generic[ClientT]):
    """One call's view of a pooled httpx client.

    Headers set on the handle apply only to requests built through it. The
    pooled client stays open after the handle is released.
    """

    def __init__(self, client: ClientT, name: str | None) -> None:
        self._client: ClientT | None = client
        self.name = name
        self.default_headers = httpx.Headers()

    @property
    def client(self) -> ClientT:
        if self._client is None:
            raise FactoryClosedError("transport handle has been released", client_name=self.name)
        return self._client

    @property
    def released(self) -> bool:
        return self._client is None

    def set_authorization(self, scheme: str, token: str) -> None:
        self.default_headers["Authorization"] = f"{scheme} {token}"

    def build_request(
        self,
        method: str,
        url: str,
        *,
        content: bytes | None = None,
        headers: httpx.Headers | Mapping[str, str] | None = None,
    ) -> httpx.Request:
        merged = httpx.Headers(self.default_headers)
        if headers:
            merged.update(headers)
        return self.client.build_request(method, url, content=content, headers=merged)

    def release(self) -> None:
        self._client = None


class TransportHandle(_BaseTransportHandle[httpx.Client]):
    def send(self, request: httpx.Request) -> httpx.Response:
        return self.client.send(request)


class AsyncTransportHandle(_BaseTransportHandle[httpx.AsyncClient]):
    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send ``request`` without reading the body; the caller must close the response."""
        return await self.client.send(request, stream=True)


class _BaseHttpClientFactory(Generic[ClientT]):
    _handle_class: type[_BaseTransportHandle[Any]]

    def __init__(
        self,
        *,
        default: HttpClientSettings | None = None,
        clients: Mapping[str, HttpClientSettings] | None = None,
        transport: Any | None = None,
    ) -> None:
        self._default = default or HttpClientSettings.from_env()
        self._validate(None, self._default)
        self._settings: dict[str, HttpClientSettings] = {}
        self._clients: dict[str | None, ClientT] = {}
        self._retired: list[ClientT] = []
        self._transport = transport
        self._lock = threading.Lock()
        self._closed = False
        for name, settings in (clients or {}).items():
            self.register(name, settings)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def names(self) -> list[str]:
        return sorted(self._settings)

    @staticmethod
    def _validate(name: str | None, settings: HttpClientSettings) -> None:
        if settings.base_url is None:
            return
        try:
            validate_base_url(settings.base_url, allow_http=settings.allow_http)
        except ValueError as exc:
            raise ClientConfigurationError(str(exc), client_name=name, cause=exc) from exc

    def register(self, name: str, settings: HttpClientSettings) -> None:
        key = _normalize_name(name)
        if key is None:
            raise ClientConfigurationError("client name must not be blank")
        self._validate(key, settings)
        with self._lock:
            self._settings[key] = settings
            stale = self._clients.pop(key, None)
            if stale is not None:
                self._retired.append(stale)
        logger.debug("http_client_registered", client_name=key, base_url=settings.base_url)

    def settings_for(self, name: str | None) -> HttpClientSettings:
        key = _normalize_name(name)
        if key is None:
            return self._default
        return self._settings.get(key, self._default)

    def _create_client(self, settings: HttpClientSettings) -> ClientT:
        raise NotImplementedError

    def _client_for(self, key: str | None) -> ClientT:
        with self._lock:
            if self._closed:
                raise FactoryClosedError("client factory is closed", client_name=key)
            client = self._clients.get(key)
            if client is not None:
                return client
            if key is not None and key not in self._settings:
                logger.warning("http_client_unknown_name", client_name=key)
            settings = self.settings_for(key)
            client = self._create_client(settings)
            self._clients[key] = client
        logger.info(
            "http_client_created",
            client_name=key,
            base_url=settings.base_url,
            timeout=settings.timeout,
            follow_redirects=settings.follow_redirects,
        )
        return client

    @contextmanager
    def create_handle(self, name: str | None = None) -> Iterator[Any]:
        """Yield a handle bound to the pooled client for ``name``.

        A blank or missing name selects the default client. The handle is
        released when the block exits, whether or not it raised.
        """
        key = _normalize_name(name)
        handle = self._handle_class(self._client_for(key), key)
        try:
            yield handle
        finally:
            handle.release()

    def _drain(self) -> list[ClientT]:
        with self._lock:
            self._closed = True
            clients = list(self._clients.values()) + self._retired
            self._clients.clear()
            self._retired = []
        return clients


class HttpClientFactory(_BaseHttpClientFactory[httpx.Client]):
    """Synchronous factory backed by ``httpx.Client`` instances."""

    _handle_class = TransportHandle

    def _create_client(self, settings: HttpClientSettings) -> httpx.Client:
        kwargs = settings.client_kwargs()
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.Client(**kwargs)

    def __enter__(self) -> "HttpClientFactory":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        for client in self._drain():
            client.close()


class AsyncHttpClientFactory(_BaseHttpClientFactory[httpx.AsyncClient]):
    """Asynchronous factory backed by ``httpx.AsyncClient`` instances."""

    _handle_class = AsyncTransportHandle

    def _create_client(self, settings: HttpClientSettings) -> httpx.AsyncClient:
        kwargs = settings.client_kwargs()
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def __aenter__(self) -> "AsyncHttpClientFactory":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for client in self._drain():
            await client.aclose()
