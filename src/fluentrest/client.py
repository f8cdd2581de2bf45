"""Synchronous and asynchronous REST clients.

Both clients run the same pipeline: acquire a transport handle for the named
client, attach bearer authorization, serialize the body with the active codec,
set content negotiation headers, merge custom headers, send, and decode the
response. Failures from httpx, the codecs and pydantic are not translated.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, TypeVar

import httpx
import structlog

from .models import RawResponse
from .request_options import RequestOptions
from .security import sanitize_headers
from .serialization import decode_body, encode_body
from .transport import (
    AsyncHttpClientFactory,
    AsyncTransportHandle,
    HttpClientFactory,
    TransportHandle,
    _BaseTransportHandle,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _resolve_request_options(options: RequestOptions | None) -> RequestOptions:
    return options or RequestOptions()


def _has_value(value: str | None) -> bool:
    return bool(value and value.strip())


async def _run_cancellable(awaitable: Awaitable[T], cancel: asyncio.Event | None) -> T:
    """Await ``awaitable`` unless ``cancel`` is set first.

    When the event wins, the in-flight work is cancelled and awaited so its
    cleanup runs before ``asyncio.CancelledError`` is raised.
    """
    if cancel is None:
        return await awaitable
    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
    if task.cancelled():
        raise asyncio.CancelledError("request cancelled")
    return task.result()


class _BaseRestClient:
    bearer_scheme = "Bearer"

    def _build_request(
        self,
        handle: _BaseTransportHandle[Any],
        method: str,
        url: str,
        options: RequestOptions,
    ) -> httpx.Request:
        if _has_value(options.bearer_token):
            handle.set_authorization(self.bearer_scheme, options.bearer_token)

        content = None
        if options.body is not None:
            content = encode_body(options.body, options.serialization, options.text_encoding)

        media_type = options.media_type
        headers = httpx.Headers({"Accept": media_type})
        if content is not None:
            headers["Content-Type"] = media_type
        # Custom headers go last and replace negotiated values on collision.
        if options.headers:
            headers.update(options.headers)

        return handle.build_request(method.upper(), url, content=content, headers=headers)

    @staticmethod
    def _log_request(request: httpx.Request, client_name: str | None, options: RequestOptions) -> None:
        logger.debug(
            "rest_request_sent",
            method=request.method,
            url=str(request.url),
            client_name=client_name,
            serialization_format=options.serialization_format.value,
            has_body=options.body is not None,
            headers=sanitize_headers(request.headers),
        )

    @staticmethod
    def _log_response(request: httpx.Request, response: httpx.Response, content: bytes) -> None:
        logger.debug(
            "rest_response_received",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            content_length=len(content),
            content_type=response.headers.get("content-type"),
        )

    @staticmethod
    def _raw_response(response: httpx.Response, content: bytes) -> RawResponse:
        return RawResponse(
            content=content,
            status_code=response.status_code,
            headers=dict(response.headers),
        )


class RestClient(_BaseRestClient):
    """Synchronous client."""

    def __init__(self, factory: HttpClientFactory | None = None) -> None:
        self._owns_factory = factory is None
        self._factory = factory or HttpClientFactory()

    @property
    def factory(self) -> HttpClientFactory:
        return self._factory

    def __enter__(self) -> "RestClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_factory:
            self._factory.close()

    def _exchange(self, method: str, url: str, options: RequestOptions) -> tuple[httpx.Response, bytes]:
        handle: TransportHandle
        with self._factory.create_handle(options.client_name) as handle:
            request = self._build_request(handle, method, url, options)
            self._log_request(request, handle.name, options)
            response = handle.send(request)
        content = response.content
        self._log_response(request, response, content)
        return response, content

    def request(
        self,
        method: str,
        url: str,
        options: RequestOptions | None = None,
        *,
        response_type: Any = None,
    ) -> Any:
        """Send a request and decode the response body.

        Returns ``None`` when the response has no body. Pass ``response_type``
        to validate the decoded payload into a model, dataclass or typed container.
        """
        request_options = _resolve_request_options(options)
        _, content = self._exchange(method, url, request_options)
        return decode_body(
            content,
            request_options.serialization,
            request_options.text_encoding,
            response_type,
        )

    def request_bytes(self, method: str, url: str, options: RequestOptions | None = None) -> RawResponse:
        request_options = _resolve_request_options(options)
        response, content = self._exchange(method, url, request_options)
        return self._raw_response(response, content)


class AsyncRestClient(_BaseRestClient):
    """Asynchronous client.

    Every send accepts an optional ``cancel`` event in addition to regular task
    cancellation. Setting it aborts the in-flight send or body read and raises
    ``asyncio.CancelledError``.
    """

    def __init__(self, factory: AsyncHttpClientFactory | None = None) -> None:
        self._owns_factory = factory is None
        self._factory = factory or AsyncHttpClientFactory()

    @property
    def factory(self) -> AsyncHttpClientFactory:
        return self._factory

    async def __aenter__(self) -> "AsyncRestClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_factory:
            await self._factory.aclose()

    @staticmethod
    async def _send_and_read(handle: AsyncTransportHandle, request: httpx.Request) -> tuple[httpx.Response, bytes]:
        response = await handle.send(request)
        try:
            content = await response.aread()
        finally:
            await response.aclose()
        return response, content

    async def _exchange(
        self,
        method: str,
        url: str,
        options: RequestOptions,
        cancel: asyncio.Event | None,
    ) -> tuple[httpx.Response, bytes]:
        if cancel is not None and cancel.is_set():
            logger.debug("rest_request_cancelled", method=method.upper(), url=url, stage="before_send")
            raise asyncio.CancelledError("request cancelled before it was sent")

        handle: AsyncTransportHandle
        with self._factory.create_handle(options.client_name) as handle:
            request = self._build_request(handle, method, url, options)
            self._log_request(request, handle.name, options)
            try:
                response, content = await _run_cancellable(self._send_and_read(handle, request), cancel)
            except asyncio.CancelledError:
                logger.debug("rest_request_cancelled", method=request.method, url=str(request.url), stage="in_flight")
                raise
        self._log_response(request, response, content)
        return response, content

    async def request(
        self,
        method: str,
        url: str,
        options: RequestOptions | None = None,
        *,
        response_type: Any = None,
        cancel: asyncio.Event | None = None,
    ) -> Any:
        request_options = _resolve_request_options(options)
        _, content = await self._exchange(method, url, request_options, cancel)
        return decode_body(
            content,
            request_options.serialization,
            request_options.text_encoding,
            response_type,
        )

    async def request_bytes(
        self,
        method: str,
        url: str,
        options: RequestOptions | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> RawResponse:
        request_options = _resolve_request_options(options)
        response, content = await self._exchange(method, url, request_options, cancel)
        return self._raw_response(response, content)
