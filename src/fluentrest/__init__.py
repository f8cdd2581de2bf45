"""Fluent HTTP request construction and dispatch over httpx."""

from .builder import RequestBuilder, merge_query_params
from .client import AsyncRestClient, RestClient
from .exceptions import ClientConfigurationError, FactoryClosedError, FluentRestError
from .models import RawResponse
from .request_options import (
    DEFAULT_JSON_SETTINGS,
    JSON_MEDIA_TYPE,
    MESSAGEPACK_MEDIA_TYPE,
    JsonFormat,
    JsonSettings,
    MessagePackFormat,
    MessagePackSettings,
    NamingPolicy,
    OptionsBuilder,
    RequestOptions,
    SerializationFormat,
)
from .settings import HttpClientSettings
from .transport import AsyncHttpClientFactory, AsyncTransportHandle, HttpClientFactory, TransportHandle

__version__ = "0.1.0"

__all__ = [
    "AsyncHttpClientFactory",
    "AsyncRestClient",
    "AsyncTransportHandle",
    "ClientConfigurationError",
    "DEFAULT_JSON_SETTINGS",
    "FactoryClosedError",
    "FluentRestError",
    "HttpClientFactory",
    "HttpClientSettings",
    "JSON_MEDIA_TYPE",
    "JsonFormat",
    "JsonSettings",
    "MESSAGEPACK_MEDIA_TYPE",
    "MessagePackFormat",
    "MessagePackSettings",
    "NamingPolicy",
    "OptionsBuilder",
    "RawResponse",
    "RequestBuilder",
    "RequestOptions",
    "RestClient",
    "SerializationFormat",
    "TransportHandle",
    "merge_query_params",
]
