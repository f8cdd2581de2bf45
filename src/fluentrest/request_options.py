"""Per-request configuration and the fluent builder that produces it."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union

from pydantic.alias_generators import to_camel, to_pascal, to_snake


class SerializationFormat(str, Enum):
    JSON = "json"
    MESSAGEPACK = "messagepack"


class NamingPolicy(str, Enum):
    """How field names of dataclasses and pydantic models are written to JSON."""

    CAMEL_CASE = "camel_case"
    PASCAL_CASE = "pascal_case"
    SNAKE_CASE = "snake_case"
    NONE = "none"

    def encode_key(self, name: str) -> str:
        if self is NamingPolicy.CAMEL_CASE:
            return to_camel(name)
        if self is NamingPolicy.PASCAL_CASE:
            return to_pascal(name)
        if self is NamingPolicy.SNAKE_CASE:
            return to_snake(name)
        return name


@dataclass(frozen=True)
class JsonSettings:
    naming_policy: NamingPolicy = NamingPolicy.CAMEL_CASE
    ensure_ascii: bool = False
    indent: int | None = None
    sort_keys: bool = False


@dataclass(frozen=True)
class MessagePackSettings:
    use_bin_type: bool = True
    use_single_float: bool = False
    strict_map_key: bool = False
    use_list: bool = True


DEFAULT_JSON_SETTINGS = JsonSettings()
DEFAULT_TEXT_ENCODING = "utf-8"

JSON_MEDIA_TYPE = "application/json"
MESSAGEPACK_MEDIA_TYPE = "application/x-msgpack"


@dataclass(frozen=True)
class JsonFormat:
    settings: JsonSettings = DEFAULT_JSON_SETTINGS

    format = SerializationFormat.JSON
    media_type = JSON_MEDIA_TYPE


@dataclass(frozen=True)
class MessagePackFormat:
    settings: MessagePackSettings = field(default_factory=MessagePackSettings)

    format = SerializationFormat.MESSAGEPACK
    media_type = MESSAGEPACK_MEDIA_TYPE


Serialization = Union[JsonFormat, MessagePackFormat]


@dataclass(frozen=True)
class RequestOptions:
    client_name: str | None = None
    body: Any | None = None
    bearer_token: str | None = None
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    serialization: Serialization = field(default_factory=JsonFormat)
    text_encoding: str = DEFAULT_TEXT_ENCODING

    @property
    def serialization_format(self) -> SerializationFormat:
        return self.serialization.format

    @property
    def media_type(self) -> str:
        return self.serialization.media_type

    @property
    def json_settings(self) -> JsonSettings | None:
        if isinstance(self.serialization, JsonFormat):
            return self.serialization.settings
        return None

    @property
    def message_pack_settings(self) -> MessagePackSettings | None:
        if isinstance(self.serialization, MessagePackFormat):
            return self.serialization.settings
        return None


def _drop_none(headers: Mapping[str, str | None]) -> dict[str, str]:
    return {str(key): str(value) for key, value in headers.items() if value is not None}


class OptionsBuilder:
    """Mutable builder for :class:`RequestOptions`.

    Every setter mutates a private draft and returns the same builder, so calls
    chain. ``build()`` snapshots the draft into an immutable ``RequestOptions``;
    later setter calls do not affect options that were already built.
    """

    def __init__(self) -> None:
        self._client_name: str | None = None
        self._body: Any | None = None
        self._bearer_token: str | None = None
        self._headers: dict[str, str] | None = None
        self._serialization: Serialization = JsonFormat()
        self._text_encoding = DEFAULT_TEXT_ENCODING

    @classmethod
    def from_options(cls, options: RequestOptions) -> "OptionsBuilder":
        builder = cls()
        builder._client_name = options.client_name
        builder._body = options.body
        builder._bearer_token = options.bearer_token
        builder._headers = dict(options.headers) if options.headers else None
        builder._serialization = options.serialization
        builder._text_encoding = options.text_encoding
        return builder

    @property
    def serialization(self) -> Serialization:
        return self._serialization

    def with_client(self, name: str | None) -> "OptionsBuilder":
        self._client_name = name
        return self

    def with_body(self, payload: Any) -> "OptionsBuilder":
        self._body = payload
        return self

    def with_bearer_token(self, token: str | None) -> "OptionsBuilder":
        self._bearer_token = token
        return self

    def with_headers(self, headers: Mapping[str, str | None]) -> "OptionsBuilder":
        self._headers = _drop_none(headers)
        return self

    def add_header(self, key: str, value: str | None) -> "OptionsBuilder":
        if value is None:
            return self
        if self._headers is None:
            self._headers = {}
        self._headers[key] = value
        return self

    def with_json_settings(self, settings: JsonSettings) -> "OptionsBuilder":
        self._serialization = JsonFormat(settings)
        return self

    def with_message_pack_settings(self, settings: MessagePackSettings | None = None) -> "OptionsBuilder":
        self._serialization = MessagePackFormat(settings or MessagePackSettings())
        return self

    def with_encoding(self, encoding: str) -> "OptionsBuilder":
        self._text_encoding = encoding
        return self

    def build(self) -> RequestOptions:
        return RequestOptions(
            client_name=self._client_name,
            body=self._body,
            bearer_token=self._bearer_token,
            headers=MappingProxyType(dict(self._headers or {})),
            serialization=self._serialization,
            text_encoding=self._text_encoding,
        )

