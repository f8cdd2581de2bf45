"""Body encoding and response decoding for the JSON and MessagePack codecs."""

from __future__ import annotations

import base64
import dataclasses
import json
from collections import abc
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from types import UnionType
from typing import Annotated, Any, Callable, Mapping, Union, get_args, get_origin, get_type_hints
from uuid import UUID

import msgpack
from pydantic import BaseModel, TypeAdapter

from .request_options import (
    JsonFormat,
    JsonSettings,
    MessagePackSettings,
    NamingPolicy,
    Serialization,
)


def _identity(name: str) -> str:
    return name


def to_wire(value: Any, *, encode_key: Callable[[str], str] = _identity, keep_bytes: bool = False) -> Any:
    """Convert ``value`` into plain containers and scalars a codec can write.

    Field names of pydantic models and dataclasses go through ``encode_key``
    (unless the model declares an alias); keys of plain mappings are kept as is.
    """

    def convert(item: Any) -> Any:
        if item is None or isinstance(item, (str, bool, int, float)):
            return item
        if isinstance(item, Enum):
            return convert(item.value)
        if isinstance(item, BaseModel):
            fields = type(item).model_fields
            return {
                (info.serialization_alias or info.alias or encode_key(name)): convert(getattr(item, name))
                for name, info in fields.items()
            }
        if dataclasses.is_dataclass(item) and not isinstance(item, type):
            return {encode_key(f.name): convert(getattr(item, f.name)) for f in dataclasses.fields(item)}
        if isinstance(item, Mapping):
            return {key: convert(val) for key, val in item.items()}
        if isinstance(item, (bytes, bytearray, memoryview)):
            raw = bytes(item)
            return raw if keep_bytes else base64.b64encode(raw).decode("ascii")
        if isinstance(item, (datetime, date, time)):
            return item.isoformat()
        if isinstance(item, (UUID, Decimal)):
            return str(item)
        if isinstance(item, (list, tuple, set, frozenset)):
            return [convert(val) for val in item]
        return item

    return convert(value)


def _is_structured(target: Any) -> bool:
    if not isinstance(target, type) or get_origin(target) is not None:
        return False
    return issubclass(target, BaseModel) or dataclasses.is_dataclass(target)


@lru_cache(maxsize=256)
def _wire_fields(target: type, naming_policy: NamingPolicy) -> dict[str, tuple[str, Any]]:
    """Map each JSON key ``to_wire`` can write for ``target`` to the key pydantic validates and its type."""
    fields: dict[str, tuple[str, Any]] = {}
    if issubclass(target, BaseModel):
        for name, info in target.model_fields.items():
            validation_key = info.validation_alias if isinstance(info.validation_alias, str) else info.alias or name
            for key in (info.serialization_alias, info.alias, naming_policy.encode_key(name)):
                if key:
                    fields.setdefault(key, (validation_key, info.annotation))
        return fields
    hints = get_type_hints(target)
    for item in dataclasses.fields(target):
        fields[naming_policy.encode_key(item.name)] = (item.name, hints.get(item.name, Any))
    return fields


def _union_member(data: Any, members: tuple[Any, ...], naming_policy: NamingPolicy) -> Any:
    candidates = [member for member in members if member is not type(None)]
    if isinstance(data, Mapping):
        structured = [member for member in candidates if _is_structured(member)]
        if structured:
            return max(structured, key=lambda member: len(data.keys() & _wire_fields(member, naming_policy).keys()))
    return candidates[0] if len(candidates) == 1 else Any


def from_wire(data: Any, target: Any, naming_policy: NamingPolicy) -> Any:
    """Rename decoded JSON keys to the keys ``target`` validates against.

    Only field names of pydantic models and dataclasses are renamed, the
    reverse of ``to_wire``. Keys of mapping-typed values are kept as received.
    """
    if _is_structured(target):
        if not isinstance(data, Mapping):
            return data
        fields = _wire_fields(target, naming_policy)
        renamed: dict[Any, Any] = {}
        for key, value in data.items():
            if key in fields:
                name, annotation = fields[key]
                renamed[name] = from_wire(value, annotation, naming_policy)
            else:
                renamed[key] = value
        return renamed

    origin = get_origin(target)
    if origin is None:
        return data
    args = get_args(target)
    if origin is Annotated:
        return from_wire(data, args[0], naming_policy)
    if origin is Union or origin is UnionType:
        return from_wire(data, _union_member(data, args, naming_policy), naming_policy)
    if not isinstance(origin, type) or not args:
        return data
    if issubclass(origin, abc.Mapping):
        if not isinstance(data, Mapping) or len(args) != 2:
            return data
        return {key: from_wire(value, args[1], naming_policy) for key, value in data.items()}
    if not isinstance(data, list):
        return data
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return [from_wire(item, args[0], naming_policy) for item in data]
        return [from_wire(item, member, naming_policy) for item, member in zip(data, args)] + data[len(args) :]
    if issubclass(origin, abc.Iterable):
        return [from_wire(item, args[0], naming_policy) for item in data]
    return data


def encode_json(body: Any, settings: JsonSettings, encoding: str) -> bytes:
    payload = to_wire(body, encode_key=settings.naming_policy.encode_key)
    text = json.dumps(
        payload,
        ensure_ascii=settings.ensure_ascii,
        indent=settings.indent,
        sort_keys=settings.sort_keys,
    )
    return text.encode(encoding)


def decode_json(content: bytes, encoding: str) -> Any:
    return json.loads(content.decode(encoding))


def encode_msgpack(body: Any, settings: MessagePackSettings) -> bytes:
    payload = to_wire(body, keep_bytes=True)
    return msgpack.packb(
        payload,
        use_bin_type=settings.use_bin_type,
        use_single_float=settings.use_single_float,
    )


def decode_msgpack(content: bytes, settings: MessagePackSettings) -> Any:
    return msgpack.unpackb(
        content,
        raw=False,
        use_list=settings.use_list,
        strict_map_key=settings.strict_map_key,
    )


def encode_body(body: Any, serialization: Serialization, encoding: str) -> bytes:
    if isinstance(serialization, JsonFormat):
        return encode_json(body, serialization.settings, encoding)
    return encode_msgpack(body, serialization.settings)


@lru_cache(maxsize=256)
def _type_adapter(response_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_type)


def decode_body(
    content: bytes,
    serialization: Serialization,
    encoding: str,
    response_type: Any = None,
) -> Any:
    """Decode a response payload, returning ``None`` for an empty body.

    Without ``response_type`` the codec's plain output is returned. With one,
    JSON field names of the models and dataclasses it contains are mapped
    back through the naming policy, and the result is validated into
    ``response_type``.
    """
    if not content:
        return None
    if isinstance(serialization, JsonFormat):
        data = decode_json(content, encoding)
        naming_policy = serialization.settings.naming_policy
    else:
        data = decode_msgpack(content, serialization.settings)
        naming_policy = NamingPolicy.NONE

    if response_type is None or response_type is Any:
        return data
    if naming_policy is not NamingPolicy.NONE:
        data = from_wire(data, response_type, naming_policy)
    return _type_adapter(response_type).validate_python(data)
