from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

import msgpack
import pytest
from pydantic import BaseModel, Field, ValidationError

from fluentrest.request_options import JsonFormat, JsonSettings, MessagePackFormat, NamingPolicy
from fluentrest.serialization import decode_body, encode_body, to_wire


class Status(str, Enum):
    ACTIVE = "active"


@dataclass
class Address:
    street_name: str
    zip_code: str


@dataclass
class Customer:
    first_name: str
    home_address: Address
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, int] = field(default_factory=dict)


class Invoice(BaseModel):
    invoice_id: int
    due_on: date
    status: Status
    external_ref: str | None = Field(default=None, alias="extRef")


class Account(BaseModel):
    user_id: int = Field(alias="userID")
    display_name: str


@dataclass
class LineTotals:
    value_1: int
    line2_total: Decimal


def test_to_wire_applies_naming_policy_to_fields_not_mapping_keys() -> None:
    customer = Customer(
        first_name="Ada",
        home_address=Address(street_name="Main", zip_code="0001"),
        tags=["vip"],
        metadata={"order_count": 3},
    )

    wire = to_wire(customer, encode_key=NamingPolicy.CAMEL_CASE.encode_key)

    assert wire == {
        "firstName": "Ada",
        "homeAddress": {"streetName": "Main", "zipCode": "0001"},
        "tags": ["vip"],
        "metadata": {"order_count": 3},
    }


def test_to_wire_converts_models_enums_and_dates() -> None:
    invoice = Invoice(invoice_id=7, due_on=date(2024, 1, 5), status=Status.ACTIVE, extRef="A-1")

    wire = to_wire(invoice, encode_key=NamingPolicy.CAMEL_CASE.encode_key)

    assert wire == {"invoiceId": 7, "dueOn": "2024-01-05", "status": "active", "extRef": "A-1"}


def test_to_wire_bytes_depend_on_codec() -> None:
    assert to_wire({"blob": b"\x00\x01"}) == {"blob": "AAE="}
    assert to_wire({"blob": b"\x00\x01"}, keep_bytes=True) == {"blob": b"\x00\x01"}


def test_encode_json_uses_settings_and_encoding() -> None:
    settings = JsonSettings(naming_policy=NamingPolicy.PASCAL_CASE, sort_keys=True)

    content = encode_body(Address(street_name="Größe", zip_code="1"), JsonFormat(settings), "utf-16")

    assert json.loads(content.decode("utf-16")) == {"StreetName": "Größe", "ZipCode": "1"}


def test_encode_msgpack_keeps_field_names() -> None:
    content = encode_body(Address(street_name="Main", zip_code="1"), MessagePackFormat(), "utf-8")

    assert msgpack.unpackb(content) == {"street_name": "Main", "zip_code": "1"}


def test_encode_json_rejects_unknown_types() -> None:
    with pytest.raises(TypeError):
        encode_body({"value": object()}, JsonFormat(), "utf-8")


def test_decode_empty_body_returns_none() -> None:
    assert decode_body(b"", JsonFormat(), "utf-8", Customer) is None
    assert decode_body(b"", MessagePackFormat(), "utf-8") is None


def test_decode_json_without_type_returns_plain_data() -> None:
    assert decode_body(b'{"firstName": "Ada"}', JsonFormat(), "utf-8") == {"firstName": "Ada"}


def test_decode_json_into_dataclass_maps_names_back() -> None:
    content = b'{"firstName": "Ada", "homeAddress": {"streetName": "Main", "zipCode": "1"}, "tags": []}'

    customer = decode_body(content, JsonFormat(), "utf-8", Customer)

    assert customer == Customer(first_name="Ada", home_address=Address(street_name="Main", zip_code="1"))


def test_decode_msgpack_into_typed_list() -> None:
    content = msgpack.packb([{"street_name": "Main", "zip_code": "1"}])

    addresses = decode_body(content, MessagePackFormat(), "utf-8", list[Address])

    assert addresses == [Address(street_name="Main", zip_code="1")]


def test_decode_errors_propagate_unchanged() -> None:
    with pytest.raises(json.JSONDecodeError):
        decode_body(b"{not json", JsonFormat(), "utf-8")
    with pytest.raises(ValidationError):
        decode_body(b'{"invoiceId": "x"}', JsonFormat(), "utf-8", Invoice)


def test_datetime_survives_json_round_trip_into_model() -> None:
    class Event(BaseModel):
        occurred_at: datetime

    event = Event(occurred_at=datetime(2024, 1, 5, 10, 30))
    content = encode_body(event, JsonFormat(), "utf-8")

    assert json.loads(content) == {"occurredAt": "2024-01-05T10:30:00"}
    assert decode_body(content, JsonFormat(), "utf-8", Event) == event


def test_decode_json_keeps_keys_of_typed_mappings() -> None:
    content = b'{"fooBar": 1, "HTTPCode": 2}'

    assert decode_body(content, JsonFormat(), "utf-8", dict[str, int]) == {"fooBar": 1, "HTTPCode": 2}


def test_decode_json_keeps_mapping_keys_inside_dataclass() -> None:
    content = (
        b'{"firstName": "Ada", "homeAddress": {"streetName": "Main", "zipCode": "1"}, '
        b'"metadata": {"orderCount": 3}}'
    )

    customer = decode_body(content, JsonFormat(), "utf-8", Customer)

    assert customer.metadata == {"orderCount": 3}


def test_json_round_trip_honours_explicit_alias() -> None:
    account = Account(userID=3, display_name="Ada")
    content = encode_body(account, JsonFormat(), "utf-8")

    assert json.loads(content) == {"userID": 3, "displayName": "Ada"}
    assert decode_body(content, JsonFormat(), "utf-8", Account) == account


def test_json_round_trip_keeps_field_names_with_digits() -> None:
    totals = LineTotals(value_1=1, line2_total=Decimal("2.50"))
    content = encode_body(totals, JsonFormat(), "utf-8")

    assert decode_body(content, JsonFormat(), "utf-8", LineTotals) == totals


def test_decode_json_maps_fields_inside_containers_and_optionals() -> None:
    content = b'[{"userID": 1, "displayName": "Ada"}, null]'

    accounts = decode_body(content, JsonFormat(), "utf-8", list[Account | None])

    assert accounts == [Account(userID=1, display_name="Ada"), None]
