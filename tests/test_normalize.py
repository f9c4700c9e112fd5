from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest
from bson import ObjectId
from pydantic import ValidationError

from pytankctl.models import SlaveRequest
from pytankctl.normalize import normalize_document, slave_reply_data

INSERTED = datetime(2026, 3, 1, 8, 30, tzinfo=UTC)


def _request(**overrides: Any) -> SlaveRequest:
    body = {
        "deviceid": "D1",
        "sensor_no": 2,
        "channel": "4",
        "address_l": "10",
        "address_h": "0",
        **overrides,
    }
    return SlaveRequest.model_validate(body)


def test_object_id_becomes_string() -> None:
    oid = ObjectId("65f1c0ffee0000000000abcd")
    doc = {"_id": oid, "thingid": "T1", "nested": {"a": 1}}

    normalized = normalize_document(doc)

    assert normalized == {"_id": "65f1c0ffee0000000000abcd", "thingid": "T1", "nested": {"a": 1}}
    assert doc["_id"] is oid


def test_normalize_is_idempotent() -> None:
    once = normalize_document({"_id": ObjectId(), "inserted_at": INSERTED})

    assert normalize_document(once) == once


def test_document_without_id_passes_through() -> None:
    assert normalize_document({"thingid": "T1"}) == {"thingid": "T1"}


def test_reply_fields_win_over_request() -> None:
    doc = {
        "_id": ObjectId(),
        "deviceid": "D1",
        "thingid": "T1",
        "inserted_at": INSERTED,
        "response_data": {
            "status": "ok",
            "channel": "7",
            "address_l": "11",
            "address_h": "1",
            "sensor_no": 3,
            "slaveid": "S9",
        },
    }

    data = slave_reply_data(doc, _request())

    assert data.to_dict() == {
        "status": "ok",
        "deviceid": "D1",
        "thingid": "T1",
        "channel": 7,
        "address_l": "11",
        "address_h": "1",
        "sensor_no": 3,
        "slaveid": "S9",
        "timestamp": "2026-03-01T08:30:00Z",
    }


def test_missing_reply_fields_fall_back_to_request() -> None:
    doc = {"thingid": "T1", "inserted_at": INSERTED, "response_data": {}}

    data = slave_reply_data(doc, _request())

    assert data.status == "success"
    assert data.channel == 4
    assert data.address_l == "10"
    assert data.address_h == "0"
    assert data.sensor_no == 2
    assert data.slave_id is None


def test_legacy_reply_spellings_are_recognised() -> None:
    doc = {
        "thingId": "T1",
        "inserted_at": INSERTED.isoformat(),
        "response_data": {"addressLow": "12", "addressHigh": "2", "sensorIndex": "5", "slaveId": 4},
    }

    data = slave_reply_data(doc, _request())

    assert data.thing_id == "T1"
    assert (data.address_l, data.address_h, data.sensor_no, data.slave_id) == ("12", "2", "5", 4)
    assert data.timestamp == INSERTED


def test_placeholder_reply_values_use_request_values() -> None:
    doc = {"thingid": "T1", "response_data": {"channel": "--", "status": ""}}

    data = slave_reply_data(doc, _request(channel=9))

    assert data.channel == 9
    assert data.status == "success"


def test_payload_stored_as_json_text_is_parsed() -> None:
    doc = {"thingid": "T1", "inserted_at": INSERTED, "response_data": '{"status": "ok", "channel": 6}'}

    data = slave_reply_data(doc, _request())

    assert data.status == "ok"
    assert data.channel == 6
    assert data.address_l == "10"


@pytest.mark.parametrize("payload", ["garbage", 42, ["status", "ok"]])
def test_non_object_payload_falls_back_to_request(payload: Any) -> None:
    data = slave_reply_data({"thingid": "T1", "response_data": payload}, _request())

    assert data.status == "success"
    assert data.channel == 4
    assert data.sensor_no == 2


def test_unusable_timestamp_keeps_reply() -> None:
    doc = {"thingid": "T1", "inserted_at": [INSERTED], "response_data": {"status": "ok"}}

    data = slave_reply_data(doc, _request())

    assert data.status == "ok"
    assert data.timestamp is None


def test_malformed_reply_raises_validation_error() -> None:
    with pytest.raises(ValidationError):
        slave_reply_data({"thingid": ["T1", "T2"]}, _request())
