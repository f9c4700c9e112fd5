"""Tests for model parsing with TankCtlBaseModel and alias choices."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pytankctl.models import (
    ControlRequest,
    DeviceRecord,
    DeviceType,
    ResponseCheck,
    SlaveRequest,
    SlaveRequestResult,
    Space,
    parse_store_timestamp,
    safe_int,
)

# ------------------------------------------------------------------
# Coercion helpers
# ------------------------------------------------------------------


class TestSafeInt:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(5, 5), ("12", 12), ("12.7", 12), (3.9, 3), (" 4 ", 4), ("abc", None), (None, None), (True, None)],
    )
    def test_values(self, value: object, expected: int | None) -> None:
        assert safe_int(value) == expected

    def test_nan_is_none(self) -> None:
        assert safe_int(float("nan")) is None


class TestParseStoreTimestamp:
    def test_naive_datetime_assumed_utc(self) -> None:
        assert parse_store_timestamp(datetime(2026, 1, 1)) == datetime(2026, 1, 1, tzinfo=UTC)

    def test_epoch_milliseconds(self) -> None:
        assert parse_store_timestamp(1_767_225_600_000) == datetime(2026, 1, 1, tzinfo=UTC)

    def test_iso_string_with_z(self) -> None:
        assert parse_store_timestamp("2026-01-01T00:00:00Z") == datetime(2026, 1, 1, tzinfo=UTC)

    @pytest.mark.parametrize("value", [[datetime(2026, 1, 1)], {"$date": 1}, "yesterday", True, float("nan"), 10**20])
    def test_unusable_values_are_none(self, value: object) -> None:
        assert parse_store_timestamp(value) is None


# ------------------------------------------------------------------
# SlaveRequest
# ------------------------------------------------------------------


class TestSlaveRequest:
    def test_mobile_app_body(self) -> None:
        req = SlaveRequest.model_validate(
            {
                "deviceid": "D1",
                "sensor_no": "2",
                "mode": "1",
                "channel": "4",
                "address_l": "10",
                "address_h": "0",
                "range": "200.5",
                "capacity": "1000",
                "slaveid": "S1",
            }
        )

        assert req.command_payload() == {
            "deviceid": "D1",
            "sensor_no": "2",
            "mode": 1,
            "channel": 4,
            "address_l": "10",
            "address_h": "0",
            "range": 200,
            "capacity": 1000,
            "slaveid": "S1",
        }

    def test_newer_client_spellings(self) -> None:
        req = SlaveRequest.model_validate(
            {"deviceId": "D1", "sensorIndex": 3, "addressLow": "1", "addressHigh": "2", "slaveId": 7}
        )

        assert req.device_id == "D1"
        assert req.sensor_no == 3
        assert (req.address_l, req.address_h, req.slave_id) == ("1", "2", 7)

    @pytest.mark.parametrize("mode", [None, 0, "0", "fast", ""])
    def test_mode_defaults_to_three(self, mode: object) -> None:
        req = SlaveRequest.model_validate({"deviceid": "D1", "sensor_no": 1, "mode": mode})
        assert req.mode == 3

    def test_invalid_numbers_become_none(self) -> None:
        req = SlaveRequest.model_validate({"deviceid": "D1", "sensor_no": 1, "channel": "x", "range": "--"})

        assert req.channel is None
        assert req.range is None
        assert req.capacity is None

    def test_slave_id_omitted_when_empty(self) -> None:
        req = SlaveRequest.model_validate({"deviceid": "D1", "sensor_no": 1, "slaveid": ""})
        assert "slaveid" not in req.command_payload()

    def test_sensor_zero_is_accepted(self) -> None:
        assert SlaveRequest.model_validate({"deviceid": "D1", "sensor_no": 0}).sensor_no == 0

    @pytest.mark.parametrize(
        "body",
        [{"deviceid": "D1"}, {"deviceid": "D1", "sensor_no": ""}, {"sensor_no": 1}, {"deviceid": "", "sensor_no": 1}],
        ids=["no-sensor", "empty-sensor", "no-device", "empty-device"],
    )
    def test_required_fields(self, body: dict) -> None:
        with pytest.raises(ValidationError):
            SlaveRequest.model_validate(body)


class TestControlRequest:
    def test_payload_is_body_unchanged(self) -> None:
        body = {"deviceid": "D1", "pump": "on", "level": 40}
        assert ControlRequest.model_validate(body).command_payload() == body

    def test_device_id_required(self) -> None:
        with pytest.raises(ValidationError):
            ControlRequest.model_validate({"pump": "on"})


# ------------------------------------------------------------------
# Device hierarchy
# ------------------------------------------------------------------


class TestDeviceRecord:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("base", DeviceType.BASE), ("TANK", DeviceType.TANK), ("gateway", DeviceType.OTHER), (7, DeviceType.OTHER)],
    )
    def test_device_type(self, raw: object, expected: DeviceType) -> None:
        assert DeviceRecord.model_validate({"device_id": "X", "device_type": raw}).device_type is expected

    def test_missing_type_is_other(self) -> None:
        record = DeviceRecord.model_validate({"device_id": "X"})
        assert not record.is_base
        assert not record.is_tank

    def test_record_without_id_still_parses(self) -> None:
        space = Space.model_validate(
            {"devices": [{"device_type": "tank"}, {"device_id": "B1", "device_type": "base"}]}
        )

        assert space.find_device("B1", DeviceType.BASE) is not None
        assert space.find_device("B1", DeviceType.TANK) is None


# ------------------------------------------------------------------
# Results
# ------------------------------------------------------------------


class TestResults:
    def test_response_check_wire_shape(self) -> None:
        check = ResponseCheck(responded=False, message="Base did not respond.")
        assert check.to_dict() == {"success": False, "message": "Base did not respond."}

    def test_slave_request_result_without_reply(self) -> None:
        result = SlaveRequestResult(message="Published but no response received")

        assert not result.replied
        assert result.to_dict() == {"success": True, "message": "Published but no response received", "data": None}


class TestRawPayload:
    def test_caller_field_named_raw_is_forwarded_like_any_other(self) -> None:
        body = {"deviceid": "D1", "cmd": "pump_on", "raw": {"x": 1}}

        assert ControlRequest.model_validate(body).command_payload() == body

    def test_non_dict_raw_field_does_not_invalidate_request(self) -> None:
        req = ControlRequest.model_validate({"deviceid": "D1", "raw": "0x01"})

        assert req.device_id == "D1"
        assert req.command_payload() == {"deviceid": "D1", "raw": "0x01"}

    def test_raw_keeps_placeholder_values(self) -> None:
        req = SlaveRequest.model_validate({"deviceid": "D1", "sensor_no": 1, "channel": "--"})

        assert req.channel is None
        assert req.raw["channel"] == "--"
