"""Tests for the audit action and target type vocabularies."""

import pytest

from stationtrack.core.audit import audited
from stationtrack.core.audit.vocabulary import (
    AuditAction,
    TargetType,
    custom_action,
    custom_target_type,
    normalize_action,
    normalize_target_type,
)


class TestBuiltInVocabulary:
    """Tests for the enumerated codes."""

    def test_actions_are_stored_by_value(self):
        assert normalize_action(AuditAction.STATION_CREATED) == "STATION_CREATED"

    def test_target_types_are_stored_by_value(self):
        assert normalize_target_type(TargetType.BACKUP_REMINDER) == "BackupReminder"

    def test_every_action_is_upper_snake_case(self):
        for action in AuditAction:
            assert custom_action(action.value) == action.value

    def test_every_target_type_is_pascal_case(self):
        for target_type in TargetType:
            assert custom_target_type(target_type.value) == target_type.value

    def test_known_action_string_is_accepted(self):
        """Plain strings are validated, not looked up."""
        assert normalize_action("USER_LOGIN") == "USER_LOGIN"


class TestCustomCodes:
    """Tests for codes outside the built-in vocabulary."""

    def test_custom_action_accepted(self):
        assert custom_action("FIRMWARE_FLASHED") == "FIRMWARE_FLASHED"

    def test_custom_target_type_accepted(self):
        assert custom_target_type("Firmware") == "Firmware"

    @pytest.mark.parametrize(
        "code",
        ["", "station_created", "Station_Created", "_CREATED", "CREATED_", "A__B", "A-B"],
    )
    def test_malformed_action_rejected(self, code):
        with pytest.raises(ValueError):
            custom_action(code)

    @pytest.mark.parametrize("code", ["", "station", "Back up", "1Station", "Station_1"])
    def test_malformed_target_type_rejected(self, code):
        with pytest.raises(ValueError):
            custom_target_type(code)

    def test_overlong_action_rejected(self):
        with pytest.raises(ValueError):
            custom_action("A" * 101)

    def test_overlong_target_type_rejected(self):
        with pytest.raises(ValueError):
            custom_target_type("T" + "a" * 50)

    def test_decorator_rejects_malformed_code_at_definition(self):
        """A bad code fails when the endpoint is decorated, not when called."""
        with pytest.raises(ValueError):

            @audited("station created", TargetType.STATION)
            async def endpoint() -> None:
                pass

    def test_decorator_marks_endpoint(self):
        @audited("FIRMWARE_FLASHED", "Firmware", path_params=["device_id"])
        async def endpoint() -> None:
            pass

        spec = endpoint.__audit__
        assert spec.action == "FIRMWARE_FLASHED"
        assert spec.target_type == "Firmware"
        assert spec.path_params == ("device_id",)
