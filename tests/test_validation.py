"""
Record Validator Tests
======================
"""

import pytest

from socket_ingest.stream.validation import MAX_VALUE, RecordValidator, ValidationMode


class TestLegacyValidation:
    """Substring test: payload must contain digit, comma, digit."""

    @pytest.fixture
    def validator(self):
        return RecordValidator()

    def test_default_mode_is_legacy(self, validator):
        assert validator.mode is ValidationMode.LEGACY

    @pytest.mark.parametrize("payload", [
        "5,3",
        "1468009895549670789,397807",
        "0,0",
    ])
    def test_well_formed_payloads_accepted(self, validator, payload):
        assert validator.is_valid(payload)

    @pytest.mark.parametrize("payload", [
        "",
        "abc",
        "5,",
        ",3",
        "5 ,3",
        "1468009895549670789;397807",
    ])
    def test_payloads_without_triplet_rejected(self, validator, payload):
        assert not validator.is_valid(payload)

    @pytest.mark.parametrize("payload", [
        "x5,3y",
        "1,2,3",
        "-1,2",
        "1,9999999",
        "garbage 7,8 garbage",
    ])
    def test_known_weak_acceptance(self, validator, payload):
        # The substring test accepts these; downstream consumers depend on it
        assert validator.is_valid(payload)


class TestStrictValidation:
    """Full match: <digits>,<digits> with value below MAX_VALUE."""

    @pytest.fixture
    def validator(self):
        return RecordValidator(ValidationMode.STRICT)

    @pytest.mark.parametrize("payload", [
        "5,3",
        "1468009895549670789,397807",
        f"1,{MAX_VALUE - 1}",
    ])
    def test_well_formed_payloads_accepted(self, validator, payload):
        assert validator.is_valid(payload)

    @pytest.mark.parametrize("payload", [
        "",
        "abc",
        "x5,3y",
        "1,2,3",
        "-1,2",
        " 1,2",
        f"1,{MAX_VALUE}",
        "1,2\n",
    ])
    def test_malformed_payloads_rejected(self, validator, payload):
        assert not validator.is_valid(payload)


def test_mode_accepts_string_value():
    assert RecordValidator("strict").mode is ValidationMode.STRICT


def test_unknown_mode_raises():
    with pytest.raises(ValueError):
        RecordValidator("lenient")
