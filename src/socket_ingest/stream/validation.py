"""
Record Validation
=================

Accept/reject predicate for candidate frame payloads.

Two modes are supported:

    legacy:
        Payload is accepted if it contains "digit, comma, digit"
        anywhere. This is a substring test, so "x5,3y" or "1,2,3"
        pass. Kept as the default because existing consumers of the
        stored values rely on exactly this acceptance set.

    strict:
        Payload must be exactly "<digits>,<digits>" and the value
        must lie in [0, 1000000). Switching to strict changes which
        frames are stored.

Design Rules:
    - Never raises for malformed payloads
    - Rejections are logged by the caller, not here
"""

import re
from enum import Enum


MAX_VALUE = 1_000_000

_LEGACY_PATTERN = re.compile(r"[0-9],[0-9]")
_STRICT_PATTERN = re.compile(r"([0-9]+),([0-9]+)")


class ValidationMode(str, Enum):
    """Payload validation mode."""

    LEGACY = "legacy"
    STRICT = "strict"


class RecordValidator:
    """
    Validates frame payloads before they become Records.

    Example:
        validator = RecordValidator(ValidationMode.STRICT)
        validator.is_valid("1468009895549670789,397807")  # True
        validator.is_valid("x5,3y")                       # False
    """

    def __init__(self, mode: ValidationMode = ValidationMode.LEGACY) -> None:
        self.mode = ValidationMode(mode)

    def is_valid(self, payload: str) -> bool:
        """Return True if the payload may be emitted as a Record."""
        if self.mode is ValidationMode.LEGACY:
            return _LEGACY_PATTERN.search(payload) is not None

        match = _STRICT_PATTERN.fullmatch(payload)
        if match is None:
            return False
        return int(match.group(2)) < MAX_VALUE

    def __repr__(self) -> str:
        return f"RecordValidator(mode={self.mode.value})"
