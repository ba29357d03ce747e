"""Gateway status codes used as per-frame delivery outcomes."""

from __future__ import annotations

from enum import IntEnum
from typing import override


class StatusCode(IntEnum):
    """Outcome of a single frame.

    Values 0-10 are defined by the gateway protocol. ``UNKNOWN`` is assigned
    locally when a connection-level fault leaves the true outcome undetermined;
    the gateway itself also uses 255 for unspecified errors.
    """

    NO_ERROR = 0
    PROCESSING_ERROR = 1
    MISSING_DEVICE_TOKEN = 2
    MISSING_TOPIC = 3
    MISSING_PAYLOAD = 4
    INVALID_TOKEN_SIZE = 5
    INVALID_TOPIC_SIZE = 6
    INVALID_PAYLOAD_SIZE = 7
    INVALID_TOKEN = 8
    SHUTDOWN = 10
    UNKNOWN = 255

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def is_success(self) -> bool:
        return self is StatusCode.NO_ERROR

    @classmethod
    def from_wire(cls, value: int) -> StatusCode:
        """Map a raw status byte onto the enumeration.

        The error frame carries the status as a signed byte, so 255 arrives
        as -1. Values the protocol does not define map to ``UNKNOWN``.
        """
        value &= 0xFF
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @override
    def __str__(self) -> str:
        return self.name


_DESCRIPTIONS: dict[StatusCode, str] = {
    StatusCode.NO_ERROR: "No errors encountered",
    StatusCode.PROCESSING_ERROR: "Processing error",
    StatusCode.MISSING_DEVICE_TOKEN: "Missing device token",
    StatusCode.MISSING_TOPIC: "Missing topic",
    StatusCode.MISSING_PAYLOAD: "Missing payload",
    StatusCode.INVALID_TOKEN_SIZE: "Invalid token size",
    StatusCode.INVALID_TOPIC_SIZE: "Invalid topic size",
    StatusCode.INVALID_PAYLOAD_SIZE: "Invalid payload size",
    StatusCode.INVALID_TOKEN: "Invalid token",
    StatusCode.SHUTDOWN: "Gateway shutdown",
    StatusCode.UNKNOWN: "Unknown error",
}
