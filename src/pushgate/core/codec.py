"""Codec for the gateway's asynchronous error frame.

Wire layout (6 bytes):
0   : command (signed byte, always 8)
1   : status code (signed byte)
2-5 : identifier of the failing frame (u32, big-endian)
"""

from __future__ import annotations

import struct
from typing import Final

from pushgate.types.models import ErrorFrame

__all__ = [
    "ERROR_COMMAND",
    "ERROR_FRAME_SIZE",
    "ErrorFrameDecodeError",
    "decode_error_frame",
    "encode_error_frame",
]

_ERROR_STRUCT: Final[struct.Struct] = struct.Struct(">bbI")

ERROR_FRAME_SIZE: Final[int] = _ERROR_STRUCT.size
ERROR_COMMAND: Final[int] = 8


class ErrorFrameDecodeError(ValueError):
    """Raised when the gateway sent something that is not a 6-byte error frame."""

    def __init__(self, data: bytes) -> None:
        super().__init__(f"Expected {ERROR_FRAME_SIZE} bytes for an error frame, got {len(data)}")
        self.data: bytes = data


def decode_error_frame(data: bytes) -> ErrorFrame:
    """Decode a raw error frame.

    Args:
        data: Bytes read from the gateway

    Returns:
        Parsed (command, status, failing index)

    Raises:
        ErrorFrameDecodeError: If ``data`` is not exactly 6 bytes long

    Examples:
        >>> decode_error_frame(b"\\x08\\x01\\x00\\x00\\x00\\x02")
        ErrorFrame(command=8, status=1, index=2)
    """
    if len(data) != ERROR_FRAME_SIZE:
        raise ErrorFrameDecodeError(data)
    command, status, index = _ERROR_STRUCT.unpack(data)
    return ErrorFrame(command=command, status=status, index=index)


def encode_error_frame(status: int, index: int, *, command: int = ERROR_COMMAND) -> bytes:
    """Build an error frame as the gateway would send it."""
    # Status codes above 127 travel as negative signed bytes.
    signed_status = status - 256 if status > 127 else status
    return _ERROR_STRUCT.pack(command, signed_status, index)
