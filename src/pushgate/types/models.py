"""Data models for pushgate.

This module defines immutable dataclasses passed between the frame source,
the delivery coordinator and the error frame codec.
"""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Frame:
    """One encoded gateway message for a single (notification, token) pair.

    The index is dense and global across the whole batch, starting at 0.
    It is also the identifier the gateway echoes back in error frames.
    """

    index: int
    data: bytes
    notification_index: int
    token: str

    def __len__(self) -> int:
        return len(self.data)


@dataclass(slots=True, frozen=True)
class ErrorFrame:
    """Decoded asynchronous error notification sent by the gateway.

    Transient: decoded by the coordinator, applied to the outcome
    accumulator and discarded.
    """

    command: int
    status: int
    index: int
