"""Frame encoding and batch linearization.

Each (notification, token) pair becomes one command-2 frame:

    command (B) = 2 | frame length (I) | item*

and each item is ``item id (B) | item length (H) | item data``:

    1 : device token (binary)
    2 : JSON payload (UTF-8)
    3 : notification identifier (I), the global frame index
    4 : expiration date (I), unix seconds, 0 for "do not store"
    5 : priority (B), 10 immediate or 5 power-conserving

All integers are big-endian.
"""

from __future__ import annotations

import json
import struct
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Final

from pushgate.types.models import Frame

if TYPE_CHECKING:
    from pushgate.core.notification import Notification

__all__ = [
    "FRAME_COMMAND",
    "build_frames",
    "encode_frame",
    "encode_payload",
]

FRAME_COMMAND: Final[int] = 2

_HEADER: Final[struct.Struct] = struct.Struct(">BI")
_ITEM_HEADER: Final[struct.Struct] = struct.Struct(">BH")

_TOKEN_ITEM: Final[int] = 1
_PAYLOAD_ITEM: Final[int] = 2
_IDENTIFIER_ITEM: Final[int] = 3
_EXPIRY_ITEM: Final[int] = 4
_PRIORITY_ITEM: Final[int] = 5


def encode_payload(data: Mapping[str, object]) -> bytes:
    """Serialize a payload mapping to compact UTF-8 JSON."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _item(item_id: int, value: bytes) -> bytes:
    return _ITEM_HEADER.pack(item_id, len(value)) + value


def encode_frame(
    token: str,
    payload: bytes,
    identifier: int,
    *,
    expiry: int = 0,
    priority: int = 10,
) -> bytes:
    """Encode a single gateway frame.

    Args:
        token: Hex encoded device token
        payload: Serialized JSON payload
        identifier: Global frame index echoed back in error frames
        expiry: Expiration date in unix seconds
        priority: Delivery priority

    Returns:
        Complete frame bytes, header included

    Raises:
        ValueError: If ``token`` is not valid hex
    """
    items = b"".join(
        (
            _item(_TOKEN_ITEM, bytes.fromhex(token)),
            _item(_PAYLOAD_ITEM, payload),
            _item(_IDENTIFIER_ITEM, struct.pack(">I", identifier)),
            _item(_EXPIRY_ITEM, struct.pack(">I", expiry)),
            _item(_PRIORITY_ITEM, struct.pack(">B", priority)),
        )
    )
    return _HEADER.pack(FRAME_COMMAND, len(items)) + items


def build_frames(notifications: Sequence[Notification]) -> list[Frame]:
    """Flatten a batch into one globally ordered frame sequence.

    Frames are numbered densely from 0 across the whole batch, in batch
    order and token order within each notification.

    Args:
        notifications: Batch to linearize

    Returns:
        Frames whose ``index`` equals their position in the list
    """
    frames: list[Frame] = []
    for position, notification in enumerate(notifications):
        for index, token, data in notification.frames(len(frames)):
            frames.append(
                Frame(
                    index=index,
                    data=data,
                    notification_index=position,
                    token=token,
                )
            )
    return frames
