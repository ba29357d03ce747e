"""Core delivery machinery: frames, error codec, coordinator and result assembly."""

from pushgate.core.assembler import ResultAssemblyError, assemble_results, assign_results
from pushgate.core.codec import (
    ERROR_COMMAND,
    ERROR_FRAME_SIZE,
    ErrorFrameDecodeError,
    decode_error_frame,
    encode_error_frame,
)
from pushgate.core.connection import (
    GatewayConnectionError,
    TLSConnection,
    TLSConnectionProvider,
)
from pushgate.core.coordinator import PushCoordinator
from pushgate.core.frames import build_frames, encode_frame
from pushgate.core.notification import DeliveryResults, Notification
from pushgate.core.status import StatusCode

__all__ = [
    "ERROR_COMMAND",
    "ERROR_FRAME_SIZE",
    "DeliveryResults",
    "ErrorFrameDecodeError",
    "GatewayConnectionError",
    "Notification",
    "PushCoordinator",
    "ResultAssemblyError",
    "StatusCode",
    "TLSConnection",
    "TLSConnectionProvider",
    "assemble_results",
    "assign_results",
    "build_frames",
    "decode_error_frame",
    "encode_error_frame",
    "encode_frame",
]
