"""Type definitions and protocols for pushgate.

This package provides:
- Data models (immutable dataclasses)
- Protocol definitions (structural subtyping interfaces)
"""

from pushgate.types.models import ErrorFrame, Frame
from pushgate.types.protocols import Connection, ConnectionProvider, FrameSource

__all__ = [
    # Data models
    "ErrorFrame",
    "Frame",
    # Protocols
    "Connection",
    "ConnectionProvider",
    "FrameSource",
]
