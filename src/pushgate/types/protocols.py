"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols for the collaborators of
the delivery coordinator, so that real TLS connections and scripted test
doubles are interchangeable without inheritance.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pushgate.types.models import Frame

if TYPE_CHECKING:
    from pushgate.core.notification import Notification


@runtime_checkable
class Connection(Protocol):
    """Duplex byte stream to the push gateway.

    Exclusively owned by one coordinator between an open and the next
    reopen or close.
    """

    def write(self, data: bytes) -> None:
        """Write a complete frame.

        Raises:
            OSError: If the stream is broken
        """
        ...

    def flush(self) -> None:
        """Push any buffered bytes to the gateway."""
        ...

    def poll_readable(self, timeout: float | None = 0.0) -> bool:
        """Check whether the gateway has sent data.

        Args:
            timeout: Seconds to wait; 0.0 checks without blocking

        Returns:
            True if a read would not block
        """
        ...

    def read_exact(self, size: int) -> bytes:
        """Read ``size`` bytes.

        Returns:
            The bytes read; fewer than ``size`` if the stream ended first
        """
        ...

    def close(self) -> None:
        """Release the underlying socket."""
        ...


class ConnectionProvider(Protocol):
    """Factory for gateway connections."""

    def open(self, certificate: str, sandbox: bool) -> Connection:
        """Open a connection to the production or sandbox gateway.

        Args:
            certificate: PEM encoded certificate and private key
            sandbox: Whether to target the sandbox endpoint

        Returns:
            Connected, handshaken stream

        Raises:
            OSError: If the credential is rejected or the endpoint is unreachable
        """
        ...


class FrameSource(Protocol):
    """Callable flattening a batch of notifications into globally indexed frames."""

    def __call__(self, notifications: Sequence["Notification"]) -> list[Frame]: ...
