"""Scripted gateway doubles implementing the Connection and ConnectionProvider protocols."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from pushgate.core.codec import encode_error_frame
from pushgate.core.connection import GatewayConnectionError
from pushgate.core.notification import Notification
from pushgate.core.status import StatusCode


def make_token(seed: int) -> str:
    """Return a deterministic 64-character hex device token."""
    return f"{seed:064x}"


def single_token_batch(size: int, data: dict[str, object] | None = None) -> list[Notification]:
    """Build ``size`` notifications with one distinct token each."""
    payload: dict[str, object] = data if data is not None else {"a": 1}
    return [Notification(tokens=[make_token(i)], data=payload) for i in range(size)]


def error_response(status: StatusCode | int, index: int) -> bytes:
    return encode_error_frame(int(status), index)


@dataclass
class ScriptedGateway:
    """Connection provider whose connections follow a shared script.

    ``readiness`` answers successive ``poll_readable`` calls across all
    connections (False once exhausted). ``responses`` feeds successive
    ``read_exact`` calls (empty bytes once exhausted). ``write_faults`` holds
    0-based write attempt numbers that raise ``BrokenPipeError``.
    ``open_faults`` makes that many leading ``open`` calls fail.
    """

    readiness: list[bool] = field(default_factory=list)
    responses: list[bytes] = field(default_factory=list)
    write_faults: set[int] = field(default_factory=set)
    read_faults: set[int] = field(default_factory=set)
    open_faults: int = 0
    open_calls: list[tuple[str, bool]] = field(default_factory=list)
    connections: list[ScriptedConnection] = field(default_factory=list)
    poll_timeouts: list[float | None] = field(default_factory=list)
    write_attempts: int = 0
    read_attempts: int = 0

    @property
    def opens(self) -> int:
        return len(self.open_calls)

    @property
    def written(self) -> list[bytes]:
        """Every successfully written frame, across connections, in order."""
        return [data for connection in self.connections for data in connection.written]

    def open(self, certificate: str, sandbox: bool) -> ScriptedConnection:
        self.open_calls.append((certificate, sandbox))
        if self.open_faults > 0:
            self.open_faults -= 1
            raise GatewayConnectionError("Connection refused")
        connection = ScriptedConnection(self)
        self.connections.append(connection)
        return connection


class ScriptedConnection:
    """One connection handed out by a ScriptedGateway."""

    def __init__(self, gateway: ScriptedGateway) -> None:
        self.gateway: ScriptedGateway = gateway
        self.written: list[bytes] = []
        self.flushes: int = 0
        self.closed: bool = False

    def write(self, data: bytes) -> None:
        attempt = self.gateway.write_attempts
        self.gateway.write_attempts += 1
        if self.closed:
            raise BrokenPipeError("write on closed connection")
        if attempt in self.gateway.write_faults:
            raise BrokenPipeError(f"scripted write fault #{attempt}")
        self.written.append(data)

    def flush(self) -> None:
        self.flushes += 1

    def poll_readable(self, timeout: float | None = 0.0) -> bool:
        self.gateway.poll_timeouts.append(timeout)
        if self.gateway.readiness:
            return self.gateway.readiness.pop(0)
        return False

    def read_exact(self, size: int) -> bytes:
        attempt = self.gateway.read_attempts
        self.gateway.read_attempts += 1
        if attempt in self.gateway.read_faults:
            raise ConnectionResetError(f"scripted read fault #{attempt}")
        if self.gateway.responses:
            return self.gateway.responses.pop(0)[:size]
        return b""

    def close(self) -> None:
        self.closed = True


def outcomes_of(notifications: Iterable[Notification]) -> list[list[StatusCode]]:
    """Per-notification outcome lists, failing loudly if a push left one unset."""
    collected: list[list[StatusCode]] = []
    for notification in notifications:
        assert notification.results is not None
        collected.append(list(notification.results))
    return collected
