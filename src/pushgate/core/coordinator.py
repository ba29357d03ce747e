"""Delivery coordinator for the binary push gateway.

The gateway never acknowledges a frame. It silently accepts good frames and,
on a bad one, sends a single 6-byte error frame naming the failing frame's
identifier before closing the connection. Everything written after that frame
on the same connection is lost and must be resent.

The coordinator therefore writes frames one by one, checks for a pending
error frame after each write, and on error reopens the connection and rewinds
to the frame after the failing one. Every frame ends up with exactly one
outcome, which is then split back into per-notification results.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Final

from pushgate.core.assembler import assign_results
from pushgate.core.codec import (
    ERROR_COMMAND,
    ERROR_FRAME_SIZE,
    ErrorFrameDecodeError,
    decode_error_frame,
)
from pushgate.core.frames import build_frames
from pushgate.core.status import StatusCode
from pushgate.utils.logging import correlation_id_context
from pushgate.utils.sanitization import mask_token, sanitize_exception

if TYPE_CHECKING:
    from collections.abc import Callable

    from pushgate.core.notification import Notification
    from pushgate.types.models import Frame
    from pushgate.types.protocols import Connection, ConnectionProvider, FrameSource

__all__ = ["DEFAULT_GRACE_PERIOD", "DeliveryState", "Phase", "PushCoordinator", "WriteResult"]

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD: Final[float] = 2.0


class Phase(Enum):
    """Phases of the per-frame delivery loop."""

    WRITING = auto()
    AWAITING_ERROR = auto()
    RECONNECTING = auto()
    DONE = auto()


@dataclass(slots=True, frozen=True)
class WriteResult:
    """Outcome of writing one frame to the current connection."""

    error: OSError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class DeliveryState:
    """Mutable state of one push call.

    Invariant: at the start of the WRITING phase ``len(outcomes) == cursor``.
    """

    frames: Sequence[Frame]
    cursor: int = 0
    outcomes: list[StatusCode] = field(default_factory=list)
    connection: Connection | None = None
    phase: Phase = Phase.WRITING
    opens: int = 0
    rewinds: int = 0

    def __post_init__(self) -> None:
        if not self.frames:
            self.phase = Phase.DONE

    @property
    def frame(self) -> Frame:
        return self.frames[self.cursor]

    @property
    def is_last(self) -> bool:
        return self.cursor == len(self.frames) - 1

    def record(self, outcome: StatusCode) -> None:
        """Record the outcome of the frame under the cursor."""
        self.outcomes.append(outcome)

    def rewind(self, failing_index: int, status: StatusCode) -> None:
        """Discard outcomes from ``failing_index`` on and mark that frame failed."""
        del self.outcomes[failing_index:]
        self.outcomes.append(status)
        self.cursor = failing_index
        self.rewinds += 1

    def advance(self) -> None:
        self.cursor += 1
        self.phase = Phase.DONE if self.cursor >= len(self.frames) else Phase.WRITING


class PushCoordinator:
    """Pushes batches of notifications over reopenable gateway connections.

    Not reentrant: callers must serialize ``push`` calls per
    certificate/sandbox pair.
    """

    def __init__(
        self,
        certificate: str,
        sandbox: bool,
        *,
        provider: ConnectionProvider,
        frame_source: FrameSource = build_frames,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ) -> None:
        """Initialize the coordinator.

        Args:
            certificate: PEM encoded certificate and private key
            sandbox: Whether the certificate targets the sandbox gateway
            provider: Factory opening gateway connections
            frame_source: Callable flattening a batch into indexed frames
            grace_period: Seconds to wait for a trailing error after the last frame

        Raises:
            ValueError: If ``grace_period`` is not positive
        """
        if grace_period <= 0:
            msg = f"Grace period must be greater than 0, got: {grace_period}"
            raise ValueError(msg)

        self.certificate: str = certificate
        self.sandbox: bool = sandbox
        self.provider: ConnectionProvider = provider
        self.frame_source: FrameSource = frame_source
        self.grace_period: float = grace_period
        self._handlers: dict[Phase, Callable[[DeliveryState], None]] = {
            Phase.WRITING: self._write_frame,
            Phase.AWAITING_ERROR: self._await_error,
            Phase.RECONNECTING: self._reconnect,
        }

    def push(self, notifications: Sequence[Notification]) -> None:
        """Push all notifications and assign each its delivery results.

        Never raises for gateway error frames or connection faults: those end
        up as non-success outcomes on the affected notifications.

        Args:
            notifications: Batch to deliver, each with at least one token
        """
        with correlation_id_context():
            frames = self.frame_source(notifications)
            state = DeliveryState(frames=frames)

            logger.info(
                "Pushing %d frames for %d notifications (sandbox=%s)",
                len(frames),
                len(notifications),
                self.sandbox,
            )

            if frames:
                state.connection = self._open(state)

            while state.phase is not Phase.DONE:
                self._handlers[state.phase](state)

            self._close(state)
            assign_results(notifications, state.outcomes)

            failed = sum(1 for outcome in state.outcomes if not outcome.is_success)
            logger.info(
                "Push finished: %d frames, %d failed, %d connections opened, %d rewinds",
                len(frames),
                failed,
                state.opens,
                state.rewinds,
            )

    def _write_frame(self, state: DeliveryState) -> None:
        result = self._try_write(state)
        if result.ok:
            state.phase = Phase.AWAITING_ERROR
            return

        logger.warning(
            "Gateway connection write error on frame %d: %s",
            state.cursor,
            result.error,
        )
        state.record(StatusCode.UNKNOWN)
        state.phase = Phase.RECONNECTING

    def _try_write(self, state: DeliveryState) -> WriteResult:
        if state.connection is None:
            return WriteResult(ConnectionError("No open gateway connection"))
        try:
            state.connection.write(state.frame.data)
        except OSError as exc:
            return WriteResult(exc)
        return WriteResult()

    def _await_error(self, state: DeliveryState) -> None:
        connection = state.connection
        assert connection is not None

        try:
            if state.is_last:
                # No later write will reveal an error, so give the gateway time to answer.
                connection.flush()
                readable = connection.poll_readable(self.grace_period)
            else:
                readable = connection.poll_readable(0.0)

            if not readable:
                state.record(StatusCode.NO_ERROR)
                state.advance()
                return

            data = connection.read_exact(ERROR_FRAME_SIZE)
        except OSError as exc:
            logger.warning("Gateway connection read error after frame %d: %s", state.cursor, exc)
            state.record(StatusCode.UNKNOWN)
            state.phase = Phase.RECONNECTING
            return

        try:
            error = decode_error_frame(data)
        except ErrorFrameDecodeError as exc:
            if state.cursor == 0 and not data:
                logger.error(
                    "Gateway closed the connection before the first frame was accepted; "
                    "check the certificate and sandbox setting"
                )
            else:
                logger.warning("Unreadable error response after frame %d: %s", state.cursor, exc)
            state.record(StatusCode.UNKNOWN)
            state.phase = Phase.RECONNECTING
            return

        if error.index > state.cursor:
            logger.warning(
                "Gateway reported failing frame %d which was never written (cursor=%d)",
                error.index,
                state.cursor,
            )
            state.record(StatusCode.UNKNOWN)
            state.phase = Phase.RECONNECTING
            return

        if error.command != ERROR_COMMAND:
            logger.warning("Unexpected error frame command %d from gateway", error.command)

        status = StatusCode.from_wire(error.status)
        logger.warning(
            "Gateway rejected frame %d for token %s (%s); resending from frame %d",
            error.index,
            mask_token(state.frames[error.index].token),
            status.description,
            error.index + 1,
        )
        state.rewind(error.index, status)
        state.phase = Phase.RECONNECTING

    def _reconnect(self, state: DeliveryState) -> None:
        self._close(state)
        state.connection = self._open(state)
        state.advance()

    def _open(self, state: DeliveryState) -> Connection | None:
        try:
            connection = self.provider.open(self.certificate, self.sandbox)
        except OSError as exc:
            logger.error("Could not open gateway connection: %s", sanitize_exception(exc))
            return None
        state.opens += 1
        logger.debug("Opened gateway connection #%d", state.opens)
        return connection

    def _close(self, state: DeliveryState) -> None:
        connection, state.connection = state.connection, None
        if connection is None:
            return
        try:
            connection.close()
        except OSError as exc:
            logger.debug("Ignoring error while closing gateway connection: %s", exc)
