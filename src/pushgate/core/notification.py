"""Notification and per-notification delivery results."""

from __future__ import annotations

import string
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Final, overload, override

from pushgate.core.frames import encode_frame, encode_payload
from pushgate.core.status import StatusCode

__all__ = ["MAX_EXPIRY", "DeliveryResults", "Notification", "validate_token"]

_HEX_DIGITS = frozenset(string.hexdigits)

# Expiry travels as an unsigned 32-bit item.
MAX_EXPIRY: Final[int] = 2**32 - 1


def validate_token(token: str) -> str:
    """Normalize a device token and check it encodes to binary.

    Raises:
        ValueError: If the token is empty, of odd length or not hex
    """
    token = token.strip()
    if not token or len(token) % 2 or not _HEX_DIGITS.issuperset(token):
        msg = f"Device token must be a non-empty, even-length hex string, got {len(token)} chars"
        raise ValueError(msg)
    return token


@dataclass(slots=True, frozen=True)
class DeliveryResults(Sequence[StatusCode]):
    """Outcome of every token of one notification, in token order."""

    outcomes: tuple[StatusCode, ...]

    @property
    def individual_results(self) -> tuple[StatusCode, ...]:
        return self.outcomes

    @property
    def success(self) -> int:
        """Number of tokens the gateway accepted."""
        return sum(1 for outcome in self.outcomes if outcome.is_success)

    @property
    def failed(self) -> int:
        """Number of tokens rejected or left in an unknown state."""
        return len(self.outcomes) - self.success

    @overload
    def __getitem__(self, index: int) -> StatusCode: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[StatusCode, ...]: ...

    @override
    def __getitem__(self, index: int | slice) -> StatusCode | tuple[StatusCode, ...]:
        return self.outcomes[index]

    @override
    def __len__(self) -> int:
        return len(self.outcomes)

    @override
    def __iter__(self) -> Iterator[StatusCode]:
        return iter(self.outcomes)


@dataclass(slots=True)
class Notification:
    """A payload addressed to one or more device tokens.

    ``results`` stays ``None`` until a push completes, then holds exactly one
    outcome per token.
    """

    tokens: Sequence[str]
    data: Mapping[str, object]
    expiry: int = 0
    priority: int = 10
    results: DeliveryResults | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        self.tokens = tuple(validate_token(token) for token in self.tokens)
        if not self.tokens:
            msg = "A notification needs at least one destination token"
            raise ValueError(msg)
        if not 0 <= self.expiry <= MAX_EXPIRY:
            msg = f"Expiry must be between 0 and {MAX_EXPIRY}, got: {self.expiry}"
            raise ValueError(msg)
        if self.priority not in (5, 10):
            msg = f"Priority must be 5 or 10, got: {self.priority}"
            raise ValueError(msg)

    @property
    def count(self) -> int:
        """Number of frames this notification contributes to a batch."""
        return len(self.tokens)

    def frames(self, start_index: int) -> Iterator[tuple[int, str, bytes]]:
        """Encode one frame per token.

        Args:
            start_index: Global index of this notification's first frame

        Yields:
            (global index, token, frame bytes) in token order
        """
        payload = encode_payload(self.data)
        for offset, token in enumerate(self.tokens):
            index = start_index + offset
            yield index, token, encode_frame(
                token,
                payload,
                index,
                expiry=self.expiry,
                priority=self.priority,
            )
