"""Reassembly of flat per-frame outcomes into per-notification results."""

from __future__ import annotations

from collections.abc import Sequence

from pushgate.core.notification import DeliveryResults, Notification
from pushgate.core.status import StatusCode

__all__ = ["ResultAssemblyError", "assemble_results", "assign_results"]


class ResultAssemblyError(ValueError):
    """Raised when frame counts do not partition the outcome sequence."""


def assemble_results(
    outcomes: Sequence[StatusCode],
    counts: Sequence[int],
) -> list[DeliveryResults]:
    """Partition outcomes into consecutive chunks of the given sizes.

    Args:
        outcomes: One outcome per frame, in frame order
        counts: Frames contributed by each notification, in batch order

    Returns:
        One DeliveryResults per count, in the same order

    Raises:
        ResultAssemblyError: If a count is negative or the counts do not sum
            to the number of outcomes
    """
    if any(count < 0 for count in counts):
        msg = f"Frame counts must be non-negative, got: {list(counts)}"
        raise ResultAssemblyError(msg)

    total = sum(counts)
    if total != len(outcomes):
        msg = f"Notifications account for {total} frames but {len(outcomes)} outcomes were recorded"
        raise ResultAssemblyError(msg)

    results: list[DeliveryResults] = []
    offset = 0
    for count in counts:
        results.append(DeliveryResults(tuple(outcomes[offset : offset + count])))
        offset += count
    return results


def assign_results(
    notifications: Sequence[Notification],
    outcomes: Sequence[StatusCode],
) -> None:
    """Write each notification's slice of ``outcomes`` onto it."""
    chunks = assemble_results(outcomes, [notification.count for notification in notifications])
    for notification, chunk in zip(notifications, chunks, strict=True):
        notification.results = chunk
