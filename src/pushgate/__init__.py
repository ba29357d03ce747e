"""pushgate - Deliver push notifications over the legacy binary gateway protocol.

The gateway acknowledges nothing and reports at most one failure per
connection, so this package writes frames sequentially, watches for error
frames, reconnects and resends whatever the failure left in an unknown state.
"""

from pushgate.__main__ import main
from pushgate.core import DeliveryResults, Notification, PushCoordinator, StatusCode

__all__ = [
    "DeliveryResults",
    "Notification",
    "PushCoordinator",
    "StatusCode",
    "main",
]
