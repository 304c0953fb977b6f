"""
Notification services.

Best-effort user notifications sent after the owning transaction commits.
"""

from adledger.services.notification.core import (
    Notifier,
    PendingNotification,
    dispatch_after_commit,
)

__all__ = [
    "Notifier",
    "PendingNotification",
    "dispatch_after_commit",
]
