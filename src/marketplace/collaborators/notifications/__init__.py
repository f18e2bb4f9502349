"""Notifier registry and the best-effort ``notify`` helper.

LogNotifier is the default; NOTIFIER_ADAPTER=fake switches to the in-memory
recorder used by tests. Notifications are sent after the state change has
been stored, and a failing notifier never undoes or fails that change.
"""

import os

import structlog

from marketplace.collaborators.notifications.port import NotifierPort

logger = structlog.get_logger(__name__)

_notifier: NotifierPort | None = None


def get_notifier() -> NotifierPort:
    global _notifier
    if _notifier is None:
        adapter = os.environ.get("NOTIFIER_ADAPTER", "log")
        if adapter == "log":
            from marketplace.collaborators.notifications.log_adapter import LogNotifier

            _notifier = LogNotifier()
        elif adapter == "fake":
            from marketplace.collaborators.notifications.fake_adapter import FakeNotifier

            _notifier = FakeNotifier()
        else:
            raise ValueError(f"Unknown notifier adapter: {adapter}")
    return _notifier


def set_notifier(notifier: NotifierPort) -> None:
    global _notifier
    _notifier = notifier


def reset_notifier() -> None:
    global _notifier
    _notifier = None


def notify(recipient_id: str | None, kind: str, **payload) -> None:
    """Send a notification, logging and swallowing any delivery failure."""
    if not recipient_id:
        return
    try:
        get_notifier().send(str(recipient_id), kind, payload)
    except Exception as exc:
        logger.warning("Notification failed", recipient_id=recipient_id, kind=kind, error=str(exc))
