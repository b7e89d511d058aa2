"""Notifier and presence registry access.

Uses in-memory fakes by default; the web transport installs its own
adapters with ``set_notifier`` / ``set_presence`` at startup.
"""

import structlog

from ordering.notification.fake_adapter import FakeNotifier, InMemoryPresence
from ordering.notification.port import NotifierPort, PresencePort

logger = structlog.get_logger(__name__)

OPERATIONS_RECIPIENT = "operations"

_current_notifier: NotifierPort | None = None
_current_presence: PresencePort | None = None


def get_notifier() -> NotifierPort:
    """Return the current notifier. Defaults to FakeNotifier."""
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = FakeNotifier()
    return _current_notifier


def set_notifier(notifier: NotifierPort) -> None:
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None


def get_presence() -> PresencePort:
    """Return the presence registry. Defaults to an empty InMemoryPresence."""
    global _current_presence
    if _current_presence is None:
        _current_presence = InMemoryPresence()
    return _current_presence


def set_presence(presence: PresencePort) -> None:
    global _current_presence
    _current_presence = presence


def reset_presence() -> None:
    global _current_presence
    _current_presence = None


def notify(topic: str, recipient_id: str | None = None, **payload) -> None:
    """Emit a notification without letting delivery problems escape."""
    try:
        realtime = bool(recipient_id) and get_presence().is_reachable(str(recipient_id))
        get_notifier().emit(topic, str(recipient_id) if recipient_id else None, payload, realtime)
    except Exception as exc:
        logger.warning(
            "Notification could not be emitted",
            topic=topic,
            recipient_id=recipient_id,
            error=str(exc),
        )


def alert_operations(topic: str, **payload) -> None:
    """Notify the operations team, e.g. about an inventory discrepancy."""
    notify(topic, OPERATIONS_RECIPIENT, **payload)
