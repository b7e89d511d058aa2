"""Notification collaborator ports.

``NotifierPort`` is how the core announces status changes, refund
milestones and stock alerts. Delivery is fire-and-forget: the core never
waits on it and never lets its failures change an outcome.

``PresencePort`` exposes an externally owned presence registry as a single
read-only question: can this recipient be reached right now?
"""

from abc import ABC, abstractmethod


class NotifierPort(ABC):
    """Abstract interface for emitting notifications."""

    @abstractmethod
    def emit(self, topic: str, recipient_id: str | None, payload: dict, realtime: bool) -> dict:
        """Hand a notification to the delivery transport.

        Args:
            topic: Event name, e.g. ``order_status_changed``.
            recipient_id: User or session the message is for; None for operators.
            payload: Serializable event details.
            realtime: Whether the recipient is connected for live delivery.

        Returns:
            Dict with ``notification_id`` and ``status``.
        """
        ...


class PresencePort(ABC):
    """Read-only view of who is connected."""

    @abstractmethod
    def is_reachable(self, recipient_id: str) -> bool: ...
