"""In-memory notifier and presence registry for development and tests."""

from uuid import uuid4

from ordering.notification.port import NotifierPort, PresencePort


class FakeNotifier(NotifierPort):
    """Notifier that records emitted notifications for test assertions."""

    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification transport unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification transport unavailable"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def emit(self, topic: str, recipient_id: str | None, payload: dict, realtime: bool) -> dict:
        if not self.should_succeed:
            raise ConnectionError(self.failure_reason)

        notification_id = f"ntf-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "notification_id": notification_id,
                "topic": topic,
                "recipient_id": recipient_id,
                "payload": payload,
                "realtime": realtime,
            }
        )
        return {"notification_id": notification_id, "status": "queued"}

    def topics(self) -> list[str]:
        return [record["topic"] for record in self.sent]

    def reset(self):
        """Clear sent notifications (useful between tests)."""
        self.sent.clear()
        self.should_succeed = True
        self.failure_reason = "Notification transport unavailable"


class InMemoryPresence(PresencePort):
    """Presence registry owned by the transport layer.

    The transport calls ``connect``/``disconnect``; the ordering core only
    ever calls ``is_reachable``.
    """

    def __init__(self, connected=None):
        self._connected: set[str] = set(connected or ())

    def connect(self, recipient_id: str) -> None:
        self._connected.add(str(recipient_id))

    def disconnect(self, recipient_id: str) -> None:
        self._connected.discard(str(recipient_id))

    def is_reachable(self, recipient_id: str) -> bool:
        return str(recipient_id) in self._connected
