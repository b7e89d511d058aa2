"""Fake label adapter: deterministic labels for testing and development."""

from uuid import uuid4

from ordering.shipping.port import LabelPort


class FakeLabelProvider(LabelPort):
    """Fake label provider that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Label provider unavailable"
        self.voided: list[str] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Label provider unavailable"):
        """Configure the fake provider behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_label(
        self,
        order_id: str,
        carrier: str,
        service_level: str,
        weight: float | None = None,
    ) -> dict:
        if not self.should_succeed:
            return {"tracking_number": None, "label_url": None, "error": self.failure_reason}

        label_id = uuid4().hex[:8]
        return {
            "tracking_number": f"FAKE-{uuid4().hex[:12].upper()}",
            "label_url": f"https://labels.example.com/{order_id}/{label_id}.pdf",
        }

    def void_label(self, tracking_number: str) -> dict:
        if not self.should_succeed:
            return {"voided": False, "reason": self.failure_reason}
        self.voided.append(tracking_number)
        return {"voided": True, "reason": "Label voided"}
