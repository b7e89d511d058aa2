"""Label port: abstract interface for shipping label providers.

Label adapters buy and void postage for an order. The ordering code
programs against this port; adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod


class LabelPort(ABC):
    """Abstract interface for label adapters."""

    @abstractmethod
    def create_label(
        self,
        order_id: str,
        carrier: str,
        service_level: str,
        weight: float | None = None,
    ) -> dict:
        """Purchase a shipping label.

        Returns:
            dict with keys: tracking_number, label_url, error (on failure)
        """
        ...

    @abstractmethod
    def void_label(self, tracking_number: str) -> dict:
        """Void a previously purchased label.

        Returns:
            dict with keys: voided (bool), reason (str)
        """
        ...
