"""Ordering bounded context: order lifecycle, stock ledger and refunds.

Handles the made-to-order review pipeline (event-sourced orders), the
inventory ledger that order transitions and refund settlements keep
consistent, and the orchestration of refunds against payment providers.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
