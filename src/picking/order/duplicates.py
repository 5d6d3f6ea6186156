"""Duplicate resolution for re-ingested order numbers.

Checked in order, first match wins:

1. The order number is in history (completed or canceled): the draft is held
   as a candidate and the operator decides between resuming the historical
   order and importing the draft as a new instance.
2. The order number is in the active queue: the ingestion is rejected.
3. Otherwise the draft is accepted.
"""

from dataclasses import dataclass
from enum import Enum

from picking.extraction.port import OrderDraft
from picking.order.order import CompletionStatus, Order, OrderStatus


class DuplicateConflict(Exception):
    """An order with the same number is already being picked."""

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"Order {order_id} is already in the picking queue")


class DuplicateAction(Enum):
    RESUME = "resume"
    IMPORT_AS_NEW = "import_as_new"
    DISCARD = "discard"


@dataclass(frozen=True)
class DuplicateCandidate:
    """A draft whose order number matches a historical order, awaiting a decision."""

    draft: OrderDraft
    existing: Order

    @property
    def order_id(self) -> str:
        return self.draft.order_id

    @property
    def status_label(self) -> str:
        if self.existing.status == OrderStatus.CANCELED.value:
            return "Canceled"
        if self.existing.completion_status == CompletionStatus.INCOMPLETE.value:
            return "Partially completed"
        return "Completed"

    @property
    def can_resume(self) -> bool:
        return self.existing.is_reopenable


class DuplicateResolver:
    def __init__(self, orders) -> None:
        self.orders = list(orders)

    def find_in_history(self, order_id: str) -> Order | None:
        """Most recent historical instance with this order number."""
        matches = [order for order in self.orders if order.order_id == order_id and order.in_history]
        if not matches:
            return None
        return max(matches, key=lambda order: order.timestamp)

    def find_in_queue(self, order_id: str) -> Order | None:
        for order in self.orders:
            if order.order_id == order_id and order.status == OrderStatus.PICKING.value:
                return order
        return None

    def resolve(self, draft: OrderDraft) -> DuplicateCandidate | None:
        """Return a candidate for a history match, None when the draft can be accepted.

        Raises:
            DuplicateConflict: the order number is already in the active queue.
        """
        historical = self.find_in_history(draft.order_id)
        if historical is not None:
            return DuplicateCandidate(draft=draft, existing=historical)
        if self.find_in_queue(draft.order_id) is not None:
            raise DuplicateConflict(draft.order_id)
        return None
