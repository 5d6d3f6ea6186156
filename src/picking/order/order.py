"""Order aggregate — the core of the picking domain.

An Order is one instance of a business pick order. The business ``order_id``
is not unique on its own: the same order number may be ingested again once an
earlier instance left the queue, so an instance is identified by the pair
``(order_id, timestamp)``.

Terminal details are modelled per state instead of as one flat record:
``completion`` is only present on completed orders and ``cancellation`` only on
canceled ones.

State Machine:
    PICKING → COMPLETED  (both confirmation steps signed off)
    PICKING → CANCELED
    COMPLETED → PICKING  (reopen, only when completed with missing items)
    CANCELED is terminal
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Float, HasMany, List, String, Text, ValueObject

from picking.domain import picking
from picking.order.events import OrderCanceled, OrderCompleted, OrderIngested, OrderReopened


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PICKING = "picking"
    COMPLETED = "completed"
    CANCELED = "canceled"


class CompletionStatus(Enum):
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


_VALID_TRANSITIONS = {
    OrderStatus.PICKING: {OrderStatus.COMPLETED, OrderStatus.CANCELED},
    OrderStatus.COMPLETED: {OrderStatus.PICKING},  # reopen
    OrderStatus.CANCELED: set(),  # terminal
}

HISTORY_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELED})


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string, the format of all order timestamps."""
    return datetime.now(UTC).isoformat()


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@picking.value_object(part_of="Order")
class Completion:
    """Sign-off details, recorded once when an order is completed."""

    completion_status = String(required=True, choices=CompletionStatus)
    separator = String(max_length=100)
    confirmer = String(max_length=100)
    completed_at = String(required=True, max_length=50)


@picking.value_object(part_of="Order")
class Cancellation:
    """Cancellation details, recorded once when an order is canceled."""

    reason = Text()
    canceled_by = String(max_length=100)
    canceled_at = String(required=True, max_length=50)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@picking.entity(part_of="Order")
class OrderItem:
    """A line item to pick. Items are fixed when the order is ingested."""

    item_no = String(required=True, max_length=50)
    code = String(max_length=100)
    description = String(max_length=500)
    location = String(max_length=100)
    quantity_ordered = Float(required=True)
    unit = String(max_length=20)

    @invariant.post
    def quantity_must_be_positive(self):
        if self.quantity_ordered is not None and self.quantity_ordered <= 0:
            raise ValidationError({"quantity_ordered": ["Quantity ordered must be positive"]})


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@picking.aggregate
class Order:
    order_id = String(required=True, max_length=100)
    requester = String(max_length=255)
    destination_sector = String(max_length=255)
    items = HasMany(OrderItem)
    status = String(choices=OrderStatus, default=OrderStatus.PICKING.value)
    timestamp = String(required=True, max_length=50)
    picked_items = List(content_type=String)
    completion = ValueObject(Completion)
    cancellation = ValueObject(Cancellation)

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def item_numbers_are_unique(self):
        numbers = self.item_numbers
        if len(numbers) != len(set(numbers)):
            raise ValidationError({"items": ["Item numbers must be unique within an order"]})

    @invariant.post
    def picked_items_belong_to_order(self):
        unknown = set(self.picked_items or []) - set(self.item_numbers)
        if unknown:
            raise ValidationError({"picked_items": [f"Unknown item(s) in ledger: {', '.join(sorted(unknown))}"]})

    @invariant.post
    def terminal_details_match_status(self):
        status = OrderStatus(self.status)
        if (self.completion is not None) != (status == OrderStatus.COMPLETED):
            raise ValidationError({"completion": ["Completion details are recorded on completed orders only"]})
        if (self.cancellation is not None) != (status == OrderStatus.CANCELED):
            raise ValidationError({"cancellation": ["Cancellation details are recorded on canceled orders only"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def ingest(cls, draft, timestamp: str | None = None):
        """Create a queued order from an extracted draft, with an empty ledger."""
        order = cls(
            order_id=draft.order_id,
            requester=draft.requester,
            destination_sector=draft.destination_sector,
            status=OrderStatus.PICKING.value,
            timestamp=timestamp or utc_now_iso(),
        )
        for item in draft.items:
            order.add_items(
                OrderItem(
                    item_no=item.item_no,
                    code=item.code,
                    description=item.description,
                    location=item.location,
                    quantity_ordered=item.quantity_ordered,
                    unit=item.unit,
                )
            )
        order.raise_(
            OrderIngested(
                order_record_id=str(order.id),
                order_id=order.order_id,
                timestamp=order.timestamp,
                requester=order.requester or "",
                destination_sector=order.destination_sector or "",
                item_count=len(order.item_numbers),
            )
        )
        return order

    # -------------------------------------------------------------------
    # Identity and read helpers
    # -------------------------------------------------------------------
    @property
    def key(self) -> tuple[str, str]:
        """The ``(order_id, timestamp)`` pair identifying this instance."""
        return (self.order_id, self.timestamp)

    def is_instance(self, order_id: str, timestamp: str) -> bool:
        return self.order_id == order_id and self.timestamp == timestamp

    @property
    def item_numbers(self) -> list[str]:
        return [item.item_no for item in (self.items or [])]

    def items_by_location(self) -> list:
        """Items in walking order through the warehouse."""
        return sorted(self.items or [], key=lambda item: (item.location or "").casefold())

    @property
    def in_history(self) -> bool:
        return OrderStatus(self.status) in HISTORY_STATUSES

    @property
    def completion_status(self) -> str | None:
        return self.completion.completion_status if self.completion else None

    @property
    def completion_timestamp(self) -> str | None:
        if self.completion:
            return self.completion.completed_at
        if self.cancellation:
            return self.cancellation.canceled_at
        return None

    @property
    def separator(self) -> str | None:
        if self.completion:
            return self.completion.separator
        if self.cancellation:
            return self.cancellation.canceled_by
        return None

    @property
    def confirmer(self) -> str | None:
        return self.completion.confirmer if self.completion else None

    @property
    def cancellation_reason(self) -> str | None:
        return self.cancellation.reason if self.cancellation else None

    @property
    def is_reopenable(self) -> bool:
        return (
            OrderStatus(self.status) == OrderStatus.COMPLETED
            and self.completion_status == CompletionStatus.INCOMPLETE.value
        )

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _ledger_in_item_order(self, picked_items) -> list[str]:
        picked = set(picked_items or [])
        unknown = picked - set(self.item_numbers)
        if unknown:
            raise ValidationError({"picked_items": [f"Unknown item(s) in ledger: {', '.join(sorted(unknown))}"]})
        return [item_no for item_no in self.item_numbers if item_no in picked]

    # -------------------------------------------------------------------
    # Completion
    # -------------------------------------------------------------------
    def complete(self, picked_items, separator: str, confirmer: str) -> None:
        """Finalize picking; the completion status is classified here and frozen."""
        self._assert_can_transition(OrderStatus.COMPLETED)
        if not separator or not confirmer:
            raise ValidationError({"confirmation": ["A separator and a confirmer are required to complete an order"]})

        picked = self._ledger_in_item_order(picked_items)
        completion_status = (
            CompletionStatus.COMPLETE if len(picked) == len(self.item_numbers) else CompletionStatus.INCOMPLETE
        )
        now = utc_now_iso()
        with atomic_change(self):
            self.status = OrderStatus.COMPLETED.value
            self.picked_items = picked
            self.completion = Completion(
                completion_status=completion_status.value,
                separator=separator,
                confirmer=confirmer,
                completed_at=now,
            )
            self.cancellation = None
        self.raise_(
            OrderCompleted(
                order_record_id=str(self.id),
                order_id=self.order_id,
                timestamp=self.timestamp,
                completion_status=completion_status.value,
                separator=separator,
                confirmer=confirmer,
                picked_count=len(picked),
                item_count=len(self.item_numbers),
                completed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, reason: str | None = None, picked_items=None, canceled_by: str | None = None) -> None:
        """Cancel a picking order, whatever its ledger or confirmation state."""
        self._assert_can_transition(OrderStatus.CANCELED)
        picked = self._ledger_in_item_order(self.picked_items if picked_items is None else picked_items)
        now = utc_now_iso()
        with atomic_change(self):
            self.status = OrderStatus.CANCELED.value
            self.picked_items = picked
            self.completion = None
            self.cancellation = Cancellation(reason=reason, canceled_by=canceled_by, canceled_at=now)
        self.raise_(
            OrderCanceled(
                order_record_id=str(self.id),
                order_id=self.order_id,
                timestamp=self.timestamp,
                reason=reason or "",
                canceled_by=canceled_by or "",
                canceled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Reopen ("continue picking")
    # -------------------------------------------------------------------
    def reopen(self) -> None:
        """Move an incompletely picked order back to picking, keeping its ledger."""
        if not self.is_reopenable:
            raise ValidationError({"status": ["Only completed orders with missing items can be reopened"]})
        self._assert_can_transition(OrderStatus.PICKING)

        previously_completed_at = self.completion.completed_at
        with atomic_change(self):
            self.status = OrderStatus.PICKING.value
            self.completion = None
        self.raise_(
            OrderReopened(
                order_record_id=str(self.id),
                order_id=self.order_id,
                timestamp=self.timestamp,
                picked_count=len(self.picked_items or []),
                previously_completed_at=previously_completed_at,
            )
        )
