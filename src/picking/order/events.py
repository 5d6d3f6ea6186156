"""Pick order domain events — immutable facts about order lifecycle changes.

All events are past tense, versioned, and carry the ``(order_id, timestamp)``
pair that identifies one order instance.
"""

from protean.fields import Identifier, Integer, String, Text

from picking.domain import picking


@picking.event(part_of="Order")
class OrderIngested:
    """A draft was accepted and queued as a new order instance."""

    __version__ = 1

    order_record_id = Identifier(required=True)
    order_id = String(required=True)
    timestamp = String(required=True)
    requester = String()
    destination_sector = String()
    item_count = Integer(required=True)


@picking.event(part_of="Order")
class OrderCompleted:
    """Picking was signed off by both the separator and the confirmer."""

    __version__ = 1

    order_record_id = Identifier(required=True)
    order_id = String(required=True)
    timestamp = String(required=True)
    completion_status = String(required=True)
    separator = String(required=True)
    confirmer = String(required=True)
    picked_count = Integer(required=True)
    item_count = Integer(required=True)
    completed_at = String(required=True)


@picking.event(part_of="Order")
class OrderCanceled:
    """The order was canceled before (or instead of) completion."""

    __version__ = 1

    order_record_id = Identifier(required=True)
    order_id = String(required=True)
    timestamp = String(required=True)
    reason = Text()
    canceled_by = String()
    canceled_at = String(required=True)


@picking.event(part_of="Order")
class OrderReopened:
    """An incompletely picked order was taken back from history to continue picking."""

    __version__ = 1

    order_record_id = Identifier(required=True)
    order_id = String(required=True)
    timestamp = String(required=True)
    picked_count = Integer(required=True)
    previously_completed_at = String()
