"""Mapping between domain objects and store records.

Store records use snake_case keys laid out like the remote tables (``orders``
with nested ``items`` rows, and ``app_users``). The mapping is total and
lossless: ``order_from_record(order_to_record(order))`` reproduces every field,
including the record id of the order and of each item.
"""

from protean import atomic_change

from picking.order.order import Cancellation, Completion, Order, OrderItem, OrderStatus
from picking.user.user import User


def item_to_record(item) -> dict:
    return {
        "id": str(item.id),
        "item_no": item.item_no,
        "code": item.code,
        "description": item.description,
        "location": item.location,
        "quantity_ordered": item.quantity_ordered,
        "unit": item.unit,
    }


def order_to_record(order: Order) -> dict:
    return {
        "id": str(order.id),
        "order_id": order.order_id,
        "requester": order.requester,
        "destination_sector": order.destination_sector,
        "status": order.status,
        "timestamp": order.timestamp,
        "picked_items": list(order.picked_items or []),
        "completion_status": order.completion_status,
        "completion_timestamp": order.completion_timestamp,
        "separator_name": order.separator,
        "confirmer_name": order.confirmer,
        "cancellation_reason": order.cancellation_reason,
        "items": [item_to_record(item) for item in order.items or []],
    }


def _terminal_details(record: dict) -> dict:
    status = record.get("status") or OrderStatus.PICKING.value
    if status == OrderStatus.COMPLETED.value:
        return {
            "completion": Completion(
                completion_status=record.get("completion_status"),
                separator=record.get("separator_name"),
                confirmer=record.get("confirmer_name"),
                completed_at=record.get("completion_timestamp"),
            ),
            "cancellation": None,
        }
    if status == OrderStatus.CANCELED.value:
        return {
            "completion": None,
            "cancellation": Cancellation(
                reason=record.get("cancellation_reason"),
                canceled_by=record.get("separator_name"),
                canceled_at=record.get("completion_timestamp"),
            ),
        }
    return {"completion": None, "cancellation": None}


def order_from_record(record: dict) -> Order:
    """Rebuild an Order from a store record.

    Items are attached before the ledger and terminal details so the
    aggregate invariants are checked against the complete order.
    """
    order = Order(
        id=record["id"],
        order_id=record["order_id"],
        requester=record.get("requester"),
        destination_sector=record.get("destination_sector"),
        timestamp=record["timestamp"],
    )
    with atomic_change(order):
        for item in record.get("items") or []:
            order.add_items(
                OrderItem(
                    id=item["id"],
                    item_no=item["item_no"],
                    code=item.get("code"),
                    description=item.get("description"),
                    location=item.get("location"),
                    quantity_ordered=item["quantity_ordered"],
                    unit=item.get("unit"),
                )
            )
        order.status = record.get("status") or OrderStatus.PICKING.value
        order.picked_items = list(record.get("picked_items") or [])
        for field_name, value in _terminal_details(record).items():
            setattr(order, field_name, value)
    return order


def clone_order(order: Order) -> Order:
    """Independent copy of an order, for mutations that only land once persisted."""
    return order_from_record(order_to_record(order))


def user_to_record(user: User) -> dict:
    return {"id": str(user.id), "name": user.name, "role": user.role}


def user_from_record(record: dict) -> User:
    return User(id=record["id"], name=record["name"], role=record["role"])
