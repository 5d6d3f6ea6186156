"""Tests for Order state transitions: complete, cancel and reopen."""

import pytest
from protean.exceptions import ValidationError

from picking.order.events import OrderCanceled, OrderCompleted, OrderReopened
from picking.order.order import CompletionStatus, Order, OrderStatus


def _picking_order(make_draft, item_nos=("A", "B", "C")):
    order = Order.ingest(make_draft(item_nos=item_nos))
    order._events.clear()
    return order


def _incomplete_order(make_draft):
    order = _picking_order(make_draft)
    order.complete(["A"], separator="Alice", confirmer="Bob")
    order._events.clear()
    return order


class TestComplete:
    def test_all_items_picked_is_complete(self, make_draft):
        order = _picking_order(make_draft, item_nos=("1", "2", "3", "4", "5"))
        order.complete(["1", "2", "3", "4", "5"], separator="Alice", confirmer="Bob")
        assert order.status == OrderStatus.COMPLETED.value
        assert order.completion_status == CompletionStatus.COMPLETE.value

    def test_missing_items_is_incomplete(self, make_draft):
        order = _picking_order(make_draft, item_nos=("1", "2", "3", "4", "5"))
        order.complete(["1", "2", "3"], separator="Alice", confirmer="Bob")
        assert order.completion_status == CompletionStatus.INCOMPLETE.value

    def test_empty_order_is_complete(self, make_draft):
        order = _picking_order(make_draft, item_nos=())
        order.complete([], separator="Alice", confirmer="Bob")
        assert order.completion_status == CompletionStatus.COMPLETE.value

    def test_stamps_names_and_timestamp(self, make_draft):
        order = _picking_order(make_draft)
        order.complete(["A", "B"], separator="Alice", confirmer="Bob")
        assert order.separator == "Alice"
        assert order.confirmer == "Bob"
        assert order.completion_timestamp is not None
        assert order.cancellation_reason is None

    def test_records_ledger_in_item_order(self, make_draft):
        order = _picking_order(make_draft)
        order.complete(["C", "A"], separator="Alice", confirmer="Bob")
        assert list(order.picked_items) == ["A", "C"]

    def test_unknown_item_rejected_without_change(self, make_draft):
        order = _picking_order(make_draft)
        with pytest.raises(ValidationError) as exc:
            order.complete(["A", "Z"], separator="Alice", confirmer="Bob")
        assert "picked_items" in exc.value.messages
        assert order.status == OrderStatus.PICKING.value

    def test_requires_both_names(self, make_draft):
        order = _picking_order(make_draft)
        with pytest.raises(ValidationError) as exc:
            order.complete(["A"], separator="Alice", confirmer="")
        assert "confirmation" in exc.value.messages
        assert order.status == OrderStatus.PICKING.value

    def test_cannot_complete_twice(self, make_draft):
        order = _incomplete_order(make_draft)
        with pytest.raises(ValidationError) as exc:
            order.complete(["A", "B"], separator="Alice", confirmer="Bob")
        assert "Cannot transition from completed to completed" in str(exc.value)

    def test_raises_event(self, make_draft):
        order = _picking_order(make_draft)
        order.complete(["A", "B"], separator="Alice", confirmer="Bob")
        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderCompleted)
        assert event.completion_status == "incomplete"
        assert event.picked_count == 2
        assert event.item_count == 3


class TestCancel:
    def test_cancel_from_picking(self, make_draft):
        order = _picking_order(make_draft)
        order.cancel(reason="Wrong sector", canceled_by="Dana")
        assert order.status == OrderStatus.CANCELED.value
        assert order.cancellation_reason == "Wrong sector"
        assert order.separator == "Dana"
        assert order.completion_status is None
        assert order.completion_timestamp is not None

    def test_reason_is_optional(self, make_draft):
        order = _picking_order(make_draft)
        order.cancel()
        assert order.status == OrderStatus.CANCELED.value
        assert order.cancellation_reason is None

    def test_cancel_records_ledger(self, make_draft):
        order = _picking_order(make_draft)
        order.cancel(picked_items=["B"])
        assert list(order.picked_items) == ["B"]

    def test_cancel_keeps_existing_ledger_when_not_given(self, make_draft):
        order = _picking_order(make_draft)
        order.picked_items = ["A"]
        order.cancel()
        assert list(order.picked_items) == ["A"]

    def test_cannot_cancel_completed_order(self, make_draft):
        order = _incomplete_order(make_draft)
        with pytest.raises(ValidationError):
            order.cancel()
        assert order.status == OrderStatus.COMPLETED.value

    def test_raises_event(self, make_draft):
        order = _picking_order(make_draft)
        order.cancel(reason="Duplicate paperwork", canceled_by="Dana")
        event = order._events[0]
        assert isinstance(event, OrderCanceled)
        assert event.reason == "Duplicate paperwork"
        assert event.canceled_by == "Dana"


class TestCanceledIsTerminal:
    @pytest.fixture()
    def canceled(self, make_draft):
        order = _picking_order(make_draft)
        order.cancel(reason="No stock")
        return order

    def test_cannot_complete(self, canceled):
        with pytest.raises(ValidationError):
            canceled.complete(["A"], separator="Alice", confirmer="Bob")

    def test_cannot_cancel_again(self, canceled):
        with pytest.raises(ValidationError):
            canceled.cancel(reason="again")

    def test_cannot_reopen(self, canceled):
        with pytest.raises(ValidationError):
            canceled.reopen()

    def test_details_unchanged_after_failed_transitions(self, canceled):
        for attempt in (canceled.reopen, canceled.cancel):
            with pytest.raises(ValidationError):
                attempt()
        assert canceled.status == OrderStatus.CANCELED.value
        assert canceled.cancellation_reason == "No stock"


class TestReopen:
    def test_reopen_incomplete_order(self, make_draft):
        order = _incomplete_order(make_draft)
        order.reopen()
        assert order.status == OrderStatus.PICKING.value
        assert order.completion is None
        assert order.completion_status is None
        assert order.completion_timestamp is None

    def test_reopen_keeps_ledger(self, make_draft):
        order = _incomplete_order(make_draft)
        order.reopen()
        assert list(order.picked_items) == ["A"]

    def test_complete_order_cannot_be_reopened(self, make_draft):
        order = _picking_order(make_draft)
        order.complete(["A", "B", "C"], separator="Alice", confirmer="Bob")
        with pytest.raises(ValidationError) as exc:
            order.reopen()
        assert "Only completed orders with missing items can be reopened" in str(exc.value)

    def test_picking_order_cannot_be_reopened(self, make_draft):
        order = _picking_order(make_draft)
        with pytest.raises(ValidationError):
            order.reopen()

    def test_reopened_order_can_complete_again(self, make_draft):
        order = _incomplete_order(make_draft)
        order.reopen()
        order.complete(["A", "B", "C"], separator="Carol", confirmer="Dave")
        assert order.completion_status == CompletionStatus.COMPLETE.value
        assert order.separator == "Carol"

    def test_reopened_order_can_be_canceled(self, make_draft):
        order = _incomplete_order(make_draft)
        order.reopen()
        order.cancel(reason="Giving up")
        assert order.status == OrderStatus.CANCELED.value
        assert order.confirmer is None

    def test_raises_event(self, make_draft):
        order = _incomplete_order(make_draft)
        order.reopen()
        event = order._events[0]
        assert isinstance(event, OrderReopened)
        assert event.picked_count == 1
        assert event.previously_completed_at is not None
