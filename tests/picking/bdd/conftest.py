"""Shared BDD fixtures and step definitions for the Picking domain."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when


def _split(value):
    return [part.strip() for part in value.split(",") if part.strip()]


def _only(lifecycle, order_id):
    matches = [order for order in lifecycle.orders if order.order_id == order_id]
    assert len(matches) == 1
    return matches[0]


@pytest.fixture()
def error():
    """Container for captured errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the users "{separator}" (separator) and "{confirmer}" (confirmer)'))
def users(lifecycle, separator, confirmer):
    lifecycle.save_user(separator, "separator")
    lifecycle.save_user(confirmer, "confirmer")


@given(parsers.cfparse('a queued order "{order_id}" with items "{items}"'))
def queued_order(lifecycle, make_draft, order_id, items):
    lifecycle.ingest(make_draft(order_id=order_id, item_nos=_split(items)))


@given(parsers.cfparse('a completed order "{order_id}" with items "{items}" of which "{picked}" were picked'))
def completed_order(lifecycle, make_draft, order_id, items, picked):
    order = lifecycle.ingest(make_draft(order_id=order_id, item_nos=_split(items)))
    lifecycle.open_order(order.order_id, order.timestamp)
    for item_no in _split(picked):
        lifecycle.toggle_item(item_no)
    lifecycle.select_separator(lifecycle.separators[0].id)
    lifecycle.confirm_separation()
    lifecycle.select_confirmer(lifecycle.confirmers[0].id)
    lifecycle.confirm_checking()
    lifecycle.finalize()


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the order "{order_id}" is opened for picking'))
def open_order(lifecycle, order_id):
    order = _only(lifecycle, order_id)
    lifecycle.open_order(order.order_id, order.timestamp)


@when(parsers.cfparse('items "{items}" are toggled'))
def toggle_items(lifecycle, items):
    for item_no in _split(items):
        lifecycle.toggle_item(item_no)


@when(parsers.cfparse('"{name}" confirms the separation'))
def confirm_separation(lifecycle, name):
    user = next(user for user in lifecycle.separators if user.name == name)
    lifecycle.select_separator(user.id)
    lifecycle.confirm_separation()


@when(parsers.cfparse('"{name}" confirms the checking'))
def confirm_checking(lifecycle, name):
    user = next(user for user in lifecycle.confirmers if user.name == name)
    lifecycle.select_confirmer(user.id)
    lifecycle.confirm_checking()


@when("the order is finalized")
def finalize(lifecycle):
    lifecycle.finalize()


@when("finalizing is attempted")
def attempt_finalize(lifecycle, error):
    try:
        lifecycle.finalize()
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the order is canceled with reason "{reason}"'))
def cancel(lifecycle, reason):
    lifecycle.cancel(reason)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order "{order_id}" is "{status}"'))
def order_status(lifecycle, order_id, status):
    assert _only(lifecycle, order_id).status == status


@then(parsers.cfparse('its completion status is "{completion_status}"'))
def completion_status(lifecycle, completion_status):
    assert lifecycle.history[0].completion_status == completion_status


@then(parsers.cfparse('its picked items are "{items}"'))
def picked_items(lifecycle, items):
    assert list(lifecycle.history[0].picked_items) == _split(items)


@then(parsers.cfparse('it was separated by "{separator}" and confirmed by "{confirmer}"'))
def signed_by(lifecycle, separator, confirmer):
    order = lifecycle.history[0]
    assert order.separator == separator
    assert order.confirmer == confirmer


@then("the action is rejected")
def action_rejected(error):
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse('the open order has picked items "{items}"'))
def open_order_picked(lifecycle, items):
    assert lifecycle.session.ledger.picked_in_order() == _split(items)


@then(parsers.cfparse("the queue holds {count:d} order"))
def queue_size(lifecycle, count):
    assert len(lifecycle.queue) == count


@then(parsers.cfparse("the history holds {count:d} order"))
def history_size(lifecycle, count):
    assert len(lifecycle.history) == count


@then(parsers.cfparse("the store holds {count:d} order"))
@then(parsers.cfparse("the store holds {count:d} orders"))
def store_size(store, count):
    assert len(store.list_orders()) == count
