"""Tests for the local single-writer store."""

import json

import pytest

from picking.order.lifecycle import OrderLifecycle
from picking.order.order import Order
from picking.store.local_adapter import LocalStore
from picking.store.port import OrderNotFound, PersistenceError
from picking.user.user import User


class TestLocalStore:
    def test_is_single_writer(self):
        store = LocalStore()
        assert store.multi_writer is False
        assert store.refresh() is None

    def test_create_and_list(self, make_draft):
        store = LocalStore()
        order = Order.ingest(make_draft())
        store.create_order(order)
        listed = store.list_orders()
        assert [stored.key for stored in listed] == [order.key]
        assert listed[0] is not order

    def test_lists_most_recent_first(self, make_draft):
        store = LocalStore()
        store.create_order(Order.ingest(make_draft(order_id="P-1"), timestamp="2026-01-01T08:00:00+00:00"))
        store.create_order(Order.ingest(make_draft(order_id="P-2"), timestamp="2026-03-01T08:00:00+00:00"))
        store.create_order(Order.ingest(make_draft(order_id="P-3"), timestamp="2026-02-01T08:00:00+00:00"))
        assert [order.order_id for order in store.list_orders()] == ["P-2", "P-3", "P-1"]

    def test_update_matches_order_id_and_timestamp(self, make_draft):
        store = LocalStore()
        first = Order.ingest(make_draft(), timestamp="2026-01-01T08:00:00+00:00")
        second = Order.ingest(make_draft(), timestamp="2026-02-01T08:00:00+00:00")
        store.create_order(first)
        store.create_order(second)

        second.cancel(reason="Reprint")
        store.update_order(second)

        stored = {order.timestamp: order for order in store.list_orders()}
        assert stored[first.timestamp].status == "picking"
        assert stored[second.timestamp].status == "canceled"

    def test_update_unknown_instance(self, make_draft):
        store = LocalStore()
        order = Order.ingest(make_draft())
        with pytest.raises(OrderNotFound) as exc:
            store.update_order(order)
        assert exc.value.order_id == "P-100"

    def test_configured_failure(self, make_draft):
        store = LocalStore()
        store.configure(should_succeed=False, failure_reason="Disk full")
        with pytest.raises(PersistenceError, match="Disk full"):
            store.create_order(Order.ingest(make_draft()))

    def test_users(self):
        store = LocalStore()
        bob = User(name="Bob", role="confirmer")
        store.upsert_user(User(name="Alice", role="separator"))
        store.upsert_user(bob)
        store.upsert_user(User(id=str(bob.id), name="Bobby", role="confirmer"))
        assert [user.name for user in store.list_users()] == ["Alice", "Bobby"]

        store.delete_user(str(bob.id))
        assert [user.name for user in store.list_users()] == ["Alice"]


class TestLocalStoreFile:
    def test_persists_to_file(self, tmp_path, make_draft):
        path = tmp_path / "picking.json"
        store = LocalStore(path=path)
        order = Order.ingest(make_draft())
        store.create_order(order)
        store.upsert_user(User(name="Alice", role="separator"))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["orders"][0]["order_id"] == "P-100"
        assert data["users"][0]["name"] == "Alice"

    def test_reloads_from_file(self, tmp_path, make_draft):
        path = tmp_path / "picking.json"
        order = Order.ingest(make_draft())
        order.cancel(reason="Reprint")
        LocalStore(path=path).create_order(order)

        reloaded = LocalStore(path=path).list_orders()
        assert reloaded[0].key == order.key
        assert reloaded[0].cancellation_reason == "Reprint"

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "picking.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError):
            LocalStore(path=path)


class TestLocalStoreWriteFailure:
    @pytest.fixture()
    def blocked(self, tmp_path):
        """A data file whose parent directory is a plain file."""
        parent = tmp_path / "data"
        parent.write_text("not a directory", encoding="utf-8")
        return parent / "picking.json"

    def test_failed_create_keeps_nothing(self, blocked, make_draft):
        store = LocalStore(path=blocked)
        with pytest.raises(PersistenceError):
            store.create_order(Order.ingest(make_draft()))
        assert store.list_orders() == []

    def test_failed_update_keeps_previous_record(self, tmp_path, make_draft):
        path = tmp_path / "data" / "picking.json"
        store = LocalStore(path=path)
        order = Order.ingest(make_draft())
        store.create_order(order)

        path.unlink()
        path.parent.rmdir()
        path.parent.write_text("not a directory", encoding="utf-8")
        order.cancel(reason="Reprint")
        with pytest.raises(PersistenceError):
            store.update_order(order)
        assert store.list_orders()[0].status == "picking"

    def test_failed_user_writes_keep_previous_users(self, tmp_path):
        path = tmp_path / "data" / "picking.json"
        store = LocalStore(path=path)
        alice = User(name="Alice", role="separator")
        store.upsert_user(alice)

        path.unlink()
        path.parent.rmdir()
        path.parent.write_text("not a directory", encoding="utf-8")
        with pytest.raises(PersistenceError):
            store.upsert_user(User(name="Bob", role="confirmer"))
        with pytest.raises(PersistenceError):
            store.delete_user(str(alice.id))
        assert [user.name for user in store.list_users()] == ["Alice"]

    def test_retry_after_failed_ingest_queues_one_order(self, blocked, make_draft):
        store = LocalStore(path=blocked)
        lifecycle = OrderLifecycle(store=store, operator="Dana")
        with pytest.raises(PersistenceError):
            lifecycle.ingest(make_draft(order_id="P-100"))
        assert lifecycle.queue == []

        blocked.parent.unlink()
        lifecycle.ingest(make_draft(order_id="P-100"))
        active = [order for order in store.list_orders() if order.order_id == "P-100" and order.status == "picking"]
        assert len(active) == 1
        assert len(lifecycle.queue) == 1
