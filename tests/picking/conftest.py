import pytest
from protean.integrations.pytest import DomainFixture

from picking.extraction import reset_extractor
from picking.extraction.fake_adapter import FakeExtractor
from picking.extraction.port import DraftItem, OrderDraft
from picking.order.lifecycle import OrderLifecycle, reset_lifecycle
from picking.store import reset_store
from picking.store.local_adapter import LocalStore


@pytest.fixture(scope="session")
def picking_bed():
    from picking.domain import picking

    bed = DomainFixture(picking)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(picking_bed):
    with picking_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _reset_singletons():
    reset_store()
    reset_extractor()
    reset_lifecycle()
    yield
    reset_store()
    reset_extractor()
    reset_lifecycle()


@pytest.fixture()
def make_draft():
    """Build an OrderDraft with one item per item number."""

    def _make(order_id="P-100", item_nos=("A", "B", "C"), requester="Maria", destination_sector="Assembly"):
        return OrderDraft(
            order_id=order_id,
            requester=requester,
            destination_sector=destination_sector,
            items=tuple(
                DraftItem(
                    item_no=item_no,
                    code=f"CODE-{item_no}",
                    description=f"Material {item_no}",
                    location=f"R{index:02d}-L{item_no}",
                    quantity_ordered=index + 1,
                    unit="UN",
                )
                for index, item_no in enumerate(item_nos)
            ),
        )

    return _make


@pytest.fixture()
def store():
    return LocalStore()


@pytest.fixture()
def extractor():
    return FakeExtractor()


@pytest.fixture()
def lifecycle(store, extractor):
    lifecycle = OrderLifecycle(store=store, extractor=extractor, operator="Dana")
    lifecycle.load()
    return lifecycle


@pytest.fixture()
def staff(lifecycle):
    """Alice and Carol separate, Bob and Dave confirm, Vera only views."""
    users = {}
    for name, role in [
        ("Alice", "separator"),
        ("Carol", "separator"),
        ("Bob", "confirmer"),
        ("Dave", "confirmer"),
        ("Vera", "viewer"),
    ]:
        users[name] = lifecycle.save_user(name, role)
    return users
