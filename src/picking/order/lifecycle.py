"""Order lifecycle — the application service behind every operator action.

``OrderLifecycle`` owns the single in-memory order collection; the queue and the
history are filtered views of it. Every mutation is applied to a copy of the
targeted order and adopted only after the store accepted it, so a failed store
call leaves the previous state in place. After each accepted mutation the view
is reloaded through ``OrderStore.refresh()`` on multi-writer stores, and patched
in place on single-writer ones.

Reopened orders ("continue picking", or resuming a duplicate) stay local to the
picking session: the stored record is overwritten once that session is
finalized or canceled.
"""

import os

import structlog
from protean.exceptions import ValidationError

from picking.extraction.port import DocumentExtractor, ExtractionError, OrderDraft
from picking.order.confirmation import ConfirmationWorkflow
from picking.order.duplicates import DuplicateAction, DuplicateCandidate, DuplicateResolver
from picking.order.ledger import ItemLedger
from picking.order.order import Order, OrderStatus
from picking.store.mapping import clone_order
from picking.store.port import OrderNotFound, OrderStore, PersistenceError
from picking.user.user import User, UserRole

logger = structlog.get_logger(__name__)

HISTORY_CANCELLATION_REASON = "Canceled manually from the history panel"


class PickingSession:
    """The order currently being picked, with its ledger and sign-off state."""

    def __init__(self, order: Order) -> None:
        self.order = order
        self.ledger = ItemLedger(order)
        self.workflow = ConfirmationWorkflow(self.ledger)


class OrderLifecycle:
    def __init__(self, store: OrderStore, extractor: DocumentExtractor | None = None, operator: str | None = None):
        self.store = store
        self.extractor = extractor
        self.operator = operator or "operator"
        self.session: PickingSession | None = None
        self.pending_duplicate: DuplicateCandidate | None = None
        self._orders: list[Order] = []
        self._users: list[User] = []

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    def load(self) -> None:
        """Load orders and users from the store."""
        self._orders = self.store.list_orders()
        self._users = self.store.list_users()
        logger.info("Lifecycle loaded", orders=len(self._orders), users=len(self._users))

    @property
    def orders(self) -> list[Order]:
        return sorted(self._orders, key=lambda order: order.timestamp, reverse=True)

    @property
    def queue(self) -> list[Order]:
        return [order for order in self.orders if order.status == OrderStatus.PICKING.value]

    @property
    def history(self) -> list[Order]:
        return [order for order in self.orders if order.in_history]

    @property
    def users(self) -> list[User]:
        return list(self._users)

    @property
    def separators(self) -> list[User]:
        return [user for user in self._users if user.role == UserRole.SEPARATOR.value]

    @property
    def confirmers(self) -> list[User]:
        return [user for user in self._users if user.role == UserRole.CONFIRMER.value]

    def find(self, order_id: str, timestamp: str) -> Order:
        for order in self._orders:
            if order.is_instance(order_id, timestamp):
                return order
        raise OrderNotFound(order_id, timestamp)

    def find_user(self, user_id: str) -> User:
        for user in self._users:
            if str(user.id) == str(user_id):
                return user
        raise ValidationError({"user_id": [f"Unknown user {user_id}"]})

    # -------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------
    def ingest_file(self, content: bytes, mime_type: str):
        """Extract a draft from an uploaded document and ingest it."""
        self.pending_duplicate = None
        if self.extractor is None:
            raise ExtractionError("No document extractor is configured")
        draft = self.extractor.extract(content, mime_type)
        logger.info("Draft extracted", order_id=draft.order_id, items=len(draft.items), mime_type=mime_type)
        return self.ingest(draft)

    def ingest(self, draft: OrderDraft):
        """Queue a draft as a new order, or hold it as a duplicate candidate.

        Returns the created Order, or the DuplicateCandidate awaiting a decision.

        Raises:
            DuplicateConflict: the order number is already in the queue.
        """
        self.pending_duplicate = None
        candidate = DuplicateResolver(self._orders).resolve(draft)
        if candidate is not None:
            self.pending_duplicate = candidate
            logger.info(
                "Duplicate candidate held",
                order_id=draft.order_id,
                existing_timestamp=candidate.existing.timestamp,
                existing_status=candidate.status_label,
            )
            return candidate
        return self._create(draft)

    def resolve_duplicate(self, action: DuplicateAction | str):
        candidate = self.pending_duplicate
        if candidate is None:
            raise ValidationError({"duplicate": ["There is no duplicate awaiting a decision"]})
        action = DuplicateAction(action)

        if action == DuplicateAction.RESUME:
            session = self.continue_picking(candidate.existing.order_id, candidate.existing.timestamp)
            self.pending_duplicate = None
            return session
        if action == DuplicateAction.IMPORT_AS_NEW:
            order = self._create(candidate.draft)
            self.pending_duplicate = None
            return order

        logger.info("Duplicate candidate discarded", order_id=candidate.order_id)
        self.pending_duplicate = None
        return None

    def _create(self, draft: OrderDraft) -> Order:
        order = Order.ingest(draft)
        self.store.create_order(order)
        order = self._sync(order)
        logger.info("Order queued", order_id=order.order_id, timestamp=order.timestamp, items=len(order.items))
        return order

    # -------------------------------------------------------------------
    # Picking session
    # -------------------------------------------------------------------
    def open_order(self, order_id: str, timestamp: str) -> PickingSession:
        """Bring a queued order to the picking stage, replacing any open session."""
        order = self.find(order_id, timestamp)
        if order.status != OrderStatus.PICKING.value:
            raise ValidationError({"status": [f"Order {order_id} is not in the picking queue"]})
        self.session = PickingSession(order)
        return self.session

    def continue_picking(self, order_id: str, timestamp: str) -> PickingSession:
        """Reopen an incompletely picked historical order for this session only."""
        reopened = clone_order(self.find(order_id, timestamp))
        reopened.reopen()
        self._publish(reopened)
        self.session = PickingSession(reopened)
        logger.info("Order reopened", order_id=order_id, timestamp=timestamp, picked=self.session.ledger.picked_count)
        return self.session

    def close_session(self) -> None:
        self.session = None

    def _require_session(self) -> PickingSession:
        if self.session is None:
            raise ValidationError({"session": ["No order is open for picking"]})
        return self.session

    def toggle_item(self, item_no: str) -> bool:
        return self._require_session().ledger.toggle(item_no)

    def select_separator(self, user_id: str | None) -> None:
        user = self.find_user(user_id) if user_id else None
        self._require_session().workflow.select_separator(user)

    def confirm_separation(self) -> None:
        self._require_session().workflow.confirm_separation()

    def select_confirmer(self, user_id: str | None) -> None:
        user = self.find_user(user_id) if user_id else None
        self._require_session().workflow.select_confirmer(user)

    def confirm_checking(self) -> None:
        self._require_session().workflow.confirm_checking()

    # -------------------------------------------------------------------
    # Terminal transitions
    # -------------------------------------------------------------------
    def finalize(self) -> Order:
        """Complete the open order once both sign-off steps are confirmed."""
        session = self._require_session()
        session.workflow.ensure_ready()

        completed = clone_order(session.order)
        completed.complete(
            session.ledger.picked_in_order(),
            separator=session.workflow.separator.name,
            confirmer=session.workflow.confirmer.name,
        )
        completed = self._persist_update(completed)
        self.session = None
        logger.info(
            "Order completed",
            order_id=completed.order_id,
            timestamp=completed.timestamp,
            completion_status=completed.completion_status,
        )
        return completed

    def cancel(self, reason: str | None = None) -> Order:
        """Cancel the open order, whatever its sign-off state."""
        session = self._require_session()
        canceled = clone_order(session.order)
        canceled.cancel(reason=reason, picked_items=session.ledger.picked_in_order(), canceled_by=self.operator)
        canceled = self._persist_update(canceled)
        self.session = None
        logger.info("Order canceled", order_id=canceled.order_id, timestamp=canceled.timestamp)
        return canceled

    def cancel_from_history(self, order_id: str, timestamp: str) -> Order:
        """Cancel an incompletely picked order straight from the history."""
        canceled = clone_order(self.find(order_id, timestamp))
        canceled.reopen()
        canceled.cancel(reason=HISTORY_CANCELLATION_REASON, canceled_by=self.operator)
        canceled = self._persist_update(canceled)
        if self.session is not None and self.session.order.is_instance(order_id, timestamp):
            self.session = None
        logger.info("Historical order canceled", order_id=order_id, timestamp=timestamp)
        return canceled

    def _persist_update(self, order: Order) -> Order:
        try:
            self.store.update_order(order)
        except PersistenceError:
            logger.error("Order update rejected", order_id=order.order_id, timestamp=order.timestamp, exc_info=True)
            raise
        return self._sync(order)

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------
    def switch_operator(self, name: str) -> None:
        if not name or not name.strip():
            raise ValidationError({"operator": ["Operator name is required"]})
        self.operator = name.strip()

    def save_user(self, name: str, role: str, user_id: str | None = None) -> User:
        kwargs = {"id": user_id} if user_id else {}
        user = User(name=name, role=role, **kwargs)
        self.store.upsert_user(user)
        self._users = self.store.list_users()
        return user

    def delete_user(self, user_id: str) -> None:
        self.store.delete_user(user_id)
        self._users = self.store.list_users()

    # -------------------------------------------------------------------
    # Synchronization
    # -------------------------------------------------------------------
    def _sync(self, changed: Order) -> Order:
        """Adopt an accepted mutation and return the authoritative instance."""
        self._publish(changed)
        try:
            refreshed = self.store.refresh()
        except PersistenceError:
            logger.warning("Refresh failed, patching the local view", order_id=changed.order_id, exc_info=True)
            refreshed = None

        if refreshed is None:
            self._orders = [order for order in self._orders if not order.is_instance(*changed.key)]
            self._orders.append(changed)
            return changed

        self._orders = refreshed
        for order in self._orders:
            if order.is_instance(*changed.key):
                return order
        return changed

    def _publish(self, order: Order) -> None:
        for event in order._events:
            logger.info(
                "Order event",
                event_type=event.__class__.__name__,
                order_id=order.order_id,
                timestamp=order.timestamp,
            )
        order._events.clear()


# ---------------------------------------------------------------------------
# Process-wide lifecycle
# ---------------------------------------------------------------------------
_current_lifecycle: OrderLifecycle | None = None


def get_lifecycle() -> OrderLifecycle:
    """Return the process-wide lifecycle, loading it from the store on first use."""
    global _current_lifecycle
    if _current_lifecycle is None:
        from picking.extraction import get_extractor
        from picking.store import get_store

        lifecycle = OrderLifecycle(
            store=get_store(),
            extractor=get_extractor(),
            operator=os.environ.get("PICKING_OPERATOR", "operator"),
        )
        lifecycle.load()
        _current_lifecycle = lifecycle
    return _current_lifecycle


def reset_lifecycle() -> None:
    """Reset the lifecycle singleton (useful for testing)."""
    global _current_lifecycle
    _current_lifecycle = None
