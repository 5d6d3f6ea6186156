"""Local store — single-writer fallback used when no remote store is configured.

Records are kept in memory and, when a data file is configured, written to it
as JSON after every mutation so a single workstation survives restarts.
Failures can be switched on for testing, like the other fake adapters.
"""

import json
from pathlib import Path

import structlog

from picking.store.mapping import order_from_record, order_to_record, user_from_record, user_to_record
from picking.store.port import OrderNotFound, OrderStore, PersistenceError

logger = structlog.get_logger(__name__)


class LocalStore(OrderStore):
    multi_writer = False

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else None
        self.should_succeed = True
        self.failure_reason = "Local store unavailable"
        self._orders: list[dict] = []
        self._users: list[dict] = []
        self._load()

    def configure(self, should_succeed: bool = True, failure_reason: str = "Local store unavailable"):
        """Configure the store behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    # -------------------------------------------------------------------
    # File handling
    # -------------------------------------------------------------------
    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Cannot read local data file {self.path}: {exc}") from exc
        self._orders = data.get("orders", [])
        self._users = data.get("users", [])
        logger.info("Local store loaded", path=str(self.path), orders=len(self._orders), users=len(self._users))

    def _flush(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps({"orders": self._orders, "users": self._users}, indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            raise PersistenceError(f"Cannot write local data file {self.path}: {exc}") from exc

    def _commit(self, orders: list[dict] | None = None, users: list[dict] | None = None) -> None:
        """Swap in new record lists, restoring the previous ones if the file write fails."""
        previous = (self._orders, self._users)
        if orders is not None:
            self._orders = orders
        if users is not None:
            self._users = users
        try:
            self._flush()
        except PersistenceError:
            self._orders, self._users = previous
            raise

    def _check_available(self) -> None:
        if not self.should_succeed:
            raise PersistenceError(self.failure_reason)

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    def list_orders(self) -> list:
        self._check_available()
        records = sorted(self._orders, key=lambda record: record["timestamp"], reverse=True)
        return [order_from_record(record) for record in records]

    def create_order(self, order) -> None:
        self._check_available()
        self._commit(orders=[*self._orders, order_to_record(order)])

    def update_order(self, order) -> None:
        self._check_available()
        for index, record in enumerate(self._orders):
            if record["order_id"] == order.order_id and record["timestamp"] == order.timestamp:
                orders = list(self._orders)
                orders[index] = order_to_record(order)
                self._commit(orders=orders)
                return
        raise OrderNotFound(order.order_id, order.timestamp)

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------
    def list_users(self) -> list:
        self._check_available()
        return [user_from_record(record) for record in sorted(self._users, key=lambda record: record["name"])]

    def upsert_user(self, user) -> None:
        self._check_available()
        record = user_to_record(user)
        users = [existing for existing in self._users if existing["id"] != record["id"]]
        self._commit(users=[*users, record])

    def delete_user(self, user_id: str) -> None:
        self._check_available()
        self._commit(users=[existing for existing in self._users if existing["id"] != str(user_id)])
