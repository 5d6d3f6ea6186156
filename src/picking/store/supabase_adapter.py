"""Supabase store — remote multi-user persistence over the PostgREST API.

Tables:
    orders       one row per order instance; ``picked_items`` is a JSON array
    order_items  line items, linked through ``order_record_id``
    app_users    warehouse users

Every outbound call goes through ``_request`` so HTTP and transport failures
surface uniformly as ``PersistenceError``. Pass a ``session`` in tests instead
of letting the store create a real ``requests.Session``.

Environment:
    SUPABASE_URL      — project URL
    SUPABASE_KEY      — anon or service key
    SUPABASE_TIMEOUT  — per request timeout in seconds (default 30)
"""

import requests
import structlog

from picking.store.mapping import order_from_record, order_to_record, user_from_record, user_to_record
from picking.store.port import OrderNotFound, OrderStore, PersistenceError

logger = structlog.get_logger(__name__)

_DEFAULT_TIMEOUT = 30

_ORDER_COLUMNS = (
    "id",
    "order_id",
    "requester",
    "destination_sector",
    "status",
    "timestamp",
    "picked_items",
    "completion_status",
    "completion_timestamp",
    "separator_name",
    "confirmer_name",
    "cancellation_reason",
)

# Columns an update may touch; identity and items are fixed at creation
_MUTABLE_COLUMNS = (
    "status",
    "picked_items",
    "completion_status",
    "completion_timestamp",
    "separator_name",
    "confirmer_name",
    "cancellation_reason",
)


class SupabaseStore(OrderStore):
    multi_writer = True

    def __init__(self, url: str, key: str, session=None, timeout: int = _DEFAULT_TIMEOUT) -> None:
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self._headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }

    # -------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------
    def _request(self, method: str, table: str, *, params=None, payload=None, prefer: str | None = None):
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        url = f"{self.base_url}/{table}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Supabase request failed", method=method, table=table, error=str(exc))
            raise PersistenceError(f"Could not reach the order store: {exc}") from exc

        if not response.ok:
            logger.error("Supabase rejected request", method=method, table=table, status=response.status_code)
            raise PersistenceError(
                f"Order store rejected {method} {table} (HTTP {response.status_code}): {response.text[:200]}"
            )
        if not response.content:
            return None
        return response.json()

    # -------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------
    def list_orders(self) -> list:
        rows = self._request(
            "GET",
            "orders",
            params={"select": "*,items:order_items(*)", "order": "timestamp.desc"},
        )
        return [order_from_record(row) for row in rows or []]

    def create_order(self, order) -> None:
        record = order_to_record(order)
        row = {column: record[column] for column in _ORDER_COLUMNS}
        self._request("POST", "orders", payload=row, prefer="return=representation")

        item_rows = [{**item, "order_record_id": record["id"]} for item in record["items"]]
        if not item_rows:
            return
        try:
            self._request("POST", "order_items", payload=item_rows, prefer="return=minimal")
        except PersistenceError:
            # Do not leave an order without its items behind
            try:
                self._request("DELETE", "orders", params={"id": f"eq.{record['id']}"})
            except PersistenceError:
                logger.error(
                    "Orphan order row left after failed item insert",
                    order_id=order.order_id,
                    record_id=record["id"],
                    exc_info=True,
                )
            raise

    def update_order(self, order) -> None:
        record = order_to_record(order)
        rows = self._request(
            "PATCH",
            "orders",
            params={"order_id": f"eq.{order.order_id}", "timestamp": f"eq.{order.timestamp}"},
            payload={column: record[column] for column in _MUTABLE_COLUMNS},
            prefer="return=representation",
        )
        if not rows:
            raise OrderNotFound(order.order_id, order.timestamp)

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------
    def list_users(self) -> list:
        rows = self._request("GET", "app_users", params={"select": "*", "order": "name.asc"})
        return [user_from_record(row) for row in rows or []]

    def upsert_user(self, user) -> None:
        self._request(
            "POST",
            "app_users",
            payload=user_to_record(user),
            prefer="resolution=merge-duplicates,return=minimal",
        )

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", "app_users", params={"id": f"eq.{user_id}"})
