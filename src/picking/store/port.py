"""Order store port — abstract interface for persistence backends.

The lifecycle programs against this port; the remote (Supabase) and local
stores are swapped via configuration. Updates target one exact order instance
through ``(order_id, timestamp)``, never through ``order_id`` alone.
"""

from abc import ABC, abstractmethod


class PersistenceError(Exception):
    """A store call failed (timeout, connection problem or backend rejection)."""


class OrderNotFound(PersistenceError):
    """The targeted order instance no longer exists in the store."""

    def __init__(self, order_id: str, timestamp: str) -> None:
        self.order_id = order_id
        self.timestamp = timestamp
        super().__init__(f"Order {order_id} ({timestamp}) was not found in the store")


class OrderStore(ABC):
    """Abstract interface for order and user persistence adapters."""

    #: True when other processes may write to the same backend, so the
    #: in-memory view must be reloaded after every mutation.
    multi_writer: bool = False

    @abstractmethod
    def list_orders(self) -> list:
        """Return every order instance, most recent first."""
        ...

    @abstractmethod
    def create_order(self, order) -> None:
        ...

    @abstractmethod
    def update_order(self, order) -> None:
        """Overwrite the instance matching ``(order.order_id, order.timestamp)``.

        Raises:
            OrderNotFound: no stored instance has that pair.
        """
        ...

    @abstractmethod
    def list_users(self) -> list:
        ...

    @abstractmethod
    def upsert_user(self, user) -> None:
        ...

    @abstractmethod
    def delete_user(self, user_id: str) -> None:
        ...

    def refresh(self) -> list | None:
        """Reload orders from the source of truth after a mutation.

        Multi-writer stores return the fresh order list. Single-writer stores
        return None: the caller's in-memory view is already authoritative.
        """
        if self.multi_writer:
            return self.list_orders()
        return None
