"""Item ledger — which line items of an order have been physically picked.

The ledger is the working copy of ``Order.picked_items`` during a picking
session. Toggling is idempotent per pair and silently ignored once the
separator has confirmed separation, which locks the ledger.
"""

from protean.exceptions import ValidationError


class ItemLedger:
    def __init__(self, order) -> None:
        self._item_numbers = list(order.item_numbers)
        self._picked = set(order.picked_items or [])
        self._locked = False

    @property
    def locked(self) -> bool:
        return self._locked

    def lock(self) -> None:
        self._locked = True

    def toggle(self, item_no: str) -> bool:
        """Flip the picked state of one item.

        Returns True when the ledger changed, False when it is locked.
        """
        if item_no not in self._item_numbers:
            raise ValidationError({"item_no": [f"Item {item_no} is not part of this order"]})
        if self._locked:
            return False

        if item_no in self._picked:
            self._picked.discard(item_no)
        else:
            self._picked.add(item_no)
        return True

    def is_picked(self, item_no: str) -> bool:
        return item_no in self._picked

    @property
    def picked(self) -> frozenset[str]:
        return frozenset(self._picked)

    def picked_in_order(self) -> list[str]:
        """Picked item numbers in the order's item order, ready to persist."""
        return [item_no for item_no in self._item_numbers if item_no in self._picked]

    @property
    def picked_count(self) -> int:
        return len(self._picked)

    @property
    def total(self) -> int:
        return len(self._item_numbers)

    @property
    def is_complete(self) -> bool:
        return self.picked_count == self.total

    def progress(self) -> float:
        """Share of picked items as a percentage; an order without items counts as done."""
        if not self.total:
            return 100.0
        return round(self.picked_count * 100.0 / self.total, 1)
