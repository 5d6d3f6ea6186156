"""Two-step sign-off that gates completion of a picking order.

Step 1 (separation) is signed by a separator and locks the item ledger, since
the physical pick is frozen for inspection from that point on. Step 2
(checking) is signed by a different user with the confirmer role and is only
available after step 1. The workflow state lives in the picking session and is
never persisted; only the two names are stamped on the order at finalize time.
"""

from protean.exceptions import ValidationError

from picking.order.ledger import ItemLedger
from picking.user.user import User


class ConfirmationWorkflow:
    def __init__(self, ledger: ItemLedger) -> None:
        self.ledger = ledger
        self.picker_confirmed = False
        self.checker_confirmed = False
        self.separator: User | None = None
        self.confirmer: User | None = None

    @property
    def selected_separator_id(self) -> str | None:
        return str(self.separator.id) if self.separator else None

    @property
    def selected_confirmer_id(self) -> str | None:
        return str(self.confirmer.id) if self.confirmer else None

    # -------------------------------------------------------------------
    # Step 1: separation
    # -------------------------------------------------------------------
    def select_separator(self, user: User | None) -> None:
        if self.picker_confirmed:
            raise ValidationError({"separator": ["Separation is already confirmed"]})
        if user is not None and not user.can_separate:
            raise ValidationError({"separator": [f"{user.name} cannot sign the separation step"]})
        self.separator = user

    def confirm_separation(self) -> None:
        if self.separator is None:
            raise ValidationError({"separator": ["Select the separator before confirming separation"]})
        self.picker_confirmed = True
        self.ledger.lock()

    # -------------------------------------------------------------------
    # Step 2: checking
    # -------------------------------------------------------------------
    def select_confirmer(self, user: User | None) -> None:
        if not self.picker_confirmed:
            raise ValidationError({"confirmer": ["Separation must be confirmed before selecting the confirmer"]})
        if self.checker_confirmed:
            raise ValidationError({"confirmer": ["Checking is already confirmed"]})
        if user is not None:
            if not user.can_confirm:
                raise ValidationError({"confirmer": [f"{user.name} cannot sign the checking step"]})
            if self.separator is not None and user.id == self.separator.id:
                raise ValidationError({"confirmer": ["The confirmer must be a different person from the separator"]})
        self.confirmer = user

    def confirm_checking(self) -> None:
        if not self.picker_confirmed:
            raise ValidationError({"confirmer": ["Separation must be confirmed before checking"]})
        if self.confirmer is None:
            raise ValidationError({"confirmer": ["Select the confirmer before confirming checking"]})
        self.checker_confirmed = True

    # -------------------------------------------------------------------
    # Gate
    # -------------------------------------------------------------------
    def missing_steps(self) -> list[str]:
        missing = []
        if self.separator is None:
            missing.append("separator selection")
        if not self.picker_confirmed:
            missing.append("separation confirmation")
        if self.confirmer is None:
            missing.append("confirmer selection")
        if not self.checker_confirmed:
            missing.append("checking confirmation")
        return missing

    @property
    def is_ready(self) -> bool:
        return not self.missing_steps()

    def ensure_ready(self) -> None:
        """Raise a ValidationError naming every precondition still missing for finalize."""
        missing = self.missing_steps()
        if missing:
            raise ValidationError({"confirmation": [f"Cannot finalize, missing: {', '.join(missing)}"]})
