"""User aggregate — people who sign off picking, and what they may sign."""

from enum import Enum

from protean.fields import String

from picking.domain import picking


class UserRole(Enum):
    """Role of a warehouse user.

    Separators sign the first confirmation step, confirmers the second one.
    Viewers can browse orders but never appear in either selection list.
    """

    SEPARATOR = "separator"
    CONFIRMER = "confirmer"
    VIEWER = "viewer"


@picking.aggregate
class User:
    name = String(required=True, max_length=100)
    role = String(required=True, choices=UserRole, default=UserRole.SEPARATOR.value)

    @property
    def can_separate(self) -> bool:
        return self.role == UserRole.SEPARATOR.value

    @property
    def can_confirm(self) -> bool:
        return self.role == UserRole.CONFIRMER.value
