"""Picking bounded context — warehouse pick orders and two-person verification.

Tracks pick orders from document ingestion through separation and checking
sign-off to a terminal state, reconciling re-imported orders against the
active queue and the history held by the configured order store.
"""

from protean.domain import Domain

from picking.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

picking = Domain(name="picking")
