"""Order store factory.

Provides get_store() / set_store() to swap implementations:
- LocalStore for single-workstation use and testing
- SupabaseStore for shared, multi-user production use
"""

import os

from picking.store.port import OrderStore

_current_store: OrderStore | None = None


def _default_adapter() -> str:
    if os.environ.get("SUPABASE_URL") and os.environ.get("SUPABASE_KEY"):
        return "supabase"
    return "local"


def get_store() -> OrderStore:
    """Return the configured order store (singleton).

    Selected through the PICKING_STORE environment variable; when unset,
    Supabase is used if SUPABASE_URL and SUPABASE_KEY are present, the local
    store otherwise.
    """
    global _current_store
    if _current_store is None:
        adapter = os.environ.get("PICKING_STORE") or _default_adapter()
        if adapter == "local":
            from picking.store.local_adapter import LocalStore

            _current_store = LocalStore(path=os.environ.get("PICKING_DATA_FILE") or None)
        elif adapter == "supabase":
            from picking.store.supabase_adapter import SupabaseStore

            _current_store = SupabaseStore(
                url=os.environ.get("SUPABASE_URL", ""),
                key=os.environ.get("SUPABASE_KEY", ""),
                timeout=int(os.environ.get("SUPABASE_TIMEOUT", "30")),
            )
        else:
            raise ValueError(f"Unknown order store: {adapter}")
    return _current_store


def set_store(store: OrderStore) -> None:
    """Override the active store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_store() -> None:
    """Reset the store singleton (useful for testing)."""
    global _current_store
    _current_store = None
