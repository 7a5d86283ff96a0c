"""
Shared API dependencies
"""

from typing import Optional
import threading

from ..store import LedgerStore


_store: Optional[LedgerStore] = None
_store_lock = threading.Lock()


def get_store() -> LedgerStore:
    """Process-wide ledger store, built from configuration on first use"""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = LedgerStore.from_config()
    return _store
