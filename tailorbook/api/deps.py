from functools import lru_cache

from tailorbook.db.store import TailorStore


@lru_cache()
def get_store() -> TailorStore:
    """Process-wide store handle; overridden in tests."""
    return TailorStore()
