from .local_store import COLLECTION_KEYS, LocalStore
from .storage import FileStorage, MemoryStorage

__all__ = ["LocalStore", "COLLECTION_KEYS", "FileStorage", "MemoryStorage"]
