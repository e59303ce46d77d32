from .base import RecordStore
from .factory import get_record_store
from .memory import InMemoryRecordStore

__all__ = ["RecordStore", "InMemoryRecordStore", "get_record_store"]
