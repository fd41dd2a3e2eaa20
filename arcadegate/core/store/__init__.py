"""
Record store contract and engines.
"""

from arcadegate.core.store.base import Record, RecordStore
from arcadegate.core.store.bootstrap import BootstrapResult, bootstrap_store
from arcadegate.core.store.memory import MemoryRecordStore
from arcadegate.core.store.sqlite import SqliteRecordStore

__all__ = ["Record", "RecordStore", "MemoryRecordStore", "SqliteRecordStore", "bootstrap_store", "BootstrapResult"]
