"""DocVault services: cache store, fetch orchestration and error handling."""

from .cache_store import CacheEntry, CacheStats, CacheStore, IndexRecord
from .document_service import DocumentService, build_store
from .error_classifier import ErrorClassification, classify_error, compute_backoff_delay
from .error_journal import ErrorJournal, JournalEntry
from .fetch_orchestrator import FetchOrchestrator, QueueItem
from .kv_store import MemoryKeyValueStore, SQLiteKeyValueStore
from .request_metrics import RequestMetrics, RequestMetricsSummary, RequestTiming

__all__ = [
    "CacheEntry",
    "CacheStats",
    "CacheStore",
    "DocumentService",
    "ErrorClassification",
    "ErrorJournal",
    "FetchOrchestrator",
    "IndexRecord",
    "JournalEntry",
    "MemoryKeyValueStore",
    "QueueItem",
    "RequestMetrics",
    "RequestMetricsSummary",
    "RequestTiming",
    "SQLiteKeyValueStore",
    "build_store",
    "classify_error",
    "compute_backoff_delay",
]
