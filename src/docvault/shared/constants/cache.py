"""
Cache Configuration Constants

Defaults for the cache store and the layout of records inside the durable
key-value store.
"""

# Base time units for TTL calculations
BASE_SECOND = 1
BASE_MINUTE = 60 * BASE_SECOND
BASE_HOUR = 60 * BASE_MINUTE
BASE_DAY = 24 * BASE_HOUR


class CacheDefaults:
    """Cache store defaults."""

    TTL = 24 * BASE_HOUR
    MAX_ENTRIES = 500
    CLEANUP_THRESHOLD = 0.9  # evict once 90% of max_entries is reached
    CLEANUP_RATIO = 0.3  # evict the oldest 30% of live entries

    BACKEND_MEMORY = "memory"
    BACKEND_SQLITE = "sqlite"
    DEFAULT_BACKEND = BACKEND_SQLITE
    DEFAULT_DB_PATH = "cache/docvault.db"


class StorageKeys:
    """Keys used inside the durable key-value store."""

    ENTRY_PREFIX = "cache_"
    INDEX_KEY = "cacheIndex"

    FIELD_VALUE = "value"
    FIELD_INSERTED_AT = "inserted_at"
    FIELD_LAST_ACCESSED_AT = "last_accessed_at"
    FIELD_KEY = "key"

    @classmethod
    def entry_key(cls, key: str) -> str:
        return f"{cls.ENTRY_PREFIX}{key}"


class RecordMetadata:
    """Fetch metadata attached to fetched dict records."""

    FIELD = "metadata"
    FETCH_TIME_MS = "fetch_time_ms"
    FETCH_DATE = "fetch_date"
    SOURCE = "source"
    RETRY_COUNT = "retry_count"
