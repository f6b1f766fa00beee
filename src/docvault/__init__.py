"""
DocVault - Cached Document Fetching Engine

Fetches remote documents by key, parses them into records and serves
repeat requests from a bounded, expiring cache with admission-controlled
concurrency and classified retries.
"""

__version__ = "0.1.0"

from .services.document_service import DocumentService
from .shared.errors import FetchFailure

__all__ = [
    "DocumentService",
    "FetchFailure",
    "__version__",
]
