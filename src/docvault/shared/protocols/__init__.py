"""Protocol interfaces for DocVault collaborators."""

from .collaborators import KeyValueStoreProtocol, ParserProtocol, TransportProtocol

__all__ = ["KeyValueStoreProtocol", "ParserProtocol", "TransportProtocol"]
