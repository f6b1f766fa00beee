"""Transport implementations."""

from .http_transport import AiohttpTransport

__all__ = ["AiohttpTransport"]
