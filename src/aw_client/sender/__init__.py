"""HTTP transport module for the server API."""

from .http_transport import HTTPTransport, TransportConfig, create_default_transport

__all__ = ["HTTPTransport", "TransportConfig", "create_default_transport"]
