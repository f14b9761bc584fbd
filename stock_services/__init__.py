"""
stock_services -- outer adapters over the stock kernel.

Responsibility:
    Wires configuration into the kernel and exposes it to callers as a
    JSON-shaped, in-process API (``StockApi``).  The kernel never imports
    from this package.
"""

from stock_services.serialization import serialize, serialize_many, to_camel
from stock_services.stock_api import ApiResponse, StockApi, error_envelope, status_for

__all__ = [
    "ApiResponse",
    "StockApi",
    "error_envelope",
    "serialize",
    "serialize_many",
    "status_for",
    "to_camel",
]
