"""Order domain exceptions.

Raised by the order conversion adapter.  The negotiation service wraps
them into ``AdapterFailure`` so an accepted negotiation can be retried.
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for order failures."""


class ProductNotFound(OrderError):
    """The product being ordered no longer exists."""


class InsufficientStock(OrderError):
    """Not enough stock to fulfil the order (RN-EST-004)."""
