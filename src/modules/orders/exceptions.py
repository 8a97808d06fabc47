"""Order domain exceptions.

Raised by the Service Layer; the views translate them into HTTP
responses.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist or has been soft-deleted."""


class InvalidOrderStatus(Exception):
    """An invalid payment or delivery status transition was attempted."""


class InsufficientStock(Exception):
    """Not enough stock to fulfil the order."""


class InactiveCustomer(Exception):
    """The customer is inactive and cannot place orders."""


class CustomerNotFound(Exception):
    """The customer referenced by the order does not exist."""


class ProductNotFound(Exception):
    """A product referenced by an order item does not exist."""


class InactiveProduct(Exception):
    """A product referenced by an order item is inactive."""
