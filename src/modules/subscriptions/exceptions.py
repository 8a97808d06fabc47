"""Subscription domain exceptions."""

from __future__ import annotations


class SubscriptionNotFound(Exception):
    """The requested subscription does not exist or has been soft-deleted."""


class InvalidSubscriptionStatus(Exception):
    """An invalid subscription status transition was attempted."""


class CustomerNotFound(Exception):
    pass


class InactiveCustomer(Exception):
    pass


class ProductNotFound(Exception):
    pass


class InactiveProduct(Exception):
    pass
