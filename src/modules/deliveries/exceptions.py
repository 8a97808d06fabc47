"""Delivery domain exceptions."""

from __future__ import annotations


class DeliveryCalendarError(Exception):
    """No business day exists inside the allowed advance window.

    This means the holiday configuration blocks every candidate day,
    which is a configuration problem rather than a request problem.
    """


class InvalidDeliveryDate(Exception):
    """A manually chosen delivery date is in the past or not a business day."""
