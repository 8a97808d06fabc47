"""Product domain exceptions."""

from __future__ import annotations


class ProductAlreadyExists(Exception):
    """A product with the same code already exists."""


class ProductNotFound(Exception):
    """The requested product does not exist or has been soft-deleted."""
