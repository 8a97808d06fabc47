"""Customer domain exceptions."""

from __future__ import annotations


class CustomerAlreadyExists(Exception):
    """A customer with the same document or email already exists."""


class CustomerNotFound(Exception):
    """The requested customer does not exist or has been soft-deleted."""
