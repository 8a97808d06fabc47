"""Shared pagination classes for the API layer."""

from __future__ import annotations

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page-number pagination with a client-controlled ``page_size``.

    ``page_size`` is capped at ``max_page_size`` to protect list endpoints.
    """

    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100
