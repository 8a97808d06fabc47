"""Subscription API views."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.subscriptions.dtos import CreateSubscriptionDTO, CreateSubscriptionItemDTO
from modules.subscriptions.exceptions import (
    CustomerNotFound,
    InactiveCustomer,
    InactiveProduct,
    InvalidSubscriptionStatus,
    ProductNotFound,
    SubscriptionNotFound,
)
from modules.subscriptions.filters import SubscriptionFilter
from modules.subscriptions.models import Subscription
from modules.subscriptions.repositories.django_repository import SubscriptionDjangoRepository
from modules.subscriptions.serializers import (
    CreateSubscriptionSerializer,
    SubscriptionListSerializer,
    SubscriptionSerializer,
)
from modules.subscriptions.services import build_subscription_service


def _not_found() -> Response:
    return Response({"detail": "Subscription not found."}, status=status.HTTP_404_NOT_FOUND)


class SubscriptionViewSet(GenericViewSet):
    queryset = Subscription.objects.all()
    filterset_class = SubscriptionFilter
    search_fields = ["subscription_number", "customer__name"]
    ordering_fields = ["created_at", "total_amount", "next_delivery_date"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_subscription_service()

    def get_queryset(self):
        return SubscriptionDjangoRepository().list()

    def create(self, request: Request) -> Response:
        """POST /api/v1/subscriptions/"""
        serializer = CreateSubscriptionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = CreateSubscriptionDTO(
                customer_id=data["customer_id"],
                items=[
                    CreateSubscriptionItemDTO(product_id=item["product_id"], quantity=item["quantity"])
                    for item in data["items"]
                ],
                frequency=data["frequency"],
                delivery_weekday=data["delivery_weekday"],
                delivery_weekdays=data["delivery_weekdays"],
                delivery_time_slot=data.get("delivery_time_slot"),
                is_emergency=data["is_emergency"],
                payment_method=data["payment_method"],
                notes=data.get("notes", ""),
            )
        except PydanticValidationError as exc:
            return Response(
                {"detail": exc.errors(include_url=False, include_context=False)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            subscription = self._service.create_subscription(dto)
        except (CustomerNotFound, ProductNotFound) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except (InactiveCustomer, InactiveProduct) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(SubscriptionSerializer(subscription).data, status=status.HTTP_201_CREATED)

    def list(self, request: Request) -> Response:
        """GET /api/v1/subscriptions/"""
        queryset = self.filter_queryset(self.get_queryset())
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        return paginator.get_paginated_response(SubscriptionListSerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/subscriptions/{pk}/"""
        try:
            subscription = self._service.get_subscription(pk or "")
        except SubscriptionNotFound:
            return _not_found()
        return Response(SubscriptionSerializer(subscription).data)

    # ------------------------------------------------------------------
    # Status actions
    # ------------------------------------------------------------------

    def _run(self, operation, pk: str | None) -> Response:
        try:
            subscription = operation(pk or "")
        except SubscriptionNotFound:
            return _not_found()
        except InvalidSubscriptionStatus as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        subscription = self._service.get_subscription(str(subscription.id))
        return Response(SubscriptionSerializer(subscription).data)

    @action(detail=True, methods=["post"])
    def pause(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/subscriptions/{pk}/pause/"""
        return self._run(self._service.pause, pk)

    @action(detail=True, methods=["post"])
    def resume(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/subscriptions/{pk}/resume/"""
        return self._run(self._service.resume, pk)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/subscriptions/{pk}/cancel/"""
        return self._run(self._service.cancel, pk)
