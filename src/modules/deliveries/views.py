"""Delivery agenda API.

- ``GET /deliveries/?date=YYYY-MM-DD``: orders and subscription
  deliveries of the day (defaults to today).
- ``POST /deliveries/{order_id}/reschedule/``
- ``GET /deliveries/preview/?at=<datetime>``
"""

from __future__ import annotations

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.deliveries.exceptions import DeliveryCalendarError, InvalidDeliveryDate
from modules.deliveries.serializers import (
    AgendaQuerySerializer,
    DeliveryScheduleSerializer,
    OrderDeliverySerializer,
    PreviewQuerySerializer,
    RescheduleSerializer,
    SubscriptionDeliveryAgendaSerializer,
)
from modules.deliveries.services import build_delivery_service
from modules.orders.dtos import RescheduleDeliveryDTO
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound
from modules.orders.services import build_order_service


class DeliveryViewSet(ViewSet):
    def list(self, request: Request) -> Response:
        query = AgendaQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        day = query.validated_data.get("date") or timezone.localdate()

        agenda = build_delivery_service().agenda_for(day)
        return Response(
            {
                "date": day.isoformat(),
                "total": agenda.total,
                "orders": OrderDeliverySerializer(agenda.orders, many=True).data,
                "subscription_deliveries": SubscriptionDeliveryAgendaSerializer(
                    agenda.subscription_deliveries, many=True
                ).data,
            }
        )

    @action(detail=True, methods=["post"])
    def reschedule(self, request: Request, pk: str | None = None) -> Response:
        serializer = RescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RescheduleDeliveryDTO(
            delivery_date=serializer.validated_data["delivery_date"],
            delivery_time_slot=serializer.validated_data.get("time_slot"),
        )

        try:
            order = build_order_service().reschedule_delivery(pk or "", dto)
        except OrderNotFound:
            return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)
        except (InvalidOrderStatus, InvalidDeliveryDate) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(OrderDeliverySerializer(order).data)

    @action(detail=False, methods=["get"])
    def preview(self, request: Request) -> Response:
        query = PreviewQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        at = query.validated_data.get("at") or timezone.now()

        try:
            schedule = build_delivery_service().preview(at)
        except DeliveryCalendarError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(DeliveryScheduleSerializer(schedule).data)
