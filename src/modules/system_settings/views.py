"""System settings API views.

Settings are addressed by key: ``/api/v1/settings/{key}/``.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.system_settings.dtos import UpsertSettingDTO
from modules.system_settings.exceptions import SettingNotFound
from modules.system_settings.models import SystemSetting
from modules.system_settings.repositories.django_repository import (
    SystemSettingDjangoRepository,
)
from modules.system_settings.serializers import SystemSettingSerializer
from modules.system_settings.services import SystemSettingService


class SystemSettingViewSet(GenericViewSet):
    """List, read, upsert and delete settings by key."""

    queryset = SystemSetting.objects.all()
    serializer_class = SystemSettingSerializer
    lookup_field = "key"
    lookup_value_regex = r"[A-Za-z0-9_]+"
    pagination_class = None

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = SystemSettingService(repository=SystemSettingDjangoRepository())

    def list(self, request: Request) -> Response:
        """GET /api/v1/settings/"""
        serializer = SystemSettingSerializer(self._service.list_settings(), many=True)
        return Response(serializer.data)

    def retrieve(self, request: Request, key: str | None = None) -> Response:
        """GET /api/v1/settings/{key}/"""
        try:
            setting = self._service.get_setting(key or "")
        except SettingNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        return Response(SystemSettingSerializer(setting).data)

    def update(self, request: Request, key: str | None = None) -> Response:
        """PUT /api/v1/settings/{key}/ (creates the key when missing)"""
        if "value" not in request.data:
            return Response(
                {"detail": "Field 'value' is required."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            dto = UpsertSettingDTO(
                key=key or "",
                value=request.data.get("value"),
                description=request.data.get("description"),
            )
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        setting = self._service.set_value(dto.key, dto.value, dto.description)
        return Response(SystemSettingSerializer(setting).data)

    def partial_update(self, request: Request, key: str | None = None) -> Response:
        """PATCH /api/v1/settings/{key}/"""
        return self.update(request, key)

    def destroy(self, request: Request, key: str | None = None) -> Response:
        """DELETE /api/v1/settings/{key}/"""
        try:
            self._service.delete_setting(key or "")
        except SettingNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)
