"""Operational endpoints: liveness/readiness check and a JWT smoke test."""

import time
from typing import Any, Callable, Dict

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

logger = structlog.get_logger(__name__)

HEALTH_CACHE_KEY = "core:health"


def _ping_database() -> None:
    with connections["default"].cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _ping_cache() -> None:
    cache.set(HEALTH_CACHE_KEY, "ok", 10)
    if cache.get(HEALTH_CACHE_KEY) != "ok":
        raise ConnectionError("cache round-trip failed")


def _check_component(name: str, ping: Callable[[], None]) -> Dict[str, Any]:
    start = time.monotonic()
    try:
        ping()
    except Exception as exc:
        logger.error("health_check.service_down", service=name, error=str(exc))
        return {"status": "down"}
    return {"status": "up", "response_time_ms": round((time.monotonic() - start) * 1000, 2)}


def _payment_providers() -> Dict[str, Any]:
    """Which providers have credentials; never the credentials themselves."""
    from modules.system_settings.repositories.django_repository import (
        SystemSettingDjangoRepository,
    )
    from modules.system_settings.services import SystemSettingService

    return {
        "environment": SystemSettingService(SystemSettingDjangoRepository()).get_active_environment(),
        "pix_configured": bool(settings.PIX_CLIENT_ID and settings.PIX_CLIENT_SECRET),
        "card_configured": bool(settings.CARD_SECRET_KEY),
    }


def health_check(request: HttpRequest) -> JsonResponse:
    services = {
        "database": _check_component("database", _ping_database),
        "cache": _check_component("cache", _ping_cache),
    }
    healthy = all(service["status"] == "up" for service in services.values())

    body: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": timezone.now().isoformat(),
        "services": services,
    }
    if services["database"]["status"] == "up":
        body["payments"] = _payment_providers()

    logger.info("health_check.completed", status=body["status"])
    return JsonResponse(body, status=200 if healthy else 503)


class ProtectedView(APIView):
    """Returns the authenticated user; 401 without a valid JWT."""

    permission_classes = [IsAuthenticated]

    def get(self, request: HttpRequest) -> Response:
        return Response({"message": "authenticated", "user": str(request.user)})
