"""System settings URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.system_settings.views import SystemSettingViewSet

router = DefaultRouter(trailing_slash=True)
router.register("settings", SystemSettingViewSet, basename="setting")

urlpatterns = router.urls
