"""Key/value system configuration.

Values are stored as JSON so a setting can hold a plain string
(``"12:00"``), a list (holidays) or a small object.  Administrators
create and update rows; the delivery scheduler only reads them.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel


class SystemSetting(BaseModel):
    key = models.CharField(max_length=100, unique=True)
    value = models.JSONField(null=True, blank=True, default=None)
    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "system_settings"
        ordering = ["key"]

    def __str__(self) -> str:
        return self.key
