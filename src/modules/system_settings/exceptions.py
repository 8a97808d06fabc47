"""System settings domain exceptions."""

from __future__ import annotations


class SettingNotFound(Exception):
    """No setting is stored under the requested key."""
