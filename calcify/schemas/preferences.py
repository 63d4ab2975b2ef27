"""Preferences schemas."""

from datetime import datetime
from typing import Any

from calcify.schemas.base import BaseSchema


class PreferencesRead(BaseSchema):
    theme: str | None = None
    notifications_enabled: bool
    calc_mode: str | None = None
    extras: dict[str, Any] | None = None
    updated_at: datetime


class PreferencesUpdate(BaseSchema):
    """Partial update; omitted fields keep their stored (or default) value."""

    theme: str | None = None
    notifications_enabled: bool | None = None
    calc_mode: str | None = None
    extras: dict[str, Any] | None = None
