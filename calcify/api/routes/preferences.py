"""User preferences routes."""

from datetime import datetime, timezone

from fastapi import APIRouter

from calcify.api.deps import CurrentUser, DbSession
from calcify.db.models import Preferences
from calcify.schemas.preferences import PreferencesRead, PreferencesUpdate
from calcify.services.user_defaults import (
    DEFAULT_CALC_MODE,
    DEFAULT_THEME,
    ensure_user_defaults,
    get_preferences,
)

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("/", response_model=PreferencesRead)
async def read_preferences(
    current_user: CurrentUser,
    db: DbSession,
) -> PreferencesRead:
    """Get preferences, provisioning defaults for accounts that predate them."""
    prefs = await get_preferences(db, current_user.id)
    if prefs is None:
        await ensure_user_defaults(db, current_user.id)
        await db.commit()
        prefs = await get_preferences(db, current_user.id)
    return PreferencesRead.model_validate(prefs)


@router.put("/", response_model=PreferencesRead)
async def upsert_preferences(
    data: PreferencesUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> PreferencesRead:
    """Update the given fields, creating the row with defaults for the rest if needed."""
    prefs = await get_preferences(db, current_user.id)
    if prefs is None:
        prefs = Preferences(
            user_id=current_user.id,
            theme=data.theme or DEFAULT_THEME,
            notifications_enabled=(
                data.notifications_enabled if data.notifications_enabled is not None else True
            ),
            calc_mode=data.calc_mode or DEFAULT_CALC_MODE,
            extras=data.extras or {},
        )
        db.add(prefs)
    else:
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(prefs, key, value)
        prefs.updated_at = datetime.now(timezone.utc)

    await db.commit()
    await db.refresh(prefs)
    return PreferencesRead.model_validate(prefs)
