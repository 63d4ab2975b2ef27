"""Per-user rows every account is expected to have."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from calcify.db.models import Preferences, Workspace

logger = logging.getLogger(__name__)

DEFAULT_THEME = "system"
DEFAULT_CALC_MODE = "symbolic"
DEFAULT_WORKSPACE_TITLE = "Main Workspace"


async def get_preferences(db: AsyncSession, user_id: UUID) -> Preferences | None:
    result = await db.execute(select(Preferences).where(Preferences.user_id == user_id))
    return result.scalar_one_or_none()


async def get_workspace(db: AsyncSession, user_id: UUID) -> Workspace | None:
    """The user's first workspace."""
    result = await db.execute(
        select(Workspace)
        .where(Workspace.user_id == user_id)
        .order_by(Workspace.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def ensure_user_defaults(db: AsyncSession, user_id: UUID) -> None:
    """
    Create default preferences and a starter workspace if missing.

    Only adds to the session; the caller commits.
    """
    if await get_preferences(db, user_id) is None:
        db.add(
            Preferences(
                user_id=user_id,
                theme=DEFAULT_THEME,
                notifications_enabled=True,
                calc_mode=DEFAULT_CALC_MODE,
                extras={},
            )
        )
        logger.info("Provisioned default preferences for user %s", user_id)

    if await get_workspace(db, user_id) is None:
        db.add(Workspace(user_id=user_id, title=DEFAULT_WORKSPACE_TITLE, data={"notes": ""}))
        logger.info("Provisioned starter workspace for user %s", user_id)
