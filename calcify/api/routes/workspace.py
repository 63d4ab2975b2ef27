"""Workspace routes."""

from datetime import datetime, timezone

from fastapi import APIRouter

from calcify.api.deps import CurrentUser, DbSession
from calcify.db.models import Workspace
from calcify.schemas.workspace import WorkspaceRead, WorkspaceUpdate
from calcify.services.user_defaults import ensure_user_defaults, get_workspace

router = APIRouter(prefix="/workspace", tags=["workspace"])


@router.get("/", response_model=WorkspaceRead)
async def read_workspace(
    current_user: CurrentUser,
    db: DbSession,
) -> WorkspaceRead:
    workspace = await get_workspace(db, current_user.id)
    if workspace is None:
        await ensure_user_defaults(db, current_user.id)
        await db.commit()
        workspace = await get_workspace(db, current_user.id)
    return WorkspaceRead.model_validate(workspace)


@router.put("/", response_model=WorkspaceRead)
async def upsert_workspace(
    data: WorkspaceUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> WorkspaceRead:
    """Replace the title and document of the user's workspace, creating it if needed."""
    workspace = await get_workspace(db, current_user.id)
    if workspace is None:
        workspace = Workspace(user_id=current_user.id, title=data.title, data=data.data)
        db.add(workspace)
    else:
        workspace.title = data.title
        workspace.data = data.data
        workspace.updated_at = datetime.now(timezone.utc)

    await db.commit()
    await db.refresh(workspace)
    return WorkspaceRead.model_validate(workspace)
