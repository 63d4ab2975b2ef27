"""Graphing history routes."""

from fastapi import APIRouter, Query, status
from sqlalchemy import delete, select

from calcify.api.deps import CurrentUser, DbSession
from calcify.config import get_settings
from calcify.db.models import GraphHistoryEntry
from calcify.schemas.graphing import GraphEntryCreate, GraphEntryRead, GraphHistoryResponse

settings = get_settings()

router = APIRouter(prefix="/graphing/history", tags=["graphing"])


@router.get("/", response_model=GraphHistoryResponse)
async def list_graph_history(
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(settings.graph_history_default_limit, ge=1, le=200),
) -> GraphHistoryResponse:
    """Most recently rendered expressions first."""
    result = await db.execute(
        select(GraphHistoryEntry)
        .where(GraphHistoryEntry.user_id == current_user.id)
        .order_by(GraphHistoryEntry.rendered_at.desc())
        .limit(limit)
    )
    entries = [GraphEntryRead.model_validate(e) for e in result.scalars()]
    return GraphHistoryResponse(entries=entries, total=len(entries))


@router.post("/", response_model=GraphEntryRead, status_code=status.HTTP_201_CREATED)
async def log_graph_entry(
    data: GraphEntryCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> GraphEntryRead:
    entry = GraphHistoryEntry(
        user_id=current_user.id,
        expression=data.expression,
        variables=data.variables or {},
        settings=data.settings or {},
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return GraphEntryRead.model_validate(entry)


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def clear_graph_history(
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Delete every history entry of the current user."""
    await db.execute(delete(GraphHistoryEntry).where(GraphHistoryEntry.user_id == current_user.id))
    await db.commit()
