"""API routes for course material uploads (syllabi, handouts, notes)."""

import logging
import re
import time
from uuid import UUID

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from sqlalchemy import select

from calcify.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from calcify.config import get_settings, sanitize_error
from calcify.db.models import CourseFile
from calcify.schemas.course_files import CourseFileListResponse, CourseFileRead
from calcify.services import s3_service, syllabus_processor
from calcify.services.s3 import StorageError

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/course-uploads", tags=["course-uploads"])

_UNSAFE_CHARS = re.compile(r"[^\w.-]+", re.ASCII)


def safe_filename(name: str) -> str:
    """Replace each run of characters outside [A-Za-z0-9_.-] with a single underscore."""
    return _UNSAFE_CHARS.sub("_", name)


def build_storage_key(user_id: UUID, name: str, timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"users/{user_id}/uploads/{timestamp_ms}-{safe_filename(name)}"


@router.get("/", response_model=CourseFileListResponse)
async def list_uploads(
    db: DbSession,
    user: CurrentUser,
) -> CourseFileListResponse:
    """List the current user's uploads, oldest first."""
    result = await db.execute(
        select(CourseFile)
        .where(CourseFile.user_id == user.id)
        .order_by(CourseFile.created_at.asc())
    )
    files = [CourseFileRead.model_validate(f) for f in result.scalars()]
    return CourseFileListResponse(files=files, total=len(files))


@router.post("/", response_model=CourseFileRead, status_code=status.HTTP_201_CREATED)
async def upload_course_file(
    db: DbSession,
    user: CurrentUser,
    file: UploadFile = File(...),
) -> CourseFileRead:
    """
    Store an uploaded file for the intake assistant.

    Files over the size limit are rejected, as are files that claim to be a
    PDF but cannot be opened as one. The bytes go to S3; the row keeps the
    original name for display.
    """
    original_name = file.filename or "upload"
    data = await file.read()

    if len(data) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File is too large. Max size is {settings.max_upload_size_bytes // (1024 * 1024)} MB.",
        )

    mime_type = file.content_type or None
    if syllabus_processor.is_pdf(mime_type, original_name):
        if not await syllabus_processor.validate_pdf(data):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The uploaded file is not a valid PDF.",
            )

    storage_key = build_storage_key(user.id, original_name)
    try:
        await s3_service.upload_file(storage_key, data, mime_type)
    except StorageError as e:
        logger.error("Failed to store upload %s: %s", storage_key, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=sanitize_error(e, generic_message="Failed to store the uploaded file."),
        )

    course_file = CourseFile(
        user_id=user.id,
        original_name=original_name,
        mime_type=mime_type,
        size_bytes=len(data),
        storage_key=storage_key,
    )
    db.add(course_file)
    await db.commit()
    await db.refresh(course_file)

    logger.info("Stored upload %s (%d bytes) for user %s", course_file.id, len(data), user.id)
    return CourseFileRead.model_validate(course_file)


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_upload(
    file_id: UUID,
    db: DbSession,
    user: CurrentUser,
) -> None:
    """Delete the upload row, then its stored object. A storage failure is only logged."""
    course_file = await get_user_resource_or_404(db, CourseFile, file_id, user.id)
    storage_key = course_file.storage_key

    await db.delete(course_file)
    await db.commit()

    try:
        await s3_service.delete_file(storage_key)
    except StorageError as e:
        logger.warning("Failed to remove stored upload %s: %s", storage_key, e)
