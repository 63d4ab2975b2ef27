"""Pydantic schemas for API request/response validation."""

from calcify.schemas.user import UserRead
from calcify.schemas.auth import GoogleAuthRequest, TokenResponse
from calcify.schemas.course_record import CourseRecord
from calcify.schemas.courses import CourseCreate, CourseDetail, CourseRead
from calcify.schemas.course_files import CourseFileListResponse, CourseFileRead
from calcify.schemas.intake import (
    ChatMessage,
    IntakeMessageRequest,
    IntakeReply,
    StructuredInfoRequest,
    StructuredInfoResponse,
)
from calcify.schemas.graphing import GraphEntryCreate, GraphEntryRead
from calcify.schemas.preferences import PreferencesRead, PreferencesUpdate
from calcify.schemas.workspace import WorkspaceRead, WorkspaceUpdate

__all__ = [
    # User
    "UserRead",
    # Auth
    "GoogleAuthRequest",
    "TokenResponse",
    # Courses
    "CourseRecord",
    "CourseCreate",
    "CourseDetail",
    "CourseRead",
    # Uploads
    "CourseFileListResponse",
    "CourseFileRead",
    # Intake
    "ChatMessage",
    "IntakeMessageRequest",
    "IntakeReply",
    "StructuredInfoRequest",
    "StructuredInfoResponse",
    # Graphing
    "GraphEntryCreate",
    "GraphEntryRead",
    # Preferences
    "PreferencesRead",
    "PreferencesUpdate",
    # Workspace
    "WorkspaceRead",
    "WorkspaceUpdate",
]
