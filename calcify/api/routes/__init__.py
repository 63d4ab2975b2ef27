"""API routes package."""

from calcify.api.routes import (
    auth,
    course_uploads,
    courses,
    graphing,
    intake,
    preferences,
    workspace,
)

__all__ = [
    "auth",
    "course_uploads",
    "courses",
    "graphing",
    "intake",
    "preferences",
    "workspace",
]
