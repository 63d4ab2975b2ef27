"""
Calcify FastAPI Application Entry Point.

Run with: uvicorn calcify.main:app --reload
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from calcify.config import get_settings
from calcify.api.routes import (
    auth,
    course_uploads,
    courses,
    graphing,
    intake,
    preferences,
    workspace,
)
from calcify.db.session import engine

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Calculus course planner, intake assistant and graphing API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Intake must be registered before the /courses/{course_id} routes
app.include_router(auth.router)
app.include_router(intake.router)
app.include_router(courses.router)
app.include_router(course_uploads.router)
app.include_router(graphing.router)
app.include_router(preferences.router)
app.include_router(workspace.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
