"""
Authentication Routes

Endpoints:
- POST /auth/google - Exchange Google id_token for session
- POST /auth/logout - Clear session
- GET /auth/me - Get current user profile

The frontend completes Google sign-in and posts the id_token here. We verify
it against Google's keys, upsert the user and its auth_identity, make sure the
account has its default preferences and workspace, and hand back a JWT as an
HttpOnly cookie and in the response body.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from calcify.api.deps import CurrentUser, create_access_token
from calcify.config import get_settings
from calcify.db.models import AuthIdentity, User
from calcify.db.session import get_db
from calcify.schemas.auth import GoogleAuthRequest, TokenResponse
from calcify.schemas.user import UserRead
from calcify.services.user_defaults import ensure_user_defaults

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()

_GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


def _cookie_options() -> dict:
    # Cross-domain deployments need SameSite=None, which browsers only accept with Secure
    return {
        "httponly": True,
        "secure": settings.cookie_cross_domain or settings.environment != "development",
        "samesite": "none" if settings.cookie_cross_domain else "lax",
    }


@router.post("/google", response_model=TokenResponse)
async def google_login(
    request: GoogleAuthRequest,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    Exchange a Google id_token for a session JWT.

    First sign-in creates the user (or links to an existing account with the
    same verified email) and provisions its defaults.
    """
    try:
        # Checks signature, expiry and audience
        idinfo = google_id_token.verify_oauth2_token(
            request.id_token,
            google_requests.Request(),
            settings.google_client_id,
        )

        provider_user_id = idinfo["sub"]
        email = idinfo.get("email")
        name = idinfo.get("name", email or "Unknown User")

        if idinfo.get("iss") not in _GOOGLE_ISSUERS:
            raise ValueError("Invalid issuer")

        # Unverified emails are never used for account linking
        if email and not idinfo.get("email_verified", False):
            email = None

    except ValueError as e:
        logger.info("Rejected Google sign-in: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid Google id_token: {e}",
        )

    result = await db.execute(
        select(AuthIdentity)
        .options(selectinload(AuthIdentity.user))
        .where(
            AuthIdentity.provider == "google",
            AuthIdentity.provider_user_id == provider_user_id,
        )
    )
    auth_identity = result.scalar_one_or_none()

    if auth_identity:
        auth_identity.last_login_at = datetime.now(timezone.utc)
        if email:
            auth_identity.email = email
        user = auth_identity.user
    else:
        user = None
        if email:
            result = await db.execute(select(User).where(User.email == email.lower()))
            user = result.scalar_one_or_none()

        if user is None:
            user = User(
                email=email.lower() if email else None,
                name=name,
            )
            db.add(user)
            await db.flush()  # Get user.id
            logger.info("Created user %s", user.id)

        auth_identity = AuthIdentity(
            user_id=user.id,
            provider="google",
            provider_user_id=provider_user_id,
            email=email,
        )
        db.add(auth_identity)

    await ensure_user_defaults(db, user.id)
    await db.commit()

    access_token = create_access_token(user.id)
    expires_in = settings.jwt_expire_minutes * 60

    response.set_cookie(
        key="access_token",
        value=access_token,
        max_age=expires_in,
        **_cookie_options(),
    )

    return TokenResponse(
        access_token=access_token,
        expires_in=expires_in,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """Clear the session cookie. A JWT held elsewhere stays valid until expiry."""
    response.delete_cookie(key="access_token", **_cookie_options())


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    """Get the current authenticated user's profile."""
    return UserRead.model_validate(current_user)
