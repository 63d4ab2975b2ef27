"""Authentication schemas."""

from pydantic import Field

from calcify.schemas.base import BaseSchema


class GoogleAuthRequest(BaseSchema):
    """Request schema for Google sign-in."""

    id_token: str = Field(..., description="Google id_token obtained by the frontend")


class TokenResponse(BaseSchema):
    """Session JWT issued after sign-in."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token expiry in seconds")
