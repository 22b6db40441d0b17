"""
Authentication schemas.

Request/response models for the auth and session endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    display_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_must_contain_number(cls, v: str) -> str:
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one number")
        return v


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    email: EmailStr
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    """Response for register and login."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Session token TTL in seconds")


# ---------------------------------------------------------------------------
# Me / Session
# ---------------------------------------------------------------------------

class MeResponse(BaseModel):
    """Current user profile."""

    id: UUID
    email: str
    display_name: str
    avatar_url: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SessionUser(BaseModel):
    id: UUID
    email: str
    display_name: str
    avatar_url: str | None = None

    model_config = {"from_attributes": True}


class SessionWorkspace(BaseModel):
    id: UUID
    name: str
    slug: str
    role: str


class SessionResponse(BaseModel):
    """Response for GET /auth/session when the caller is signed in."""

    user: SessionUser
    workspace: SessionWorkspace | None
