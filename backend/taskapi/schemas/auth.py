"""
Task API — Account & Identity Schemas
======================================

What:  Request/response contracts for /auth/* and the Identity value produced
       by the authentication dependency.

Security:
    No response model here has a password or password_hash field, so a hash
    cannot be serialized even by accident.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from taskapi.schemas.common import CamelModel


class Identity(BaseModel):
    """
    The authenticated caller, resolved from a verified token.

    Passed explicitly from the route into every service call that needs to
    know who is asking. Immutable once built.
    """
    id: int
    username: str
    email: str

    model_config = {"frozen": True, "from_attributes": True}


class RegisterRequest(CamelModel):
    """Body of POST /auth/register."""
    username: str = Field(description="Unique login name", examples=["johndoe"])
    email: str = Field(description="Unique email address", examples=["john@example.com"])
    password: str = Field(description="Plain-text password (hashed before storage)")


class LoginRequest(CamelModel):
    """Body of POST /auth/login."""
    username: str
    password: str


class UserResponse(CamelModel):
    """Public representation of a registered user (201 from register)."""
    id: int
    username: str
    email: str
    created_at: datetime


class LoginResponse(CamelModel):
    """Body of a successful login."""
    token: str = Field(description="Bearer token for the Authorization header")


class ProfileResponse(CamelModel):
    """Body of GET /auth/profile."""
    username: str
    email: str
