"""
muntanyers Backend: Account Schemas
===================================

What:  Request and response models for registration, login, profiles,
       password changes, account deletion, search and avatars.

Required-field checks (empty username, empty password...) are business rules
enforced by AccountService so they surface as 400 validation errors; these
models only describe shapes and types.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    username: str = Field(default="", max_length=50)
    email: str = Field(default="", max_length=255)
    password: str = Field(default="")


class LoginRequest(BaseModel):
    username: str = Field(default="")
    password: str = Field(default="")


class ProfileUpdateRequest(BaseModel):
    username: str = Field(default="", max_length=50)
    bio: str = Field(default="")
    private: bool = Field(default=False, description="Require approval for new followers")


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(default="")
    new_password: str = Field(default="")


class AccountDeleteRequest(BaseModel):
    password: str = Field(default="", description="Current password, required to confirm")


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class AuthResponse(BaseModel):
    """Returned by register and login; the session cookie is set alongside."""
    success: bool = True
    user_id: int
    username: str


class AuthStatusResponse(BaseModel):
    authenticated: bool
    user_id: Optional[int] = None
    username: Optional[str] = None


class ProfileCounts(BaseModel):
    post_count: int = 0
    follower_count: int = Field(default=0, description="Accepted edges into the account")
    following_count: int = Field(default=0, description="Accepted edges out of the account")


class OwnProfileResponse(ProfileCounts):
    """The caller's own profile, including private fields."""
    id: int
    username: str
    email: str
    bio: str
    avatar_url: str
    private: bool
    created_at: datetime


class PublicProfileResponse(ProfileCounts):
    """
    Someone else's profile as seen by the caller.

    is_following:        caller holds an accepted edge to this account
    has_pending_request: caller's request is awaiting approval
    """
    id: int
    username: str
    bio: str
    avatar_url: str
    private: bool
    created_at: datetime
    is_following: bool = False
    has_pending_request: bool = False


class UserSearchItem(BaseModel):
    id: int
    username: str
    avatar_url: str
    bio: str
    follower_count: int


class AvatarResponse(BaseModel):
    success: bool = True
    avatar_url: str = Field(description="Public URL path of the stored avatar")
