"""Pydantic schemas for registration, login and the user profile."""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime


# ─── Auth ───


class UserRegister(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)


class UserLogin(BaseModel):
    username: str
    password: str


# ─── User Profile ───


class UserProfile(BaseModel):
    id: int
    username: str
    email: str
    is_active: bool
    created_at: datetime
    api_key_count: int = 0

    class Config:
        from_attributes = True


class Token(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile


class ProfileResponse(BaseModel):
    success: bool = True
    user: UserProfile
