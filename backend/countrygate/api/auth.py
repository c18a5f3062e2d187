"""Authentication endpoints — register, login, profile."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from countrygate.core.config import settings
from countrygate.core.database import get_db
from countrygate.core.errors import AuthenticationFailure, AuthorizationFailure, ConflictError
from countrygate.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    get_current_user,
)
from countrygate.models.user import User
from countrygate.schemas.auth import UserRegister, UserLogin, Token, UserProfile, ProfileResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])

logger = logging.getLogger("countrygate.auth")


# ─── Helpers ───


def _user_profile(user: User) -> UserProfile:
    return UserProfile(
        id=user.id,
        username=user.username,
        email=user.email,
        is_active=user.is_active,
        created_at=user.created_at,
        api_key_count=len(user.api_keys),
    )


def _token_for(user: User) -> Token:
    access_token = create_access_token(
        data={"sub": str(user.id), "username": user.username},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )
    return Token(
        access_token=access_token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=_user_profile(user),
    )


# ─── Register ───


@router.post("/register", response_model=Token, status_code=201)
def register(body: UserRegister, db: Session = Depends(get_db)):
    """Create a new user account and sign it in."""
    existing = (
        db.query(User)
        .filter(or_(User.username == body.username, User.email == body.email))
        .first()
    )
    if existing:
        field = "Username" if existing.username == body.username else "Email"
        raise ConflictError(f"{field} already registered")

    user = User(
        username=body.username,
        email=body.email,
        hashed_password=hash_password(body.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Registered user %s", user.username)
    return _token_for(user)


# ─── Login ───


@router.post("/login", response_model=Token)
def login(body: UserLogin, db: Session = Depends(get_db)):
    """Authenticate with username + password. Returns JWT."""
    user = db.query(User).filter(User.username == body.username).first()
    if not user or not verify_password(body.password, user.hashed_password):
        raise AuthenticationFailure("Incorrect username or password")
    if not user.is_active:
        raise AuthorizationFailure("Account disabled")

    return _token_for(user)


# ─── Profile ───


@router.get("/me", response_model=ProfileResponse)
def get_me(user: User = Depends(get_current_user)):
    """Get current user profile."""
    return ProfileResponse(user=_user_profile(user))
