"""
Authentication module for user management.
Handles password hashing, JWT token creation/validation, and user verification.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, Field
import hashlib
import base64
import bcrypt

from config import JWT_SECRET_KEY, JWT_ALGORITHM, JWT_EXPIRATION_HOURS
from database import get_db
from errors import DuplicateEntry, Unauthorized, http_exception
from favorites_store import generate_share_token
from models import User, FavoriteList

import logging

logger = logging.getLogger(__name__)

# OAuth2 scheme for token extraction
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# Pydantic models for request/response
class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None


class TokenData(BaseModel):
    user_id: Optional[int] = None
    email: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    token: str


def _pre_hash_password(password: str) -> bytes:
    """
    Pre-hash password with SHA256 to handle passwords longer than 72 bytes.
    Returns base64-encoded SHA256 hash (always 44 bytes, safe for bcrypt).
    """
    sha256_hash = hashlib.sha256(password.encode('utf-8')).digest()
    return base64.b64encode(sha256_hash)


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.
    For passwords longer than 72 bytes, pre-hash with SHA256 first.
    """
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > 72:
        password_bytes = _pre_hash_password(password)
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt())
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash produced by hash_password."""
    password_bytes = plain_password.encode('utf-8')
    if len(password_bytes) > 72:
        password_bytes = _pre_hash_password(plain_password)
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing claims to encode (e.g., user_id, email)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=JWT_EXPIRATION_HOURS))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Optional[TokenData]:
    """Decode and validate a JWT token. Returns None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        user_id = payload.get("user_id")
        if user_id is None:
            return None
        return TokenData(user_id=user_id, email=payload.get("email"))
    except JWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None


def token_for_user(user: User) -> str:
    return create_access_token(data={"user_id": user.id, "email": user.email})


def _user_from_token(db: Session, token: Optional[str]) -> Optional[User]:
    if token is None:
        return None
    token_data = decode_token(token)
    if token_data is None:
        return None
    return db.get(User, token_data.user_id)


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user.

    Raises:
        HTTPException: 401 (from Unauthorized) if not authenticated or the token is invalid
    """
    user = _user_from_token(db, token)
    if user is None:
        raise http_exception(Unauthorized("Could not validate credentials"))
    return user


async def get_current_user_optional(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Dependency to optionally get the current authenticated user.
    Returns None if not authenticated (doesn't raise exception).
    """
    return _user_from_token(db, token)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get a user by email."""
    return db.query(User).filter(User.email == email).first()


def create_user(db: Session, user_data: UserCreate) -> User:
    """
    Create a new user together with their favorite list in one transaction.

    Raises:
        DuplicateEntry: if the email is already registered
    """
    if get_user_by_email(db, user_data.email):
        raise DuplicateEntry("User with this email already exists")

    db_user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
    )
    db_user.favorite_list = FavoriteList(share_token=generate_share_token())

    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateEntry("User with this email already exists") from e
    db.refresh(db_user)

    logger.info(f"Created user {db_user.id} ({db_user.email}) with favorite list")
    return db_user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Authenticate a user by email and password.

    Returns:
        User object if authenticated, None otherwise
    """
    user = get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def update_user(db: Session, user: User, user_data: UserUpdate) -> User:
    """
    Update a user's name and/or email.

    Raises:
        DuplicateEntry: if the new email belongs to another user
    """
    changes = user_data.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in changes:
        existing = get_user_by_email(db, changes["email"])
        if existing is not None and existing.id != user.id:
            raise DuplicateEntry("Email already in use")

    for field, value in changes.items():
        setattr(user, field, value)

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateEntry("Email already in use") from e
    db.refresh(user)

    logger.info(f"Updated profile of user {user.id} ({', '.join(sorted(changes)) or 'no changes'})")
    return user


def delete_user(db: Session, user: User) -> None:
    """Delete a user; their favorite list and its entries go with them."""
    user_id = user.id
    db.delete(user)
    db.commit()
    logger.info(f"Deleted user {user_id} and their favorite list")
