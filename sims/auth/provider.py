"""
Identity provider port and its database-backed implementation.

The bulk importer only ever talks to an IdentityProvider; which one is used
is decided per request in sims.auth.dependencies (database or Supabase).
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sims.auth.models import Profile, User
from sims.auth.schemas import AuthUser, LoginResponse
from sims.auth.security import create_access_token, decode_access_token, hash_password, verify_password
from sims.core.config import settings
from sims.core.exceptions import IdentityError

INVALID_EMAIL_MESSAGE = "Unable to validate email address: invalid format"
EMAIL_EXISTS_MESSAGE = "A user with this email address has already been registered"
INVALID_CREDENTIALS_MESSAGE = "Invalid login credentials"
CREATE_FAILED_MESSAGE = "Database error creating new user"

_email_adapter = TypeAdapter(EmailStr)


class IdentityProvider(ABC):
    @abstractmethod
    async def get_user(self, token: str) -> Optional[AuthUser]:
        """Resolve a bearer token to its account; None if invalid, expired or unknown."""

    @abstractmethod
    async def create_user(self, email: str, password: str, user_metadata: Dict[str, Any]) -> AuthUser:
        """Create a confirmed account. Raises IdentityError with the provider's message."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> LoginResponse:
        """Password sign-in. Raises IdentityError on bad credentials."""


def _to_auth_user(user: User) -> AuthUser:
    return AuthUser(id=user.id, email=user.email, user_metadata=user.user_metadata or {})


class DatabaseIdentityProvider(IdentityProvider):
    """Accounts in the users table, bcrypt hashes, HS256 access tokens."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_user(self, token: str) -> Optional[AuthUser]:
        claims = decode_access_token(token)
        if not claims:
            return None
        try:
            user_id = UUID(str(claims.get("sub")))
        except ValueError:
            return None
        user = await self.db.get(User, user_id)
        if not user:
            return None
        return _to_auth_user(user)

    async def create_user(self, email: str, password: str, user_metadata: Dict[str, Any]) -> AuthUser:
        address = email.strip()
        try:
            validated = _email_adapter.validate_python(address)
        except ValidationError:
            raise IdentityError(INVALID_EMAIL_MESSAGE)
        # EmailStr also accepts "Name <addr>"; only a bare address may become an account
        if validated.lower() != address.lower():
            raise IdentityError(INVALID_EMAIL_MESSAGE)
        if len(password) < settings.password_min_length:
            raise IdentityError(f"Password should be at least {settings.password_min_length} characters.")
        if await self._find_by_email(email):
            raise IdentityError(EMAIL_EXISTS_MESSAGE)

        user = User(
            email=address.lower(),
            password_hash=hash_password(password),
            user_metadata=dict(user_metadata),
            email_confirmed_at=datetime.now(timezone.utc),
        )
        try:
            self.db.add(user)
            await self.db.flush()  # to populate user.id
            # Mirrors the hosted backend's new-user trigger
            self.db.add(
                Profile(
                    id=user.id,
                    email=user.email,
                    nama=str(user_metadata.get("nama") or ""),
                )
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise IdentityError(EMAIL_EXISTS_MESSAGE) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise IdentityError(CREATE_FAILED_MESSAGE) from e

        return _to_auth_user(user)

    async def sign_in(self, email: str, password: str) -> LoginResponse:
        user = await self._find_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise IdentityError(INVALID_CREDENTIALS_MESSAGE)

        issued_at = datetime.now(timezone.utc)
        access_token = create_access_token(
            subject={
                "sub": str(user.id),
                "email": user.email,
                "role": "authenticated",
                "iat": int(issued_at.timestamp()),
            }
        )
        return LoginResponse(
            access_token=access_token,
            expires_in=settings.access_token_expire_minutes * 60,
            user=_to_auth_user(user),
        )
