from __future__ import annotations

from datetime import datetime, timedelta, timezone
import hashlib
import secrets
from uuid import uuid4

from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.domain.models import User, UserSession


TOKEN_PREFIX = "edls_"
UNAUTHORIZED_MESSAGE = "Não autorizado"


def _utc_now() -> datetime:
    # Keep session timestamps in UTC for consistent expiry checks.
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on round-trip; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def hash_session_token(raw_token: str) -> str:
    # Use SHA-256 for deterministic, non-reversible token storage.
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def generate_session_token() -> tuple[str, str, str, str]:
    token_id = uuid4().hex
    secret = secrets.token_urlsafe(32)
    raw_token = f"{TOKEN_PREFIX}{token_id}_{secret}"
    token_prefix = raw_token[:12]
    return token_id, raw_token, token_prefix, hash_session_token(raw_token)


def unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "AUTH_UNAUTHORIZED", "message": UNAUTHORIZED_MESSAGE},
    )


async def create_user_session(
    *,
    session: AsyncSession,
    user_id: str,
    ttl_hours: int | None,
) -> tuple[str, UserSession]:
    # Persist a hashed session token; the raw value is returned once for the cookie.
    token_id, raw_token, token_prefix, token_hash = generate_session_token()
    now = _utc_now()
    row = UserSession(
        id=token_id,
        user_id=user_id,
        token_prefix=token_prefix,
        token_hash=token_hash,
        created_at=now,
        last_seen_at=None,
        expires_at=None if ttl_hours is None else now + timedelta(hours=ttl_hours),
        revoked_at=None,
    )
    session.add(row)
    await session.flush()
    return raw_token, row


async def resolve_user_session(*, session: AsyncSession, raw_token: str | None) -> User:
    if not raw_token:
        raise unauthorized()
    result = await session.execute(
        select(UserSession, User)
        .join(User, User.id == UserSession.user_id)
        .where(UserSession.token_hash == hash_session_token(raw_token))
    )
    row = result.first()
    if row is None:
        raise unauthorized()
    user_session, user = row
    now = _utc_now()
    if user_session.revoked_at is not None:
        raise unauthorized()
    if user_session.expires_at is not None and _as_utc(user_session.expires_at) <= now:
        raise unauthorized()
    if not user.is_active:
        raise unauthorized()
    await session.execute(
        update(UserSession)
        .where(UserSession.id == user_session.id)
        .values(last_seen_at=now)
    )
    return user


async def revoke_user_session(*, session: AsyncSession, session_id: str) -> None:
    await session.execute(
        update(UserSession)
        .where(UserSession.id == session_id, UserSession.revoked_at.is_(None))
        .values(revoked_at=_utc_now())
    )
