from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.core.config import get_settings
from edrlink.domain.models import User
from edrlink.persistence.db import get_session
from edrlink.providers.acronis.client import AcronisClient
from edrlink.providers.bitdefender.client import BitdefenderClient
from edrlink.providers.factory import get_acronis_client, get_bitdefender_client
from edrlink.services.auth.sessions import resolve_user_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; context manager ensures close on success/error.
    async with get_session() as session:
        yield session


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    # Resolve the dashboard session cookie; every security route requires it.
    raw_token = request.cookies.get(get_settings().session_cookie_name)
    user = await resolve_user_session(session=db, raw_token=raw_token)
    # Persist last_seen_at before read-only routes close the session.
    await db.commit()
    return user


def acronis_client() -> AcronisClient:
    return get_acronis_client()


def bitdefender_client() -> BitdefenderClient:
    return get_bitdefender_client()
