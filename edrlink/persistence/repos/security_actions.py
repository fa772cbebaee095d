from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.domain.models import SecurityAction


async def append_action(
    session: AsyncSession,
    *,
    user_id: str,
    device_id: str,
    action: str,
    reason: str | None,
    status: str,
    timestamp: datetime,
) -> SecurityAction:
    # Audit rows are insert-only; callers commit alongside their own work.
    row = SecurityAction(
        user_id=user_id,
        device_id=device_id,
        action=action,
        reason=reason,
        status=status,
        timestamp=timestamp,
    )
    session.add(row)
    await session.flush()
    return row


async def list_actions(
    session: AsyncSession,
    *,
    user_id: str,
    device_id: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> list[SecurityAction]:
    # Scope audit reads to the acting user so tenants never see each other's trail.
    stmt = select(SecurityAction).where(SecurityAction.user_id == user_id)
    if device_id:
        stmt = stmt.where(SecurityAction.device_id == device_id)
    stmt = stmt.order_by(SecurityAction.timestamp.desc(), SecurityAction.id.desc())
    stmt = stmt.offset(offset).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())
