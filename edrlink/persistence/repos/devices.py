from __future__ import annotations

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from edrlink.domain.models import Device


async def count_devices(session: AsyncSession, *, tenant_id: str) -> int:
    # Read the count fresh on every call; plan checks never use a cached value.
    result = await session.execute(select(func.count()).select_from(Device).where(Device.tenant_id == tenant_id))
    return int(result.scalar_one())


async def add_device(
    session: AsyncSession,
    *,
    device_id: str,
    external_id: str,
    tenant_id: str,
    user_id: str | None,
    name: str | None,
    os: str | None,
) -> Device:
    row = Device(
        id=device_id,
        external_id=external_id,
        tenant_id=tenant_id,
        user_id=user_id,
        name=name,
        os=os,
    )
    session.add(row)
    await session.flush()
    return row


async def remove_device(session: AsyncSession, *, tenant_id: str, external_id: str) -> int:
    # Missing rows are fine; vendor-side unregistration is the source of truth.
    result = await session.execute(
        delete(Device).where(Device.tenant_id == tenant_id, Device.external_id == external_id)
    )
    return int(result.rowcount or 0)
