from __future__ import annotations

import argparse
import asyncio
import sys

from sqlalchemy import select

from edrlink.domain.models import User
from edrlink.persistence.db import SessionLocal
from edrlink.persistence.repos.devices import count_devices
from edrlink.services.security.plans import SECURITY_PLAN_LIMITS, limits_snapshot


def _build_parser() -> argparse.ArgumentParser:
    # Plans are normally set by the billing flow; this is the operator override.
    parser = argparse.ArgumentParser(description="Assign a security plan to a user")
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--plan", required=True, choices=sorted(SECURITY_PLAN_LIMITS))
    return parser


async def _set_plan(args: argparse.Namespace) -> int:
    async with SessionLocal() as session:
        result = await session.execute(select(User).where(User.email == args.email))
        user = result.scalar_one_or_none()
        if user is None:
            raise ValueError("User not found")
        user.plan = args.plan
        await session.commit()
        current = 0
        if user.acronis_tenant_id:
            current = await count_devices(session, tenant_id=user.acronis_tenant_id)

    limits = limits_snapshot(args.plan, current)
    print(f"Plan for {args.email} set to {args.plan}")
    print(f"  endpoints: {limits['current']}/{limits['max'] if limits['max'] is not None else 'unlimited'}")
    if not limits["canAddMore"]:
        print("  warning: endpoint count already at or above the new plan maximum")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_set_plan(args))
    except Exception as exc:  # noqa: BLE001 - surface operator failures clearly
        print(f"set_plan failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
