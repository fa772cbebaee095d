from __future__ import annotations

import argparse
import asyncio
import sys
from uuid import uuid4

from sqlalchemy import select

from edrlink.core.config import get_settings
from edrlink.domain.models import User
from edrlink.persistence.db import SessionLocal
from edrlink.services.auth.sessions import create_user_session
from edrlink.services.security.plans import SECURITY_PLAN_LIMITS


def _build_parser() -> argparse.ArgumentParser:
    # Issue dashboard sessions for operators and local development.
    parser = argparse.ArgumentParser(description="Create a dashboard session for a user")
    parser.add_argument("--email", required=True, help="User email (created if missing)")
    parser.add_argument("--name", default=None, help="Display name for new users")
    parser.add_argument(
        "--plan",
        default=None,
        choices=sorted(SECURITY_PLAN_LIMITS),
        help="Plan to assign when creating the user",
    )
    parser.add_argument("--ttl-hours", type=int, default=None, help="Session lifetime in hours")
    return parser


async def _create_session(args: argparse.Namespace) -> int:
    settings = get_settings()
    ttl_hours = args.ttl_hours if args.ttl_hours is not None else settings.session_ttl_hours

    async with SessionLocal() as session:
        result = await session.execute(select(User).where(User.email == args.email))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(
                id=uuid4().hex,
                email=args.email,
                name=args.name,
                plan=args.plan or "free",
                is_active=True,
            )
            session.add(user)
            # Flush the user row before inserting the session to satisfy FK constraints.
            await session.flush()
        raw_token, row = await create_user_session(session=session, user_id=user.id, ttl_hours=ttl_hours)
        await session.commit()

    print("Session created:")
    print(f"  user_id: {user.id}")
    print(f"  session_id: {row.id}")
    print(f"  token_prefix: {row.token_prefix}")
    print(f"  cookie: {settings.session_cookie_name}={raw_token}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_create_session(args))
    except Exception as exc:  # noqa: BLE001 - surface provisioning failures clearly
        print(f"create_session failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
