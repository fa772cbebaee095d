from __future__ import annotations

import argparse
import asyncio
import sys

from edrlink.domain.models import UserSession
from edrlink.persistence.db import SessionLocal
from edrlink.services.auth.sessions import revoke_user_session


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Revoke a dashboard session by id")
    parser.add_argument("session_id", help="Session id to revoke")
    return parser


async def _revoke_session(session_id: str) -> int:
    # Mark the session revoked; rows are kept for login history.
    async with SessionLocal() as session:
        user_session = await session.get(UserSession, session_id)
        if user_session is None:
            raise ValueError("Session not found")
        await revoke_user_session(session=session, session_id=session_id)
        await session.commit()
    print(f"Revoked session {session_id}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_revoke_session(args.session_id))
    except Exception as exc:  # noqa: BLE001 - surface operator failures clearly
        print(f"revoke_session failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
