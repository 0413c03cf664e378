from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from draftstore.core.config import get_settings
from draftstore.core.errors import ConflictError
from draftstore.domain.enums import Role
from draftstore.persistence.db import SessionLocal
from draftstore.persistence.repos import accounts as accounts_repo
from draftstore.services.accounts import register_account
from draftstore.services.audit import new_request_context_id, record_action


def _build_parser() -> argparse.ArgumentParser:
    # The credential arrives pre-hashed; plaintext passwords never reach this layer.
    parser = argparse.ArgumentParser(description="Create or promote an administrator account")
    parser.add_argument("--username", required=True, help="Unique login handle")
    parser.add_argument("--email", required=True, help="Unique email address")
    parser.add_argument("--credential-hash", required=True, help="Hashed credential to store")
    return parser


async def _create_admin(args: argparse.Namespace) -> int:
    request_context_id = new_request_context_id()
    async with SessionLocal() as session:
        try:
            account = await register_account(
                session,
                username=args.username,
                email=args.email,
                credential_hash=args.credential_hash,
                role=Role.ADMIN,
                request_context_id=request_context_id,
            )
        except ConflictError:
            existing = await accounts_repo.find_by_username(session, args.username)
            if existing is None:
                raise
            # Promote the existing account instead of failing on re-runs.
            account = await accounts_repo.set_role(session, existing.id, Role.ADMIN)
            await session.commit()
            await record_action(
                action="change_role",
                account_id=account.id,
                entity_type="account",
                entity_id=account.id,
                request_context_id=request_context_id,
                details={"role": Role.ADMIN.value},
                best_effort=True,
            )
    print(f"admin_account_id={account.id}")
    return 0


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=get_settings().log_level)
    args = _build_parser().parse_args(argv)
    try:
        return asyncio.run(_create_admin(args))
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"create_admin failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
