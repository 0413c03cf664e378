from __future__ import annotations

import logging

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from draftstore.core.config import CREDENTIAL_HASH_MAX_LEN, EMAIL_MAX_LEN, USERNAME_MAX_LEN
from draftstore.core.errors import ConflictError, NotFoundError
from draftstore.domain.enums import Role
from draftstore.domain.models import Account, AuditRecord, Document
from draftstore.persistence.db import SessionLocal
from draftstore.persistence.guards import (
    Pagination,
    coerce_enum,
    require_id,
    require_text,
    resolve_pagination,
    translate_db_errors,
)


logger = logging.getLogger(__name__)

# Postgres reports the constraint name; SQLite reports table.column.
_UNIQUE_MARKERS = {
    "username": ("uq_accounts_username", "accounts.username"),
    "email": ("uq_accounts_email", "accounts.email"),
}


def _conflicting_field(exc: IntegrityError) -> str | None:
    message = str(exc.orig)
    for field, markers in _UNIQUE_MARKERS.items():
        if any(marker in message for marker in markers):
            return field
    return None


async def create_account(
    session: AsyncSession,
    *,
    username: str,
    email: str,
    credential_hash: str,
    role: Role | str = Role.USER,
) -> Account:
    username = require_text(username, field="username", max_len=USERNAME_MAX_LEN)
    email = require_text(email, field="email", max_len=EMAIL_MAX_LEN)
    credential_hash = require_text(credential_hash, field="credential_hash", max_len=CREDENTIAL_HASH_MAX_LEN)
    resolved_role = coerce_enum(Role, role, field="role")

    async with translate_db_errors("create_account"):
        # Pre-check only to name the conflicting field; the unique constraints decide.
        result = await session.execute(
            select(Account.username, Account.email).where(
                or_(Account.username == username, Account.email == email)
            )
        )
        for row in result.all():
            if row.username == username:
                raise ConflictError("username already registered", field="username")
            raise ConflictError("email already registered", field="email")

        account = Account(
            username=username,
            email=email,
            credential_hash=credential_hash,
            role=resolved_role,
        )
        session.add(account)
        try:
            await session.flush()
        except IntegrityError as exc:
            # A concurrent registration won the race between pre-check and insert.
            await session.rollback()
            field = _conflicting_field(exc)
            label = field or "username or email"
            raise ConflictError(f"{label} already registered", field=field) from exc
    return account


async def get_account(session: AsyncSession, account_id: int) -> Account | None:
    account_id = require_id(account_id, field="account_id")
    async with translate_db_errors("get_account"):
        result = await session.execute(select(Account).where(Account.id == account_id))
        return result.scalar_one_or_none()


async def find_by_username(session: AsyncSession, username: str) -> Account | None:
    username = require_text(username, field="username")
    async with translate_db_errors("find_by_username"):
        result = await session.execute(select(Account).where(Account.username == username))
        return result.scalar_one_or_none()


async def find_by_email(session: AsyncSession, email: str) -> Account | None:
    email = require_text(email, field="email")
    async with translate_db_errors("find_by_email"):
        result = await session.execute(select(Account).where(Account.email == email))
        return result.scalar_one_or_none()


async def list_accounts(session: AsyncSession, pagination: Pagination | None = None) -> list[Account]:
    page = resolve_pagination(pagination)
    async with translate_db_errors("list_accounts"):
        result = await session.execute(
            select(Account)
            .order_by(Account.created_at.desc(), Account.id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        return list(result.scalars().all())


async def _require_account(session: AsyncSession, account_id: int) -> Account:
    account = await get_account(session, account_id)
    if account is None:
        raise NotFoundError(f"account {account_id} does not exist")
    return account


async def set_role(session: AsyncSession, account_id: int, role: Role | str) -> Account:
    resolved_role = coerce_enum(Role, role, field="role")
    account = await _require_account(session, account_id)
    async with translate_db_errors("set_role"):
        account.role = resolved_role
        await session.flush()
    return account


async def update_credential_hash(session: AsyncSession, account_id: int, credential_hash: str) -> Account:
    credential_hash = require_text(credential_hash, field="credential_hash", max_len=CREDENTIAL_HASH_MAX_LEN)
    account = await _require_account(session, account_id)
    async with translate_db_errors("update_credential_hash"):
        account.credential_hash = credential_hash
        await session.flush()
    return account


async def delete_account(session: AsyncSession, account_id: int) -> bool:
    """Remove an account together with its owned documents.

    Two rules run inside the caller's transaction: owned documents are
    deleted, and audit records pointing at the account have ``account_id``
    cleared. The foreign key actions on both tables enforce the same rules
    for deletes that bypass this function. Returns ``False`` when the account
    does not exist.
    """
    account_id = require_id(account_id, field="account_id")
    async with translate_db_errors("delete_account"):
        # Lock the parent row so concurrent document inserts wait for the outcome.
        result = await session.execute(
            select(Account.id).where(Account.id == account_id).with_for_update()
        )
        if result.scalar_one_or_none() is None:
            return False

        removed = await session.execute(delete(Document).where(Document.account_id == account_id))
        detached = await session.execute(
            update(AuditRecord).where(AuditRecord.account_id == account_id).values(account_id=None)
        )
        await session.execute(delete(Account).where(Account.id == account_id))
        await session.flush()

    logger.info(
        "account_deleted account_id=%s documents_removed=%s audit_records_detached=%s",
        account_id,
        removed.rowcount or 0,
        detached.rowcount or 0,
    )
    return True


async def delete_account_atomic(account_id: int) -> bool:
    # Run the cascade in its own transaction so readers never observe a partial delete.
    async with SessionLocal() as session:
        async with session.begin():
            return await delete_account(session, account_id)
