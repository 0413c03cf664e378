from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from draftstore.core.errors import DraftStoreError
from draftstore.domain.enums import EntityType, Role
from draftstore.domain.models import Account
from draftstore.persistence.repos import accounts as accounts_repo
from draftstore.services.audit import check_audit_context, record_action


logger = logging.getLogger(__name__)


async def register_account(
    session: AsyncSession,
    *,
    username: str,
    email: str,
    credential_hash: str,
    role: Role | str = Role.USER,
    request_context_id: str | None = None,
) -> Account:
    check_audit_context(request_context_id=request_context_id)
    try:
        account = await accounts_repo.create_account(
            session,
            username=username,
            email=email,
            credential_hash=credential_hash,
            role=role,
        )
        await session.commit()
    except DraftStoreError as exc:
        await session.rollback()
        await record_action(
            action="register",
            request_context_id=request_context_id,
            details={"outcome": "failure", "error": type(exc).__name__, "field": getattr(exc, "field", None)},
            best_effort=True,
        )
        raise

    await record_action(
        action="register",
        account_id=account.id,
        entity_type=EntityType.ACCOUNT,
        entity_id=account.id,
        request_context_id=request_context_id,
        details={"outcome": "success"},
        best_effort=True,
    )
    return account


async def remove_account(
    account_id: int,
    *,
    actor_id: int | None = None,
    request_context_id: str | None = None,
) -> bool:
    # Administrative removal; the record outlives the account it describes.
    check_audit_context(request_context_id=request_context_id, actor_id=actor_id)
    removed = await accounts_repo.delete_account_atomic(account_id)
    if not removed:
        logger.info("account_delete_skipped account_id=%s reason=not_found", account_id)
    await record_action(
        action="delete_account",
        account_id=actor_id,
        entity_type=EntityType.ACCOUNT,
        entity_id=account_id,
        request_context_id=request_context_id,
        details={"outcome": "success" if removed else "not_found"},
        best_effort=True,
    )
    return removed
