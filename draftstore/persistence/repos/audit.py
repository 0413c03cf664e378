from __future__ import annotations

from datetime import datetime

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from draftstore.core.config import ACTION_MAX_LEN, REQUEST_CONTEXT_MAX_LEN
from draftstore.domain.enums import ENTITY_TYPE_ALIASES, EntityType
from draftstore.domain.models import Account, AuditRecord
from draftstore.persistence.guards import (
    Pagination,
    coerce_enum,
    optional_enum,
    optional_id,
    optional_text,
    require_id,
    require_text,
    resolve_pagination,
    translate_db_errors,
)


async def append_record(
    session: AsyncSession,
    *,
    action: str,
    account_id: int | None = None,
    entity_type: EntityType | str | None = None,
    entity_id: int | None = None,
    request_context_id: str | None = None,
    details: str | None = None,
    created_at: datetime | None = None,
) -> AuditRecord:
    """Insert one write-once audit record.

    Only basic type validity is checked. The account reference is resolved
    inside the INSERT, so an unknown or already-deleted account is stored as
    NULL instead of rejecting the write.
    """
    action = require_text(action, field="action", max_len=ACTION_MAX_LEN)
    account_id = optional_id(account_id, field="account_id")
    resolved_entity_type = optional_enum(
        EntityType, entity_type, field="entity_type", aliases=ENTITY_TYPE_ALIASES
    )
    entity_id = optional_id(entity_id, field="entity_id")
    request_context_id = optional_text(
        request_context_id, field="request_context_id", max_len=REQUEST_CONTEXT_MAX_LEN
    )
    details = optional_text(details, field="details")

    values: dict[str, object] = {
        "account_id": (
            select(Account.id).where(Account.id == account_id).scalar_subquery()
            if account_id is not None
            else None
        ),
        "action": action,
        "entity_type": resolved_entity_type,
        "entity_id": entity_id,
        "request_context_id": request_context_id,
        "details": details,
    }
    if created_at is not None:
        values["created_at"] = created_at

    async with translate_db_errors("append_audit_record"):
        result = await session.execute(insert(AuditRecord).values(**values).returning(AuditRecord))
        return result.scalar_one()


async def get_record(session: AsyncSession, record_id: int) -> AuditRecord | None:
    record_id = require_id(record_id, field="record_id")
    async with translate_db_errors("get_audit_record"):
        result = await session.execute(select(AuditRecord).where(AuditRecord.id == record_id))
        return result.scalar_one_or_none()


async def _list_newest_first(session: AsyncSession, stmt, page: Pagination, operation: str) -> list[AuditRecord]:
    stmt = stmt.order_by(AuditRecord.created_at.desc(), AuditRecord.id.desc())
    stmt = stmt.offset(page.offset).limit(page.limit)
    async with translate_db_errors(operation):
        result = await session.execute(stmt)
        return list(result.scalars().all())


async def list_by_account(
    session: AsyncSession, account_id: int, pagination: Pagination | None = None
) -> list[AuditRecord]:
    # Served by ix_audit_records_account_id_created_at.
    account_id = require_id(account_id, field="account_id")
    stmt = select(AuditRecord).where(AuditRecord.account_id == account_id)
    return await _list_newest_first(session, stmt, resolve_pagination(pagination), "list_audit_by_account")


async def list_all(session: AsyncSession, pagination: Pagination | None = None) -> list[AuditRecord]:
    return await _list_newest_first(
        session, select(AuditRecord), resolve_pagination(pagination), "list_audit_records"
    )


async def list_by_action(
    session: AsyncSession, action: str, pagination: Pagination | None = None
) -> list[AuditRecord]:
    # Served by ix_audit_records_action_created_at.
    action = require_text(action, field="action", max_len=ACTION_MAX_LEN)
    stmt = select(AuditRecord).where(AuditRecord.action == action)
    return await _list_newest_first(session, stmt, resolve_pagination(pagination), "list_audit_by_action")


async def list_by_entity(
    session: AsyncSession,
    entity_type: EntityType | str,
    entity_id: int,
    pagination: Pagination | None = None,
) -> list[AuditRecord]:
    # Soft-reference lookup; the entity itself may no longer exist.
    resolved_type = coerce_enum(EntityType, entity_type, field="entity_type", aliases=ENTITY_TYPE_ALIASES)
    entity_id = require_id(entity_id, field="entity_id")
    stmt = select(AuditRecord).where(
        AuditRecord.entity_type == resolved_type, AuditRecord.entity_id == entity_id
    )
    return await _list_newest_first(session, stmt, resolve_pagination(pagination), "list_audit_by_entity")


async def find_by_request_context(session: AsyncSession, request_context_id: str) -> list[AuditRecord]:
    # Full set in the order events happened, to replay one request end to end.
    request_context_id = require_text(
        request_context_id, field="request_context_id", max_len=REQUEST_CONTEXT_MAX_LEN
    )
    async with translate_db_errors("find_audit_by_request_context"):
        result = await session.execute(
            select(AuditRecord)
            .where(AuditRecord.request_context_id == request_context_id)
            .order_by(AuditRecord.created_at.asc(), AuditRecord.id.asc())
        )
        return list(result.scalars().all())
