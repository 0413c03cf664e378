from __future__ import annotations

import re

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from draftstore.core.config import TITLE_MAX_LEN, get_settings
from draftstore.core.errors import NotFoundError
from draftstore.domain.enums import DocType, Structure, Tone
from draftstore.domain.models import Account, Document
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


_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_prompt_input(value: str | None) -> str | None:
    # Keep a bounded, printable copy of the caller's input for traceability.
    if value is None:
        return None
    cleaned = _CONTROL_CHARS.sub("", value).strip()
    if not cleaned:
        return None
    return cleaned[: get_settings().prompt_input_max_chars]


async def create_document(
    session: AsyncSession,
    *,
    account_id: int,
    doc_type: DocType | str,
    content: str,
    tone: Tone | str,
    title: str | None = None,
    prompt_input: str | None = None,
    structure: Structure | str | None = None,
) -> Document:
    account_id = require_id(account_id, field="account_id")
    resolved_type = coerce_enum(DocType, doc_type, field="doc_type")
    content = require_text(content, field="content")
    resolved_tone = coerce_enum(Tone, tone, field="tone")
    resolved_structure = optional_enum(Structure, structure, field="structure")
    title = optional_text(title, field="title", max_len=TITLE_MAX_LEN)
    prompt_input = sanitize_prompt_input(optional_text(prompt_input, field="prompt_input"))

    async with translate_db_errors("create_document"):
        owner = await session.execute(select(Account.id).where(Account.id == account_id))
        if owner.scalar_one_or_none() is None:
            raise NotFoundError(f"account {account_id} does not exist")

        doc = Document(
            account_id=account_id,
            doc_type=resolved_type,
            title=title,
            prompt_input=prompt_input,
            content=content,
            tone=resolved_tone,
            structure=resolved_structure,
        )
        session.add(doc)
        try:
            await session.flush()
        except IntegrityError as exc:
            # The owner was removed between the lookup and the insert.
            await session.rollback()
            raise NotFoundError(f"account {account_id} does not exist") from exc
    return doc


async def get_document(
    session: AsyncSession, document_id: int, *, account_id: int | None = None
) -> Document | None:
    document_id = require_id(document_id, field="document_id")
    account_id = optional_id(account_id, field="account_id")
    stmt = select(Document).where(Document.id == document_id)
    if account_id is not None:
        # Return None for an owner mismatch to keep not-found semantics.
        stmt = stmt.where(Document.account_id == account_id)
    async with translate_db_errors("get_document"):
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


async def list_by_account(
    session: AsyncSession, account_id: int, pagination: Pagination | None = None
) -> list[Document]:
    # Served by ix_documents_account_id_created_at.
    account_id = require_id(account_id, field="account_id")
    page = resolve_pagination(pagination)
    async with translate_db_errors("list_documents_by_account"):
        result = await session.execute(
            select(Document)
            .where(Document.account_id == account_id)
            .order_by(Document.created_at.desc(), Document.id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        return list(result.scalars().all())


async def list_all(session: AsyncSession, pagination: Pagination | None = None) -> list[Document]:
    page = resolve_pagination(pagination)
    async with translate_db_errors("list_documents"):
        result = await session.execute(
            select(Document)
            .order_by(Document.created_at.desc(), Document.id.desc())
            .offset(page.offset)
            .limit(page.limit)
        )
        return list(result.scalars().all())


async def count_by_account(session: AsyncSession, account_id: int) -> int:
    account_id = require_id(account_id, field="account_id")
    async with translate_db_errors("count_documents_by_account"):
        result = await session.execute(
            select(func.count()).select_from(Document).where(Document.account_id == account_id)
        )
        return int(result.scalar() or 0)
