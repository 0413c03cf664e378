from __future__ import annotations

from uuid import uuid4

from draftstore.domain.enums import DocType, Role, Tone
from draftstore.domain.models import Account, Document
from draftstore.persistence.db import SessionLocal
from draftstore.persistence.repos import accounts as accounts_repo
from draftstore.persistence.repos import documents as documents_repo


async def create_test_account(
    *,
    username: str | None = None,
    email: str | None = None,
    role: Role | str = Role.USER,
) -> Account:
    # Provision a committed account with unique identity fields.
    suffix = uuid4().hex[:10]
    async with SessionLocal() as session:
        account = await accounts_repo.create_account(
            session,
            username=username or f"user-{suffix}",
            email=email or f"{suffix}@example.com",
            credential_hash=f"hash-{suffix}",
            role=role,
        )
        await session.commit()
    return account


async def create_test_document(
    account_id: int,
    *,
    doc_type: DocType | str = DocType.EMAIL,
    tone: Tone | str = Tone.PROFESSIONAL,
    content: str = "Generated body",
    title: str | None = None,
) -> Document:
    async with SessionLocal() as session:
        doc = await documents_repo.create_document(
            session,
            account_id=account_id,
            doc_type=doc_type,
            content=content,
            tone=tone,
            title=title,
        )
        await session.commit()
    return doc
