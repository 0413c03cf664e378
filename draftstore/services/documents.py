from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from draftstore.core.errors import DraftStoreError
from draftstore.domain.enums import DocType, EntityType, Structure, Tone
from draftstore.domain.models import Document
from draftstore.persistence.guards import coerce_enum
from draftstore.persistence.repos import documents as documents_repo
from draftstore.services.audit import check_audit_context, record_action


def generation_action(doc_type: DocType | str) -> str:
    # Action labels follow the generate_<doc_type> convention.
    return f"generate_{coerce_enum(DocType, doc_type, field='doc_type').value}"


async def save_generated_document(
    session: AsyncSession,
    *,
    account_id: int,
    doc_type: DocType | str,
    content: str,
    tone: Tone | str,
    title: str | None = None,
    prompt_input: str | None = None,
    structure: Structure | str | None = None,
    request_context_id: str | None = None,
) -> Document:
    """Store a freshly generated document and audit the attempt.

    The document commits in ``session``; the audit record commits on its own.
    A failed store still leaves a failure record behind, and an audit failure
    is only logged so it never changes the outcome of the store.
    """
    action = generation_action(doc_type)
    check_audit_context(request_context_id=request_context_id)
    try:
        doc = await documents_repo.create_document(
            session,
            account_id=account_id,
            doc_type=doc_type,
            content=content,
            tone=tone,
            title=title,
            prompt_input=prompt_input,
            structure=structure,
        )
        await session.commit()
    except DraftStoreError as exc:
        await session.rollback()
        await record_action(
            action=action,
            account_id=account_id if isinstance(account_id, int) else None,
            request_context_id=request_context_id,
            details={"outcome": "failure", "error": type(exc).__name__},
            best_effort=True,
        )
        raise

    await record_action(
        action=action,
        account_id=account_id,
        entity_type=EntityType.DOCUMENT,
        entity_id=doc.id,
        request_context_id=request_context_id,
        details={"outcome": "success", "tone": doc.tone.value},
        best_effort=True,
    )
    return doc
