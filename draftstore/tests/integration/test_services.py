from __future__ import annotations

import json

import pytest

from draftstore.core.errors import ConflictError, NotFoundError, ValidationError
from draftstore.domain.enums import EntityType, Role
from draftstore.persistence.db import SessionLocal
from draftstore.persistence.repos import accounts as accounts_repo
from draftstore.persistence.repos import audit as audit_repo
from draftstore.persistence.repos import documents as documents_repo
from draftstore.services.accounts import register_account, remove_account
from draftstore.services.audit import new_request_context_id
from draftstore.services.documents import save_generated_document
from draftstore.tests.utils.factories import create_test_account


@pytest.mark.asyncio
async def test_generation_flow_stores_document_and_audits_it() -> None:
    request_context_id = new_request_context_id()
    async with SessionLocal() as session:
        account = await register_account(
            session,
            username="writer",
            email="writer@x.com",
            credential_hash="hashed",
            request_context_id=request_context_id,
        )
        doc = await save_generated_document(
            session,
            account_id=account.id,
            doc_type="email",
            content="Dear team, ...",
            tone="friendly",
            title="Kickoff",
            request_context_id=request_context_id,
        )

    async with SessionLocal() as session:
        events = await audit_repo.find_by_request_context(session, request_context_id)
        stored = await documents_repo.get_document(session, doc.id, account_id=account.id)
    assert stored is not None
    assert [e.action for e in events] == ["register", "generate_email"]
    assert events[1].entity_type is EntityType.DOCUMENT
    assert events[1].entity_id == doc.id
    assert all(e.account_id == account.id for e in events)


@pytest.mark.asyncio
async def test_failed_generation_keeps_its_audit_record() -> None:
    request_context_id = new_request_context_id()
    async with SessionLocal() as session:
        with pytest.raises(NotFoundError):
            await save_generated_document(
                session,
                account_id=31337,
                doc_type="report",
                content="Body",
                tone="formal",
                request_context_id=request_context_id,
            )

    async with SessionLocal() as session:
        events = await audit_repo.find_by_request_context(session, request_context_id)
        documents = await documents_repo.list_all(session)
    assert documents == []
    assert len(events) == 1
    assert events[0].action == "generate_report"
    assert events[0].account_id is None
    assert json.loads(events[0].details) == {"error": "NotFoundError", "outcome": "failure"}


@pytest.mark.asyncio
async def test_registration_conflict_is_audited_without_account() -> None:
    await create_test_account(username="taken", email="taken@x.com")
    request_context_id = new_request_context_id()
    async with SessionLocal() as session:
        with pytest.raises(ConflictError):
            await register_account(
                session,
                username="fresh",
                email="taken@x.com",
                credential_hash="h",
                request_context_id=request_context_id,
            )

    async with SessionLocal() as session:
        events = await audit_repo.find_by_request_context(session, request_context_id)
    assert [e.action for e in events] == ["register"]
    assert json.loads(events[0].details)["field"] == "email"


@pytest.mark.asyncio
async def test_invalid_role_is_rejected_before_storage() -> None:
    async with SessionLocal() as session:
        with pytest.raises(ValidationError):
            await register_account(session, username="x", email="x@x.com", credential_hash="h", role="GOD")


@pytest.mark.asyncio
async def test_remove_account_audits_the_removal() -> None:
    admin = await create_test_account(role=Role.ADMIN)
    target = await create_test_account()
    request_context_id = new_request_context_id()

    assert await remove_account(target.id, actor_id=admin.id, request_context_id=request_context_id) is True
    assert await remove_account(target.id, actor_id=admin.id, request_context_id=request_context_id) is False

    async with SessionLocal() as session:
        events = await audit_repo.find_by_request_context(session, request_context_id)
    assert [e.action for e in events] == ["delete_account", "delete_account"]
    assert all(e.account_id == admin.id for e in events)
    assert all(e.entity_type is EntityType.ACCOUNT and e.entity_id == target.id for e in events)
    assert [json.loads(e.details)["outcome"] for e in events] == ["success", "not_found"]


_OVERLONG_CONTEXT = "r" * 101


@pytest.mark.asyncio
async def test_bad_audit_context_is_rejected_before_generation() -> None:
    account = await create_test_account()
    async with SessionLocal() as session:
        with pytest.raises(ValidationError) as excinfo:
            await save_generated_document(
                session,
                account_id=account.id,
                doc_type="email",
                content="Body",
                tone="casual",
                request_context_id=_OVERLONG_CONTEXT,
            )
    assert excinfo.value.field == "request_context_id"

    async with SessionLocal() as session:
        assert await documents_repo.list_all(session) == []
        assert await audit_repo.list_all(session) == []


@pytest.mark.asyncio
async def test_bad_audit_context_is_rejected_before_registration() -> None:
    async with SessionLocal() as session:
        with pytest.raises(ValidationError) as excinfo:
            await register_account(
                session,
                username="late",
                email="late@x.com",
                credential_hash="h",
                request_context_id=_OVERLONG_CONTEXT,
            )
        assert excinfo.value.field == "request_context_id"
        assert await accounts_repo.find_by_username(session, "late") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("actor_id", "request_context_id", "field"),
    [(None, _OVERLONG_CONTEXT, "request_context_id"), ("admin", None, "actor_id")],
)
async def test_bad_audit_context_leaves_account_in_place(
    actor_id: object, request_context_id: str | None, field: str
) -> None:
    target = await create_test_account()
    with pytest.raises(ValidationError) as excinfo:
        await remove_account(target.id, actor_id=actor_id, request_context_id=request_context_id)
    assert excinfo.value.field == field

    async with SessionLocal() as session:
        assert await accounts_repo.get_account(session, target.id) is not None


@pytest.mark.asyncio
async def test_rejected_audit_record_does_not_mask_stored_document(monkeypatch: pytest.MonkeyPatch) -> None:
    account = await create_test_account()

    async def _reject(*_args, **_kwargs):
        raise ValidationError("details is required", field="details")

    monkeypatch.setattr(audit_repo, "append_record", _reject)
    async with SessionLocal() as session:
        doc = await save_generated_document(
            session, account_id=account.id, doc_type="email", content="Body", tone="casual"
        )
        with pytest.raises(NotFoundError):
            await save_generated_document(
                session, account_id=account.id + 1000, doc_type="email", content="Body", tone="casual"
            )

    async with SessionLocal() as session:
        assert await documents_repo.get_document(session, doc.id) is not None

    assert await remove_account(account.id) is True
    async with SessionLocal() as session:
        assert await accounts_repo.get_account(session, account.id) is None
        assert await audit_repo.list_all(session) == []
