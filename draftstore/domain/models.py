from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    func,
    inspect,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from draftstore.core.config import (
    ACTION_MAX_LEN,
    CREDENTIAL_HASH_MAX_LEN,
    EMAIL_MAX_LEN,
    ENUM_MAX_LEN,
    REQUEST_CONTEXT_MAX_LEN,
    TITLE_MAX_LEN,
    USERNAME_MAX_LEN,
)
from draftstore.core.errors import ImmutableRecordError
from draftstore.domain.enums import DocType, EntityType, Role, Structure, Tone


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls: type[Enum], name: str) -> SQLEnum:
    # Persist enum values (not member names) and reject anything else with a CHECK constraint.
    return SQLEnum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=ENUM_MAX_LEN,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


# SQLite only autoincrements INTEGER PRIMARY KEY columns.
AuditId = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        # Enforce identity uniqueness in storage so concurrent registrations cannot race.
        UniqueConstraint("username", name="uq_accounts_username"),
        UniqueConstraint("email", name="uq_accounts_email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(USERNAME_MAX_LEN), nullable=False)
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LEN), nullable=False)
    # Store only the hashed credential; plaintext never reaches this layer.
    credential_hash: Mapped[str] = mapped_column(String(CREDENTIAL_HASH_MAX_LEN), nullable=False)
    role: Mapped[Role] = mapped_column(
        _enum_column(Role, "account_role"), nullable=False, default=Role.USER, server_default=Role.USER.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now, server_default=func.now()
    )


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Documents never outlive their owner.
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    doc_type: Mapped[DocType] = mapped_column(_enum_column(DocType, "document_type"), nullable=False)
    title: Mapped[str | None] = mapped_column(String(TITLE_MAX_LEN), nullable=True)
    # Sanitized input kept for traceability only.
    prompt_input: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tone: Mapped[Tone] = mapped_column(_enum_column(Tone, "document_tone"), nullable=False)
    structure: Mapped[Structure | None] = mapped_column(
        _enum_column(Structure, "document_structure"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now, server_default=func.now()
    )


class AuditRecord(Base):
    __tablename__ = "audit_records"

    # Monotonic numeric id breaks created_at ties in both sort directions.
    id: Mapped[int] = mapped_column(AuditId, primary_key=True, autoincrement=True)
    # Cleared (never cascaded) when the account goes away so history survives.
    account_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(ACTION_MAX_LEN), nullable=False)
    # Soft reference: the target may be deleted while this row must persist.
    entity_type: Mapped[EntityType | None] = mapped_column(
        _enum_column(EntityType, "audit_entity_type"), nullable=True
    )
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    request_context_id: Mapped[str | None] = mapped_column(String(REQUEST_CONTEXT_MAX_LEN), nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now, server_default=func.now()
    )


# Access-pattern indexes. Composite leading columns also serve plain account_id lookups.
Index("ix_documents_account_id_created_at", Document.account_id, Document.created_at.desc())
Index("ix_documents_created_at", Document.created_at.desc())
Index("ix_audit_records_account_id_created_at", AuditRecord.account_id, AuditRecord.created_at.desc())
Index("ix_audit_records_created_at", AuditRecord.created_at.desc())
Index("ix_audit_records_action_created_at", AuditRecord.action, AuditRecord.created_at.desc())
Index("ix_audit_records_request_context_id", AuditRecord.request_context_id)


def _changed_attributes(target: Base) -> list[str]:
    return [attr.key for attr in inspect(target).attrs if attr.history.has_changes()]


@event.listens_for(Document, "before_update")
def _reject_document_update(_mapper, _connection, target: Document) -> None:
    # Regeneration produces a new row; stored documents never change.
    if _changed_attributes(target):
        raise ImmutableRecordError(f"document {target.id} is immutable")


@event.listens_for(AuditRecord, "before_update")
def _reject_audit_update(_mapper, _connection, target: AuditRecord) -> None:
    # The only permitted change is clearing the account reference.
    for key in _changed_attributes(target):
        if key == "account_id" and target.account_id is None:
            continue
        raise ImmutableRecordError(f"audit record {target.id} is write-once")
