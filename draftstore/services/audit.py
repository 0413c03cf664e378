from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Mapping
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from draftstore.core.config import REQUEST_CONTEXT_MAX_LEN, get_settings
from draftstore.core.errors import AuditWriteError, DraftStoreError, StorageUnavailableError
from draftstore.domain.enums import EntityType
from draftstore.domain.models import AuditRecord
from draftstore.persistence.db import SessionLocal
from draftstore.persistence.guards import optional_id, optional_text
from draftstore.persistence.repos import audit as audit_repo


logger = logging.getLogger(__name__)

_SENSITIVE_KEY_PATTERNS = ["password", "credential", "secret", "token", "api_key", "authorization"]
_REDACTED_VALUE = "[REDACTED]"


def _is_sensitive_key(key: str) -> bool:
    # Match sensitive key fragments case-insensitively to enforce redaction policy.
    lowered = key.lower()
    return any(pattern in lowered for pattern in _SENSITIVE_KEY_PATTERNS)


def sanitize_details(value: Any) -> Any:
    # Recursively scrub credential-like fields while preserving safe structure.
    if isinstance(value, Mapping):
        sanitized: dict[str, Any] = {}
        for raw_key, raw_value in value.items():
            key = str(raw_key)
            if _is_sensitive_key(key):
                sanitized[key] = _REDACTED_VALUE
            else:
                sanitized[key] = sanitize_details(raw_value)
        return sanitized
    if isinstance(value, (list, tuple)):
        return [sanitize_details(item) for item in value]
    return value


def render_details(details: str | Mapping[str, Any] | None) -> str | None:
    if details is None or isinstance(details, str):
        return details
    return json.dumps(sanitize_details(details), sort_keys=True, default=str)


def new_request_context_id() -> str:
    # Opaque correlation id shared by every record of one logical request.
    return f"req-{uuid4().hex}"


async def record_action(
    *,
    action: str,
    account_id: int | None = None,
    entity_type: EntityType | str | None = None,
    entity_id: int | None = None,
    request_context_id: str | None = None,
    details: str | Mapping[str, Any] | None = None,
    occurred_at: datetime | None = None,
    best_effort: bool | None = None,
) -> AuditRecord | None:
    """Append an audit record in its own transaction.

    The write never joins the caller's business transaction, so rolling that
    back keeps the record of the attempt. Storage failures raise
    ``AuditWriteError``; with ``best_effort`` they are logged and ``None`` is
    returned. Validation errors propagate unless ``best_effort`` is set, in
    which case they are logged the same way.
    """
    resolved_best_effort = (
        best_effort if best_effort is not None else get_settings().audit_best_effort_default
    )
    kwargs: dict[str, Any] = {
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "request_context_id": request_context_id,
        "details": render_details(details),
        "created_at": occurred_at,
    }

    try:
        async with SessionLocal() as audit_session:
            try:
                record = await audit_repo.append_record(audit_session, account_id=account_id, **kwargs)
                await audit_session.commit()
            except IntegrityError:
                # The account vanished between reference resolution and insert; keep the record anyway.
                await audit_session.rollback()
                logger.warning(
                    "audit_record_account_unresolved action=%s account_id=%s request_context_id=%s",
                    action,
                    account_id,
                    request_context_id,
                )
                record = await audit_repo.append_record(audit_session, account_id=None, **kwargs)
                await audit_session.commit()
    except (StorageUnavailableError, SQLAlchemyError) as exc:
        level = logger.warning if resolved_best_effort else logger.error
        level(
            "audit_record_write_failed action=%s request_context_id=%s",
            action,
            request_context_id,
            exc_info=exc,
        )
        if resolved_best_effort:
            return None
        raise AuditWriteError(f"audit append failed for action {action}") from exc
    except DraftStoreError as exc:
        if not resolved_best_effort:
            raise
        logger.warning(
            "audit_record_rejected action=%s error=%s",
            action,
            type(exc).__name__,
            exc_info=exc,
        )
        return None
    return record


def check_audit_context(*, request_context_id: object = None, actor_id: object = None) -> None:
    # Reject bad audit inputs before any business write so they cannot mask its outcome.
    optional_text(request_context_id, field="request_context_id", max_len=REQUEST_CONTEXT_MAX_LEN)
    optional_id(actor_id, field="actor_id")
