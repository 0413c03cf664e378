from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Mapping, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

from draftstore.core.config import get_settings
from draftstore.core.errors import StorageUnavailableError, ValidationError


logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

TransientException = (OperationalError, InterfaceError, TimeoutError, OSError)


@dataclass(frozen=True)
class Pagination:
    # Offset pagination over the (created_at, id) ordering of each list query.
    limit: int
    offset: int = 0

    @classmethod
    def of(cls, limit: int | None = None, offset: int = 0) -> "Pagination":
        settings = get_settings()
        resolved = settings.page_default_size if limit is None else limit
        if isinstance(resolved, bool) or not isinstance(resolved, int):
            raise ValidationError("limit must be an integer", field="limit")
        if resolved < 1 or resolved > settings.page_max_size:
            raise ValidationError(
                f"limit must be between 1 and {settings.page_max_size}", field="limit"
            )
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValidationError("offset must be a non-negative integer", field="offset")
        return cls(limit=resolved, offset=offset)


def resolve_pagination(pagination: Pagination | None) -> Pagination:
    return pagination if pagination is not None else Pagination.of()


def require_text(value: object, *, field: str, max_len: int | None = None) -> str:
    # Reject absent or blank values; the stored value is kept verbatim.
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    if max_len is not None and len(value) > max_len:
        raise ValidationError(f"{field} exceeds {max_len} characters", field=field)
    return value


def optional_text(value: object, *, field: str, max_len: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    if max_len is not None and len(value) > max_len:
        raise ValidationError(f"{field} exceeds {max_len} characters", field=field)
    return value


def require_id(value: object, *, field: str) -> int:
    # bool is an int subclass but never a valid identifier.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer identifier", field=field)
    return value


def optional_id(value: object, *, field: str) -> int | None:
    if value is None:
        return None
    return require_id(value, field=field)


def coerce_enum(
    enum_cls: type[E],
    value: object,
    *,
    field: str,
    aliases: Mapping[str, E] | None = None,
) -> E:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        if aliases and value in aliases:
            return aliases[value]
        try:
            return enum_cls(value)
        except ValueError:
            pass
    allowed = ", ".join(member.value for member in enum_cls)
    raise ValidationError(f"{field} must be one of: {allowed}", field=field)


def optional_enum(
    enum_cls: type[E],
    value: object,
    *,
    field: str,
    aliases: Mapping[str, E] | None = None,
) -> E | None:
    if value is None:
        return None
    return coerce_enum(enum_cls, value, field=field, aliases=aliases)


@asynccontextmanager
async def translate_db_errors(operation: str) -> AsyncIterator[None]:
    # Single mapping point from driver failures to the retryable storage error.
    try:
        yield
    except TransientException as exc:
        logger.warning("storage_unavailable operation=%s", operation, exc_info=exc)
        raise StorageUnavailableError(f"{operation} failed: storage unavailable") from exc
    except DBAPIError as exc:
        if not exc.connection_invalidated:
            raise
        logger.warning("storage_connection_invalidated operation=%s", operation, exc_info=exc)
        raise StorageUnavailableError(f"{operation} failed: connection lost") from exc
