from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class DocType(str, Enum):
    EMAIL = "email"
    REPORT = "report"


class Tone(str, Enum):
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    FORMAL = "formal"
    FRIENDLY = "friendly"


class Structure(str, Enum):
    # Layouts only reports are generated with.
    EXECUTIVE_SUMMARY = "executive_summary"
    DETAILED = "detailed"
    BULLET_POINTS = "bullet_points"


class EntityType(str, Enum):
    # Tag for the soft reference an audit record carries; never a foreign key.
    DOCUMENT = "document"
    ACCOUNT = "account"


# Older callers tag account rows as "user".
ENTITY_TYPE_ALIASES = {"user": EntityType.ACCOUNT}
