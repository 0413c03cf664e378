from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass

from draftstore.core.config import get_settings
from draftstore.domain.enums import DocType, Role, Structure, Tone
from draftstore.persistence.db import SessionLocal, init_models
from draftstore.persistence.repos import accounts as accounts_repo
from draftstore.services.accounts import register_account
from draftstore.services.audit import new_request_context_id
from draftstore.services.documents import save_generated_document


DEMO_USERNAME = "demo"
DEMO_EMAIL = "demo@example.com"
# Placeholder hash; the demo account is not meant to log in.
DEMO_CREDENTIAL_HASH = "demo-not-a-real-hash"


@dataclass(frozen=True)
class DemoDocument:
    # Keep seed content deterministic so repeated runs look the same.
    doc_type: DocType
    title: str
    content: str
    tone: Tone
    prompt_input: str | None = None
    structure: Structure | None = None


def build_demo_documents() -> tuple[DemoDocument, ...]:
    return (
        DemoDocument(
            doc_type=DocType.EMAIL,
            title="Welcome Email",
            content="Dear user, welcome to our system!",
            tone=Tone.PROFESSIONAL,
            prompt_input="Welcome a newly registered user.",
        ),
        DemoDocument(
            doc_type=DocType.EMAIL,
            title="Team Lunch",
            content="Hi all, lunch is on Friday at noon. See you there!",
            tone=Tone.FRIENDLY,
        ),
        DemoDocument(
            doc_type=DocType.REPORT,
            title="Quarterly Summary",
            content="Revenue grew 12% quarter over quarter; churn held steady.",
            tone=Tone.FORMAL,
            prompt_input="Summarize Q3 results for leadership.",
            structure=Structure.EXECUTIVE_SUMMARY,
        ),
    )


async def seed_demo() -> int:
    await init_models()
    async with SessionLocal() as session:
        if await accounts_repo.find_by_username(session, DEMO_USERNAME) is not None:
            print("Demo account already seeded; skipping.")
            return 0

        request_context_id = new_request_context_id()
        account = await register_account(
            session,
            username=DEMO_USERNAME,
            email=DEMO_EMAIL,
            credential_hash=DEMO_CREDENTIAL_HASH,
            role=Role.USER,
            request_context_id=request_context_id,
        )
        documents = build_demo_documents()
        for demo in documents:
            await save_generated_document(
                session,
                account_id=account.id,
                doc_type=demo.doc_type,
                content=demo.content,
                tone=demo.tone,
                title=demo.title,
                prompt_input=demo.prompt_input,
                structure=demo.structure,
                request_context_id=request_context_id,
            )
        print(f"Seeded demo account {account.id} with {len(documents)} documents.")
        return 0


def main() -> int:
    logging.basicConfig(level=get_settings().log_level)
    # Surface clear failures and exit non-zero so CI/dev scripts can detect issues.
    try:
        return asyncio.run(seed_demo())
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"seed_demo failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
