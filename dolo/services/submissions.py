"""
Lead capture persistence - contact, quiz and private-build submissions.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dolo.models.submissions import ContactSubmission, QuizResult, PrivateBuildApplication

logger = logging.getLogger(__name__)


async def insert_contact_submission(
    db: AsyncSession,
    name: str,
    email: str,
    message: str,
    company: Optional[str] = None,
    source: str = "contact-form",
) -> ContactSubmission:
    row = ContactSubmission(
        name=name.strip(),
        email=email.strip(),
        message=message.strip(),
        company=company.strip() if company else None,
        source=source,
    )
    db.add(row)
    await db.flush()
    logger.info("Contact submission saved: %s", str(row.id)[:8])
    return row


async def insert_quiz_result(
    db: AsyncSession,
    email: str,
    plan: str,
    description: str,
    link: str,
    consent: bool,
) -> QuizResult:
    row = QuizResult(
        email=email.strip(),
        plan=plan.strip(),
        description=description.strip(),
        link=link.strip(),
        consent=bool(consent),
    )
    db.add(row)
    await db.flush()
    logger.info("Quiz result saved: %s", str(row.id)[:8])
    return row


async def insert_private_build_application(db: AsyncSession, data: dict) -> PrivateBuildApplication:
    row = PrivateBuildApplication(
        name=data["name"].strip(),
        email=data["email"].strip(),
        company=data.get("company"),
        project_type=data["project_type"].strip(),
        budget=data["budget"].strip(),
        timeline=data["timeline"].strip(),
        vision=data["vision"].strip(),
        referral_source=data.get("referral_source"),
        status="pending",
    )
    db.add(row)
    await db.flush()
    logger.info("Private build application saved: %s", str(row.id)[:8])
    return row


async def list_recent(db: AsyncSession, model, limit: int = 50) -> list:
    """Newest-first rows of a submission model."""
    result = await db.execute(
        select(model).order_by(model.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())
