"""
Customer portal - token-gated view of a paying customer's projects.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dolo.database import get_db
from dolo.models.customer import Customer, Project

logger = logging.getLogger(__name__)
router = APIRouter(tags=["portal"])


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on round-trip
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@router.get("/api/customer-portal/{token}")
async def get_portal(token: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Customer).where(Customer.chat_access_token == token)
    )
    customer = result.scalar_one_or_none()
    if not customer or _as_utc(customer.chat_access_expires_at) < datetime.now(timezone.utc):
        raise HTTPException(status_code=404, detail="Portal not found or access expired")

    projects = await db.execute(
        select(Project)
        .where(Project.customer_id == customer.id)
        .order_by(Project.created_at.desc())
    )

    return {
        "customer": {
            "id": str(customer.id),
            "name": customer.name,
            "email": customer.email,
            "company": customer.company,
            "access_expires_at": _as_utc(customer.chat_access_expires_at).isoformat(),
        },
        "projects": [
            {
                "id": str(project.id),
                "project_type": project.project_type,
                "status": project.status,
                "total_amount": project.total_amount,
                "rush_fee_applied": project.rush_fee_applied,
                "created_at": project.created_at.isoformat() if project.created_at else None,
            }
            for project in projects.scalars().all()
        ],
    }
