"""
Paying customers and their projects, created from completed Stripe checkouts.
Each customer gets a chat access token that unlocks the customer portal.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Float, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from dolo.database import Base


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    stripe_customer_id: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), default="")
    company: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(30))

    chat_access_token: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    chat_access_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    projects: Mapped[list["Project"]] = relationship(back_populates="customer")

    __table_args__ = (
        Index("ix_customers_stripe_customer_id", "stripe_customer_id"),
    )

    def __repr__(self) -> str:
        return f"<Customer {self.email}>"


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False
    )
    project_type: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # essential, pro, premier, private-build, custom
    stripe_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(100))
    total_amount: Mapped[float] = mapped_column(Float, default=0.0)
    rush_fee_applied: Mapped[bool] = mapped_column(Boolean, default=False)
    add_ons: Mapped[Optional[dict]] = mapped_column(JSONB)
    project_details: Mapped[Optional[dict]] = mapped_column(JSONB)
    status: Mapped[str] = mapped_column(String(30), default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    customer: Mapped["Customer"] = relationship(back_populates="projects")

    __table_args__ = (
        Index("ix_projects_customer_id", "customer_id"),
    )
