import re
import uuid
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from core.date_helper import utc_now
from core.get_db import Base

from .enums import (
    ConsentStatus,
    DeclineReason,
    DeliveryStatus,
    PublicReferenceStatus,
    ReferenceStatus,
    ReferenceType,
)


def enum_column(enum_cls):
    return Enum(
        enum_cls,
        native_enum=False,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    verification_progress: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    consents: Mapped[List["Consent"]] = relationship(
        "Consent", back_populates="tenant", cascade="all, delete-orphan"
    )
    references: Mapped[List["ReferenceRequest"]] = relationship(
        "ReferenceRequest", back_populates="tenant", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "verification_progress >= 0 AND verification_progress <= 100",
            name="ck_tenants_verification_progress_range",
        ),
    )

    @validates("phone_number")
    def validate_phone(self, key, value):
        if value is not None and not re.match(r"^\+?[0-9]{7,15}$", value):
            raise ValueError("Invalid phone number format.")
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def personal_info(self) -> dict:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
        }


class Consent(Base):
    __tablename__ = "consents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="consents")
    requester_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    permissions: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    data_retention: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    status: Mapped[ConsentStatus] = mapped_column(
        enum_column(ConsentStatus), nullable=False, default=ConsentStatus.ACTIVE
    )
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    revoked_reason: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )

    __table_args__ = (
        Index(
            "uq_consents_one_active_per_tenant",
            "tenant_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )


class ReferenceRequest(Base):
    __tablename__ = "reference_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="references")

    reference_type: Mapped[ReferenceType] = mapped_column(
        enum_column(ReferenceType), nullable=False, index=True
    )
    provider_name: Mapped[str] = mapped_column(String(200), nullable=False)
    provider_email: Mapped[str] = mapped_column(String(255), nullable=False)
    provider_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    provider_relationship: Mapped[str] = mapped_column(String(120), nullable=False)

    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    status: Mapped[ReferenceStatus] = mapped_column(
        enum_column(ReferenceStatus),
        nullable=False,
        default=ReferenceStatus.PENDING,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    reminder_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reminder_sent: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )

    verification_details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    decline_reason: Mapped[Optional[DeclineReason]] = mapped_column(
        enum_column(DeclineReason), nullable=True
    )
    decline_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    declined_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    attempts: Mapped[List["ReferenceAttempt"]] = relationship(
        "ReferenceAttempt",
        back_populates="reference",
        cascade="all, delete-orphan",
        order_by="ReferenceAttempt.attempt_number",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_reference_requests_rating_range",
        ),
    )

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def public_status(self, now: datetime) -> PublicReferenceStatus:
        if self.status == ReferenceStatus.PENDING and self.is_expired(now):
            return PublicReferenceStatus.EXPIRED
        return PublicReferenceStatus(self.status.value)

    @property
    def last_attempt(self) -> Optional["ReferenceAttempt"]:
        return self.attempts[-1] if self.attempts else None


class ReferenceAttempt(Base):
    __tablename__ = "reference_attempts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    reference_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("reference_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reference: Mapped["ReferenceRequest"] = relationship(
        "ReferenceRequest", back_populates="attempts"
    )
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    delivery_status: Mapped[DeliveryStatus] = mapped_column(
        enum_column(DeliveryStatus), nullable=False, default=DeliveryStatus.SENT
    )
    delivery_details: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "reference_id", "attempt_number", name="uq_reference_attempt_number"
        ),
    )
