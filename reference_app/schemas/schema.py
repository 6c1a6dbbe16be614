from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from typing_extensions import Annotated

from core.errors import DetailsValidationError
from models.enums import (
    REFERENCE_CATEGORY,
    CommunityStanding,
    ConsentStatus,
    CRBStatus,
    DeclineReason,
    DeliveryStatus,
    PublicReferenceStatus,
    ReferenceType,
    VerificationCategory,
)


class ConsentPermissions(BaseModel):
    employer_verification: bool = False
    kra_credit_check: bool = False
    mobile_money_analysis: bool = False
    utility_bill_verification: bool = False
    saccos_verification: bool = False
    guarantor_verification: bool = False


class DataRetention(BaseModel):
    retention_period_months: int = Field(24, ge=6, le=60)
    allow_data_sharing: bool = False
    allow_analytics: bool = True


class ConsentCreate(BaseModel):
    permissions: ConsentPermissions = Field(default_factory=ConsentPermissions)
    data_retention: Optional[DataRetention] = None
    requester_id: Optional[uuid.UUID] = None


class ConsentOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    requester_id: uuid.UUID
    permissions: ConsentPermissions
    data_retention: DataRetention
    status: ConsentStatus
    revoked_at: Optional[datetime] = None
    revoked_reason: Optional[str] = None
    created_at: datetime
    model_config = {"from_attributes": True}


class ReferenceProvider(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, pattern=r"^\+?[0-9]{7,15}$")
    relationship: str = Field(..., min_length=1, max_length=120)

    @field_validator("name", "relationship")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Field cannot be blank.")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower() if isinstance(value, str) else value


class ReferenceRequestCreate(BaseModel):
    reference_type: ReferenceType
    reference_provider: ReferenceProvider


class _DetailsBase(BaseModel):
    # Keys belonging to other categories are dropped, not rejected.
    model_config = ConfigDict(extra="ignore")


class EmploymentDetails(_DetailsBase):
    category: Literal["employment"] = "employment"
    employment_status: str = Field(..., min_length=1)
    annual_income: float = Field(..., ge=0)
    position_held: str = Field(..., min_length=1)
    length_of_employment: Optional[str] = None
    employer_kra_pin: Optional[str] = None
    salary_slip_verified: bool = False


class RentalHistoryDetails(_DetailsBase):
    category: Literal["rental_history"] = "rental_history"
    rent_payment_history: str = Field(..., min_length=1)
    rent_amount: float = Field(..., ge=0)
    tenancy_length: str = Field(..., min_length=1)
    landlord_feedback: Optional[str] = None
    reason_for_leaving: Optional[str] = None
    water_bills_paid: bool = False
    electrical_bills_paid: bool = False
    property_condition: Optional[str] = None


class CharacterDetails(_DetailsBase):
    category: Literal["character"] = "character"
    character_reference: Optional[str] = None
    community_standing: Optional[CommunityStanding] = None
    religious_affiliation: Optional[str] = None
    known_since: Optional[str] = None


class FinancialCommunityDetails(_DetailsBase):
    category: Literal["financial_community"] = "financial_community"
    saccos_account_status: Optional[str] = None
    chama_contribution: Optional[str] = None
    mobile_money_history: Optional[str] = None
    crb_status: Optional[CRBStatus] = None
    relationship_duration: Optional[str] = None


class GuarantorDetails(_DetailsBase):
    category: Literal["guarantor"] = "guarantor"
    guarantor_net_worth: Optional[float] = Field(None, ge=0)
    guarantor_property: Optional[str] = None
    relationship_duration: Optional[str] = None
    willingness_to_guarantee: bool = False


VerificationDetails = Annotated[
    Union[
        EmploymentDetails,
        RentalHistoryDetails,
        CharacterDetails,
        FinancialCommunityDetails,
        GuarantorDetails,
    ],
    Field(discriminator="category"),
]

_details_adapter: TypeAdapter[VerificationDetails] = TypeAdapter(VerificationDetails)


def validate_verification_details(
    reference_type: ReferenceType, raw: dict | None
) -> VerificationDetails:
    """Validate a provider payload against the shape of the reference's category.

    The discriminator comes from the stored reference type, never from the
    caller, so a provider cannot pick a different shape.
    """
    category = REFERENCE_CATEGORY[reference_type]
    data = {**(raw or {}), "category": category.value}
    try:
        return _details_adapter.validate_python(data)
    except ValidationError as exc:
        errors = [
            {
                "loc": [str(part) for part in err["loc"] if part != category.value],
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in exc.errors()
        ]
        raise DetailsValidationError(
            errors=errors,
            message=f"Invalid verification details for {reference_type.value} reference",
        ) from exc


class ReferenceDecline(BaseModel):
    decline_reason: DeclineReason
    decline_comment: Optional[str] = Field(None, max_length=2000)


class ReferenceRespond(BaseModel):
    feedback: str = Field(..., min_length=1, max_length=5000)
    rating: int = Field(..., ge=1, le=5)
    verification_details: dict = Field(default_factory=dict)


class ReferenceAttemptOut(BaseModel):
    attempt_number: int
    sent_at: datetime
    delivery_status: DeliveryStatus
    delivery_details: Optional[str] = None
    model_config = {"from_attributes": True}


class ReferenceProviderOut(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    relationship: str


class ReferenceOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    reference_type: ReferenceType
    reference_provider: ReferenceProviderOut
    status: PublicReferenceStatus
    expires_at: datetime
    request_attempts: List[ReferenceAttemptOut] = Field(default_factory=list)
    reminder_count: int = 0
    last_reminder_sent: Optional[datetime] = None
    verification_details: Optional[dict] = None
    rating: Optional[int] = None
    feedback: Optional[str] = None
    completed_at: Optional[datetime] = None
    decline_reason: Optional[DeclineReason] = None
    decline_comment: Optional[str] = None
    declined_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_record(cls, reference, now: datetime) -> "ReferenceOut":
        return cls(
            id=reference.id,
            tenant_id=reference.tenant_id,
            reference_type=reference.reference_type,
            reference_provider=ReferenceProviderOut(
                name=reference.provider_name,
                email=reference.provider_email,
                phone=reference.provider_phone,
                relationship=reference.provider_relationship,
            ),
            status=reference.public_status(now),
            expires_at=reference.expires_at,
            request_attempts=[
                ReferenceAttemptOut.model_validate(a) for a in reference.attempts
            ],
            reminder_count=reference.reminder_count,
            last_reminder_sent=reference.last_reminder_sent,
            verification_details=reference.verification_details,
            rating=reference.rating,
            feedback=reference.feedback,
            completed_at=reference.completed_at,
            decline_reason=reference.decline_reason,
            decline_comment=reference.decline_comment,
            declined_at=reference.declined_at,
            created_at=reference.created_at,
        )


class ReferenceCreatedOut(ReferenceOut):
    # Only returned to the tenant at creation; providers receive it by email.
    token: str


class ProviderReferenceView(BaseModel):
    tenant_name: str
    reference_type: ReferenceType
    category: VerificationCategory
    provider_name: str
    expires_at: datetime


class ResendOut(BaseModel):
    reference: ReferenceOut
    email_sent: bool
    attempt_number: int
    remaining_attempts: int


class ReferenceSummaryOut(BaseModel):
    total: int
    pending: int
    completed: int
    expired: int
    declined: int
    avg_rating: float
    completion_rate: float
    response_rate: float
    missing_required_types: List[ReferenceType]


class VerificationOut(BaseModel):
    verification_score: float
    total_possible_score: float
    verification_percentage: int
    references: List[ReferenceOut]
    is_verified: bool
