from enum import Enum


class ReferenceType(str, Enum):
    EMPLOYER = "employer"
    PREVIOUS_LANDLORD = "previous_landlord"
    CHARACTER = "character"
    BUSINESS_PARTNER = "business_partner"
    FAMILY_GUARANTOR = "family_guarantor"
    SACCOS_MEMBER = "saccos_member"
    CHAMA_MEMBER = "chama_member"
    RELIGIOUS_LEADER = "religious_leader"
    COMMUNITY_ELDER = "community_elder"


class ReferenceStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    DECLINED = "declined"


class PublicReferenceStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    DECLINED = "declined"
    EXPIRED = "expired"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    BOUNCED = "bounced"


class DeclineReason(str, Enum):
    UNREACHABLE = "unreachable"
    NOT_ACQUAINTED = "not_acquainted"
    CONFLICT_OF_INTEREST = "conflict_of_interest"
    INSUFFICIENT_INFORMATION = "insufficient_information"
    OTHER = "other"


class ConsentStatus(str, Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class VerificationCategory(str, Enum):
    EMPLOYMENT = "employment"
    RENTAL_HISTORY = "rental_history"
    CHARACTER = "character"
    FINANCIAL_COMMUNITY = "financial_community"
    GUARANTOR = "guarantor"


class CommunityStanding(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class CRBStatus(str, Enum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    UNKNOWN = "unknown"


class NotificationKind(str, Enum):
    REFERENCE_REQUEST = "reference_request"
    REFERENCE_REMINDER = "reference_reminder"
    REFERENCE_COMPLETED = "reference_completed"
    REFERENCE_DECLINED = "reference_declined"
    VERIFICATION_STATUS = "verification_status"


REFERENCE_CATEGORY: dict[ReferenceType, VerificationCategory] = {
    ReferenceType.EMPLOYER: VerificationCategory.EMPLOYMENT,
    ReferenceType.PREVIOUS_LANDLORD: VerificationCategory.RENTAL_HISTORY,
    ReferenceType.CHARACTER: VerificationCategory.CHARACTER,
    ReferenceType.RELIGIOUS_LEADER: VerificationCategory.CHARACTER,
    ReferenceType.COMMUNITY_ELDER: VerificationCategory.CHARACTER,
    ReferenceType.SACCOS_MEMBER: VerificationCategory.FINANCIAL_COMMUNITY,
    ReferenceType.CHAMA_MEMBER: VerificationCategory.FINANCIAL_COMMUNITY,
    ReferenceType.BUSINESS_PARTNER: VerificationCategory.FINANCIAL_COMMUNITY,
    ReferenceType.FAMILY_GUARANTOR: VerificationCategory.GUARANTOR,
}

REQUIRED_REFERENCE_TYPES = (ReferenceType.EMPLOYER, ReferenceType.PREVIOUS_LANDLORD)
