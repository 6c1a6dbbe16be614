import math
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from models.enums import CommunityStanding, CRBStatus, ReferenceType

MAX_RATING = 5


def _landlord_bonus(details: dict) -> bool:
    return bool(details.get("water_bills_paid")) and bool(
        details.get("electrical_bills_paid")
    )


def _employer_bonus(details: dict) -> bool:
    return bool(details.get("employer_kra_pin")) and bool(
        details.get("salary_slip_verified")
    )


def _crb_bonus(details: dict) -> bool:
    return details.get("crb_status") == CRBStatus.GOOD.value


def _guarantor_bonus(details: dict) -> bool:
    return bool(details.get("guarantor_property")) and bool(
        details.get("willingness_to_guarantee")
    )


def _standing_bonus(details: dict) -> bool:
    return details.get("community_standing") == CommunityStanding.EXCELLENT.value


@dataclass(frozen=True)
class WeightRule:
    weight: float
    bonus_multiplier: float = 1.0
    bonus_condition: Optional[Callable[[dict], bool]] = None

    def multiplier_for(self, details: dict | None) -> float:
        if self.bonus_condition is None or not details:
            return 1.0
        return self.bonus_multiplier if self.bonus_condition(details) else 1.0


WEIGHT_RULES: dict[ReferenceType, WeightRule] = {
    ReferenceType.PREVIOUS_LANDLORD: WeightRule(4.0, 1.20, _landlord_bonus),
    ReferenceType.EMPLOYER: WeightRule(3.0, 1.15, _employer_bonus),
    ReferenceType.SACCOS_MEMBER: WeightRule(2.5, 1.10, _crb_bonus),
    ReferenceType.CHAMA_MEMBER: WeightRule(2.5, 1.10, _crb_bonus),
    ReferenceType.FAMILY_GUARANTOR: WeightRule(2.2, 1.25, _guarantor_bonus),
    ReferenceType.RELIGIOUS_LEADER: WeightRule(1.8, 1.10, _standing_bonus),
    ReferenceType.COMMUNITY_ELDER: WeightRule(1.8, 1.10, _standing_bonus),
    ReferenceType.BUSINESS_PARTNER: WeightRule(1.5),
    ReferenceType.CHARACTER: WeightRule(1.2),
}


@dataclass(frozen=True)
class ScoredReference:
    reference_type: ReferenceType
    rating: int
    weight: float
    bonus_multiplier: float

    @property
    def score(self) -> float:
        return self.rating * self.weight * self.bonus_multiplier

    @property
    def possible(self) -> float:
        return MAX_RATING * self.weight * self.bonus_multiplier


@dataclass(frozen=True)
class ScoreResult:
    verification_score: float
    total_possible_score: float
    verification_percentage: int
    scored: tuple[ScoredReference, ...]


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def score_reference(
    reference_type: ReferenceType, rating: int, details: dict | None
) -> ScoredReference:
    rule = WEIGHT_RULES[reference_type]
    return ScoredReference(
        reference_type=reference_type,
        rating=rating,
        weight=rule.weight,
        bonus_multiplier=rule.multiplier_for(details),
    )


def score_references(references: Iterable) -> ScoreResult:
    """Weighted trust score over completed references.

    Each reference contributes rating * weight * bonus against a ceiling of
    5 * weight * bonus. References without a rating are skipped.
    """
    scored = tuple(
        score_reference(ref.reference_type, ref.rating, ref.verification_details)
        for ref in references
        if ref.rating
    )
    # fsum is exactly rounded, so totals do not depend on input order.
    verification_score = math.fsum(s.score for s in scored)
    total_possible_score = math.fsum(s.possible for s in scored)

    if total_possible_score > 0:
        percentage = round_half_up(verification_score / total_possible_score * 100)
    else:
        percentage = 0

    return ScoreResult(
        verification_score=verification_score,
        total_possible_score=total_possible_score,
        verification_percentage=percentage,
        scored=scored,
    )
