"""
Lead scoring engine - pure function from submitted lead attributes to a quality tier.

Scoring (additive, 0-100):
- Phone provided: 20
- First AND last name provided: 15
- Credit score provided: 25
- Loan amount inside the sweet-spot band (200k-500k inclusive): 20
- Down payment at least 10% of home price: 10
- ZIP code provided: 10

Tiers: >= 60 high, >= 30 medium, else low.
No I/O, no clock, no randomness: the same input always produces the same score.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LeadQuality(str, Enum):
    """Ordered quality tier. Compare with .rank, never with string ordering."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _QUALITY_RANKS[self]


_QUALITY_RANKS = {
    LeadQuality.LOW: 1,
    LeadQuality.MEDIUM: 2,
    LeadQuality.HIGH: 3,
}


def parse_quality(value) -> Optional[LeadQuality]:
    """Parse a stored tier string. Returns None for unrecognized values."""
    if isinstance(value, LeadQuality):
        return value
    if not value:
        return None
    try:
        return LeadQuality(str(value).strip().lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class ScoringWeights:
    """Points, bands and thresholds used by score_lead."""
    phone_points: int = 20
    full_name_points: int = 15
    credit_score_points: int = 25
    loan_band_points: int = 20
    loan_band_min: float = 200_000
    loan_band_max: float = 500_000
    down_payment_points: int = 10
    down_payment_min_ratio: float = 0.10
    zip_code_points: int = 10
    high_threshold: int = 60
    medium_threshold: int = 30


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class LeadScore:
    quality: LeadQuality
    score: int


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def quality_for_score(score: int, weights: ScoringWeights = DEFAULT_WEIGHTS) -> LeadQuality:
    """Map a numeric score onto its tier."""
    if score >= weights.high_threshold:
        return LeadQuality.HIGH
    if score >= weights.medium_threshold:
        return LeadQuality.MEDIUM
    return LeadQuality.LOW


def score_lead(
    *,
    phone: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    credit_score: Optional[int] = None,
    loan_amount: Optional[float] = None,
    home_price: Optional[float] = None,
    down_payment: Optional[float] = None,
    zip_code: Optional[str] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> LeadScore:
    """
    Score a lead from its submitted attributes.

    Returns: LeadScore(quality, score)
    """
    score = 0

    if _present(phone):
        score += weights.phone_points

    if _present(first_name) and _present(last_name):
        score += weights.full_name_points

    if credit_score is not None:
        score += weights.credit_score_points

    if loan_amount is not None and weights.loan_band_min <= float(loan_amount) <= weights.loan_band_max:
        score += weights.loan_band_points

    if down_payment is not None and home_price is not None and float(home_price) > 0:
        ratio = float(down_payment) / float(home_price)
        if ratio >= weights.down_payment_min_ratio:
            score += weights.down_payment_points

    if _present(zip_code):
        score += weights.zip_code_points

    return LeadScore(quality=quality_for_score(score, weights), score=score)
