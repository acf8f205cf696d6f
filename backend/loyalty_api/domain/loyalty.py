"""
Loyalty Domain Model

Tier table, tier progress arithmetic, rewards and vouchers.

Tiers are a plain lookup table ordered by minimum points. A customer's
progress is measured from the floor of their current tier to the floor of
the next one.
"""
from datetime import date, datetime
from typing import List, Optional, Tuple

from pydantic import Field

from loyalty_api.domain.base import APIModel

VOUCHER_VALIDITY_DAYS = 90
MAX_REDEEM_QUANTITY = 10


class TierInfo(APIModel):
    name: str
    min_points: int
    multiplier: float
    color: str
    benefits: List[str]


TIERS: List[TierInfo] = [
    TierInfo(
        name="Bronze",
        min_points=0,
        multiplier=1.0,
        color="#CD7F32",
        benefits=[
            "Earn 1 point per dollar spent",
            "Birthday reward",
            "Member-only offers",
        ],
    ),
    TierInfo(
        name="Silver",
        min_points=1000,
        multiplier=1.25,
        color="#C0C0C0",
        benefits=[
            "Earn 1.25 points per dollar spent",
            "Birthday reward",
            "Free standard shipping",
            "Early access to sales",
        ],
    ),
    TierInfo(
        name="Gold",
        min_points=5000,
        multiplier=1.5,
        color="#FFD700",
        benefits=[
            "Earn 1.5 points per dollar spent",
            "Birthday reward",
            "Free express shipping",
            "Early access to sales",
            "Priority service booking",
        ],
    ),
    TierInfo(
        name="Platinum",
        min_points=10000,
        multiplier=2.0,
        color="#E5E4E2",
        benefits=[
            "Earn 2 points per dollar spent",
            "Birthday reward",
            "Free express shipping",
            "Exclusive events",
            "Priority service booking",
            "Dedicated support line",
        ],
    ),
]


def tier_index(tier_name: Optional[str]) -> int:
    """Position in TIERS, case-insensitive. Unknown names count as Bronze."""
    wanted = (tier_name or "").strip().lower()
    for index, tier in enumerate(TIERS):
        if tier.name.lower() == wanted:
            return index
    return 0


def get_tier_info(tier_name: Optional[str]) -> TierInfo:
    return TIERS[tier_index(tier_name)]


def tier_for_points(points: int) -> TierInfo:
    """Highest tier whose floor the points reach."""
    current = TIERS[0]
    for tier in TIERS:
        if points >= tier.min_points:
            current = tier
    return current


class TierProgress(APIModel):
    tier: str
    next_tier: Optional[str] = None
    points_to_next: int = 0
    progress_to_next: float = 100.0
    benefits: List[str] = Field(default_factory=list)


def tier_progress(tier_name: Optional[str], points: int) -> TierProgress:
    """
    Progress from the current tier toward the next one.

    progress_to_next is a percentage clamped to 0..100; the top tier
    always reports no next tier and 100.
    """
    index = tier_index(tier_name)
    current = TIERS[index]
    points = max(points or 0, 0)

    if index == len(TIERS) - 1:
        return TierProgress(tier=current.name, benefits=current.benefits)

    following = TIERS[index + 1]
    span = following.min_points - current.min_points
    earned = points - current.min_points
    progress = (earned / span) * 100 if span > 0 else 100.0

    return TierProgress(
        tier=current.name,
        next_tier=following.name,
        points_to_next=max(following.min_points - points, 0),
        progress_to_next=round(min(max(progress, 0.0), 100.0), 1),
        benefits=current.benefits,
    )


class Reward(APIModel):
    """An entry in the rewards catalog"""
    id: int
    name: str
    description: str = ""
    points_required: int
    reward_type: str = "discount"
    discount_amount: float = 0.0
    discount_percentage: Optional[float] = None
    image_url: Optional[str] = None
    tier_restriction: Optional[str] = None
    max_redemptions: Optional[int] = None
    current_redemptions: int = 0
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True

    # Computed per customer
    is_available: bool = False
    unavailable_reason: Optional[str] = None
    remaining_redemptions: Optional[int] = None


def check_reward_availability(
    reward: Reward,
    customer_tier: Optional[str],
    customer_points: int,
    quantity: int = 1,
    now: Optional[datetime] = None,
) -> Tuple[bool, Optional[str]]:
    """
    Decide whether a customer may redeem a reward.

    Returns:
        (is_available, reason) where reason explains a refusal
    """
    now = now or datetime.now()

    if not reward.is_active:
        return False, "Reward is not active"

    if reward.valid_from and _naive(reward.valid_from) > _naive(now):
        return False, "Reward is not yet available"

    if reward.valid_until and _naive(reward.valid_until) < _naive(now):
        return False, "Reward has expired"

    if reward.max_redemptions is not None:
        if reward.current_redemptions + quantity > reward.max_redemptions:
            return False, "Reward is sold out"

    if reward.tier_restriction:
        if tier_index(customer_tier) < tier_index(reward.tier_restriction):
            return False, f"Reward requires {get_tier_info(reward.tier_restriction).name} tier or higher"

    if customer_points < reward.points_required * quantity:
        return False, "Insufficient points"

    return True, None


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo else value


class RewardRedemption(APIModel):
    id: int
    customer_id: int
    reward_id: int
    reward_name: str = ""
    points_used: int
    quantity: int = 1
    status: str = "Completed"
    redeemed_at: Optional[datetime] = None


class Voucher(APIModel):
    """
    A discount credit issued to a customer.

    face_value = remaining_value + redeemed_value + reserved_value
    """
    id: int
    customer_id: int
    voucher_code: str
    name: str = ""
    description: Optional[str] = None
    status: str = "Issued"
    voucher_type: str = "discount"
    face_value: float = 0.0
    remaining_value: float = 0.0
    redeemed_value: float = 0.0
    reserved_value: float = 0.0
    discount_percent: Optional[float] = None
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    use_date: Optional[datetime] = None
    reward_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def is_expired(self) -> bool:
        return self.status == "Expired" or (
            self.expiration_date is not None and self.expiration_date < date.today()
        )


class PointsHistoryEntry(APIModel):
    """A transaction seen through its effect on the points balance"""
    id: int
    transaction_id: str = ""
    transaction_date: Optional[datetime] = None
    total_amount: float = 0.0
    points_earned: int = 0
    points_redeemed: int = 0
    transaction_type: str = "Purchase"
    store_location: Optional[str] = None


class RewardUnavailableError(ValueError):
    """Redemption refused; the message is the reason shown to the customer."""
