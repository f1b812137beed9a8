"""Plan table shown on the pricing view."""

from dataclasses import dataclass

from nutriscan.domain.users import UserTier


@dataclass(frozen=True)
class Plan:
    """A purchasable plan. ``monthly_scans`` of None means unlimited."""

    tier: UserTier
    price: str
    monthly_scans: int | None
    public_data: bool = False
    priority_support: bool = False


TIER_LIMITS: dict[UserTier, int | None] = {
    UserTier.GUEST: 3,
    UserTier.FREE: 10,
    UserTier.STARTER: 50,
    UserTier.PRO: 200,
    UserTier.ENTERPRISE: None,
}

PLANS: tuple[Plan, ...] = (
    Plan(tier=UserTier.FREE, price="$0", monthly_scans=TIER_LIMITS[UserTier.FREE]),
    Plan(
        tier=UserTier.STARTER,
        price="$4.99",
        monthly_scans=TIER_LIMITS[UserTier.STARTER],
        public_data=True,
    ),
    Plan(
        tier=UserTier.PRO,
        price="$9.99",
        monthly_scans=TIER_LIMITS[UserTier.PRO],
        public_data=True,
        priority_support=True,
    ),
    Plan(
        tier=UserTier.ENTERPRISE,
        price="Custom",
        monthly_scans=None,
        public_data=True,
        priority_support=True,
    ),
)


def is_current_plan(plan: Plan, tier: UserTier) -> bool:
    """Guests are shown the free plan as their current one."""
    if tier == UserTier.GUEST:
        return plan.tier == UserTier.FREE
    return plan.tier == tier
