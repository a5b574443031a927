"""Subscription plans, roles and theme colors."""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class SubscriptionPlan(str, Enum):
    """Subscription tier of a business."""

    FREE = "free"
    BUSINESS = "business"
    PRO = "pro"
    VIP = "vip"


class Role(str, Enum):
    """Profile role."""

    ADMIN = "admin"
    OWNER = "owner"
    VISITOR = "visitor"


@dataclass(frozen=True)
class PlanLimits:
    """What a plan allows."""

    name: str
    price: Decimal | None  # None = on request
    max_products: int
    max_images: int
    includes_video: bool
    includes_chat: bool


SUBSCRIPTION_PLANS: dict[SubscriptionPlan, PlanLimits] = {
    SubscriptionPlan.FREE: PlanLimits("Free", Decimal("0"), 10, 1, False, False),
    SubscriptionPlan.BUSINESS: PlanLimits("Business", Decimal("1"), 50, 5, False, True),
    SubscriptionPlan.PRO: PlanLimits("Pro", Decimal("2"), 100, 10, True, True),
    SubscriptionPlan.VIP: PlanLimits("VIP", None, 250, 24, True, True),
}

THEME_COLORS = (
    "#3B82F6",  # Blue
    "#10B981",  # Emerald
    "#F59E0B",  # Amber
    "#EF4444",  # Red
    "#8B5CF6",  # Violet
    "#EC4899",  # Pink
    "#06B6D4",  # Cyan
    "#84CC16",  # Lime
    "#F97316",  # Orange
    "#6366F1",  # Indigo
)

DEFAULT_THEME_COLOR = THEME_COLORS[0]


def plan_limits(plan: str | SubscriptionPlan | None) -> PlanLimits:
    """Limits of a plan; unknown or missing plans fall back to free."""
    try:
        return SUBSCRIPTION_PLANS[SubscriptionPlan(plan)]
    except ValueError:
        return SUBSCRIPTION_PLANS[SubscriptionPlan.FREE]


def has_role(role: str | Role | None, required: str | Role) -> bool:
    """Role check; admin satisfies any requirement."""
    if role is None:
        return False
    try:
        role = Role(role)
    except ValueError:
        return False
    return role == Role.ADMIN or role == Role(required)
