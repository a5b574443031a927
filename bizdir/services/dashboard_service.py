"""Dashboard figures for admins, owners and customers."""
from decimal import Decimal

from pydantic import BaseModel

from bizdir.core.errors import Result
from bizdir.core.plans import SubscriptionPlan, plan_limits
from bizdir.repositories.base import Id, QueryRepository
from bizdir.schemas import BusinessSummary, OrderSummary

# Orders that never turned into revenue
NON_REVENUE_STATUSES = {"pending", "cancelled", "failed", "refunded"}


class AdminStats(BaseModel):
    total_businesses: int
    claimed_businesses: int
    total_orders: int
    total_revenue: Decimal


class OwnerStats(BaseModel):
    business: BusinessSummary | None = None
    total_products: int = 0
    max_products: int = 0
    total_orders: int = 0
    revenue: Decimal = Decimal("0")
    subscription_plan: SubscriptionPlan | None = None


class CustomerStats(BaseModel):
    favorite_businesses: int
    total_orders: int
    total_spent: Decimal


def revenue(orders: list[OrderSummary]) -> Decimal:
    """Sum of the order totals that count as revenue."""
    return sum(
        (order.total_amount for order in orders if order.status not in NON_REVENUE_STATUSES),
        Decimal("0"),
    )


class DashboardService:
    """Service computing dashboard statistics."""

    def __init__(self, repository: QueryRepository):
        self.repository = repository

    async def admin_stats(self) -> Result[AdminStats]:
        businesses = await self.repository.list_businesses()
        if not businesses.ok:
            return Result.failure(businesses.error)
        orders = await self.repository.list_orders()
        if not orders.ok:
            return Result.failure(orders.error)

        return Result.success(
            AdminStats(
                total_businesses=len(businesses.data),
                claimed_businesses=sum(1 for business in businesses.data if business.claimed),
                total_orders=len(orders.data),
                total_revenue=revenue(orders.data),
            )
        )

    async def owner_stats(self, owner_id: Id) -> Result[OwnerStats]:
        """Figures for the business the owner claimed; empty when there is none."""
        owned = await self.repository.list_businesses({"owner_id": owner_id, "limit": 1})
        if not owned.ok:
            return Result.failure(owned.error)
        if not owned.data:
            return Result.success(OwnerStats())
        business = owned.data[0]

        products = await self.repository.list_products(business.id)
        if not products.ok:
            return Result.failure(products.error)
        orders = await self.repository.list_orders({"business_id": business.id})
        if not orders.ok:
            return Result.failure(orders.error)

        return Result.success(
            OwnerStats(
                business=business,
                total_products=len(products.data),
                max_products=plan_limits(business.subscription_plan).max_products,
                total_orders=len(orders.data),
                revenue=revenue(orders.data),
                subscription_plan=business.subscription_plan,
            )
        )

    async def customer_stats(self, customer_id: Id) -> Result[CustomerStats]:
        favorites = await self.repository.list_favorites(customer_id)
        if not favorites.ok:
            return Result.failure(favorites.error)
        orders = await self.repository.list_orders({"customer_id": customer_id})
        if not orders.ok:
            return Result.failure(orders.error)

        return Result.success(
            CustomerStats(
                favorite_businesses=len(favorites.data),
                total_orders=len(orders.data),
                total_spent=revenue(orders.data),
            )
        )
