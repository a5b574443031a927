"""Product management for business owners."""
import logging

from bizdir.core.errors import ConflictError, Forbidden, Result
from bizdir.core.plans import PlanLimits, Role, has_role, plan_limits
from bizdir.repositories.base import Fields, Id, QueryRepository
from bizdir.schemas import BusinessDetail, ProductView, ProfileView

logger = logging.getLogger(__name__)


class PlanLimitExceeded(ConflictError):
    """The business already has as many products as its plan allows."""


class CatalogService:
    """Service for managing a business's products."""

    def __init__(self, repository: QueryRepository):
        self.repository = repository

    @staticmethod
    def plan_limits(plan: str | None) -> PlanLimits:
        return plan_limits(plan)

    async def can_add_product(self, business_id: Id) -> Result[bool]:
        """Whether the business is still below its plan's product limit."""
        business = await self.repository.get_business(business_id)
        if not business.ok:
            return Result.failure(business.error)
        products = await self.repository.list_products(business_id)
        if not products.ok:
            return Result.failure(products.error)

        limit = self.plan_limits(business.data.subscription_plan).max_products
        return Result.success(len(products.data) < limit)

    async def _authorize(self, actor: ProfileView, business_id: Id) -> Result[BusinessDetail]:
        """Load the business and check that the actor may manage it."""
        business = await self.repository.get_business(business_id)
        if not business.ok:
            return business
        if not has_role(actor.role, Role.ADMIN) and business.data.owner_id != actor.id:
            logger.warning(f"Profile {actor.id} tried to manage business {business.data.id}")
            return Result.failure(Forbidden("Only the owner of the business can manage its products"))
        return business

    async def create_product(self, actor: ProfileView, business_id: Id, fields: Fields) -> Result[ProductView]:
        """Add a product, respecting ownership and the plan's product limit."""
        business = await self._authorize(actor, business_id)
        if not business.ok:
            return Result.failure(business.error)

        allowed = await self.can_add_product(business.data.id)
        if not allowed.ok:
            return allowed
        if not allowed.data:
            limits = self.plan_limits(business.data.subscription_plan)
            return Result.failure(
                PlanLimitExceeded(f"The {limits.name} plan allows at most {limits.max_products} products")
            )

        result = await self.repository.create_product({**fields, "business_id": business.data.id})
        if result.ok:
            logger.info(f"Product {result.data.id} created for business {business_id}")
        return result

    async def _authorize_product(self, actor: ProfileView, product_id: Id) -> Result[ProductView]:
        product = await self.repository.get_product(product_id)
        if not product.ok:
            return product
        business = await self._authorize(actor, product.data.business_id)
        if not business.ok:
            return Result.failure(business.error)
        return product

    async def update_product(self, actor: ProfileView, product_id: Id, fields: Fields) -> Result[ProductView]:
        product = await self._authorize_product(actor, product_id)
        if not product.ok:
            return product
        return await self.repository.update_product(product.data.id, fields)

    async def delete_product(self, actor: ProfileView, product_id: Id) -> Result[bool]:
        product = await self._authorize_product(actor, product_id)
        if not product.ok:
            return Result.failure(product.error)
        result = await self.repository.delete_product(product.data.id)
        if result.ok:
            logger.info(f"Product {product.data.id} deleted by {actor.id}")
        return result
