"""QueryRepository on top of the async SQLAlchemy engine."""
import logging
from enum import Enum
from typing import Any, Sequence

from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizdir.config import settings
from bizdir.core.errors import ConflictError, NotFound, ValidationError, repository_operation
from bizdir.core.filters import (
    BusinessFilter,
    ConditionSet,
    LIKE_ESCAPE,
    OrderFilter,
    like_pattern,
    paginate,
    parse_model,
    to_uuid,
)
from bizdir.core.plans import SubscriptionPlan, plan_limits
from bizdir.database import AsyncSessionLocal, utcnow
from bizdir.models import (
    Business,
    BusinessHours,
    BusinessImage,
    Category,
    Favorite,
    Order,
    OrderItem,
    Payment,
    Product,
    Profile,
    Review,
    Subscription,
)
from bizdir.repositories.base import Fields, Id, QueryRepository
from bizdir.schemas import (
    BusinessCreate,
    BusinessDetail,
    BusinessHoursInput,
    BusinessHoursView,
    BusinessImageView,
    BusinessRecord,
    BusinessSummary,
    BusinessUpdate,
    CategoryCreate,
    CategoryView,
    FavoriteBusinessView,
    FavoriteView,
    OrderCreate,
    OrderDetail,
    OrderItemCreate,
    OrderItemView,
    OrderRecord,
    OrderSummary,
    OwnerView,
    PaymentCreate,
    PaymentView,
    ProductCreate,
    ProductUpdate,
    ProductView,
    ProfileCreate,
    ProfileUpdate,
    ProfileView,
    ReviewCreate,
    ReviewView,
    SubscriptionView,
)
from bizdir.schemas.order import BusinessRef, CustomerRef

logger = logging.getLogger(__name__)


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    """Plain column values (enum members become their string value)."""
    return {key: value.value if isinstance(value, Enum) else value for key, value in data.items()}


def _record(model, obj) -> dict[str, Any]:
    """Column fields of an ORM object, without touching its relationships."""
    return model.model_validate(obj).model_dump()


def _view(model, obj, **extra):
    """View of an ORM object with joined display fields filled in."""
    return model.model_validate(obj).model_copy(update=extra)


class SqlQueryRepository(QueryRepository):
    """Repository backed by a relational database."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        allow_claim_override: bool | None = None,
    ):
        self._session_factory = session_factory or AsyncSessionLocal
        self.allow_claim_override = (
            settings.allow_claim_override if allow_claim_override is None else allow_claim_override
        )

    # Profiles

    @repository_operation("getting profile")
    async def get_profile(self, user_id: Id) -> ProfileView:
        user_id = to_uuid(user_id, "user_id")
        async with self._session_factory() as db:
            profile = await db.get(Profile, user_id)
            if not profile:
                raise NotFound(f"Profile '{user_id}' not found")
            return ProfileView.model_validate(profile)

    @repository_operation("creating profile")
    async def create_profile(self, fields: Fields) -> ProfileView:
        payload = parse_model(ProfileCreate, fields)
        async with self._session_factory() as db:
            profile = Profile(**_column_values(payload.model_dump(exclude_none=True)))
            db.add(profile)
            await db.commit()
            await db.refresh(profile)
            return ProfileView.model_validate(profile)

    @repository_operation("updating profile")
    async def update_profile(self, user_id: Id, fields: Fields) -> ProfileView:
        user_id = to_uuid(user_id, "user_id")
        payload = parse_model(ProfileUpdate, fields)
        async with self._session_factory() as db:
            profile = await db.get(Profile, user_id)
            if not profile:
                raise NotFound(f"Profile '{user_id}' not found")
            for name, value in _column_values(payload.model_dump(exclude_unset=True)).items():
                setattr(profile, name, value)
            profile.updated_at = utcnow()
            await db.commit()
            await db.refresh(profile)
            return ProfileView.model_validate(profile)

    # Businesses

    @repository_operation("listing businesses")
    async def list_businesses(self, filters: BusinessFilter | Fields | None = None) -> list[BusinessSummary]:
        filters = parse_model(BusinessFilter, filters)
        logger.debug(f"list_businesses called with filters: {filters}")

        review_stats = (
            select(
                Review.business_id.label("business_id"),
                func.count(Review.id).label("review_count"),
                func.avg(Review.rating).label("average_rating"),
            )
            .group_by(Review.business_id)
            .subquery("review_stats")
        )
        stmt = (
            select(Business, Category, review_stats.c.review_count, review_stats.c.average_rating)
            .outerjoin(Category, Business.category_id == Category.id)
            .outerjoin(review_stats, review_stats.c.business_id == Business.id)
        )

        conditions = ConditionSet()
        conditions.add_if(filters.category, lambda category_id: Business.category_id == category_id)
        conditions.add_if(
            filters.search,
            lambda search: or_(
                Business.name.ilike(like_pattern(search), escape=LIKE_ESCAPE),
                Business.description.ilike(like_pattern(search), escape=LIKE_ESCAPE),
            ),
        )
        conditions.add_if(filters.owner_id, lambda owner_id: Business.owner_id == owner_id)
        conditions.add_if(filters.claimed, lambda claimed: Business.claimed == claimed)

        stmt = conditions.apply(stmt).order_by(Business.created_at.desc())
        stmt = paginate(stmt, filters.limit, filters.offset)

        async with self._session_factory() as db:
            result = await db.execute(stmt)
            rows = result.all()

            return [
                BusinessSummary(
                    **_record(BusinessRecord, business),
                    category=CategoryView.model_validate(category) if category else None,
                    review_count=review_count or 0,
                    average_rating=float(average_rating or 0),
                )
                for business, category, review_count, average_rating in rows
            ]

    @repository_operation("getting business")
    async def get_business(self, business_id: Id) -> BusinessDetail:
        business_id = to_uuid(business_id, "business_id")
        async with self._session_factory() as db:
            stmt = (
                select(Business, Category, Profile)
                .outerjoin(Category, Business.category_id == Category.id)
                .outerjoin(Profile, Business.owner_id == Profile.id)
                .where(Business.id == business_id)
            )
            row = (await db.execute(stmt)).first()
            if row is None:
                raise NotFound(f"Business '{business_id}' not found")
            business, category, owner = row

            # Independent reads, no shared snapshot with the row above
            images = await db.execute(
                select(BusinessImage)
                .where(BusinessImage.business_id == business_id)
                .order_by(BusinessImage.is_primary.desc(), BusinessImage.uploaded_at)
            )
            hours = await db.execute(
                select(BusinessHours)
                .where(BusinessHours.business_id == business_id)
                .order_by(BusinessHours.day_of_week)
            )
            reviews = await db.execute(
                select(Review, Profile.full_name, Profile.avatar_url)
                .outerjoin(Profile, Review.user_id == Profile.id)
                .where(Review.business_id == business_id)
                .order_by(Review.created_at.desc())
            )
            subscription = (
                await db.execute(select(Subscription).where(Subscription.business_id == business_id))
            ).scalar_one_or_none()

            return BusinessDetail(
                **_record(BusinessRecord, business),
                category=CategoryView.model_validate(category) if category else None,
                owner=(
                    OwnerView(id=owner.id, full_name=owner.full_name, avatar_url=owner.avatar_url)
                    if owner
                    else None
                ),
                images=[BusinessImageView.model_validate(image) for image in images.scalars()],
                hours=[BusinessHoursView.model_validate(day) for day in hours.scalars()],
                reviews=[
                    _view(ReviewView, review, full_name=full_name, avatar_url=avatar_url)
                    for review, full_name, avatar_url in reviews.all()
                ],
                subscription=SubscriptionView.model_validate(subscription) if subscription else None,
            )

    @repository_operation("creating business")
    async def create_business(self, fields: Fields) -> BusinessRecord:
        payload = parse_model(BusinessCreate, fields)
        async with self._session_factory() as db:
            business = Business(**_column_values(payload.model_dump(exclude_none=True)))
            db.add(business)
            await db.commit()
            await db.refresh(business)
            return BusinessRecord.model_validate(business)

    @repository_operation("updating business")
    async def update_business(self, business_id: Id, fields: Fields) -> BusinessRecord:
        business_id = to_uuid(business_id, "business_id")
        payload = parse_model(BusinessUpdate, fields)
        async with self._session_factory() as db:
            business = await db.get(Business, business_id)
            if not business:
                raise NotFound(f"Business '{business_id}' not found")
            for name, value in _column_values(payload.changes()).items():
                setattr(business, name, value)
            business.updated_at = utcnow()
            await db.commit()
            await db.refresh(business)
            return BusinessRecord.model_validate(business)

    @repository_operation("claiming business")
    async def claim_business(self, business_id: Id, owner_id: Id) -> BusinessRecord:
        business_id = to_uuid(business_id, "business_id")
        owner_id = to_uuid(owner_id, "owner_id")

        # Owner and claimed flag change in one statement
        stmt = update(Business).where(Business.id == business_id)
        if not self.allow_claim_override:
            stmt = stmt.where(Business.claimed == False)  # noqa: E712
        stmt = stmt.values(owner_id=owner_id, claimed=True, updated_at=utcnow())

        async with self._session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()

            business = await db.get(Business, business_id, populate_existing=True)
            if business is None:
                raise NotFound(f"Business '{business_id}' not found")
            if result.rowcount == 0:
                raise ConflictError(f"Business '{business_id}' is already claimed")
            logger.info(f"Business {business_id} claimed by {owner_id}")
            return BusinessRecord.model_validate(business)

    @repository_operation("adding business image")
    async def add_business_image(self, business_id: Id, image_url: str, is_primary: bool = False) -> BusinessImageView:
        business_id = to_uuid(business_id, "business_id")
        if not image_url:
            raise ValidationError("image_url is required", fields=["image_url"])
        async with self._session_factory() as db:
            await self._require_business(db, business_id)
            image = BusinessImage(business_id=business_id, image_url=image_url, is_primary=is_primary)
            db.add(image)
            await db.commit()
            await db.refresh(image)
            return BusinessImageView.model_validate(image)

    @repository_operation("setting business hours")
    async def set_business_hours(
        self, business_id: Id, hours: Sequence[BusinessHoursInput | Fields]
    ) -> list[BusinessHoursView]:
        business_id = to_uuid(business_id, "business_id")
        days = [parse_model(BusinessHoursInput, day) for day in hours]
        if len({day.day_of_week for day in days}) != len(days):
            raise ValidationError("Each day of the week may appear only once", fields=["day_of_week"])

        async with self._session_factory() as db:
            await self._require_business(db, business_id)
            await db.execute(delete(BusinessHours).where(BusinessHours.business_id == business_id))
            rows = [BusinessHours(business_id=business_id, **day.model_dump()) for day in days]
            db.add_all(rows)
            await db.commit()
            rows.sort(key=lambda row: row.day_of_week)
            return [BusinessHoursView.model_validate(row) for row in rows]

    @repository_operation("setting subscription")
    async def set_subscription(self, business_id: Id, plan: str) -> SubscriptionView:
        business_id = to_uuid(business_id, "business_id")
        try:
            plan = SubscriptionPlan(plan)
        except ValueError:
            raise ValidationError(f"Unknown subscription plan '{plan}'", fields=["plan"])
        limits = plan_limits(plan)

        async with self._session_factory() as db:
            business = await self._require_business(db, business_id)
            subscription = (
                await db.execute(select(Subscription).where(Subscription.business_id == business_id))
            ).scalar_one_or_none()
            if subscription is None:
                subscription = Subscription(business_id=business_id)
                db.add(subscription)
            subscription.plan = plan.value
            subscription.max_products = limits.max_products
            subscription.max_images = limits.max_images
            subscription.includes_video = limits.includes_video
            subscription.includes_chat = limits.includes_chat
            subscription.status = "active"
            subscription.updated_at = utcnow()
            business.subscription_plan = plan.value
            business.updated_at = utcnow()
            await db.commit()
            await db.refresh(subscription)
            return SubscriptionView.model_validate(subscription)

    async def _require_business(self, db: AsyncSession, business_id) -> Business:
        business = await db.get(Business, business_id)
        if business is None:
            raise NotFound(f"Business '{business_id}' not found")
        return business

    # Categories

    @repository_operation("listing categories")
    async def list_categories(self) -> list[CategoryView]:
        async with self._session_factory() as db:
            result = await db.execute(select(Category).order_by(Category.name))
            return [CategoryView.model_validate(category) for category in result.scalars()]

    @repository_operation("creating category")
    async def create_category(self, fields: Fields) -> CategoryView:
        payload = parse_model(CategoryCreate, fields)
        async with self._session_factory() as db:
            existing = await db.execute(select(Category.id).where(Category.name == payload.name))
            if existing.first() is not None:
                raise ConflictError(f"Category '{payload.name}' already exists")
            category = Category(**payload.model_dump(exclude_none=True))
            db.add(category)
            await db.commit()
            await db.refresh(category)
            return CategoryView.model_validate(category)

    # Products

    @repository_operation("listing products")
    async def list_products(self, business_id: Id) -> list[ProductView]:
        business_id = to_uuid(business_id, "business_id")
        stmt = (
            select(Product)
            .where(
                Product.business_id == business_id,
                Product.active == True,  # noqa: E712
            )
            .order_by(Product.created_at.desc())
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return [ProductView.model_validate(product) for product in result.scalars()]

    @repository_operation("getting product")
    async def get_product(self, product_id: Id) -> ProductView:
        product_id = to_uuid(product_id, "product_id")
        async with self._session_factory() as db:
            product = await db.get(Product, product_id)
            if not product:
                raise NotFound(f"Product '{product_id}' not found")
            return ProductView.model_validate(product)

    @repository_operation("creating product")
    async def create_product(self, fields: Fields) -> ProductView:
        payload = parse_model(ProductCreate, fields)
        async with self._session_factory() as db:
            product = Product(**payload.model_dump(exclude_none=True))
            db.add(product)
            await db.commit()
            await db.refresh(product)
            return ProductView.model_validate(product)

    @repository_operation("updating product")
    async def update_product(self, product_id: Id, fields: Fields) -> ProductView:
        product_id = to_uuid(product_id, "product_id")
        payload = parse_model(ProductUpdate, fields)
        async with self._session_factory() as db:
            product = await db.get(Product, product_id)
            if not product:
                raise NotFound(f"Product '{product_id}' not found")
            for name, value in payload.model_dump(exclude_unset=True).items():
                setattr(product, name, value)
            product.updated_at = utcnow()
            await db.commit()
            await db.refresh(product)
            return ProductView.model_validate(product)

    @repository_operation("deleting product")
    async def delete_product(self, product_id: Id) -> bool:
        product_id = to_uuid(product_id, "product_id")
        async with self._session_factory() as db:
            result = await db.execute(delete(Product).where(Product.id == product_id))
            if result.rowcount == 0:
                await db.rollback()
                raise NotFound(f"Product '{product_id}' not found")
            await db.commit()
            return True

    # Orders

    @repository_operation("creating order")
    async def create_order(self, fields: Fields) -> OrderRecord:
        payload = parse_model(OrderCreate, fields)
        async with self._session_factory() as db:
            order = Order(**payload.model_dump(exclude_none=True))
            db.add(order)
            await db.commit()
            await db.refresh(order)
            return OrderRecord.model_validate(order)

    @repository_operation("adding order items")
    async def add_order_items(self, order_id: Id, items: Sequence[OrderItemCreate | Fields]) -> list[OrderItemView]:
        order_id = to_uuid(order_id, "order_id")
        lines = [parse_model(OrderItemCreate, item) for item in items]
        if not lines:
            raise ValidationError("An order needs at least one item", fields=["items"])
        async with self._session_factory() as db:
            if await db.get(Order, order_id) is None:
                raise NotFound(f"Order '{order_id}' not found")
            rows = [OrderItem(order_id=order_id, **line.model_dump()) for line in lines]
            db.add_all(rows)
            await db.commit()
            return [OrderItemView.model_validate(row) for row in rows]

    @repository_operation("creating payment")
    async def create_payment(self, fields: Fields) -> PaymentView:
        payload = parse_model(PaymentCreate, fields)
        async with self._session_factory() as db:
            if await db.get(Order, payload.order_id) is None:
                raise NotFound(f"Order '{payload.order_id}' not found")
            existing = await db.execute(select(Payment.id).where(Payment.order_id == payload.order_id))
            if existing.first() is not None:
                raise ConflictError(f"Order '{payload.order_id}' already has a payment")
            payment = Payment(**payload.model_dump())
            db.add(payment)
            await db.commit()
            await db.refresh(payment)
            return PaymentView.model_validate(payment)

    @repository_operation("listing orders")
    async def list_orders(self, filters: OrderFilter | Fields | None = None) -> list[OrderSummary]:
        filters = parse_model(OrderFilter, filters)
        stmt = (
            select(
                Order,
                Business.name.label("business_name"),
                Profile.id.label("customer_profile_id"),
                Profile.full_name.label("customer_name"),
            )
            .outerjoin(Business, Order.business_id == Business.id)
            .outerjoin(Profile, Order.customer_id == Profile.id)
        )
        conditions = ConditionSet()
        conditions.add_if(filters.business_id, lambda business_id: Order.business_id == business_id)
        conditions.add_if(filters.customer_id, lambda customer_id: Order.customer_id == customer_id)
        conditions.add_if(filters.status, lambda status: Order.status == status)
        stmt = conditions.apply(stmt).order_by(Order.created_at.desc())

        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return [
                self._order_summary(order, business_name, customer_profile_id, customer_name)
                for order, business_name, customer_profile_id, customer_name in result.all()
            ]

    @repository_operation("getting order")
    async def get_order(self, order_id: Id) -> OrderDetail:
        order_id = to_uuid(order_id, "order_id")
        async with self._session_factory() as db:
            stmt = (
                select(Order, Business.name, Profile.id, Profile.full_name)
                .outerjoin(Business, Order.business_id == Business.id)
                .outerjoin(Profile, Order.customer_id == Profile.id)
                .where(Order.id == order_id)
            )
            row = (await db.execute(stmt)).first()
            if row is None:
                raise NotFound(f"Order '{order_id}' not found")
            summary = self._order_summary(*row)

            items = await db.execute(
                select(OrderItem, Product.name)
                .outerjoin(Product, OrderItem.product_id == Product.id)
                .where(OrderItem.order_id == order_id)
                .order_by(OrderItem.created_at)
            )
            payment = (
                await db.execute(select(Payment).where(Payment.order_id == order_id))
            ).scalar_one_or_none()

            return OrderDetail(
                **summary.model_dump(),
                items=[
                    _view(OrderItemView, item, product_name=product_name)
                    for item, product_name in items.all()
                ],
                payment=PaymentView.model_validate(payment) if payment else None,
            )

    @staticmethod
    def _order_summary(order: Order, business_name, customer_profile_id, customer_name) -> OrderSummary:
        return OrderSummary(
            **_record(OrderRecord, order),
            business=BusinessRef(id=order.business_id, name=business_name) if business_name is not None else None,
            customer=(
                CustomerRef(id=order.customer_id, full_name=customer_name)
                if customer_profile_id is not None
                else None
            ),
        )

    # Reviews

    @repository_operation("creating review")
    async def create_review(self, fields: Fields) -> ReviewView:
        payload = parse_model(ReviewCreate, fields)
        async with self._session_factory() as db:
            review = Review(**payload.model_dump(exclude_none=True))
            db.add(review)
            await db.commit()
            await db.refresh(review)
            author = await db.get(Profile, review.user_id)
            return _view(
                ReviewView,
                review,
                full_name=author.full_name if author else None,
                avatar_url=author.avatar_url if author else None,
            )

    # Favorites

    @repository_operation("adding favorite")
    async def add_favorite(self, user_id: Id, business_id: Id) -> FavoriteView:
        user_id = to_uuid(user_id, "user_id")
        business_id = to_uuid(business_id, "business_id")
        async with self._session_factory() as db:
            if await self._favorite_exists(db, user_id, business_id):
                raise ConflictError("Business is already in favorites")
            favorite = Favorite(user_id=user_id, business_id=business_id)
            db.add(favorite)
            try:
                await db.commit()
            except IntegrityError:
                # Lost a race against a concurrent insert of the same pair
                await db.rollback()
                if await self._favorite_exists(db, user_id, business_id):
                    raise ConflictError("Business is already in favorites")
                raise
            await db.refresh(favorite)
            business = await db.get(Business, business_id)
            return _view(
                FavoriteView,
                favorite,
                business=self._favorite_business(business) if business else None,
            )

    @repository_operation("removing favorite")
    async def remove_favorite(self, user_id: Id, business_id: Id) -> bool:
        user_id = to_uuid(user_id, "user_id")
        business_id = to_uuid(business_id, "business_id")
        async with self._session_factory() as db:
            result = await db.execute(
                delete(Favorite).where(Favorite.user_id == user_id, Favorite.business_id == business_id)
            )
            await db.commit()
            return result.rowcount > 0

    @repository_operation("listing favorites")
    async def list_favorites(self, user_id: Id) -> list[FavoriteView]:
        user_id = to_uuid(user_id, "user_id")
        stmt = (
            select(Favorite, Business)
            .outerjoin(Business, Favorite.business_id == Business.id)
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.created_at.desc())
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return [
                _view(
                    FavoriteView,
                    favorite,
                    business=self._favorite_business(business) if business else None,
                )
                for favorite, business in result.all()
            ]

    @staticmethod
    async def _favorite_exists(db: AsyncSession, user_id, business_id) -> bool:
        result = await db.execute(
            select(Favorite.id).where(Favorite.user_id == user_id, Favorite.business_id == business_id)
        )
        return result.first() is not None

    @staticmethod
    def _favorite_business(business: Business) -> FavoriteBusinessView:
        return FavoriteBusinessView(
            id=business.id,
            name=business.name,
            description=business.description,
            address=business.address,
            city=business.city,
        )
