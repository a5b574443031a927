"""QueryRepository kept in process memory (tests, demos, offline development)."""
import logging
import uuid
from collections import defaultdict
from decimal import Decimal
from enum import Enum
from statistics import mean
from typing import Any, Sequence

from bizdir.config import settings
from bizdir.core.errors import ConflictError, NotFound, StorageError, ValidationError, repository_operation
from bizdir.core.filters import BusinessFilter, OrderFilter, contains_ignore_case, parse_model, to_uuid
from bizdir.core.plans import Role, SubscriptionPlan, plan_limits
from bizdir.database import utcnow
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

CENT = Decimal("0.01")

# Column defaults per table; timestamps set to None are filled on insert
PROFILE_DEFAULTS = {"role": "visitor", "full_name": None, "avatar_url": None, "created_at": None, "updated_at": None}
CATEGORY_DEFAULTS = {"description": None, "icon": None, "created_at": None}
BUSINESS_DEFAULTS = {
    "description": None,
    "category_id": None,
    "city": "Schiedam",
    "phone": None,
    "email": None,
    "website": None,
    "lat": None,
    "lng": None,
    "owner_id": None,
    "claimed": False,
    "theme_color": "#3B82F6",
    "subscription_plan": "free",
    "created_at": None,
    "updated_at": None,
}
IMAGE_DEFAULTS = {"is_primary": False, "uploaded_at": None}
HOURS_DEFAULTS = {"open_time": None, "close_time": None, "closed": False}
SUBSCRIPTION_DEFAULTS = {
    "plan": "free",
    "max_products": 10,
    "max_images": 1,
    "includes_video": False,
    "includes_chat": False,
    "status": "active",
    "current_period_start": None,
    "current_period_end": None,
    "created_at": None,
    "updated_at": None,
}
PRODUCT_DEFAULTS = {
    "description": None,
    "stock": 0,
    "image_url": None,
    "active": True,
    "created_at": None,
    "updated_at": None,
}
REVIEW_DEFAULTS = {"comment": None, "created_at": None, "updated_at": None}
FAVORITE_DEFAULTS = {"created_at": None}
ORDER_DEFAULTS = {"status": "pending", "created_at": None, "updated_at": None}
ORDER_ITEM_DEFAULTS = {"created_at": None}
PAYMENT_DEFAULTS = {"currency": "EUR", "status": "pending", "payment_method": None, "created_at": None, "updated_at": None}

TIMESTAMP_COLUMNS = ("created_at", "updated_at", "uploaded_at")
MONEY_COLUMNS = ("price", "total_amount", "amount")


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    values = {}
    for key, value in data.items():
        if isinstance(value, Enum):
            value = value.value
        elif key in MONEY_COLUMNS and value is not None:
            value = Decimal(value).quantize(CENT)
        values[key] = value
    return values


def _check(condition: bool, constraint: str) -> None:
    """Emulate a database CHECK / foreign key / unique constraint."""
    if not condition:
        raise StorageError(f"violates constraint {constraint}")


class InMemoryQueryRepository(QueryRepository):
    """
    Repository over plain dictionaries.

    Behaves like SqlQueryRepository, including the constraints the database
    enforces. No operation awaits between its reads and writes, so each one
    runs atomically on the event loop.
    """

    def __init__(self, allow_claim_override: bool | None = None):
        self._tables: dict[str, dict[uuid.UUID, dict[str, Any]]] = defaultdict(dict)
        self.allow_claim_override = (
            settings.allow_claim_override if allow_claim_override is None else allow_claim_override
        )

    def _insert(self, table: str, defaults: dict[str, Any], values: dict[str, Any]) -> dict[str, Any]:
        row = {"id": None, **defaults}
        row.update({key: value for key, value in _column_values(values).items() if value is not None})
        if row["id"] is None:
            row["id"] = uuid.uuid4()
        _check(row["id"] not in self._tables[table], f"{table}_pkey")
        now = utcnow()
        for column in TIMESTAMP_COLUMNS:
            if column in row and row[column] is None:
                row[column] = now
        self._tables[table][row["id"]] = row
        return row

    def _exists(self, table: str, row_id) -> bool:
        return row_id is None or row_id in self._tables[table]

    def _rows(self, table: str, **match) -> list[dict[str, Any]]:
        return [
            row
            for row in self._tables[table].values()
            if all(row.get(column) == value for column, value in match.items())
        ]

    def _get(self, table: str, row_id, label: str) -> dict[str, Any]:
        row = self._tables[table].get(row_id)
        if row is None:
            raise NotFound(f"{label} '{row_id}' not found")
        return row

    # Profiles

    @repository_operation("getting profile")
    async def get_profile(self, user_id: Id) -> ProfileView:
        user_id = to_uuid(user_id, "user_id")
        return ProfileView.model_validate(self._get("profiles", user_id, "Profile"))

    def _check_profile(self, row: dict[str, Any], user_id=None) -> None:
        _check(row["role"] in {role.value for role in Role}, "ck_profiles_role")
        _check(
            not any(p["email"] == row["email"] and p["id"] != user_id for p in self._tables["profiles"].values()),
            "profiles_email_key",
        )

    @repository_operation("creating profile")
    async def create_profile(self, fields: Fields) -> ProfileView:
        payload = parse_model(ProfileCreate, fields)
        values = _column_values(payload.model_dump(exclude_none=True))
        self._check_profile({**PROFILE_DEFAULTS, **values})
        row = self._insert("profiles", PROFILE_DEFAULTS, values)
        return ProfileView.model_validate(row)

    @repository_operation("updating profile")
    async def update_profile(self, user_id: Id, fields: Fields) -> ProfileView:
        user_id = to_uuid(user_id, "user_id")
        payload = parse_model(ProfileUpdate, fields)
        row = self._get("profiles", user_id, "Profile")
        updated = {**row, **_column_values(payload.model_dump(exclude_unset=True))}
        self._check_profile(updated, user_id)
        view = ProfileView.model_validate(updated)
        row.update(updated, updated_at=utcnow())
        return view.model_copy(update={"updated_at": row["updated_at"]})

    # Businesses

    def _review_stats(self, business_id) -> tuple[int, float]:
        ratings = [review["rating"] for review in self._rows("reviews", business_id=business_id)]
        return len(ratings), float(mean(ratings)) if ratings else 0.0

    def _category_view(self, category_id) -> CategoryView | None:
        category = self._tables["categories"].get(category_id)
        return CategoryView.model_validate(category) if category else None

    @repository_operation("listing businesses")
    async def list_businesses(self, filters: BusinessFilter | Fields | None = None) -> list[BusinessSummary]:
        filters = parse_model(BusinessFilter, filters)
        logger.debug(f"list_businesses called with filters: {filters}")

        rows = list(self._tables["businesses"].values())
        if filters.category is not None:
            rows = [row for row in rows if row["category_id"] == filters.category]
        if filters.search is not None:
            rows = [
                row
                for row in rows
                if contains_ignore_case(row["name"], filters.search)
                or contains_ignore_case(row["description"], filters.search)
            ]
        if filters.owner_id is not None:
            rows = [row for row in rows if row["owner_id"] == filters.owner_id]
        if filters.claimed is not None:
            rows = [row for row in rows if row["claimed"] == filters.claimed]

        rows.sort(key=lambda row: row["created_at"], reverse=True)
        start = filters.offset or 0
        end = start + filters.limit if filters.limit is not None else None

        summaries = []
        for row in rows[start:end]:
            review_count, average_rating = self._review_stats(row["id"])
            summaries.append(
                BusinessSummary(
                    **row,
                    category=self._category_view(row["category_id"]),
                    review_count=review_count,
                    average_rating=average_rating,
                )
            )
        return summaries

    @repository_operation("getting business")
    async def get_business(self, business_id: Id) -> BusinessDetail:
        business_id = to_uuid(business_id, "business_id")
        row = self._get("businesses", business_id, "Business")

        owner = self._tables["profiles"].get(row["owner_id"])
        images = sorted(
            self._rows("business_images", business_id=business_id),
            key=lambda image: (not image["is_primary"], image["uploaded_at"]),
        )
        hours = sorted(self._rows("business_hours", business_id=business_id), key=lambda day: day["day_of_week"])
        reviews = sorted(
            self._rows("reviews", business_id=business_id), key=lambda review: review["created_at"], reverse=True
        )
        subscriptions = self._rows("subscriptions", business_id=business_id)

        return BusinessDetail(
            **row,
            category=self._category_view(row["category_id"]),
            owner=(
                OwnerView(id=owner["id"], full_name=owner["full_name"], avatar_url=owner["avatar_url"])
                if owner
                else None
            ),
            images=[BusinessImageView.model_validate(image) for image in images],
            hours=[BusinessHoursView.model_validate(day) for day in hours],
            reviews=[self._review_view(review) for review in reviews],
            subscription=SubscriptionView.model_validate(subscriptions[0]) if subscriptions else None,
        )

    def _check_business(self, row: dict[str, Any]) -> None:
        _check(row["subscription_plan"] in {plan.value for plan in SubscriptionPlan}, "ck_businesses_subscription_plan")
        _check(self._exists("categories", row["category_id"]), "businesses_category_id_fkey")
        _check(self._exists("profiles", row["owner_id"]), "businesses_owner_id_fkey")

    @repository_operation("creating business")
    async def create_business(self, fields: Fields) -> BusinessRecord:
        payload = parse_model(BusinessCreate, fields)
        values = _column_values(payload.model_dump(exclude_none=True))
        self._check_business({**BUSINESS_DEFAULTS, **values})
        row = self._insert("businesses", BUSINESS_DEFAULTS, values)
        return BusinessRecord.model_validate(row)

    @repository_operation("updating business")
    async def update_business(self, business_id: Id, fields: Fields) -> BusinessRecord:
        business_id = to_uuid(business_id, "business_id")
        payload = parse_model(BusinessUpdate, fields)
        row = self._get("businesses", business_id, "Business")
        updated = {**row, **_column_values(payload.changes())}
        self._check_business(updated)
        view = BusinessRecord.model_validate(updated)
        row.update(updated, updated_at=utcnow())
        return view.model_copy(update={"updated_at": row["updated_at"]})

    @repository_operation("claiming business")
    async def claim_business(self, business_id: Id, owner_id: Id) -> BusinessRecord:
        business_id = to_uuid(business_id, "business_id")
        owner_id = to_uuid(owner_id, "owner_id")
        row = self._get("businesses", business_id, "Business")
        if row["claimed"] and not self.allow_claim_override:
            raise ConflictError(f"Business '{business_id}' is already claimed")
        _check(self._exists("profiles", owner_id), "businesses_owner_id_fkey")
        row.update(owner_id=owner_id, claimed=True, updated_at=utcnow())
        logger.info(f"Business {business_id} claimed by {owner_id}")
        return BusinessRecord.model_validate(row)

    @repository_operation("adding business image")
    async def add_business_image(self, business_id: Id, image_url: str, is_primary: bool = False) -> BusinessImageView:
        business_id = to_uuid(business_id, "business_id")
        if not image_url:
            raise ValidationError("image_url is required", fields=["image_url"])
        self._get("businesses", business_id, "Business")
        row = self._insert(
            "business_images",
            IMAGE_DEFAULTS,
            {"business_id": business_id, "image_url": image_url, "is_primary": is_primary},
        )
        return BusinessImageView.model_validate(row)

    @repository_operation("setting business hours")
    async def set_business_hours(
        self, business_id: Id, hours: Sequence[BusinessHoursInput | Fields]
    ) -> list[BusinessHoursView]:
        business_id = to_uuid(business_id, "business_id")
        days = [parse_model(BusinessHoursInput, day) for day in hours]
        if len({day.day_of_week for day in days}) != len(days):
            raise ValidationError("Each day of the week may appear only once", fields=["day_of_week"])
        self._get("businesses", business_id, "Business")

        table = self._tables["business_hours"]
        for row in self._rows("business_hours", business_id=business_id):
            del table[row["id"]]
        rows = [
            self._insert("business_hours", HOURS_DEFAULTS, {"business_id": business_id, **day.model_dump()})
            for day in sorted(days, key=lambda day: day.day_of_week)
        ]
        return [BusinessHoursView.model_validate(row) for row in rows]

    @repository_operation("setting subscription")
    async def set_subscription(self, business_id: Id, plan: str) -> SubscriptionView:
        business_id = to_uuid(business_id, "business_id")
        try:
            plan = SubscriptionPlan(plan)
        except ValueError:
            raise ValidationError(f"Unknown subscription plan '{plan}'", fields=["plan"])
        limits = plan_limits(plan)
        business = self._get("businesses", business_id, "Business")

        values = {
            "plan": plan.value,
            "max_products": limits.max_products,
            "max_images": limits.max_images,
            "includes_video": limits.includes_video,
            "includes_chat": limits.includes_chat,
            "status": "active",
        }
        existing = self._rows("subscriptions", business_id=business_id)
        if existing:
            row = existing[0]
            row.update(values, updated_at=utcnow())
        else:
            row = self._insert("subscriptions", SUBSCRIPTION_DEFAULTS, {"business_id": business_id, **values})
        business.update(subscription_plan=plan.value, updated_at=utcnow())
        return SubscriptionView.model_validate(row)

    # Categories

    @repository_operation("listing categories")
    async def list_categories(self) -> list[CategoryView]:
        rows = sorted(self._tables["categories"].values(), key=lambda row: row["name"])
        return [CategoryView.model_validate(row) for row in rows]

    @repository_operation("creating category")
    async def create_category(self, fields: Fields) -> CategoryView:
        payload = parse_model(CategoryCreate, fields)
        if self._rows("categories", name=payload.name):
            raise ConflictError(f"Category '{payload.name}' already exists")
        row = self._insert("categories", CATEGORY_DEFAULTS, payload.model_dump(exclude_none=True))
        return CategoryView.model_validate(row)

    # Products

    def _check_product(self, row: dict[str, Any]) -> None:
        _check(row["price"] >= 0, "ck_products_price")
        _check(row["stock"] >= 0, "ck_products_stock")
        _check(self._exists("businesses", row["business_id"]), "products_business_id_fkey")

    @repository_operation("listing products")
    async def list_products(self, business_id: Id) -> list[ProductView]:
        business_id = to_uuid(business_id, "business_id")
        rows = [row for row in self._rows("products", business_id=business_id) if row["active"]]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return [ProductView.model_validate(row) for row in rows]

    @repository_operation("getting product")
    async def get_product(self, product_id: Id) -> ProductView:
        product_id = to_uuid(product_id, "product_id")
        return ProductView.model_validate(self._get("products", product_id, "Product"))

    @repository_operation("creating product")
    async def create_product(self, fields: Fields) -> ProductView:
        payload = parse_model(ProductCreate, fields)
        values = _column_values(payload.model_dump(exclude_none=True))
        self._check_product({**PRODUCT_DEFAULTS, **values})
        row = self._insert("products", PRODUCT_DEFAULTS, values)
        return ProductView.model_validate(row)

    @repository_operation("updating product")
    async def update_product(self, product_id: Id, fields: Fields) -> ProductView:
        product_id = to_uuid(product_id, "product_id")
        payload = parse_model(ProductUpdate, fields)
        row = self._get("products", product_id, "Product")
        updated = {**row, **_column_values(payload.model_dump(exclude_unset=True))}
        self._check_product(updated)
        view = ProductView.model_validate(updated)
        row.update(updated, updated_at=utcnow())
        return view.model_copy(update={"updated_at": row["updated_at"]})

    @repository_operation("deleting product")
    async def delete_product(self, product_id: Id) -> bool:
        product_id = to_uuid(product_id, "product_id")
        self._get("products", product_id, "Product")
        _check(not self._rows("order_items", product_id=product_id), "order_items_product_id_fkey")
        del self._tables["products"][product_id]
        return True

    # Orders

    @repository_operation("creating order")
    async def create_order(self, fields: Fields) -> OrderRecord:
        payload = parse_model(OrderCreate, fields)
        values = _column_values(payload.model_dump(exclude_none=True))
        _check(self._exists("businesses", values["business_id"]), "orders_business_id_fkey")
        _check(self._exists("profiles", values["customer_id"]), "orders_customer_id_fkey")
        row = self._insert("orders", ORDER_DEFAULTS, values)
        return OrderRecord.model_validate(row)

    @repository_operation("adding order items")
    async def add_order_items(self, order_id: Id, items: Sequence[OrderItemCreate | Fields]) -> list[OrderItemView]:
        order_id = to_uuid(order_id, "order_id")
        lines = [parse_model(OrderItemCreate, item) for item in items]
        if not lines:
            raise ValidationError("An order needs at least one item", fields=["items"])
        self._get("orders", order_id, "Order")

        # All lines or none, like the single commit of the SQL backend
        for line in lines:
            _check(line.quantity > 0, "ck_order_items_quantity")
            _check(self._exists("products", line.product_id), "order_items_product_id_fkey")
        rows = [
            self._insert("order_items", ORDER_ITEM_DEFAULTS, {"order_id": order_id, **line.model_dump()})
            for line in lines
        ]
        return [OrderItemView.model_validate(row) for row in rows]

    @repository_operation("creating payment")
    async def create_payment(self, fields: Fields) -> PaymentView:
        payload = parse_model(PaymentCreate, fields)
        self._get("orders", payload.order_id, "Order")
        if self._rows("payments", order_id=payload.order_id):
            raise ConflictError(f"Order '{payload.order_id}' already has a payment")
        row = self._insert("payments", PAYMENT_DEFAULTS, payload.model_dump())
        return PaymentView.model_validate(row)

    def _order_summary(self, row: dict[str, Any]) -> OrderSummary:
        business = self._tables["businesses"].get(row["business_id"])
        customer = self._tables["profiles"].get(row["customer_id"])
        return OrderSummary(
            **row,
            business=BusinessRef(id=business["id"], name=business["name"]) if business else None,
            customer=CustomerRef(id=customer["id"], full_name=customer["full_name"]) if customer else None,
        )

    @repository_operation("listing orders")
    async def list_orders(self, filters: OrderFilter | Fields | None = None) -> list[OrderSummary]:
        filters = parse_model(OrderFilter, filters)
        match = {
            column: value
            for column, value in filters.model_dump().items()
            if value is not None
        }
        rows = sorted(self._rows("orders", **match), key=lambda row: row["created_at"], reverse=True)
        return [self._order_summary(row) for row in rows]

    @repository_operation("getting order")
    async def get_order(self, order_id: Id) -> OrderDetail:
        order_id = to_uuid(order_id, "order_id")
        row = self._get("orders", order_id, "Order")
        summary = self._order_summary(row)

        items = []
        for item in sorted(self._rows("order_items", order_id=order_id), key=lambda item: item["created_at"]):
            product = self._tables["products"].get(item["product_id"])
            items.append(OrderItemView(**item, product_name=product["name"] if product else None))
        payments = self._rows("payments", order_id=order_id)

        return OrderDetail(
            **summary.model_dump(),
            items=items,
            payment=PaymentView.model_validate(payments[0]) if payments else None,
        )

    # Reviews

    def _review_view(self, row: dict[str, Any]) -> ReviewView:
        author = self._tables["profiles"].get(row["user_id"])
        return ReviewView(
            **row,
            full_name=author["full_name"] if author else None,
            avatar_url=author["avatar_url"] if author else None,
        )

    @repository_operation("creating review")
    async def create_review(self, fields: Fields) -> ReviewView:
        payload = parse_model(ReviewCreate, fields)
        _check(1 <= payload.rating <= 5, "ck_reviews_rating")
        _check(self._exists("businesses", payload.business_id), "reviews_business_id_fkey")
        _check(self._exists("profiles", payload.user_id), "reviews_user_id_fkey")
        row = self._insert("reviews", REVIEW_DEFAULTS, payload.model_dump(exclude_none=True))
        return self._review_view(row)

    # Favorites

    def _favorite_view(self, row: dict[str, Any]) -> FavoriteView:
        business = self._tables["businesses"].get(row["business_id"])
        return FavoriteView(
            **row,
            business=(
                FavoriteBusinessView(
                    id=business["id"],
                    name=business["name"],
                    description=business["description"],
                    address=business["address"],
                    city=business["city"],
                )
                if business
                else None
            ),
        )

    @repository_operation("adding favorite")
    async def add_favorite(self, user_id: Id, business_id: Id) -> FavoriteView:
        user_id = to_uuid(user_id, "user_id")
        business_id = to_uuid(business_id, "business_id")
        if self._rows("favorites", user_id=user_id, business_id=business_id):
            raise ConflictError("Business is already in favorites")
        _check(self._exists("profiles", user_id), "favorites_user_id_fkey")
        _check(self._exists("businesses", business_id), "favorites_business_id_fkey")
        row = self._insert("favorites", FAVORITE_DEFAULTS, {"user_id": user_id, "business_id": business_id})
        return self._favorite_view(row)

    @repository_operation("removing favorite")
    async def remove_favorite(self, user_id: Id, business_id: Id) -> bool:
        user_id = to_uuid(user_id, "user_id")
        business_id = to_uuid(business_id, "business_id")
        rows = self._rows("favorites", user_id=user_id, business_id=business_id)
        for row in rows:
            del self._tables["favorites"][row["id"]]
        return bool(rows)

    @repository_operation("listing favorites")
    async def list_favorites(self, user_id: Id) -> list[FavoriteView]:
        user_id = to_uuid(user_id, "user_id")
        rows = sorted(self._rows("favorites", user_id=user_id), key=lambda row: row["created_at"], reverse=True)
        return [self._favorite_view(row) for row in rows]
