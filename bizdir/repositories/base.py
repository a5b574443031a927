"""Repository contract shared by every backend."""
import uuid
from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

from bizdir.core.errors import Result
from bizdir.core.filters import BusinessFilter, OrderFilter
from bizdir.schemas import (
    BusinessDetail,
    BusinessHoursInput,
    BusinessHoursView,
    BusinessImageView,
    BusinessRecord,
    BusinessSummary,
    CategoryView,
    FavoriteView,
    OrderDetail,
    OrderItemCreate,
    OrderItemView,
    OrderRecord,
    OrderSummary,
    PaymentView,
    ProductView,
    ProfileView,
    ReviewView,
    SubscriptionView,
)

Id = uuid.UUID | str
Fields = Mapping[str, Any]


class QueryRepository(ABC):
    """
    Data access for the directory.

    Every operation returns a Result: data on success, a RepositoryError
    (NotFound, ValidationError, ConflictError, StorageError) on failure.
    Authorization is the caller's job.
    """

    # Profiles
    @abstractmethod
    async def get_profile(self, user_id: Id) -> Result[ProfileView]: ...

    @abstractmethod
    async def create_profile(self, fields: Fields) -> Result[ProfileView]: ...

    @abstractmethod
    async def update_profile(self, user_id: Id, fields: Fields) -> Result[ProfileView]: ...

    # Businesses
    @abstractmethod
    async def list_businesses(
        self, filters: BusinessFilter | Fields | None = None
    ) -> Result[list[BusinessSummary]]: ...

    @abstractmethod
    async def get_business(self, business_id: Id) -> Result[BusinessDetail]: ...

    @abstractmethod
    async def create_business(self, fields: Fields) -> Result[BusinessRecord]: ...

    @abstractmethod
    async def update_business(self, business_id: Id, fields: Fields) -> Result[BusinessRecord]: ...

    @abstractmethod
    async def claim_business(self, business_id: Id, owner_id: Id) -> Result[BusinessRecord]: ...

    @abstractmethod
    async def add_business_image(
        self, business_id: Id, image_url: str, is_primary: bool = False
    ) -> Result[BusinessImageView]: ...

    @abstractmethod
    async def set_business_hours(
        self, business_id: Id, hours: Sequence[BusinessHoursInput | Fields]
    ) -> Result[list[BusinessHoursView]]: ...

    @abstractmethod
    async def set_subscription(self, business_id: Id, plan: str) -> Result[SubscriptionView]: ...

    # Categories
    @abstractmethod
    async def list_categories(self) -> Result[list[CategoryView]]: ...

    @abstractmethod
    async def create_category(self, fields: Fields) -> Result[CategoryView]: ...

    # Products
    @abstractmethod
    async def list_products(self, business_id: Id) -> Result[list[ProductView]]: ...

    @abstractmethod
    async def get_product(self, product_id: Id) -> Result[ProductView]: ...

    @abstractmethod
    async def create_product(self, fields: Fields) -> Result[ProductView]: ...

    @abstractmethod
    async def update_product(self, product_id: Id, fields: Fields) -> Result[ProductView]: ...

    @abstractmethod
    async def delete_product(self, product_id: Id) -> Result[bool]: ...

    # Orders
    @abstractmethod
    async def create_order(self, fields: Fields) -> Result[OrderRecord]: ...

    @abstractmethod
    async def add_order_items(
        self, order_id: Id, items: Sequence[OrderItemCreate | Fields]
    ) -> Result[list[OrderItemView]]: ...

    @abstractmethod
    async def create_payment(self, fields: Fields) -> Result[PaymentView]: ...

    @abstractmethod
    async def list_orders(self, filters: OrderFilter | Fields | None = None) -> Result[list[OrderSummary]]: ...

    @abstractmethod
    async def get_order(self, order_id: Id) -> Result[OrderDetail]: ...

    # Reviews
    @abstractmethod
    async def create_review(self, fields: Fields) -> Result[ReviewView]: ...

    # Favorites
    @abstractmethod
    async def add_favorite(self, user_id: Id, business_id: Id) -> Result[FavoriteView]: ...

    @abstractmethod
    async def remove_favorite(self, user_id: Id, business_id: Id) -> Result[bool]: ...

    @abstractmethod
    async def list_favorites(self, user_id: Id) -> Result[list[FavoriteView]]: ...
