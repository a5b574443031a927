"""Input models and view models returned by the repository."""
from bizdir.schemas.profile import ProfileCreate, ProfileUpdate, ProfileView
from bizdir.schemas.business import (
    BusinessCreate,
    BusinessUpdate,
    BusinessRecord,
    BusinessSummary,
    BusinessDetail,
    BusinessImageView,
    BusinessHoursInput,
    BusinessHoursView,
    CategoryCreate,
    CategoryView,
    OwnerView,
    SubscriptionView,
)
from bizdir.schemas.catalog import (
    ProductCreate,
    ProductUpdate,
    ProductView,
    ReviewCreate,
    ReviewView,
    FavoriteView,
    FavoriteBusinessView,
)
from bizdir.schemas.order import (
    OrderCreate,
    OrderRecord,
    OrderSummary,
    OrderDetail,
    OrderItemCreate,
    OrderItemView,
    PaymentCreate,
    PaymentView,
)

__all__ = [
    "ProfileCreate",
    "ProfileUpdate",
    "ProfileView",
    "BusinessCreate",
    "BusinessUpdate",
    "BusinessRecord",
    "BusinessSummary",
    "BusinessDetail",
    "BusinessImageView",
    "BusinessHoursInput",
    "BusinessHoursView",
    "CategoryCreate",
    "CategoryView",
    "OwnerView",
    "SubscriptionView",
    "ProductCreate",
    "ProductUpdate",
    "ProductView",
    "ReviewCreate",
    "ReviewView",
    "FavoriteView",
    "FavoriteBusinessView",
    "OrderCreate",
    "OrderRecord",
    "OrderSummary",
    "OrderDetail",
    "OrderItemCreate",
    "OrderItemView",
    "PaymentCreate",
    "PaymentView",
]
