"""Database models."""
from bizdir.models.profile import Profile
from bizdir.models.category import Category
from bizdir.models.business import Business, BusinessImage, BusinessHours
from bizdir.models.subscription import Subscription
from bizdir.models.product import Product
from bizdir.models.review import Review
from bizdir.models.favorite import Favorite
from bizdir.models.order import Order, OrderItem
from bizdir.models.payment import Payment

__all__ = [
    "Profile",
    "Category",
    "Business",
    "BusinessImage",
    "BusinessHours",
    "Subscription",
    "Product",
    "Review",
    "Favorite",
    "Order",
    "OrderItem",
    "Payment",
]
