"""Order and payment schemas."""
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class OrderCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID | None = None
    business_id: uuid.UUID
    customer_id: uuid.UUID
    total_amount: Decimal
    status: str = "pending"
    created_at: datetime | None = None


class OrderRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_id: uuid.UUID
    customer_id: uuid.UUID
    total_amount: Decimal
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BusinessRef(BaseModel):
    id: uuid.UUID
    name: str


class CustomerRef(BaseModel):
    id: uuid.UUID
    full_name: str | None = None


class OrderSummary(OrderRecord):
    """Order with business name and customer display name."""

    business: BusinessRef | None = None
    customer: CustomerRef | None = None


class OrderItemCreate(BaseModel):
    """Order line; price is the unit price at order time."""

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int
    price: Decimal


class OrderItemView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    price: Decimal
    created_at: datetime | None = None
    product_name: str | None = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class PaymentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    order_id: uuid.UUID
    amount: Decimal
    currency: str = "EUR"
    status: str = "pending"
    payment_method: str | None = None


class PaymentView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    amount: Decimal
    currency: str
    status: str
    payment_method: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderDetail(OrderSummary):
    """Order with its lines and payment."""

    items: list[OrderItemView] = []
    payment: PaymentView | None = None
