"""Checkout: turns the cart into orders, one per business."""
import logging
import uuid
from decimal import Decimal

from bizdir.cart.store import CartLineItem, CartStore
from bizdir.core.errors import Result, ValidationError
from bizdir.repositories.base import Id, QueryRepository
from bizdir.schemas import OrderDetail, OrderItemCreate, ProductView

logger = logging.getLogger(__name__)

SIMULATED_PAYMENT_METHOD = "simulated"


class CheckoutService:
    """Service for placing orders from the cart."""

    def __init__(self, repository: QueryRepository, cart: CartStore):
        self.repository = repository
        self.cart = cart

    async def _order_lines(
        self, business_id: uuid.UUID, lines: list[CartLineItem]
    ) -> Result[list[tuple[ProductView, OrderItemCreate]]]:
        """
        Re-read the business's products and build order lines.

        Prices come from the database, not from the cart snapshot.
        """
        products = await self.repository.list_products(business_id)
        if not products.ok:
            return Result.failure(products.error)
        active = {product.id: product for product in products.data}

        order_lines = []
        for line in lines:
            product = active.get(line.product_id)
            if product is None:
                return Result.failure(
                    ValidationError(f"Product '{line.name}' is no longer available", fields=[str(line.product_id)])
                )
            if product.stock < line.quantity:
                return Result.failure(
                    ValidationError(
                        f"Not enough stock for '{product.name}'. "
                        f"Available: {product.stock}, requested: {line.quantity}",
                        fields=[str(line.product_id)],
                    )
                )
            order_lines.append(
                (product, OrderItemCreate(product_id=product.id, quantity=line.quantity, price=product.price))
            )
        return Result.success(order_lines)

    async def checkout(
        self, customer_id: Id, payment_method: str = SIMULATED_PAYMENT_METHOD
    ) -> Result[list[OrderDetail]]:
        """
        Place one paid order per business in the cart.

        Every line is validated before anything is written. The cart is cleared
        only after all orders were created.
        """
        groups = self.cart.lines_by_business()
        if not groups:
            return Result.failure(ValidationError("Cart is empty", fields=["items"]))

        planned = []
        for business_id, lines in groups.items():
            order_lines = await self._order_lines(business_id, lines)
            if not order_lines.ok:
                return Result.failure(order_lines.error)
            planned.append((business_id, order_lines.data))

        orders = []
        for business_id, order_lines in planned:
            total_amount = sum((item.price * item.quantity for _, item in order_lines), Decimal("0"))

            order = await self.repository.create_order(
                {
                    "business_id": business_id,
                    "customer_id": customer_id,
                    "total_amount": total_amount,
                    "status": "paid",
                }
            )
            if not order.ok:
                return Result.failure(order.error)
            order_id = order.data.id

            items = await self.repository.add_order_items(order_id, [item for _, item in order_lines])
            if not items.ok:
                return Result.failure(items.error)

            payment = await self.repository.create_payment(
                {
                    "order_id": order_id,
                    "amount": total_amount,
                    "status": "paid",
                    "payment_method": payment_method,
                }
            )
            if not payment.ok:
                return Result.failure(payment.error)

            # Decrease stock after successful payment
            for product, item in order_lines:
                updated = await self.repository.update_product(product.id, {"stock": product.stock - item.quantity})
                if not updated.ok:
                    return Result.failure(updated.error)

            detail = await self.repository.get_order(order_id)
            if not detail.ok:
                return Result.failure(detail.error)
            orders.append(detail.data)
            logger.info(f"Order {order_id} placed at business {business_id}: {total_amount} EUR")

        self.cart.clear_cart()
        return Result.success(orders)
