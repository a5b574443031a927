"""Shopping cart: persisted, observable line items with stock ceilings."""
import logging
import uuid
from decimal import Decimal
from typing import Callable, Mapping, Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from bizdir.cart.storage import KeyValueSlot, MemorySlot
from bizdir.config import settings

logger = logging.getLogger(__name__)


class CartItemInput(BaseModel):
    """Product snapshot handed to add_to_cart."""

    model_config = ConfigDict(frozen=True)

    product_id: uuid.UUID
    name: str
    price: Decimal = Field(ge=0)
    quantity: int = 1
    image: str | None = None
    business_id: uuid.UUID
    business_name: str
    stock: int = Field(ge=0)


class CartLineItem(CartItemInput):
    """One line of the cart; quantity stays within [1, stock]."""

    id: str

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


Listener = Callable[[list[CartLineItem]], None]

_LINES = TypeAdapter(list[CartLineItem])


def new_line_id(product_id: uuid.UUID) -> str:
    """Line id derived from the product id plus a random suffix."""
    return f"{product_id}-{uuid.uuid4().hex}"


class CartStore:
    """
    Cart of one client session.

    The whole collection is written to the slot after every mutation and read
    back once on construction. Missing or unreadable state starts an empty
    cart. Mutations never raise for out-of-range quantities: they clamp to the
    stock ceiling, and anything below one removes the line.
    """

    def __init__(self, slot: KeyValueSlot | None = None, key: str | None = None):
        self._slot = slot if slot is not None else MemorySlot()
        self._key = key or settings.cart_storage_key
        self._listeners: list[Listener] = []
        self._items: list[CartLineItem] = self._load()

    def _load(self) -> list[CartLineItem]:
        try:
            raw = self._slot.get(self._key)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cart state under '{self._key}' is unreadable, starting empty: {e}")
            return []
        if not raw:
            return []
        try:
            lines = _LINES.validate_json(raw)
        except PydanticValidationError as e:
            logger.warning(f"Discarding corrupt cart state under '{self._key}': {e.error_count()} errors")
            return []

        items = []
        for line in lines:
            quantity = min(line.quantity, line.stock)
            if quantity >= 1:
                items.append(line if quantity == line.quantity else line.model_copy(update={"quantity": quantity}))
        return items

    def _commit(self) -> None:
        try:
            self._slot.set(self._key, _LINES.dump_json(self._items).decode())
        except OSError as e:
            logger.error(f"Failed to persist cart under '{self._key}': {e}", exc_info=True)
        snapshot = self.items
        for listener in list(self._listeners):
            listener(snapshot)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with the new items after every mutation; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Mutations

    def add_to_cart(self, item: CartItemInput | Mapping[str, Any]) -> CartLineItem | None:
        """
        Add a product, merging with an existing line of the same product.

        A merged line gets min(existing + requested, stock) with the stock taken
        from this call. Returns the resulting line, or None when the quantity
        ends up below one or the item is invalid.
        """
        if not isinstance(item, CartItemInput):
            try:
                item = CartItemInput.model_validate(item)
            except PydanticValidationError as e:
                logger.warning(f"Ignoring invalid cart item: {e.error_count()} errors")
                return None

        index = self._index_of_product(item.product_id)
        if index is not None:
            existing = self._items[index]
            quantity = min(existing.quantity + item.quantity, item.stock)
            if quantity < 1:
                del self._items[index]
                line = None
            else:
                line = existing.model_copy(update={"quantity": quantity, "stock": item.stock})
                self._items[index] = line
        else:
            quantity = min(item.quantity, item.stock)
            if quantity < 1:
                return None
            line = CartLineItem(
                **item.model_dump(exclude={"quantity"}),
                quantity=quantity,
                id=new_line_id(item.product_id),
            )
            self._items.append(line)

        self._commit()
        return line

    def update_quantity(self, line_id: str, quantity: int) -> CartLineItem | None:
        """Set a line's quantity, clamped to its stock; zero or less removes it."""
        if quantity <= 0:
            self.remove_from_cart(line_id)
            return None

        index = self._index_of_line(line_id)
        if index is None:
            return None
        line = self._items[index]
        clamped = min(quantity, line.stock)
        if clamped < 1:
            self.remove_from_cart(line_id)
            return None
        line = line.model_copy(update={"quantity": clamped})
        self._items[index] = line
        self._commit()
        return line

    def remove_from_cart(self, line_id: str) -> None:
        """Remove a line; unknown ids are ignored."""
        remaining = [line for line in self._items if line.id != line_id]
        if len(remaining) != len(self._items):
            self._items = remaining
            self._commit()

    def clear_cart(self) -> None:
        self._items = []
        self._commit()

    # Queries

    def is_in_cart(self, product_id: uuid.UUID | str) -> bool:
        return self._index_of_product(product_id) is not None

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._items)

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._items)

    @property
    def total_price(self) -> Decimal:
        return sum((line.line_total for line in self._items), Decimal("0"))

    def lines_by_business(self) -> dict[uuid.UUID, list[CartLineItem]]:
        """Lines grouped per business, in cart order."""
        groups: dict[uuid.UUID, list[CartLineItem]] = {}
        for line in self._items:
            groups.setdefault(line.business_id, []).append(line)
        return groups

    def _index_of_product(self, product_id: uuid.UUID | str) -> int | None:
        for index, line in enumerate(self._items):
            if str(line.product_id) == str(product_id):
                return index
        return None

    def _index_of_line(self, line_id: str) -> int | None:
        for index, line in enumerate(self._items):
            if line.id == line_id:
                return index
        return None
