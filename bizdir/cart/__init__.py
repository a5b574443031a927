"""Client-side shopping cart."""
from bizdir.cart.storage import FileSlot, KeyValueSlot, MemorySlot
from bizdir.cart.store import CartItemInput, CartLineItem, CartStore

__all__ = [
    "CartStore",
    "CartItemInput",
    "CartLineItem",
    "KeyValueSlot",
    "MemorySlot",
    "FileSlot",
]
