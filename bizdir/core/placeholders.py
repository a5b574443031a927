"""Placeholder image URLs."""
from typing import Literal
from urllib.parse import quote

from bizdir.config import settings

SizeBucket = Literal["small", "medium", "large"]

PLACEHOLDER_SIZES: dict[str, tuple[int, int]] = {
    "small": (40, 40),
    "medium": (200, 200),
    "large": (400, 400),
}


def placeholder_url(width: int, height: int, text: str | None = None) -> str:
    """Placeholder image of an arbitrary size."""
    encoded_text = quote(text, safe="") if text else "Product"
    return (
        f"{settings.placeholder_base_url}/{width}x{height}/"
        f"{settings.placeholder_background}/{settings.placeholder_foreground}?text={encoded_text}"
    )


def placeholder_image(label: str, size: SizeBucket = "medium") -> str:
    """Deterministic placeholder for a labelled image in a size bucket."""
    width, height = PLACEHOLDER_SIZES.get(size, PLACEHOLDER_SIZES["medium"])
    return placeholder_url(width, height, label)


# Products and businesses use the same buckets
product_placeholder_image = placeholder_image
business_placeholder_image = placeholder_image
