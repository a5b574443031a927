"""Browsing the directory: categories and business listings."""
import logging
from typing import Iterable, Literal

from bizdir.core.cache import CacheService, cache_service, get_cache_key_categories
from bizdir.core.errors import Result, ValidationError
from bizdir.core.filters import BusinessFilter
from bizdir.repositories.base import Fields, QueryRepository
from bizdir.schemas import BusinessSummary, CategoryView

logger = logging.getLogger(__name__)

SortKey = Literal["newest", "name", "rating", "reviews"]

SORTS = {
    "newest": (lambda business: business.created_at, True),
    "name": (lambda business: business.name.casefold(), False),
    "rating": (lambda business: (business.average_rating, business.review_count), True),
    "reviews": (lambda business: (business.review_count, business.average_rating), True),
}


def average_rating(ratings: Iterable[int]) -> float:
    """Mean rating, 0 when there are none."""
    ratings = list(ratings)
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


class DirectoryService:
    """Service for browsing the directory."""

    def __init__(self, repository: QueryRepository, cache: CacheService | None = None):
        self.repository = repository
        self.cache = cache or cache_service

    async def list_categories(self) -> Result[list[CategoryView]]:
        """All categories, served from the cache when possible."""
        cache_key = get_cache_key_categories()
        cached = await self.cache.get(cache_key)
        if cached:
            return Result.success([CategoryView.model_validate(item) for item in cached])

        result = await self.repository.list_categories()
        if result.ok:
            await self.cache.set(cache_key, [category.model_dump(mode="json") for category in result.data])
        return result

    async def create_category(self, fields: Fields) -> Result[CategoryView]:
        """Create a category and drop the cached list."""
        result = await self.repository.create_category(fields)
        if result.ok:
            await self.cache.delete(get_cache_key_categories())
            logger.info(f"Category created: {result.data.name}")
        return result

    async def browse_businesses(
        self,
        filters: BusinessFilter | Fields | None = None,
        sort_by: SortKey = "newest",
    ) -> Result[list[BusinessSummary]]:
        """
        Filtered business listing in the requested order.

        Sorting is applied to the rows the filter returned, i.e. within one
        page when limit/offset are set.
        """
        if sort_by not in SORTS:
            return Result.failure(ValidationError(f"Unknown sort '{sort_by}'", fields=["sort_by"]))

        result = await self.repository.list_businesses(filters)
        if not result.ok:
            return result

        key, reverse = SORTS[sort_by]
        return Result.success(sorted(result.data, key=key, reverse=reverse))
