# tests/test_services.py : directory, catalog, checkout and dashboard services

import uuid
from decimal import Decimal

from bizdir.cart import CartItemInput
from bizdir.core.cache import CacheService, get_cache_key_categories
from bizdir.core.errors import ErrorKind
from bizdir.demo import DEMO_BUSINESSES, DEMO_CATEGORIES, DEMO_OWNER_ID, seed_demo_directory
from bizdir.repositories import InMemoryQueryRepository
from bizdir.services import (
    CatalogService,
    CheckoutService,
    DashboardService,
    DirectoryService,
    PlanLimitExceeded,
    average_rating,
)
from bizdir.services.checkout_service import SIMULATED_PAYMENT_METHOD


class FakeCache:
    """Dict-backed stand-in with the CacheService call surface"""

    def __init__(self):
        self.values = {}
        self.deleted = []

    async def get(self, key):
        return self.values.get(key)

    async def set(self, key, value, ttl=None):
        self.values[key] = value
        return True

    async def delete(self, key):
        self.deleted.append(key)
        self.values.pop(key, None)
        return True


def cart_item(product, business, quantity=1, price=None, stock=None):
    return CartItemInput(
        product_id=product.id,
        name=product.name,
        price=price if price is not None else product.price,
        quantity=quantity,
        business_id=business.id,
        business_name=business.name,
        stock=stock if stock is not None else product.stock,
    )


class TestDirectoryService:
    async def test_categories_without_cache(self, repository, build):
        await build.category("Horeca")
        service = DirectoryService(repository, cache=CacheService(enabled=False))

        result = await service.list_categories()

        assert [category.name for category in result.data] == ["Horeca"]

    async def test_categories_are_cached(self, repository, build):
        await build.category("Horeca")
        cache = FakeCache()
        service = DirectoryService(repository, cache=cache)

        await service.list_categories()
        await build.category("Winkels")
        cached = await service.list_categories()

        assert [category.name for category in cached.data] == ["Horeca"]
        assert cache.values[get_cache_key_categories()][0]["name"] == "Horeca"

    async def test_create_category_invalidates_cache(self, repository, build):
        await build.category("Horeca")
        cache = FakeCache()
        service = DirectoryService(repository, cache=cache)
        await service.list_categories()

        await service.create_category({"name": "Winkels"})
        listed = await service.list_categories()

        assert cache.deleted == [get_cache_key_categories()]
        assert [category.name for category in listed.data] == ["Horeca", "Winkels"]

    async def test_browse_sorted_by_rating(self, repository, build):
        author = await build.profile()
        plain = await build.business("Zonder reviews")
        good = await build.business("Goed")
        best = await build.business("Best")
        await build.review(good.id, author.id, 3)
        await build.review(best.id, author.id, 5)
        service = DirectoryService(repository, cache=FakeCache())

        result = await service.browse_businesses(sort_by="rating")

        assert [business.id for business in result.data] == [best.id, good.id, plain.id]

    async def test_browse_sorted_by_name(self, repository, build):
        await build.business("cafe Central")
        await build.business("Bakkerij")
        service = DirectoryService(repository, cache=FakeCache())

        result = await service.browse_businesses({"search": "a"}, sort_by="name")

        assert [business.name for business in result.data] == ["Bakkerij", "cafe Central"]

    async def test_unknown_sort(self, repository):
        service = DirectoryService(repository, cache=FakeCache())

        result = await service.browse_businesses(sort_by="distance")

        assert result.error.kind == ErrorKind.VALIDATION

    def test_average_rating(self):
        assert average_rating([]) == 0.0
        assert average_rating([4, 5]) == 4.5


class TestCatalogService:
    async def test_owner_can_add_products(self, repository, build):
        owner = await build.profile(role="owner")
        business = await build.business("De Gouden Leeuw", owner_id=owner.id)
        service = CatalogService(repository)

        result = await service.create_product(owner, business.id, {"name": "Haring", "price": Decimal("8.50")})

        assert result.ok, result.error
        assert result.data.business_id == business.id

    async def test_other_owner_is_forbidden(self, repository, build):
        owner = await build.profile(role="owner")
        intruder = await build.profile(role="owner")
        business = await build.business("De Gouden Leeuw", owner_id=owner.id)
        product = await build.product(business.id)
        service = CatalogService(repository)

        created = await service.create_product(intruder, business.id, {"name": "Haring", "price": Decimal("1")})
        updated = await service.update_product(intruder, product.id, {"price": Decimal("0.01")})
        deleted = await service.delete_product(intruder, product.id)

        assert created.error.kind == ErrorKind.FORBIDDEN
        assert updated.error.kind == ErrorKind.FORBIDDEN
        assert deleted.error.kind == ErrorKind.FORBIDDEN
        assert (await repository.get_product(product.id)).data.price == product.price

    async def test_admin_may_manage_any_business(self, repository, build):
        owner = await build.profile(role="owner")
        admin = await build.profile(role="admin")
        business = await build.business("De Gouden Leeuw", owner_id=owner.id)
        product = await build.product(business.id)
        service = CatalogService(repository)

        updated = await service.update_product(admin, product.id, {"stock": 3})
        deleted = await service.delete_product(admin, product.id)

        assert updated.data.stock == 3
        assert deleted.data is True

    async def test_free_plan_product_limit(self, repository, build):
        owner = await build.profile(role="owner")
        business = await build.business("De Gouden Leeuw", owner_id=owner.id)
        for n in range(10):
            await build.product(business.id, f"Product {n}")
        service = CatalogService(repository)

        allowed = await service.can_add_product(business.id)
        result = await service.create_product(owner, business.id, {"name": "Elfde", "price": Decimal("1")})

        assert allowed.data is False
        assert isinstance(result.error, PlanLimitExceeded)
        assert result.error.kind == ErrorKind.CONFLICT

    async def test_inactive_products_do_not_count(self, repository, build):
        owner = await build.profile(role="owner")
        business = await build.business("De Gouden Leeuw", owner_id=owner.id)
        for n in range(10):
            await build.product(business.id, f"Product {n}", active=n > 0)

        allowed = await CatalogService(repository).can_add_product(business.id)

        assert allowed.data is True

    async def test_unknown_business(self, repository, build):
        admin = await build.profile(role="admin")

        result = await CatalogService(repository).create_product(
            admin, uuid.uuid4(), {"name": "Haring", "price": Decimal("1")}
        )

        assert result.error.kind == ErrorKind.NOT_FOUND


class TestCheckoutService:
    async def test_one_order_per_business(self, repository, build, cart):
        customer = await build.profile()
        leeuw = await build.business("De Gouden Leeuw")
        central = await build.business("Cafe Central")
        haring = await build.product(leeuw.id, "Haring", price=Decimal("8.50"), stock=20)
        bier = await build.product(central.id, "Bier", price=Decimal("3.20"), stock=50)
        cart.add_to_cart(cart_item(haring, leeuw, quantity=2))
        cart.add_to_cart(cart_item(bier, central, quantity=3))

        result = await CheckoutService(repository, cart).checkout(customer.id)

        assert result.ok, result.error
        totals = {order.business_id: order.total_amount for order in result.data}
        assert totals == {leeuw.id: Decimal("17.00"), central.id: Decimal("9.60")}
        assert all(order.status == "paid" for order in result.data)
        assert all(order.payment.payment_method == SIMULATED_PAYMENT_METHOD for order in result.data)
        assert cart.items == []

    async def test_stock_is_decremented(self, repository, build, cart):
        customer = await build.profile()
        business = await build.business("De Gouden Leeuw")
        haring = await build.product(business.id, "Haring", stock=20)
        cart.add_to_cart(cart_item(haring, business, quantity=4))

        await CheckoutService(repository, cart).checkout(customer.id)

        assert (await repository.get_product(haring.id)).data.stock == 16

    async def test_prices_come_from_the_catalog(self, repository, build, cart):
        customer = await build.profile()
        business = await build.business("De Gouden Leeuw")
        haring = await build.product(business.id, "Haring", price=Decimal("8.50"))
        cart.add_to_cart(cart_item(haring, business, quantity=1, price=Decimal("0.01")))

        (order,) = (await CheckoutService(repository, cart).checkout(customer.id)).data

        assert order.total_amount == Decimal("8.50")
        assert order.items[0].price == Decimal("8.50")

    async def test_empty_cart(self, repository, build, cart):
        customer = await build.profile()

        result = await CheckoutService(repository, cart).checkout(customer.id)

        assert result.error.kind == ErrorKind.VALIDATION

    async def test_insufficient_stock_writes_nothing(self, repository, build, cart):
        customer = await build.profile()
        leeuw = await build.business("De Gouden Leeuw")
        central = await build.business("Cafe Central")
        haring = await build.product(leeuw.id, "Haring", stock=20)
        bier = await build.product(central.id, "Bier", stock=1)
        cart.add_to_cart(cart_item(haring, leeuw, quantity=2))
        cart.add_to_cart(cart_item(bier, central, quantity=5, stock=10))

        result = await CheckoutService(repository, cart).checkout(customer.id)

        assert result.error.kind == ErrorKind.VALIDATION
        assert (await repository.list_orders()).data == []
        assert (await repository.get_product(haring.id)).data.stock == 20
        assert cart.total_items == 7

    async def test_deactivated_product_is_rejected(self, repository, build, cart):
        customer = await build.profile()
        business = await build.business("De Gouden Leeuw")
        haring = await build.product(business.id, "Haring")
        cart.add_to_cart(cart_item(haring, business))
        await repository.update_product(haring.id, {"active": False})

        result = await CheckoutService(repository, cart).checkout(customer.id)

        assert result.error.kind == ErrorKind.VALIDATION
        assert str(haring.id) in result.error.fields


class TestDashboardService:
    async def test_admin_stats(self, repository, build):
        owner = await build.profile(role="owner")
        customer = await build.profile()
        claimed = await build.business("De Gouden Leeuw", owner_id=owner.id)
        await build.business("Cafe Central")
        await build.order(claimed.id, customer.id, "20.00", status="paid")
        await build.order(claimed.id, customer.id, "5.00")

        stats = (await DashboardService(repository).admin_stats()).data

        assert stats.total_businesses == 2
        assert stats.claimed_businesses == 1
        assert stats.total_orders == 2
        assert stats.total_revenue == Decimal("20.00")

    async def test_owner_stats(self, repository, build):
        owner = await build.profile(role="owner")
        customer = await build.profile()
        business = await build.business("De Gouden Leeuw", owner_id=owner.id, subscription_plan="pro")
        await build.product(business.id)
        await build.product(business.id)
        await build.order(business.id, customer.id, "12.50", status="paid")

        stats = (await DashboardService(repository).owner_stats(owner.id)).data

        assert stats.business.id == business.id
        assert stats.total_products == 2
        assert stats.max_products == 100
        assert stats.total_orders == 1
        assert stats.revenue == Decimal("12.50")

    async def test_owner_without_business(self, repository, build):
        owner = await build.profile(role="owner")

        stats = (await DashboardService(repository).owner_stats(owner.id)).data

        assert stats.business is None
        assert stats.total_products == 0

    async def test_customer_stats(self, repository, build):
        customer = await build.profile()
        business = await build.business("Cafe Central")
        await repository.add_favorite(customer.id, business.id)
        await build.order(business.id, customer.id, "7.50", status="paid")
        await build.order(business.id, customer.id, "3.00", status="cancelled")

        stats = (await DashboardService(repository).customer_stats(customer.id)).data

        assert stats.favorite_businesses == 1
        assert stats.total_orders == 2
        assert stats.total_spent == Decimal("7.50")


class TestDemoSeed:
    async def test_seed_and_reseed(self):
        repository = InMemoryQueryRepository()

        first = await seed_demo_directory(repository)
        second = await seed_demo_directory(repository)

        assert first == {
            "profiles": 1,
            "categories": len(DEMO_CATEGORIES),
            "businesses": len(DEMO_BUSINESSES),
            "products": 2,
        }
        assert second == {"profiles": 0, "categories": 0, "businesses": 0, "products": 0}

    async def test_seeded_directory_is_browsable(self, repository):
        await seed_demo_directory(repository)

        unclaimed = (await repository.list_businesses({"claimed": False})).data
        owned = (await repository.list_businesses({"owner_id": DEMO_OWNER_ID})).data
        detail = (await repository.get_business(DEMO_BUSINESSES[0]["id"])).data

        assert [business.name for business in unclaimed] == ["Sportcentrum De Haven"]
        assert len(owned) == 4
        assert detail.subscription.max_products == 50
        assert detail.images[0].is_primary
        assert len(detail.images) == 1
