# tests/test_businesses.py : business listing, detail, create/update and claim

import asyncio
import uuid

import pytest

from bizdir.core.errors import ConflictError, ErrorKind, NotFound
from bizdir.core.plans import SubscriptionPlan
from bizdir.repositories import InMemoryQueryRepository


async def names(repository, filters=None):
    result = await repository.list_businesses(filters)
    assert result.ok, result.error
    return [business.name for business in result.data]


class TestListBusinesses:
    async def test_newest_first(self, repository, build):
        await build.business("Alpha")
        await build.business("Beta")
        await build.business("Gamma")

        assert await names(repository) == ["Gamma", "Beta", "Alpha"]

    async def test_success_result_shape(self, repository, build):
        await build.business("Alpha")

        result = await repository.list_businesses()

        assert result.ok
        assert result.error is None
        assert len(result.data) == 1

    async def test_empty_match_is_empty_list(self, repository, build):
        await build.business("Alpha")

        result = await repository.list_businesses({"search": "does not exist"})

        assert result.ok
        assert result.data == []

    async def test_category_filter_is_subset_and_idempotent(self, repository, build):
        horeca = await build.category("Horeca")
        winkels = await build.category("Winkels")
        await build.business("Cafe Central", category_id=horeca.id)
        await build.business("Modehuis", category_id=winkels.id)
        await build.business("Zonder categorie")

        everything = (await repository.list_businesses()).data
        first = (await repository.list_businesses({"category": str(horeca.id)})).data
        second = (await repository.list_businesses({"category": horeca.id})).data

        assert {b.id for b in first} <= {b.id for b in everything}
        assert [b.name for b in first] == ["Cafe Central"]
        assert [b.id for b in first] == [b.id for b in second]
        assert first[0].category.name == "Horeca"

    async def test_business_without_category_is_listed(self, repository, build):
        await build.business("Zonder categorie")

        (business,) = (await repository.list_businesses()).data

        assert business.category is None
        assert business.category_id is None

    async def test_search_matches_name_or_description(self, repository, build):
        await build.business("Cafe Central", description="Gezellige bruine kroeg")
        await build.business("Modehuis Van der Berg", description="Exclusieve mode")

        assert await names(repository, {"search": "kroeg"}) == ["Cafe Central"]
        assert await names(repository, {"search": "modehuis"}) == ["Modehuis Van der Berg"]

    async def test_search_is_case_insensitive(self, repository, build):
        await build.business("Cafe Central", description="Gezellige bruine kroeg")
        await build.business("Bakkerij")

        lower = await names(repository, {"search": "central"})
        upper = await names(repository, {"search": "CENTRAL"})

        assert lower == upper == ["Cafe Central"]

    async def test_search_treats_wildcards_literally(self, repository, build):
        await build.business("100% Fitness")
        await build.business("Bakkerij")
        await build.business("Snack_Bar")
        await build.business("SnackXBar")

        assert await names(repository, {"search": "%"}) == ["100% Fitness"]
        assert await names(repository, {"search": "k_b"}) == ["Snack_Bar"]

    async def test_blank_search_is_ignored(self, repository, build):
        await build.business("Alpha")
        await build.business("Beta")

        assert await names(repository, {"search": "   "}) == ["Beta", "Alpha"]

    async def test_search_keeps_surrounding_spaces(self, repository, build):
        await build.business("Cafe Central")
        await build.business("Cafetaria De Hoek")

        assert await names(repository, {"search": "cafe "}) == ["Cafe Central"]
        assert await names(repository, {"search": " central"}) == ["Cafe Central"]
        assert await names(repository, {"search": " cafe"}) == []

    async def test_search_folds_case_like_the_database(self, repository, build):
        await build.business("Grote Straße")

        assert await names(repository, {"search": "STRAßE"}) == ["Grote Straße"]
        assert await names(repository, {"search": "strasse"}) == []

    async def test_review_aggregate(self, repository, build):
        reviewer = await build.profile()
        leeuw = await build.business("De Gouden Leeuw")
        await build.business("Nog geen reviews")
        for rating in (5, 4, 3):
            await build.review(leeuw.id, reviewer.id, rating)

        listing = {b.name: b for b in (await repository.list_businesses()).data}

        assert listing["De Gouden Leeuw"].review_count == 3
        assert listing["De Gouden Leeuw"].average_rating == pytest.approx(4.0)
        assert listing["Nog geen reviews"].review_count == 0
        assert listing["Nog geen reviews"].average_rating == 0

    async def test_pagination(self, repository, build):
        for n in range(1, 6):
            await build.business(f"B{n}")

        assert await names(repository, {"limit": 2}) == ["B5", "B4"]
        assert await names(repository, {"limit": 2, "offset": 2}) == ["B3", "B2"]
        assert await names(repository, {"offset": 4}) == ["B1"]

    async def test_owner_and_claimed_filters(self, repository, build):
        owner = await build.profile(role="owner")
        await build.business("Van mij", owner_id=owner.id)
        await build.business("Vrij")

        assert await names(repository, {"owner_id": owner.id}) == ["Van mij"]
        assert await names(repository, {"claimed": True}) == ["Van mij"]
        assert await names(repository, {"claimed": False}) == ["Vrij"]

    @pytest.mark.parametrize(
        "filters",
        [{"limit": 0}, {"offset": -1}, {"category": "not-a-uuid"}, {"unknown": "x"}],
    )
    async def test_invalid_filters(self, repository, filters):
        result = await repository.list_businesses(filters)

        assert not result.ok
        assert result.data is None
        assert result.error.kind == ErrorKind.VALIDATION


class TestGetBusiness:
    async def test_detail_includes_related_rows(self, repository, build):
        owner = await build.profile(full_name="Jan de Vries", role="owner")
        reviewer = await build.profile(full_name="Piet")
        horeca = await build.category("Horeca")
        business = await build.business("De Gouden Leeuw", category_id=horeca.id, owner_id=owner.id)

        await repository.add_business_image(business.id, "https://example.com/side.jpg")
        await repository.add_business_image(business.id, "https://example.com/front.jpg", is_primary=True)
        await repository.set_business_hours(
            business.id,
            [
                {"day_of_week": 3, "open_time": "09:00", "close_time": "17:00"},
                {"day_of_week": 1, "open_time": "10:00", "close_time": "18:00"},
            ],
        )
        await build.review(business.id, reviewer.id, 5, comment="Top")
        await build.review(business.id, reviewer.id, 3, comment="Oke")
        await repository.set_subscription(business.id, "pro")

        result = await repository.get_business(str(business.id))

        assert result.ok, result.error
        detail = result.data
        assert detail.category.name == "Horeca"
        assert detail.owner.full_name == "Jan de Vries"
        assert detail.images[0].is_primary
        assert detail.images[0].image_url == "https://example.com/front.jpg"
        assert [day.day_of_week for day in detail.hours] == [1, 3]
        assert [review.rating for review in detail.reviews] == [3, 5]
        assert detail.reviews[0].full_name == "Piet"
        assert detail.subscription.plan == SubscriptionPlan.PRO
        assert detail.subscription.max_products == 100
        assert detail.subscription_plan == SubscriptionPlan.PRO
        assert detail.average_rating == pytest.approx(4.0)

    async def test_unknown_id_is_not_found(self, repository):
        result = await repository.get_business(uuid.uuid4())

        assert result.data is None
        assert isinstance(result.error, NotFound)

    async def test_malformed_id_is_validation_error(self, repository):
        result = await repository.get_business("definitely-not-an-id")

        assert result.error.kind == ErrorKind.VALIDATION

    async def test_duplicate_weekday_in_hours_is_rejected(self, repository, build):
        business = await build.business("Bakkerij")

        result = await repository.set_business_hours(
            business.id, [{"day_of_week": 1}, {"day_of_week": 1, "closed": True}]
        )

        assert result.error.kind == ErrorKind.VALIDATION

    async def test_hours_are_replaced(self, repository, build):
        business = await build.business("Bakkerij")
        await repository.set_business_hours(business.id, [{"day_of_week": 0, "closed": True}])

        await repository.set_business_hours(business.id, [{"day_of_week": 2, "open_time": "08:00"}])

        detail = (await repository.get_business(business.id)).data
        assert [day.day_of_week for day in detail.hours] == [2]

    async def test_unknown_plan_is_rejected(self, repository, build):
        business = await build.business("Bakkerij")

        result = await repository.set_subscription(business.id, "platinum")

        assert result.error.kind == ErrorKind.VALIDATION


class TestCreateAndUpdateBusiness:
    async def test_create_defaults(self, repository, build):
        business = await build.business("Bakkerij")

        assert business.city == "Schiedam"
        assert business.claimed is False
        assert business.owner_id is None
        assert business.subscription_plan == SubscriptionPlan.FREE
        assert business.theme_color == "#3B82F6"

    async def test_create_with_owner_is_claimed(self, repository, build):
        owner = await build.profile(role="owner")

        business = await build.business("Bakkerij", owner_id=owner.id)

        assert business.claimed is True
        assert business.owner_id == owner.id

    @pytest.mark.parametrize("missing", ["name", "address", "postal_code"])
    async def test_create_requires_fields(self, repository, missing):
        fields = {"name": "Bakkerij", "address": "Hoogstraat 1", "postal_code": "3111 HG"}
        del fields[missing]

        result = await repository.create_business(fields)

        assert result.error.kind == ErrorKind.VALIDATION
        assert missing in result.error.fields

    async def test_create_rejects_claimed_without_owner(self, repository):
        result = await repository.create_business(
            {"name": "Bakkerij", "address": "Hoogstraat 1", "postal_code": "3111 HG", "claimed": True}
        )

        assert result.error.kind == ErrorKind.VALIDATION

    async def test_create_rejects_bad_theme_color(self, repository):
        result = await repository.create_business(
            {"name": "Bakkerij", "address": "Hoogstraat 1", "postal_code": "3111 HG", "theme_color": "blue"}
        )

        assert result.error.kind == ErrorKind.VALIDATION

    async def test_update_changes_only_given_fields(self, repository, build):
        business = await build.business("Bakkerij", phone="+31 10 000 0000")

        result = await repository.update_business(business.id, {"name": "Bakkerij Schiedam"})

        assert result.ok, result.error
        assert result.data.name == "Bakkerij Schiedam"
        assert result.data.phone == "+31 10 000 0000"
        assert result.data.address == business.address

    @pytest.mark.parametrize(
        "field", ["name", "address", "postal_code", "city", "theme_color", "subscription_plan"]
    )
    async def test_update_rejects_null_required_column(self, repository, build, field):
        business = await build.business("Bakkerij")

        result = await repository.update_business(business.id, {field: None})

        assert result.error.kind == ErrorKind.VALIDATION
        assert field in result.error.fields
        assert await names(repository) == ["Bakkerij"]
        detail = await repository.get_business(business.id)
        assert detail.ok, detail.error
        assert getattr(detail.data, field) == getattr(business, field)

    async def test_failed_update_leaves_row_untouched(self, repository, build):
        business = await build.business("Bakkerij", phone="+31 10 000 0000")

        result = await repository.update_business(
            business.id, {"name": "Nieuwe naam", "category_id": str(uuid.uuid4())}
        )

        assert result.error.kind == ErrorKind.STORAGE
        detail = await repository.get_business(business.id)
        assert detail.ok, detail.error
        assert detail.data.name == "Bakkerij"
        assert detail.data.category_id is None
        assert await names(repository) == ["Bakkerij"]

        retry = await repository.update_business(business.id, {"name": "Nieuwe naam"})
        assert retry.ok, retry.error
        assert retry.data.name == "Nieuwe naam"

    async def test_update_unknown_is_not_found(self, repository):
        result = await repository.update_business(uuid.uuid4(), {"name": "X"})

        assert result.error.kind == ErrorKind.NOT_FOUND

    async def test_update_claimed_alone_is_rejected(self, repository, build):
        business = await build.business("Bakkerij")

        result = await repository.update_business(business.id, {"claimed": True})

        assert result.error.kind == ErrorKind.VALIDATION

    async def test_clearing_owner_unclaims(self, repository, build):
        owner = await build.profile(role="owner")
        business = await build.business("Bakkerij", owner_id=owner.id)

        result = await repository.update_business(business.id, {"owner_id": None})

        assert result.data.owner_id is None
        assert result.data.claimed is False


class TestClaimBusiness:
    async def test_claim_sets_owner_and_flag(self, repository, build):
        owner = await build.profile(role="owner")
        business = await build.business("Sportcentrum De Haven")

        result = await repository.claim_business(business.id, owner.id)

        assert result.ok, result.error
        assert result.data.owner_id == owner.id
        assert result.data.claimed is True

    async def test_second_claim_conflicts(self, repository, build):
        first = await build.profile(role="owner")
        second = await build.profile(role="owner")
        business = await build.business("Sportcentrum De Haven")
        await repository.claim_business(business.id, first.id)

        result = await repository.claim_business(business.id, second.id)

        assert isinstance(result.error, ConflictError)
        detail = (await repository.get_business(business.id)).data
        assert detail.owner_id == first.id

    async def test_claim_unknown_business(self, repository, build):
        owner = await build.profile(role="owner")

        result = await repository.claim_business(uuid.uuid4(), owner.id)

        assert result.error.kind == ErrorKind.NOT_FOUND

    async def test_override_transfers_ownership(self):
        repository = InMemoryQueryRepository(allow_claim_override=True)
        first = (await repository.create_profile({"email": "a@example.com"})).unwrap()
        second = (await repository.create_profile({"email": "b@example.com"})).unwrap()
        business = (
            await repository.create_business(
                {"name": "Bakkerij", "address": "Hoogstraat 1", "postal_code": "3111 HG", "owner_id": first.id}
            )
        ).unwrap()

        result = await repository.claim_business(business.id, second.id)

        assert result.data.owner_id == second.id

    async def test_concurrent_claims_have_one_winner(self):
        repository = InMemoryQueryRepository(allow_claim_override=False)
        owners = [(await repository.create_profile({"email": f"o{n}@example.com"})).unwrap() for n in range(5)]
        business = (
            await repository.create_business({"name": "Vrij", "address": "Hoogstraat 1", "postal_code": "3111 HG"})
        ).unwrap()

        results = await asyncio.gather(*(repository.claim_business(business.id, owner.id) for owner in owners))

        winners = [result for result in results if result.ok]
        assert len(winners) == 1
        assert all(result.error.kind == ErrorKind.CONFLICT for result in results if not result.ok)
