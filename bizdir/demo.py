"""Demo directory content for Schiedam."""
import logging
import uuid
from decimal import Decimal

from bizdir.core.errors import ErrorKind
from bizdir.core.placeholders import business_placeholder_image
from bizdir.repositories.base import QueryRepository

logger = logging.getLogger(__name__)

DEMO_OWNER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")

DEMO_OWNER = {
    "id": DEMO_OWNER_ID,
    "email": "eigenaar@schiedam.nl",
    "full_name": "Demo Eigenaar",
    "role": "owner",
}

DEMO_CATEGORIES = [
    ("10000000-0000-0000-0000-000000000001", "Horeca", "Restaurants, cafés, bars en andere eetgelegenheden", "🍽️"),
    ("10000000-0000-0000-0000-000000000002", "Winkels", "Retail, kleding, elektronica en andere winkels", "🛍️"),
    ("10000000-0000-0000-0000-000000000003", "Diensten", "Professionele dienstverlening en advies", "💼"),
    ("10000000-0000-0000-0000-000000000004", "Zorg & Welzijn", "Zorgverleners, apotheken en welzijnsdiensten", "🏥"),
    ("10000000-0000-0000-0000-000000000005", "Sport & Vrije Tijd", "Sportclubs, fitness en recreatie", "⚽"),
    ("10000000-0000-0000-0000-000000000006", "Onderwijs", "Scholen, trainingen en educatie", "🎓"),
    ("10000000-0000-0000-0000-000000000007", "Beauty & Wellness", "Kappers, schoonheidssalons en wellness", "💅"),
    ("10000000-0000-0000-0000-000000000008", "Auto & Vervoer", "Garages, autodealers en vervoersdiensten", "🚗"),
    ("10000000-0000-0000-0000-000000000009", "Vastgoed", "Makelaars, verhuur en vastgoeddiensten", "🏠"),
    ("10000000-0000-0000-0000-000000000010", "Technologie", "IT-diensten, software en technologie", "💻"),
]

DEMO_BUSINESSES = [
    {
        "id": "20000000-0000-0000-0000-000000000001",
        "name": "Restaurant De Gouden Leeuw",
        "description": "Traditioneel Nederlands restaurant met moderne twist",
        "category_id": "10000000-0000-0000-0000-000000000001",
        "address": "Hoogstraat 123",
        "postal_code": "3111 HG",
        "phone": "+31 10 123 4567",
        "email": "info@goudenleeuw.nl",
        "website": "https://goudenleeuw.nl",
        "lat": 51.9194,
        "lng": 4.3883,
        "owner_id": DEMO_OWNER_ID,
        "theme_color": "#F59E0B",
        "subscription_plan": "business",
    },
    {
        "id": "20000000-0000-0000-0000-000000000002",
        "name": "Café Central",
        "description": "Gezellige bruine kroeg in het centrum",
        "category_id": "10000000-0000-0000-0000-000000000001",
        "address": "Lange Haven 45",
        "postal_code": "3111 CD",
        "phone": "+31 10 234 5678",
        "email": "info@cafecentral.nl",
        "lat": 51.9200,
        "lng": 4.3900,
        "owner_id": DEMO_OWNER_ID,
        "theme_color": "#8B5CF6",
        "subscription_plan": "free",
    },
    {
        "id": "20000000-0000-0000-0000-000000000003",
        "name": "Modehuis Van der Berg",
        "description": "Exclusieve dames- en herenmode",
        "category_id": "10000000-0000-0000-0000-000000000002",
        "address": "Broersvest 67",
        "postal_code": "3111 BN",
        "phone": "+31 10 345 6789",
        "email": "info@modehuisvanderberg.nl",
        "website": "https://modehuisvanderberg.nl",
        "lat": 51.9180,
        "lng": 4.3850,
        "owner_id": DEMO_OWNER_ID,
        "theme_color": "#EC4899",
        "subscription_plan": "pro",
    },
    {
        "id": "20000000-0000-0000-0000-000000000004",
        "name": "Fysiotherapie Schiedam Centrum",
        "description": "Professionele fysiotherapie en revalidatie",
        "category_id": "10000000-0000-0000-0000-000000000004",
        "address": "Korte Haven 12",
        "postal_code": "3111 AB",
        "phone": "+31 10 456 7890",
        "email": "info@fysioschiedam.nl",
        "website": "https://fysioschiedam.nl",
        "lat": 51.9210,
        "lng": 4.3920,
        "owner_id": DEMO_OWNER_ID,
        "theme_color": "#10B981",
        "subscription_plan": "vip",
    },
    {
        # Unclaimed, available through claim_business
        "id": "20000000-0000-0000-0000-000000000005",
        "name": "Sportcentrum De Haven",
        "description": "Moderne fitness en groepslessen",
        "category_id": "10000000-0000-0000-0000-000000000005",
        "address": "Havenplein 8",
        "postal_code": "3111 AC",
        "phone": "+31 10 567 8901",
        "email": "info@sportcentrumdehaven.nl",
        "website": "https://sportcentrumdehaven.nl",
        "lat": 51.9220,
        "lng": 4.3950,
        "theme_color": "#F59E0B",
        "subscription_plan": "free",
    },
]

DEMO_PRODUCTS = [
    {
        "id": "40000000-0000-0000-0000-000000000001",
        "business_id": "20000000-0000-0000-0000-000000000001",
        "name": "Hollandse Nieuwe Haring",
        "description": "Verse haring met uitjes",
        "price": Decimal("8.50"),
        "stock": 20,
    },
    {
        "id": "40000000-0000-0000-0000-000000000002",
        "business_id": "20000000-0000-0000-0000-000000000001",
        "name": "Stamppot Boerenkool",
        "description": "Traditionele stamppot met rookworst",
        "price": Decimal("12.95"),
        "stock": 15,
    },
]


async def seed_demo_directory(repository: QueryRepository) -> dict[str, int]:
    """
    Load the demo directory into an empty or partially seeded store.

    Rows that already exist are skipped, so running it twice is harmless.
    Returns how many rows of each kind were created.
    """
    created = {"profiles": 0, "categories": 0, "businesses": 0, "products": 0}

    if not (await repository.get_profile(DEMO_OWNER_ID)).ok:
        (await repository.create_profile(DEMO_OWNER)).unwrap()
        created["profiles"] += 1

    existing_categories = {category.name for category in (await repository.list_categories()).unwrap()}
    for category_id, name, description, icon in DEMO_CATEGORIES:
        if name in existing_categories:
            continue
        (await repository.create_category(
            {"id": category_id, "name": name, "description": description, "icon": icon}
        )).unwrap()
        created["categories"] += 1

    for fields in DEMO_BUSINESSES:
        existing = await repository.get_business(fields["id"])
        if existing.ok:
            continue
        if existing.error.kind != ErrorKind.NOT_FOUND:
            raise existing.error
        business = (await repository.create_business(fields)).unwrap()
        (await repository.set_subscription(business.id, business.subscription_plan)).unwrap()
        (await repository.add_business_image(
            business.id, business_placeholder_image(business.name, "large"), is_primary=True
        )).unwrap()
        created["businesses"] += 1

    for fields in DEMO_PRODUCTS:
        if (await repository.get_product(fields["id"])).ok:
            continue
        (await repository.create_product(fields)).unwrap()
        created["products"] += 1

    logger.info(f"Demo directory seeded: {created}")
    return created
