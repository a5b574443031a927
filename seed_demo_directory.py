"""Script that fills the database with the Schiedam demo directory."""
import asyncio

from bizdir.core.log import configure_logging
from bizdir.database import create_tables
from bizdir.demo import seed_demo_directory
from bizdir.repositories import SqlQueryRepository, get_repository


async def main():
    """Create the tables when missing and load the demo data."""
    configure_logging()
    repository = get_repository()

    if isinstance(repository, SqlQueryRepository):
        await create_tables()

    created = await seed_demo_directory(repository)

    print(f"✅ Profiles created: {created['profiles']}")
    print(f"✅ Categories created: {created['categories']}")
    print(f"✅ Businesses created: {created['businesses']}")
    print(f"✅ Products created: {created['products']}")
    print("\n🎉 Demo directory is ready!")


if __name__ == "__main__":
    asyncio.run(main())
