"""Create every table directly from the table metadata.

Meant for throwaway development databases; use ``scripts/migrate.py`` for
anything that must keep its data.
"""

import asyncio

from sqlalchemy import text

from app.database import engine
from app.models import metadata


async def init_db(drop: bool = False) -> None:
    """Create all tables, optionally dropping them first."""
    async with engine.begin() as conn:
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        if drop:
            await conn.run_sync(metadata.drop_all)
            print("✓ Existing tables dropped")

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print(f"✓ Database initialized with tables: {', '.join(sorted(metadata.tables))}")


if __name__ == "__main__":
    import sys

    asyncio.run(init_db(drop="--drop" in sys.argv[1:]))
