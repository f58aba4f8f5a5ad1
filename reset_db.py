import asyncio
import sys
import os

# Add backend/ to the path so app.* can be imported
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from app.core.database import engine
from app.models import Base


async def reset():
    print("Connecting to the database, dropping JobQuote tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        print("Tables dropped. Creating clients, quotes, invoices and usage tables...")
        await conn.run_sync(Base.metadata.create_all)
    print("Database reset complete!")


if __name__ == "__main__":
    asyncio.run(reset())
