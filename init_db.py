# init_db.py
import asyncio
from app.db.sql import engine
from app.db.base import Base

# IMPORTANT: import all models so that Base.metadata knows them
import app.models  # noqa: F401


async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    print("Database schema recreated successfully!")


if __name__ == "__main__":
    asyncio.run(init_models())
