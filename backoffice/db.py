from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from backoffice.config import get_settings
from backoffice.models.base import Base

settings = get_settings()

# Create engine
engine = create_async_engine(settings.database_url, echo=settings.sql_echo)

# Async session maker
async_session = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# Dependency
async def get_db():
    async with async_session() as session:
        yield session

async def create_db_and_tables():
    import backoffice.models  # registers every model on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
