from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool
from careerpilot.config import get_settings
from careerpilot.utils.logger import logger

settings = get_settings()

engine_kwargs = {
    "echo": settings.debug,
    "future": True,
    "pool_pre_ping": True,  # Detect and recycle stale/broken connections
    "pool_recycle": 300,  # Recycle connections every 5 minutes
}
if settings.database_url.startswith("sqlite"):
    # aiosqlite connections are bound to the loop that opened them
    engine_kwargs["poolclass"] = NullPool

# Create async engine
engine = create_async_engine(settings.database_url, **engine_kwargs)

# Create session factory
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Base class for models
Base = declarative_base()

# Dependency for FastAPI routes
async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

# Initialize database (create tables)
async def init_db():
    """Create all database tables"""
    # Import models to register them with Base
    from careerpilot.models import user, interview, feedback, challenge, filter_options, user_feedback  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created")


async def drop_db():
    """Drop all tables (used by the test suite)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
