# CampusGate - async database setup
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from .models import Base

# Default for dev; override via config
DATABASE_URL = "sqlite+aiosqlite:///./campusgate.db"

engine: AsyncEngine = create_async_engine(DATABASE_URL, echo=False)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Current session factory (init_db may rebind it)."""
    return async_session


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(database_url: str | None = None):
    global engine, async_session
    if database_url:
        await engine.dispose()
        engine = create_async_engine(database_url, echo=False)
        async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db():
    await engine.dispose()
