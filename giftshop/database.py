from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from giftshop.config import get_settings

settings = get_settings()

def build_engine_url(raw_url: str):
    """
    Transforms the DATABASE_URL for asyncpg compatibility:
    - Replaces postgres:// with postgresql+asyncpg://
    - Strips ?sslmode=require from query params and passes it as connect_args instead
    """
    if raw_url.startswith("postgres://"):
        raw_url = raw_url.replace("postgres://", "postgresql+asyncpg://", 1)

    url = make_url(raw_url)
    sslmode = url.query.get("sslmode")
    if sslmode is not None:
        url = url.difference_update_query(["sslmode"])

    connect_args = {}
    if sslmode == "require":
        connect_args["ssl"] = "require"

    return url.render_as_string(hide_password=False), connect_args

database_url, connect_args = build_engine_url(settings.DATABASE_URL)

engine = create_async_engine(database_url, echo=False, connect_args=connect_args)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()

async def init_models():
    # Registers the tables on Base.metadata before create_all
    from giftshop.models import gift, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
