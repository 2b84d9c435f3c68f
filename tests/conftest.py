import os

# Set dummy env vars for testing
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["TELEGRAM_BOT_TOKEN"] = "123456:TEST_TOKEN"
os.environ["TELEGRAM_WEBHOOK_SECRET"] = ""
os.environ["TON_WALLET_ADDRESS"] = ""
os.environ["DEFAULT_LANG"] = "ru"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from giftshop.database import Base, get_db
from giftshop.main import app
from giftshop.dependencies import get_gateway, get_ledger, get_session_store
from giftshop.services.catalog_store import CatalogStore
from giftshop.services.chatbot_service import ChatbotService
from giftshop.services.localization import get_localizer
from giftshop.services.marketplace_service import MarketplaceService
from giftshop.services.session_store import InMemorySessionStore
from giftshop.exceptions import GatewayUnavailable
# Import models to ensure they are registered with Base.metadata
from giftshop.models.user import User
from giftshop.models.gift import Gift


class StaticLedger:
    """Ledger fake: fixed nanoton balances per account."""

    def __init__(self, balances=None):
        self.balances = dict(balances or {})
        self.calls = []

    async def get_balance(self, account: str) -> int:
        self.calls.append(account)
        return self.balances.get(account, 0)


class RecordingGateway:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send_text(self, chat_id, text, keyboard=None):
        if self.fail:
            raise GatewayUnavailable("gateway down")
        self.sent.append(("text", chat_id, text, keyboard))

    async def send_media(self, chat_id, media_reference, keyboard=None):
        if self.fail:
            raise GatewayUnavailable("gateway down")
        self.sent.append(("media", chat_id, media_reference, keyboard))

    async def answer_callback(self, callback_id):
        self.sent.append(("ack", callback_id))

    @property
    def texts(self):
        return [item[2] for item in self.sent if item[0] == "text"]


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()

@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session

@pytest.fixture
def store(db_session):
    return CatalogStore(db_session)

@pytest.fixture
def ledger():
    return StaticLedger()

@pytest.fixture
def marketplace(store, ledger):
    return MarketplaceService(store, ledger, default_lang="ru")

@pytest.fixture
def sessions():
    return InMemorySessionStore(ttl_seconds=1800)

@pytest.fixture
def localizer():
    return get_localizer()

@pytest.fixture
def chatbot(db_session, sessions, ledger):
    return ChatbotService(db_session, sessions, ledger)

@pytest.fixture
def gateway():
    return RecordingGateway()

@pytest_asyncio.fixture
async def client(session_factory, gateway, ledger, sessions):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_session_store] = lambda: sessions

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
