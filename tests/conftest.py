"""
Test Suite Configuration
"""
from decimal import Decimal

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from partshop.config.settings import CommerceSettings
from partshop.database.connection import Database
from partshop.database.models import Category, Product, User
from partshop.serving.api import Commerce, create_api_app


@pytest.fixture
async def database():
    """Fresh in-memory database per test"""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def commerce_settings() -> CommerceSettings:
    return CommerceSettings(transient_retry_delay_ms=0)


@pytest.fixture
def commerce(database, commerce_settings) -> Commerce:
    """Services wired without Redis (cache passes straight through)"""
    return Commerce.build(database, None, commerce_settings)


async def _add(database: Database, obj):
    async with database.session() as session:
        session.add(obj)
    return obj


@pytest.fixture
async def category(database) -> Category:
    return await _add(database, Category(name="Hydraulics", description="Pumps and seals"))


@pytest.fixture
async def pump(database, category) -> Product:
    """Base 180.00 with a catalog sale price of 144.00"""
    return await _add(database, Product(
        name="Hydraulic Pump 24V",
        sku="HYD-PMP-001",
        price=Decimal("180.00"),
        sale_price=Decimal("144.00"),
        stock=12,
        category_id=category.id,
    ))


@pytest.fixture
async def seal_kit(database, category) -> Product:
    """Base 42.50, no sale price"""
    return await _add(database, Product(
        name="Lift Cylinder Seal Kit",
        sku="HYD-SEAL-010",
        price=Decimal("42.50"),
        stock=80,
        category_id=category.id,
    ))


@pytest.fixture
async def retail_user(database) -> User:
    return await _add(database, User(
        email="retail@example.com",
        first_name="Rauf",
        last_name="Aliyev",
        discount_percentage=0,
    ))


@pytest.fixture
async def fleet_user(database) -> User:
    """Customer with a 10% personal discount"""
    return await _add(database, User(
        email="fleet@example.com",
        first_name="Leyla",
        last_name="Mammadova",
        discount_percentage=10,
    ))


@pytest.fixture
async def unapproved_user(database) -> User:
    """Has a discount on file but is not approved yet"""
    return await _add(database, User(
        email="pending@example.com",
        discount_percentage=20,
        is_approved=False,
    ))


@pytest.fixture
async def client(commerce):
    """HTTP client against the app with test services attached"""
    app = create_api_app()
    app.state.commerce = commerce
    app.state.redis = None

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


class FakeRedis:
    """In-memory stand-in for the part of ``redis.asyncio.Redis`` the cache uses"""

    def __init__(self, fail: bool = False):
        self.data = {}
        self.ttls = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise RedisConnectionError("redis is down")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def aclose(self):
        pass


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def failing_redis() -> FakeRedis:
    return FakeRedis(fail=True)
