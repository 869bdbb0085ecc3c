import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("REDIS_URL", None)

import uuid
from typing import List

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chainxchange.core.cache import MemoryCacheBackend
from chainxchange.core.database import Base, get_db
from chainxchange.core.security import create_access_token, hash_password
from chainxchange.crud.user import user as crud_user
from chainxchange.models import payment, portfolio_history, trading, user  # noqa: F401
from chainxchange.services.coingecko import CoinGeckoClient
from chainxchange.services.market_data import MarketDataService
from chainxchange.services.retry import RetryPolicy


TEST_PASSWORD = "correct-horse"


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeCoinGecko:
    """httpx.MockTransport handler serving canned responses per API path.

    Responses registered for a path are served in order; the last one repeats.
    Paths without responses answer 404.
    """

    def __init__(self):
        self.responses = {}
        self.requests: List[httpx.Request] = []

    def add(self, path, json=None, status_code=200, headers=None, content=None):
        self.responses.setdefault(path, []).append((status_code, json, headers, content))
        return self

    def calls(self, path) -> List[httpx.Request]:
        return [r for r in self.requests if self._path(r) == path]

    def _path(self, request: httpx.Request) -> str:
        path = request.url.path
        return path[len("/api/v3"):] if path.startswith("/api/v3") else path

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.responses.get(self._path(request))
        if not queue:
            return httpx.Response(404, json={"error": "coin not found"})
        status_code, json, headers, content = queue.pop(0) if len(queue) > 1 else queue[0]
        if content is not None:
            return httpx.Response(status_code, content=content, headers=headers)
        if json is None:
            return httpx.Response(status_code, headers=headers)
        return httpx.Response(status_code, json=json, headers=headers)


@pytest.fixture(scope="function")
def database_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture(scope="function")
def db_session(database_engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=database_engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture(scope="session")
def password_hash():
    return hash_password(TEST_PASSWORD)

@pytest.fixture
def user_factory(db_session, password_hash):
    def _user_factory(username=None, wallet=0.0):
        username = username or f"trader-{uuid.uuid4().hex[:8]}"
        return crud_user.create(db_session, obj_in={
            "username": username,
            "email": f"{username}@test.com",
            "hashed_password": password_hash,
            "wallet": wallet,
            "achievements": [],
        })
    return _user_factory

@pytest.fixture
def fake_coingecko():
    return FakeCoinGecko()

@pytest.fixture
def sleeps():
    return []

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def build_market_data(fake_coingecko, sleeps, clock):
    def _build(cache_backend=None, max_attempts=3, cache_enabled=True):
        async def fake_sleep(seconds):
            sleeps.append(seconds)

        client = CoinGeckoClient(
            client=httpx.AsyncClient(transport=httpx.MockTransport(fake_coingecko))
        )
        return MarketDataService(
            cache_backend=cache_backend or MemoryCacheBackend(clock=clock),
            client=client,
            retry_policy=RetryPolicy(max_attempts, sleep=fake_sleep),
            cache_enabled=cache_enabled,
        )
    return _build

@pytest_asyncio.fixture
async def market_data(build_market_data):
    service = build_market_data()
    yield service
    await service.close()

@pytest.fixture(scope="function")
def client(db_session, build_market_data):
    import main

    main.app.state.market_data = build_market_data()
    main.app.dependency_overrides[get_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()

@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(user.id, user.username)
        return {"Authorization": f"Bearer {token}"}
    return _headers
