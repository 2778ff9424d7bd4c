"""
Shared pytest fixtures for the risk map test suite.
Every test runs against an in-memory SQLite database and a fake chat model,
so no OpenAI credentials or network access are required.
"""
import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.db.database import create_db_engine, create_session_factory, init_db
from app.main import create_app
from app.services.generation_service import GenerationService
from app.services.risk_map_service import RiskMapService

from factories import SVG, DEFAULT_HAZARDS, fake_generation


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", position_debounce_ms=50)


@pytest.fixture
def db_session():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def service(db_session):
    return RiskMapService(db_session, generation=fake_generation(f"Here is the plan:\n{SVG}", DEFAULT_HAZARDS))


@pytest.fixture
def make_client(settings):
    """LLM 응답 목록을 받아 TestClient를 만드는 팩토리"""
    clients = []

    def _make(*responses):
        app = create_app(settings, generation_service=fake_generation(*responses) if responses else GenerationService(None))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client(SVG, DEFAULT_HAZARDS)


@pytest.fixture
def user1():
    return {"X-User-Id": "1"}


@pytest.fixture
def user2():
    return {"X-User-Id": "2"}
