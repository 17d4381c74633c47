import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Awaitable, Callable, Tuple

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

REPO_ROOT = Path(__file__).parent

# Set environment variables BEFORE importing app modules to bypass strict checks
os.environ["JWT_SECRET"] = "test-secret-key-for-pytest-only-12345"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["SEED_DEMO_USERS"] = "false"
os.environ.pop("CLASSIFIER_API_KEY", None)
os.environ.pop("API_KEY", None)

# Make the backend package importable without installing it
BACKEND_PATH = REPO_ROOT / "fastapi-backend"
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))

from resident_resolve.classifier import PriorityClassifier  # noqa: E402
from resident_resolve.config import get_settings  # noqa: E402
from resident_resolve.database import build_engine, get_session, init_db  # noqa: E402
from resident_resolve.dependencies import get_classifier  # noqa: E402
from resident_resolve.main import app  # noqa: E402
from resident_resolve.store import RecordStore  # noqa: E402

CLASSIFIER_URL = "https://classifier.test/v1/generate"


def _classifier_settings(api_key="test-key"):
    return replace(
        get_settings(),
        classifier_api_key=api_key,
        classifier_url=CLASSIFIER_URL,
        classifier_timeout_seconds=1.0,
    )


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """A fresh SQLite database per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine):
    return sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def store(session_factory):
    async with session_factory() as session:
        yield RecordStore(session)


@pytest_asyncio.fixture(scope="function")
async def client(session_factory):
    """In-process API client bound to the per-test database, classifier disabled."""

    async def _session_override():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_classifier] = lambda: PriorityClassifier(settings=_classifier_settings(api_key=None))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def register(client) -> Callable[..., Awaitable[Tuple[str, str]]]:
    """Return a factory that registers an account via the API and returns (uid, token)."""

    async def _create(email: str, role: str = "resident", **fields):
        payload = {"name": email.split("@")[0].title(), "email": email, "role": role}
        if role == "resident":
            payload.setdefault("student_id", f"STU-{email.split('@')[0]}")
            payload.setdefault("room_number", "204")
            payload.setdefault("facility_name", "Emerald Hall")
        payload.update(fields)
        resp = await client.post("/auth/register", json=payload)
        assert resp.status_code == 200, f"Register failed: {resp.status_code} {resp.text}"
        body = resp.json()
        return body["user"]["uid"], body["access_token"]

    return _create


@pytest.fixture
def make_classifier():
    """Return a factory for classifiers aimed at CLASSIFIER_URL."""

    def _create(api_key="test-key"):
        return PriorityClassifier(settings=_classifier_settings(api_key))

    return _create
