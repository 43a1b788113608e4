import os
import tempfile
from pathlib import Path

# Must be set before formbuilder.core.config is imported
_TEST_DB = Path(tempfile.gettempdir()) / f"formbuilder-test-{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB}"

import pytest
from fastapi.testclient import TestClient

import formbuilder.models  # noqa: F401  (registers tables on Base.metadata)
from formbuilder.db.base import Base
from formbuilder.db.session import SessionLocal, engine, get_db
from formbuilder.main import app


@pytest.fixture()
def db_session():
    """
    Fresh schema per test. Tables are recreated instead of wrapping each test
    in a SAVEPOINT, which pysqlite does not handle cleanly.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session):
    def _get_db_override():
        yield db_session

    app.dependency_overrides[get_db] = _get_db_override
    yield TestClient(app)
    app.dependency_overrides.clear()


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    if _TEST_DB.exists():
        _TEST_DB.unlink()
