import os
from pathlib import Path

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["CELERY_EAGER_MODE"] = "true"
os.environ["ENV"] = "test"
os.environ["POLL_MODE"] = "off"
os.environ["LLM_ENABLED"] = "false"
os.environ["UPSTREAM_API_KEY"] = "test-key"
os.environ["OBSERVABILITY_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"

import pytest
from fastapi.testclient import TestClient


@pytest.fixture(scope="session", autouse=True)
def setup_test_db_url():
    test_db = Path("./test.db")
    if test_db.exists():
        test_db.unlink()

    from newsdesk.core.config import get_settings
    from newsdesk.db.session import reset_session_for_tests

    get_settings.cache_clear()
    reset_session_for_tests()

    yield

    reset_session_for_tests()
    if test_db.exists():
        test_db.unlink()


@pytest.fixture(autouse=True)
def reset_caches():
    from newsdesk.core.config import get_settings
    from newsdesk.services.dedup import get_dedup_cache

    get_dedup_cache.cache_clear()
    yield
    get_settings.cache_clear()
    get_dedup_cache.cache_clear()


@pytest.fixture
def db(setup_test_db_url):
    from newsdesk.db.init_db import init_db
    from newsdesk.db.session import get_session_maker
    from newsdesk.models import AuditLog, ContentRecord

    init_db()
    session = get_session_maker()()
    try:
        yield session
    finally:
        session.rollback()
        session.query(AuditLog).delete()
        session.query(ContentRecord).delete()
        session.commit()
        session.close()


@pytest.fixture
def client(db):
    from newsdesk.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
