"""
Pytest Configuration and Fixtures

Provides reusable fixtures for testing the annotation controls service.
"""

import os
import pytest
from datetime import datetime
from fastapi.testclient import TestClient

# Set test environment variables
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["ENVIRONMENT"] = "test"

from annotation_controls.main import app
from annotation_controls.core.config import Settings, get_settings
from annotation_controls.core.database import Base, SessionLocal, engine, get_db
from annotation_controls.core.permissions import shared_permissions
from annotation_controls.core.security import ViewerProfile
from annotation_controls.models.annotation import Annotation

ALICE = "acct:alice@hypothes.is"
BOB = "acct:bob@hypothes.is"
CAROL = "acct:carol@hypothes.is"


@pytest.fixture(scope="session")
def test_engine():
    """Create the in-memory test database."""
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_db(test_engine):
    """Create test database session."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.query(Annotation).delete()
        session.commit()
        session.close()


@pytest.fixture
def test_settings():
    """Settings used by the API under test (inline vote scheme)."""
    return Settings(VOTE_SCHEME="inline", DEFAULT_AUTHORITY="hypothes.is")


@pytest.fixture
def reply_settings():
    return Settings(VOTE_SCHEME="reply", DEFAULT_AUTHORITY="hypothes.is")


@pytest.fixture
def test_client(test_db, test_settings):
    """Create test client with database and settings dependency overrides."""
    def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return ViewerProfile(userid=ALICE, display_name="Alice A.")


@pytest.fixture
def bob():
    return ViewerProfile(userid=BOB)


@pytest.fixture
def anonymous():
    return ViewerProfile()


@pytest.fixture
def make_annotation():
    """Build an unsaved annotation with sensible defaults."""
    def _make(id="a1", user=ALICE, tags=None, references=None, permissions=None, **kwargs):
        fields = {
            "id": id,
            "user": user,
            "group": "__world__",
            "uri": "https://example.com/article",
            "target": [{"source": "https://example.com/article",
                        "selector": [{"type": "TextQuoteSelector", "exact": "quote"}]}],
            "document": {"title": ["Example article"]},
            "text": "An annotation",
            "tags": list(tags or []),
            "references": list(references or []),
            "permissions": permissions or shared_permissions(user, "__world__").to_dict(),
            "links": {"html": f"https://hyp.is/{id}"},
            "flagged_by": [],
            "hidden": False,
            "created": datetime(2024, 1, 1, 12, 0, 0),
            "updated": datetime(2024, 1, 1, 12, 0, 0),
        }
        fields.update(kwargs)
        return Annotation(**fields)
    return _make


@pytest.fixture
def saved_annotation(test_db, make_annotation):
    """A shared top-level annotation by Alice stored in the database."""
    annotation = make_annotation(id="a1", tags=["history"])
    test_db.add(annotation)
    test_db.commit()
    test_db.refresh(annotation)
    return annotation
