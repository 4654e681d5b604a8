"""
Pytest configuration and fixtures
Each test gets a fresh in-memory SQLite database shared by the test and the app
"""
import json
import os
import sys
from decimal import Decimal
from itertools import count
from pathlib import Path
from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Add src to path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Set test environment variables before importing
os.environ["ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-for-content-vault-tests-min-32-chars"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce log noise in tests

# Import after setting env vars
from content_vault.app import create_app
from content_vault.auth import create_access_token, get_password_hash
from content_vault.db import Base, ContentItem, Project, User, create_database_engine, get_db
from content_vault.exceptions import PaymentProcessorError, SignatureInvalid
from content_vault.services.metrics import get_metrics_collector
from content_vault.services.payment_gateway import (
    PaymentProcessor,
    ProcessorIntent,
    WebhookEvent,
    get_payment_processor,
    parse_stripe_event,
)

VALID_SIGNATURE = "t=1,v1=valid"


class FakeProcessor(PaymentProcessor):
    """In-memory stand-in for the payment processor"""

    def __init__(self):
        self._ids = count(1)
        self.intents: Dict[str, ProcessorIntent] = {}
        self.unavailable = False

    def create_intent(self, amount_cents, currency, metadata) -> ProcessorIntent:
        if self.unavailable:
            raise PaymentProcessorError("Payment processor unavailable, please retry")
        intent_id = f"pi_test_{next(self._ids)}"
        intent = ProcessorIntent(
            id=intent_id,
            status="requires_payment_method",
            amount=amount_cents,
            currency=currency,
            client_secret=f"{intent_id}_secret",
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        return intent

    def retrieve_intent(self, intent_id: str) -> ProcessorIntent:
        if self.unavailable:
            raise PaymentProcessorError("Payment processor unavailable, please retry")
        return self.intents[intent_id]

    def construct_webhook_event(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        if signature != VALID_SIGNATURE:
            raise SignatureInvalid("Invalid webhook signature")
        return parse_stripe_event(json.loads(payload))

    def set_status(self, intent_id: str, status: str):
        self.intents[intent_id].status = status


def intent_event(event_id: str, event_type: str, intent_id: str, **data) -> bytes:
    """Raw webhook body for a payment_intent event"""
    obj = {"id": intent_id, "object": "payment_intent"}
    obj.update(data)
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()


@pytest.fixture(scope="function")
def test_engine():
    """Fresh in-memory database per test"""
    engine = create_database_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def processor():
    return FakeProcessor()


@pytest.fixture(scope="session")
def app():
    return create_app()


@pytest.fixture(scope="function")
def client(app, db_session, processor):
    """Test client sharing the test's session and fake processor"""
    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_processor] = lambda: processor
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function", autouse=True)
def reset_metrics():
    """Reset metrics before each test"""
    get_metrics_collector().reset()
    yield


def make_user(db, email: str, is_admin: bool = False, password: str = "testpassword123") -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        first_name="Test",
        last_name="User",
        is_active=True,
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_item(db, project: Project, content_type: str, title: str, price: str = "25.00") -> ContentItem:
    item = ContentItem(
        project_id=project.id,
        owner_user_id=project.owner_user_id,
        title=title,
        type=content_type,
        filename=f"{title.lower().replace(' ', '-')}.{'mp4' if content_type == 'video' else 'jpg'}",
        file_url=f"https://cdn.example.com/{project.id}/{title.lower().replace(' ', '-')}",
        price=Decimal(price),
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture(scope="function")
def test_user(db_session) -> User:
    return make_user(db_session, "client@example.com")


@pytest.fixture(scope="function")
def other_user(db_session) -> User:
    return make_user(db_session, "other@example.com")


@pytest.fixture(scope="function")
def admin_user(db_session) -> User:
    return make_user(db_session, "admin@example.com", is_admin=True)


@pytest.fixture(scope="function")
def project(db_session, test_user) -> Project:
    """Project with default limits: 3 free videos, no free headshots"""
    project = Project(owner_user_id=test_user.id, name="Spring Shoot", free_video_limit=3)
    db_session.add(project)
    db_session.commit()
    db_session.refresh(project)
    return project


@pytest.fixture(scope="function")
def videos(db_session, project):
    return [make_item(db_session, project, "video", f"Video {n}") for n in range(1, 8)]


@pytest.fixture(scope="function")
def headshots(db_session, project):
    return [make_item(db_session, project, "headshot", f"Headshot {n}", price="15.00") for n in range(1, 4)]


def bearer(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest.fixture(scope="function")
def auth_headers(test_user):
    """Get authentication headers for the project owner"""
    return bearer(test_user)


@pytest.fixture(scope="function")
def admin_headers(admin_user):
    return bearer(admin_user)
