import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/?replicaSet=rs0")
os.environ.setdefault("MONGODB_DB_NAME", "studyhub_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")

from tests.fakes import WEBHOOK_SECRET, FakeGateway, InMemoryEnrollmentStore, RecordingQueue  # noqa: E402


@pytest.fixture
def store() -> InMemoryEnrollmentStore:
    return InMemoryEnrollmentStore()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def settings():
    from studyhub.core.config import Settings
    return Settings(
        razorpay_webhook_secret=WEBHOOK_SECRET,
        razorpay_key_id="rzp_test_key",
        razorpay_key_secret="rzp_test_secret",
        notification_backend="background",
    )


@pytest_asyncio.fixture
async def client(store, gateway, queue, settings) -> AsyncGenerator[AsyncClient, None]:
    from studyhub.core.config import get_settings
    from studyhub.deps import get_enrollment_store, get_notification_queue, get_payment_gateway
    from studyhub.main import app

    app.dependency_overrides[get_enrollment_store] = lambda: store
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_queue] = lambda: queue
    app.dependency_overrides[get_settings] = lambda: settings
    # Unhandled errors must come back as 500 responses, not propagate into the test
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    from studyhub.core.security import create_access_token

    def _header(user_id: str, role: str = "student") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}

    return _header
