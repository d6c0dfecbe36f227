import mongomock
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config import Settings
from database import DocumentStore
from main import app, configure


@pytest.fixture
def store():
    return DocumentStore(mongomock.MongoClient()["cloudverify_test"])


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL="mongodb://localhost:27017",
        DATABASE_NAME="cloudverify_test",
        APP_ID="test-app",
        DETAIL_FETCH_DELAY_MS=10,
    )


@pytest_asyncio.fixture
async def api_client(store, test_settings):
    configure(app, store, test_settings)
    await app.state.bootstrap.start()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.state.bootstrap.close()
