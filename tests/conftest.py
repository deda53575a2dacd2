from collections.abc import Generator, Iterator
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from finance_tracker.app import create_app
from finance_tracker.storage.database import Database
from finance_tracker.storage.transactions import TransactionStore
from finance_tracker.storage.users import UserStore

# A Wednesday.
FIXED_NOW = datetime(2024, 6, 12, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def database() -> Iterator[Database]:
    db = Database("sqlite+pysqlite:///:memory:")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def users(database: Database) -> UserStore:
    return UserStore(database)


@pytest.fixture
def store(database: Database) -> TransactionStore:
    return TransactionStore(database)


@pytest.fixture
def alice(users: UserStore) -> str:
    return users.create(email="alice@mail.com", password_hash="x", name="Alice").id


@pytest.fixture
def bob(users: UserStore) -> str:
    return users.create(email="bob@mail.com", password_hash="x", name="Bob").id


@pytest.fixture
def client(database: Database) -> Generator[TestClient, None, None]:
    app = create_app(database=database)
    with TestClient(app) as test_client:
        yield test_client


def register(client: TestClient, email: str, password: str = "s3cret-pass", name: str = "") -> dict[str, str]:
    response = client.post("/auth/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def alice_headers(client: TestClient) -> dict[str, str]:
    return register(client, "alice@mail.com", name="Alice")


@pytest.fixture
def bob_headers(client: TestClient) -> dict[str, str]:
    return register(client, "bob@mail.com", name="Bob")


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
