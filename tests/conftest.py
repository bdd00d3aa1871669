"""Pytest configuration and fixtures."""

import os

# Settings are read once and cached; point them at the test database first
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from accounts import models  # noqa: E402, F401
from accounts.config import Settings, get_settings  # noqa: E402
from accounts.database import Base, get_db  # noqa: E402
from accounts.errors import DeliveryError, ImageHostError  # noqa: E402
from accounts.main import app  # noqa: E402
from accounts.services.images import HostedImage, ImageHost, get_image_host  # noqa: E402
from accounts.services.mailer import get_mailer  # noqa: E402
from accounts.services.tokens import TokenService  # noqa: E402
from accounts.services.users import UserStore  # noqa: E402

SQLALCHEMY_DATABASE_URL = os.environ["DATABASE_URL"]

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "secret1"


class FakeMailer:
    """Records outgoing mail instead of talking to SMTP."""

    def __init__(self):
        self.sent: list[dict[str, str]] = []
        self.fail = False

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise DeliveryError()
        self.sent.append({"to": to_address, "subject": subject, "html": html_body})


class FakeImageHost(ImageHost):
    """Image host that keeps uploads in memory.

    Staging of uploaded files on disk is inherited unchanged.
    """

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.uploaded: list[HostedImage] = []
        self.destroyed: list[str] = []
        self.staged_files: list[str] = []
        self.fail_destroy = False

    @property
    def is_configured(self) -> bool:
        return True

    async def upload(self, local_path) -> HostedImage:
        self.staged_files.append(str(local_path))
        n = len(self.uploaded) + 1
        public_id = f"{self.folder}/avatar{n}"
        hosted = HostedImage(
            url=f"https://res.cloudinary.com/demo/image/upload/v17000000{n}/{public_id}.png",
            public_id=public_id,
        )
        self.uploaded.append(hosted)
        return hosted

    async def destroy(self, public_id: str) -> None:
        if self.fail_destroy:
            raise ImageHostError("Failed to remove image")
        self.destroyed.append(public_id)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def store(db):
    return UserStore(db)


@pytest.fixture
def tokens():
    return TokenService.from_settings(get_settings())


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def image_host(tmp_path):
    return FakeImageHost(Settings(upload_dir=str(tmp_path / "uploads")))


@pytest.fixture(scope="function")
def client(db, mailer, image_host):
    """Create a test client with database and collaborator overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_image_host] = lambda: image_host
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register a user through the API and return the response."""

    def _register(
        email: str = "a@x.com",
        name: str = "A",
        password: str = DEFAULT_PASSWORD,
        confirm_password: str | None = None,
    ):
        return client.post(
            "/api/v1/auth/register",
            json={
                "name": name,
                "email": email,
                "password": password,
                "confirmPassword": password if confirm_password is None else confirm_password,
            },
        )

    return _register


@pytest.fixture
def logged_in(client, register):
    """Register and log in a user; the client then carries the session cookie."""
    response = register()
    assert response.status_code == 201
    login = client.post(
        "/api/v1/auth/login", json={"email": "a@x.com", "password": DEFAULT_PASSWORD}
    )
    assert login.status_code == 200
    return response.json()["user"]
