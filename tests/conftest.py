import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure predictable environment variables for tests before importing the app.
BASE_DIR = Path(__file__).resolve().parents[1]
TEST_DB_PATH = BASE_DIR / "test.db"

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

# Start from an empty schema so model changes are picked up by create_all.
if TEST_DB_PATH.exists():
    TEST_DB_PATH.unlink()
os.environ.setdefault("DATABASE_URL", f"sqlite:///{TEST_DB_PATH}")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("FREE_DOWNLOAD_RESET_ENABLED", "false")
os.environ["OTP_TEST_MODE"] = "false"
os.environ.pop("SMTP_HOST", None)

import template_market.main as main  # noqa: E402  (import after env vars are set)
from template_market.database import Base, SessionLocal, engine  # noqa: E402
from template_market.models.user import Role, User  # noqa: E402
from template_market.services.email_services import EmailDispatcher, get_email_dispatcher  # noqa: E402
from template_market.services.firebase_service import FirebaseStorage, get_storage  # noqa: E402

PASSWORD = "Secret#123"


class RecordingMailer(EmailDispatcher):
    """Keeps every code and download link instead of talking to SMTP."""

    def __init__(self):
        super().__init__(host=None)
        self.codes: list[tuple[str, str]] = []
        self.links: list[dict] = []
        self.fail = False

    def send_code(self, destination: str, code: str) -> bool:
        self.codes.append((destination, code))
        return not self.fail

    def send_download_link(self, destination, url, title, recipient_name=None) -> bool:
        self.links.append({"to": destination, "url": url, "title": title, "name": recipient_name})
        return not self.fail

    def last_code(self, email: str) -> str:
        for destination, code in reversed(self.codes):
            if destination == email:
                return code
        raise AssertionError(f"no code sent to {email}")

    def sent_to(self, email: str) -> int:
        return sum(1 for destination, _ in self.codes if destination == email)


class RecordingStorage(FirebaseStorage):
    def __init__(self):
        super().__init__(credentials_file=None, bucket_name="test-bucket")
        self.uploaded: list[dict] = []
        self.deleted: list[str] = []

    def upload(self, data: bytes, filename: str, folder: str, content_type: str | None = None) -> str:
        url = f"https://storage.googleapis.com/test-bucket/{folder}/{len(self.uploaded)}-{filename}"
        self.uploaded.append({"url": url, "folder": folder, "size": len(data), "content_type": content_type})
        return url

    def delete(self, url: str) -> None:
        self.deleted.append(url)


@pytest.fixture(autouse=True)
def clean_db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
    finally:
        session.close()
    yield


@pytest.fixture()
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def storage():
    return RecordingStorage()


@pytest.fixture()
def client(monkeypatch, mailer, storage):
    """Provide a TestClient with startup tasks patched out for isolation."""
    monkeypatch.setattr(main, "run_seed", lambda: None)

    async def _noop_async(*args, **kwargs):
        return None

    monkeypatch.setattr(main.free_download_scheduler, "start", _noop_async)
    monkeypatch.setattr(main.free_download_scheduler, "stop", _noop_async)

    main.app.dependency_overrides[get_email_dispatcher] = lambda: mailer
    main.app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(main.app) as test_client:
        yield test_client

    main.app.dependency_overrides.pop(get_email_dispatcher, None)
    main.app.dependency_overrides.pop(get_storage, None)


@pytest.fixture()
def register_user(client, mailer):
    """Register through the two-step OTP flow and return the created user id."""

    def _register(email: str = "alice@example.com", password: str = PASSWORD, name: str = "Alice") -> int:
        body = {"name": name, "email": email, "password": password, "confirm_password": password}
        start = client.post("/register", json=body)
        assert start.status_code == 200, start.json()
        confirm = client.post("/register", json={**body, "otp": mailer.last_code(email)})
        assert confirm.status_code == 201, confirm.json()
        return confirm.json()["data"]["id"]

    return _register


@pytest.fixture()
def login_user(client, mailer):
    """Log in through the two-step OTP flow and return the bearer token."""

    def _login(email: str = "alice@example.com", password: str = PASSWORD) -> str:
        body = {"email": email, "password": password}
        start = client.post("/login", json=body)
        assert start.status_code == 200, start.json()
        confirm = client.post("/login", json={**body, "otp": mailer.last_code(email)})
        assert confirm.status_code == 200, confirm.json()
        return confirm.json()["data"]["token"]

    return _login


@pytest.fixture()
def auth_headers(register_user, login_user):
    def _headers(email: str = "alice@example.com", admin: bool = False) -> dict:
        register_user(email=email, name=email.split("@")[0].title())
        if admin:
            session = SessionLocal()
            try:
                session.query(User).filter(User.email == email).update({User.role: Role.ADMIN})
                session.commit()
            finally:
                session.close()
        return {"Authorization": f"Bearer {login_user(email=email)}"}

    return _headers
