import os
import uuid
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from identity_service.config import settings
from identity_service.core import db as db_module
from identity_service.core.security import hash_password
from identity_service.main import app
from identity_service.models.user import User
from identity_service.services.uploader import AssetUploader, UploadResult, get_uploader


TEST_DB_URL = "sqlite://:memory:?cache=shared"
os.environ["DATABASE_URL"] = TEST_DB_URL
db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


class FakeUploader(AssetUploader):
    """
    In-memory stand-in for Cloudinary.
    Records every uploaded path and whether the file existed at call time.
    Uploads of files whose original name is listed in `fail_on` return None.
    """

    def __init__(self):
        self.calls: list[str] = []
        self.existed: list[bool] = []
        self.fail_on: set[str] = set()

    def is_available(self) -> bool:
        return True

    async def upload(self, local_path: str):
        self.calls.append(local_path)
        self.existed.append(os.path.exists(local_path))
        name = Path(local_path).name
        if any(name.endswith(f"-{f}") for f in self.fail_on):
            return None
        return UploadResult(url=f"https://res.example.com/image/upload/{name}")


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch) -> Path:
    """Point the staging directory at a per-test temp dir."""
    staging = tmp_path / "temp"
    monkeypatch.setattr(settings, "upload_dir", str(staging))
    return staging


@pytest.fixture
def fake_uploader():
    return FakeUploader()


@pytest_asyncio.fixture
async def db():
    """Fresh database for tests that talk to the ORM directly."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(upload_dir, fake_uploader):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    Uses https so Secure cookies round-trip through the client's cookie jar.
    """
    await _init_test_db()
    app.dependency_overrides[get_uploader] = lambda: fake_uploader
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def create_user():
    """
    Factory fixture to create users directly via ORM.
    """

    async def _create_user(password: str = "UserPass!23", **overrides) -> tuple[User, str]:
        suffix = uuid.uuid4().hex[:6]
        fields = {
            "username": f"user{suffix}",
            "email": f"{suffix}@example.com",
            "full_name": "Test User",
            "password_hash": hash_password(password),
            "avatar": "https://res.example.com/image/upload/avatar.png",
        }
        fields.update(overrides)
        user = await User.create(**fields)
        return user, password

    return _create_user
