"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

os.environ.setdefault("UPLOAD_TOKEN", "test-upload-token")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ONEDRIVE__CLIENT_ID", "client-id")
os.environ.setdefault("ONEDRIVE__CLIENT_SECRET", "client-secret")
os.environ.setdefault("ONEDRIVE__TENANT_ID", "tenant")
os.environ.setdefault("ONEDRIVE__USER_EMAIL", "uploader@example.com")
os.environ.setdefault("ONEDRIVE__STORAGE_PATH", "relay")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from application.ports.storage import ChunkOutcome, DrivePort, RemoteFile, StorageArea  # noqa: E402
from infrastructure.database import create_tables  # noqa: E402
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork  # noqa: E402


class FakeDrive(DrivePort):
    """In-memory DrivePort that behaves like a resumable-upload backend."""

    def __init__(self):
        self.sessions: dict[str, tuple[str, StorageArea, bytearray]] = {}
        self.chunk_calls: list[tuple[str, int, int, int]] = []
        self.uploads: list[tuple[str, StorageArea, bytes]] = []
        self.deleted: list[tuple[str, StorageArea]] = []
        self.download_urls: dict[tuple[StorageArea, str], str] = {}

    async def open_upload_session(self, name, *, area=StorageArea.FILES):
        url = f"https://upload.example/{area.value}/{name}/{len(self.sessions)}"
        self.sessions[url] = (name, area, bytearray())
        return url

    async def upload_chunk(self, upload_url, data, start, end, total):
        self.chunk_calls.append((upload_url, start, end, total))
        name, _, received = self.sessions[upload_url]
        assert start == len(received)
        received.extend(data)
        if end + 1 == total:
            return ChunkOutcome(done=True, file=RemoteFile(name=name, size=len(received)))
        return ChunkOutcome(done=False, next_expected_ranges=[f"{end + 1}-"])

    async def upload_file(self, name, data, *, area=StorageArea.FILES):
        self.uploads.append((name, area, data))
        return RemoteFile(name=name, size=len(data), mime_type="application/octet-stream", remote_id="remote-1")

    async def delete_file(self, name, *, area=StorageArea.FILES):
        self.deleted.append((name, area))
        return True

    async def download_url(self, name, *, area=StorageArea.FILES):
        return self.download_urls.get((area, name), f"https://download.example/{area.value}/{name}")


@pytest.fixture
def fake_drive():
    return FakeDrive()


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def uow_factory(db_engine):
    session_factory = async_sessionmaker(bind=db_engine, expire_on_commit=False)

    def _factory(readonly: bool = False) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory=session_factory, readonly=readonly)

    return _factory
