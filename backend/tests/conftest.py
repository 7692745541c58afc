"""
Shared pytest fixtures for mailsift tests.

Each test gets its own SQLite file (via aiosqlite) so that separate
sessions see real transactions, the way they would on PostgreSQL.
"""

import json

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from mailsift.config import settings
from mailsift.db import Base, get_db
from mailsift.models import EmailRecord, Upload, UploadStatus
from mailsift.services.dispatch import LocalDispatcher
from mailsift.services.verifier import SimulatedVerifier


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Keep stored uploads inside the test's temp dir."""
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_PATH", str(path))
    return path


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_upload(session_factory):
    """Insert an upload (and optional records) directly, bypassing ingestion."""

    async def _make(emails=(), status=UploadStatus.uploaded, email_column="email",
                    original_filename="contacts.csv", additional=None):
        async with session_factory() as session:
            upload = Upload(
                filename=f"stored_{original_filename}",
                original_filename=original_filename,
                file_size=100,
                total_rows=len(emails),
                email_column=email_column,
                status=status,
            )
            session.add(upload)
            await session.flush()
            for i, email in enumerate(emails, start=1):
                extra = additional[i - 1] if additional else {"name": f"Person {i}"}
                session.add(EmailRecord(
                    upload_id=upload.id,
                    row_number=i,
                    email=email,
                    additional_data=extra if extra is None or isinstance(extra, str) else json.dumps(extra),
                ))
            await session.commit()
            return upload.id

    return _make


class RecordingDispatcher:
    """Dispatcher double that only remembers what it was asked to run."""

    def __init__(self):
        self.dispatched = []

    async def dispatch(self, upload_id):
        self.dispatched.append(upload_id)

    async def drain(self):
        return None

    async def aclose(self):
        return None


@pytest.fixture
def recording_dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def dispatcher(session_factory):
    return LocalDispatcher(session_factory, SimulatedVerifier(delay=0))


@pytest.fixture
async def client(session_factory, dispatcher):
    from mailsift.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.dispatcher = dispatcher
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    await dispatcher.drain()
    app.dependency_overrides.clear()
    app.state.dispatcher = None
