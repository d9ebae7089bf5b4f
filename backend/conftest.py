"""
Shared fixtures: in-memory SQLite, fake collaborators, API client.

Each test gets a fresh schema. Storage, extraction and rendering are replaced
with in-process fakes so no network, MinIO, Groq or Tesseract is needed.
"""
import os
import tempfile
from decimal import Decimal

# Must be set before shopdesk.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="shopdesk-uploads-"))
os.environ.setdefault("GROQ_API_KEY", "")
os.environ.setdefault("MINIO_ENDPOINT", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ai.bill_schema import ExtractedBill
from shopdesk.api import deps
from shopdesk.core.config import settings
from shopdesk.core.exceptions import StorageError
from shopdesk.db.base import Base
from shopdesk.db.session import build_engine
from shopdesk.main import app
from shopdesk.models.item import Item


class FakeStorage:
    """Keeps stored files in a dict keyed by URL."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.files = {}
        self.deleted = []

    def store(self, data, filename, mime_type, folder="bills"):
        if self.fail:
            raise StorageError("File upload failed: storage unavailable")
        url = f"memory://{folder}/{len(self.files) + 1}-{filename}"
        self.files[url] = (data, mime_type)
        return url

    def delete(self, url):
        self.deleted.append(url)
        return self.files.pop(url, None) is not None


class FakeExtractor:
    """Returns a canned payload, or raises the configured error."""

    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload
        self.error = error
        self.calls = 0

    def extract(self, image_bytes, mime_type):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ExtractedBill.model_validate(self.payload)


class FakeRenderer:
    """Records rendered bills; fails the first `failures` attempts."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.attempts = 0
        self.rendered = []

    def render_customer_bill(self, sale, lines):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise StorageError("Bill upload failed")
        self.rendered.append((sale.id, list(lines)))
        return f"memory://bills/bill-{sale.id}.pdf"

    def render_inventory_report(self, items):
        return f"memory://reports/inventory-{len(list(items))}.pdf"


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(settings, "BILL_RENDER_BACKOFF_SECONDS", 0.0)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_item(db):
    def _make(name="Widget", quantity=10, unit_price="10.00", **extra):
        item = Item(name=name, quantity=quantity, unit_price=Decimal(unit_price), **extra)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item
    return _make


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def extractor():
    return FakeExtractor(payload={
        "vendor": "Acme Supplies",
        "billNumber": "INV-1",
        "date": "2024-03-12",
        "grandTotal": 25.0,
        "items": [{"item": "Widget", "quantity": 10, "price": 2.5, "total": 25.0}],
    })


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def client(session_factory, storage, extractor, renderer):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_storage] = lambda: storage
    app.dependency_overrides[deps.get_extractor] = lambda: extractor
    app.dependency_overrides[deps.get_renderer] = lambda: renderer
    # No lifespan: the schema comes from the engine fixture
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
