"""
Shared pytest fixtures — in-memory SQLite, temp byte storage, a canned
extraction client and a FastAPI TestClient wired to all three.
"""
import os
import tempfile

_DATA_DIR = tempfile.mkdtemp(prefix="receipt-ingest-")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DATA_DIR", _DATA_DIR)
os.environ.setdefault("RECEIPTS_DIR", os.path.join(_DATA_DIR, "receipt_directory"))
os.environ.setdefault("LLM_API_KEY", "")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.main import app  # noqa: E402
from app.receipts.database import Base, get_db  # noqa: E402
from app.receipts.models import FileRecordModel, ReceiptRecordModel  # noqa: F401,E402
from app.receipts.pipeline.extractor import ExtractionClient, get_extraction_client  # noqa: E402
from app.receipts.routers.receipts import get_storage  # noqa: E402
from app.receipts.storage import FileStorage  # noqa: E402

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)

CAFE_REPLY = '{"merchant_name":"Cafe X","receipt_date":"07/03/2024","amount":"$12.50"}'


class FakeExtractionClient(ExtractionClient):
    """Skips the network: returns ``reply`` or raises ``error``."""

    def __init__(self, reply: str = CAFE_REPLY):
        super().__init__(client=None, model="fake-model")
        self.reply = reply
        self.error: Exception | None = None
        self.calls = 0

    def generate(self, content, file_name, content_type):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def storage(tmp_path):
    return FileStorage(str(tmp_path / "receipt_directory"))


@pytest.fixture()
def extractor():
    return FakeExtractionClient()


@pytest.fixture()
def client(db, storage, extractor):
    def _override():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_extraction_client] = lambda: extractor
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def pdf_upload(name: str = "a.pdf", content: bytes = b"%PDF-1.4 receipt", content_type: str = "application/pdf"):
    return {"file": (name, content, content_type)}
