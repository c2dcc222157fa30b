"""
FileRecord: one row per uploaded document name.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String, Text

from app.receipts.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileStatus:
    """Processing state of a FileRecord. Only COMPLETE blocks reprocessing."""
    UNPROCESSED = "unprocessed"
    STORED = "stored"
    EXTRACTED = "extracted"
    COMPLETE = "complete"
    FAILED = "failed"


class FileRecordModel(Base):
    __tablename__ = "receipt_files"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Dedup key, enforced by lookup-before-write rather than a unique index
    file_name = Column(String, nullable=False, index=True)
    file_path = Column(String, nullable=True)
    is_valid = Column(Boolean, nullable=False, default=True)
    invalid_reason = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=FileStatus.UNPROCESSED)
    is_processed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
