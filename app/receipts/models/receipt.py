"""
SQLAlchemy model for extracted receipt data.
"""
import uuid

from sqlalchemy import Column, DateTime, Numeric, String

from app.receipts.database import Base
from app.receipts.models.file_record import _utcnow


class ReceiptRecordModel(Base):
    __tablename__ = "receipts"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    merchant_name = Column(String, nullable=False, index=True)
    purchased_at = Column(String, nullable=False)  # DD-MM-YYYY
    total_amount = Column(Numeric(18, 4, asdecimal=True), nullable=False)
    # Back-reference to the stored bytes, not a foreign key
    file_path = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
