"""
Record store for the two receipt collections.

Thin layer over a SQLAlchemy session: find-by-field, create and
update-by-id, plus the receipt field checks that gate creation.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.receipts.database import Base
from app.receipts.errors import NotFoundError, PersistenceError
from app.receipts.models import FileRecordModel, FileStatus, ReceiptRecordModel
from app.receipts.schemas import NormalizedReceipt

logger = logging.getLogger(__name__)

_REQUIRED_RECEIPT_FIELDS = ("merchant_name", "purchased_at", "total_amount", "file_path")


class RecordStore:
    def __init__(self, db: Session):
        self.db = db

    # ── generic collection operations ────────────────────────────────────
    def _find_one(self, model: Type[Base], **filters: Any):
        return (
            self.db.query(model)
            .filter_by(**filters)
            .order_by(model.created_at.asc())
            .first()
        )

    def _create(self, model: Type[Base], **values: Any):
        row = model(**values)
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Create %s failed: %s", model.__tablename__, e)
            raise PersistenceError(f"could not save {model.__tablename__}: {e}") from e
        return row

    def _update(self, model: Type[Base], row_id: str, **values: Any):
        row = self.db.get(model, row_id)
        if row is None:
            raise NotFoundError(f"{model.__tablename__} {row_id} not found")
        for key, value in values.items():
            setattr(row, key, value)
        try:
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Update %s %s failed: %s", model.__tablename__, row_id, e)
            raise PersistenceError(f"could not update {model.__tablename__}: {e}") from e
        return row

    # ── file records ─────────────────────────────────────────────────────
    def find_file(self, file_name: str) -> Optional[FileRecordModel]:
        return self._find_one(FileRecordModel, file_name=file_name)

    def create_file(self, file_name: str, **values: Any) -> FileRecordModel:
        return self._create(FileRecordModel, file_name=file_name, **values)

    def update_file(self, file_id: str, **values: Any) -> FileRecordModel:
        return self._update(FileRecordModel, file_id, **values)

    # ── receipt records ──────────────────────────────────────────────────
    def merchant_exists(self, merchant_name: Optional[str]) -> bool:
        if not merchant_name:
            return False
        return self._find_one(ReceiptRecordModel, merchant_name=merchant_name) is not None

    def create_receipt(
        self,
        fields: NormalizedReceipt,
        file_path: Optional[str],
        completes_file: Optional[str] = None,
    ) -> ReceiptRecordModel:
        """Insert a receipt. With *completes_file*, that FileRecord is marked
        complete in the same commit, so neither write lands without the other."""
        values = {**fields.model_dump(), "file_path": file_path}
        missing = [name for name in _REQUIRED_RECEIPT_FIELDS if values.get(name) in (None, "")]
        if missing:
            raise PersistenceError(f"receipt validation failed: {', '.join(missing)} required")
        if values["total_amount"] < Decimal("0"):
            raise PersistenceError("receipt validation failed: total_amount cannot be negative")
        if completes_file is None:
            return self._create(ReceiptRecordModel, **values)

        file_row = self.db.get(FileRecordModel, completes_file)
        if file_row is None:
            raise NotFoundError(f"receipt_files {completes_file} not found")
        row = ReceiptRecordModel(**values)
        file_row.status = FileStatus.COMPLETE
        file_row.is_processed = True
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Create receipt for file %s failed: %s", completes_file, e)
            raise PersistenceError(f"could not save receipts: {e}") from e
        return row

    def list_receipts(self) -> list[ReceiptRecordModel]:
        return (
            self.db.query(ReceiptRecordModel)
            .order_by(ReceiptRecordModel.created_at.desc())
            .all()
        )

    def get_receipt(self, receipt_id: str) -> ReceiptRecordModel:
        row = self.db.get(ReceiptRecordModel, receipt_id)
        if row is None:
            raise NotFoundError("Receipt not found")
        return row
