"""
Receipt ingestion pipeline.

One orchestrator for every entry point:
validate → dedup → store bytes → extract → normalize → persist.
``IngestMode`` decides how far a request goes and how rejections surface.
"""
from __future__ import annotations

import logging
from typing import Optional

from app.receipts.errors import IngestionError, PersistenceError, ValidationError
from app.receipts.models import FileRecordModel, FileStatus
from app.receipts.pipeline.dedup import resolve_duplicate
from app.receipts.pipeline.extractor import ExtractionClient
from app.receipts.pipeline.locks import FileLocks, file_locks
from app.receipts.pipeline.normalizer import normalize_fields
from app.receipts.pipeline.validator import validate_document
from app.receipts.schemas import IngestMode, IngestOutcome, UploadedDocument
from app.receipts.storage import FileStorage, sanitize_filename
from app.receipts.store import RecordStore

logger = logging.getLogger(__name__)


class ReceiptIngestor:
    def __init__(
        self,
        store: RecordStore,
        storage: FileStorage,
        extractor: ExtractionClient,
        locks: FileLocks = file_locks,
    ):
        self.store = store
        self.storage = storage
        self.extractor = extractor
        self.locks = locks

    def ingest(self, doc: UploadedDocument, mode: IngestMode) -> IngestOutcome:
        logger.info("Ingest start — mode=%s file=%s", mode.value, doc.file_name)

        # the dedup key is the name the bytes are stored under, so two names
        # that land on the same path are the same document
        key = sanitize_filename(doc.file_name)
        if not key:
            raise ValidationError(f"unusable file name: {doc.file_name!r}")
        doc = doc.model_copy(update={"file_name": key})

        check = validate_document(doc.content_type)
        if not check.is_valid:
            logger.info("Rejected %s: %s", doc.file_name, check.reason)
            if mode is IngestMode.VALIDATE:
                return self._record_invalid(doc, check.reason)
            raise ValidationError(check.reason)

        with self.locks.hold(doc.file_name):
            existing = resolve_duplicate(self.store, doc.file_name)
            record = self._store(doc, existing)
            if not mode.extracts:
                return IngestOutcome(
                    mode=mode,
                    file_name=doc.file_name,
                    file_id=record.id,
                    file_path=record.file_path,
                    message="Uploaded file is valid" if mode is IngestMode.VALIDATE else "File uploaded",
                )
            return self._extract_and_persist(doc, record, mode)

    # ── stages ───────────────────────────────────────────────────────────
    def _record_invalid(self, doc: UploadedDocument, reason: Optional[str]) -> IngestOutcome:
        with self.locks.hold(doc.file_name):
            existing = self.store.find_file(doc.file_name)
            if existing is None:
                record = self.store.create_file(
                    doc.file_name,
                    file_path=None,
                    is_valid=False,
                    invalid_reason=reason,
                    status=FileStatus.UNPROCESSED,
                    is_processed=False,
                )
            elif not existing.is_processed:
                record = self.store.update_file(existing.id, is_valid=False, invalid_reason=reason)
            else:
                # a completed file keeps its record; the rejection is only reported
                record = existing
        return IngestOutcome(
            mode=IngestMode.VALIDATE,
            file_name=doc.file_name,
            file_id=record.id,
            file_path=record.file_path,
            is_valid=False,
            message=f"Uploaded file is invalid: {reason}",
        )

    def _store(self, doc: UploadedDocument, existing: Optional[FileRecordModel]) -> FileRecordModel:
        path = self.storage.save(doc.file_name, doc.content)
        values = dict(
            file_path=path,
            is_valid=True,
            invalid_reason=None,
            status=FileStatus.STORED,
            is_processed=False,
        )
        if existing is None:
            return self.store.create_file(doc.file_name, **values)
        return self.store.update_file(existing.id, **values)

    def _extract_and_persist(
        self, doc: UploadedDocument, record: FileRecordModel, mode: IngestMode
    ) -> IngestOutcome:
        try:
            extracted = self.extractor.extract(doc.content, doc.file_name, doc.content_type)
            self.store.update_file(record.id, status=FileStatus.EXTRACTED)

            fields = normalize_fields(extracted)
            merchant_exists = self.store.merchant_exists(fields.merchant_name)
            # receipt row and the file's complete flag commit together; only a
            # persisted receipt makes the file a duplicate for later uploads
            receipt = self.store.create_receipt(fields, record.file_path, completes_file=record.id)
        except IngestionError as e:
            self._mark_failed(record, e)
            raise

        logger.info(
            "Ingest complete — file=%s receipt=%s merchant_exists=%s",
            doc.file_name, receipt.id, merchant_exists,
        )
        return IngestOutcome(
            mode=mode,
            file_name=doc.file_name,
            file_id=record.id,
            file_path=record.file_path,
            message="File processed",
            result=extracted,
            receipt_id=receipt.id,
            merchant_exists=merchant_exists,
        )

    def _mark_failed(self, record: FileRecordModel, error: IngestionError) -> None:
        logger.warning("Ingest failed for %s: %s", record.file_name, error.message)
        try:
            self.store.update_file(record.id, status=FileStatus.FAILED)
        except PersistenceError:
            logger.exception("Could not mark %s as failed", record.file_name)
