"""
Receipt ingestion API.

POST /api/receipts/upload-receipt — store, extract, persist; reply with fields
POST /api/receipts/upload         — store + register only
POST /api/receipts/validate       — type check; invalid uploads are recorded
POST /api/receipts/process        — like upload-receipt, with an outcome flag
GET  /api/receipts/list-receipts                 — list receipts (alias: /api/receipts)
GET  /api/receipts/get-receipt-detail/{id}       — one receipt (alias: /api/receipts/{id})
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.receipts.database import get_db
from app.receipts.errors import IngestionError, ValidationError
from app.receipts.models import ReceiptRecordModel
from app.receipts.pipeline import ReceiptIngestor
from app.receipts.pipeline.extractor import ExtractionClient, get_extraction_client
from app.receipts.schemas import (
    IngestMode,
    ProcessResponse,
    ReceiptDetailResponse,
    ReceiptListResponse,
    ReceiptOut,
    UploadedDocument,
    UploadResponse,
    ValidateResponse,
)
from app.receipts.storage import FileStorage
from app.receipts.store import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter()


def get_storage() -> FileStorage:
    return FileStorage(settings.RECEIPTS_DIR)


def get_ingestor(
    db: Session = Depends(get_db),
    storage: FileStorage = Depends(get_storage),
    extractor: ExtractionClient = Depends(get_extraction_client),
) -> ReceiptIngestor:
    return ReceiptIngestor(RecordStore(db), storage, extractor)


def _to_document(file: Optional[UploadFile]) -> UploadedDocument:
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")
    return UploadedDocument(
        file_name=file.filename,
        content_type=file.content_type,
        content=file.file.read(),
    )


def _receipt_out(row: ReceiptRecordModel) -> ReceiptOut:
    return ReceiptOut(
        id=row.id,
        merchant_name=row.merchant_name,
        purchased_at=row.purchased_at,
        total_amount=float(row.total_amount),
        file_path=row.file_path,
        created_at=row.created_at,
    )


# ── POST /api/receipts/upload-receipt ────────────────────────────────────
@router.post("/receipts/upload-receipt")
def upload_receipt(
    file: Optional[UploadFile] = File(None),
    ingestor: ReceiptIngestor = Depends(get_ingestor),
) -> dict[str, Any]:
    outcome = ingestor.ingest(_to_document(file), IngestMode.EXTRACT)
    return {**(outcome.result or {}), "merchant_exists": outcome.merchant_exists}


# ── POST /api/receipts/upload ────────────────────────────────────────────
@router.post("/receipts/upload", response_model=UploadResponse)
def upload(
    file: Optional[UploadFile] = File(None),
    ingestor: ReceiptIngestor = Depends(get_ingestor),
):
    outcome = ingestor.ingest(_to_document(file), IngestMode.UPLOAD)
    return UploadResponse(
        message=outcome.message,
        file_name=outcome.file_name,
        file_path=outcome.file_path,
    )


# ── POST /api/receipts/validate ──────────────────────────────────────────
@router.post("/receipts/validate", response_model=ValidateResponse)
def validate(
    file: Optional[UploadFile] = File(None),
    ingestor: ReceiptIngestor = Depends(get_ingestor),
):
    outcome = ingestor.ingest(_to_document(file), IngestMode.VALIDATE)
    return ValidateResponse(is_valid=outcome.is_valid, message=outcome.message)


# ── POST /api/receipts/process ───────────────────────────────────────────
@router.post("/receipts/process", response_model=ProcessResponse)
def process(
    file: Optional[UploadFile] = File(None),
    ingestor: ReceiptIngestor = Depends(get_ingestor),
):
    try:
        outcome = ingestor.ingest(_to_document(file), IngestMode.PROCESS)
    except IngestionError as e:
        logger.warning("Process failed: %s", e.message)
        return JSONResponse(
            status_code=e.status_code,
            content={"isProcessed": False, "message": e.message},
        )
    result = {**(outcome.result or {}), "merchant_exists": outcome.merchant_exists}
    return ProcessResponse(is_processed=True, message=outcome.message, result=result)


# ── GET /api/receipts/list-receipts ──────────────────────────────────────
@router.get("/receipts/list-receipts", response_model=ReceiptListResponse)
@router.get("/receipts", response_model=ReceiptListResponse)
def list_receipts(db: Session = Depends(get_db)):
    rows = RecordStore(db).list_receipts()
    logger.info("Found %d receipts in database", len(rows))
    return ReceiptListResponse(receipts=[_receipt_out(r) for r in rows])


# ── GET /api/receipts/get-receipt-detail/{receipt_id} ────────────────────
@router.get("/receipts/get-receipt-detail/{receipt_id}", response_model=ReceiptDetailResponse)
@router.get("/receipts/{receipt_id}", response_model=ReceiptDetailResponse)
def get_receipt(receipt_id: str, db: Session = Depends(get_db)):
    logger.info("Fetching receipt: %s", receipt_id)
    return ReceiptDetailResponse(receipt=_receipt_out(RecordStore(db).get_receipt(receipt_id)))
