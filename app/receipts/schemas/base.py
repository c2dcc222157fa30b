"""
Pydantic v2 contracts shared by the ingestion pipeline and the API.
"""
from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Pipeline primitives
# ---------------------------------------------------------------------------

class IngestMode(str, enum.Enum):
    """Which slice of the pipeline one request runs."""
    EXTRACT = "extract"    # full pipeline, reply with the extracted fields
    UPLOAD = "upload"      # store bytes + register the file, no extraction
    VALIDATE = "validate"  # like upload, but invalid types are recorded, not raised
    PROCESS = "process"    # full pipeline, reply with an explicit outcome flag

    @property
    def extracts(self) -> bool:
        return self in (IngestMode.EXTRACT, IngestMode.PROCESS)


class UploadedDocument(BaseModel):
    """An upload as declared by the caller."""
    file_name: str
    content_type: Optional[str] = None
    content: bytes = b""


class ValidationResult(BaseModel):
    is_valid: bool
    reason: Optional[str] = None


class NormalizedReceipt(BaseModel):
    """Persistence-ready fields; ``None`` means the model did not supply it."""
    merchant_name: Optional[str] = None
    purchased_at: Optional[str] = Field(None, description="DD-MM-YYYY")
    total_amount: Optional[Decimal] = None


class IngestOutcome(BaseModel):
    """What one pass through the orchestrator produced."""
    mode: IngestMode
    file_name: str
    file_id: Optional[str] = None
    file_path: Optional[str] = None
    is_valid: bool = True
    message: str = ""
    result: Optional[dict[str, Any]] = None
    receipt_id: Optional[str] = None
    merchant_exists: bool = False


# ---------------------------------------------------------------------------
# API envelopes
# ---------------------------------------------------------------------------

class UploadResponse(BaseModel):
    message: str
    file_name: str
    file_path: Optional[str] = None


class ValidateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid")
    message: str


class ProcessResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_processed: bool = Field(..., alias="isProcessed")
    message: str
    result: Optional[dict[str, Any]] = None


class ReceiptOut(BaseModel):
    id: str
    merchant_name: str
    purchased_at: str
    total_amount: float
    file_path: str
    created_at: Optional[datetime] = None


class ReceiptListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receipts: list[ReceiptOut] = Field(default_factory=list, alias="receiptsArray")


class ReceiptDetailResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receipt: ReceiptOut = Field(..., alias="receiptDetails")
