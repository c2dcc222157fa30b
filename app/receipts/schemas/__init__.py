from app.receipts.schemas.base import (  # noqa: F401
    IngestMode,
    IngestOutcome,
    NormalizedReceipt,
    ProcessResponse,
    ReceiptDetailResponse,
    ReceiptListResponse,
    ReceiptOut,
    UploadedDocument,
    UploadResponse,
    ValidateResponse,
    ValidationResult,
)
