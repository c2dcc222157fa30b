from app.receipts.models.file_record import FileRecordModel, FileStatus  # noqa: F401
from app.receipts.models.receipt import ReceiptRecordModel  # noqa: F401
