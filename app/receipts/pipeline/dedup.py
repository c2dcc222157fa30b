"""
Duplicate resolver — read-then-decide on the FileRecord for a name.

Callers hold the per-name lock from ``locks`` around this check and the
writes that follow it.
"""
from __future__ import annotations

import logging
from typing import Optional

from app.receipts.errors import DuplicateError
from app.receipts.models import FileRecordModel
from app.receipts.store import RecordStore

logger = logging.getLogger(__name__)


def resolve_duplicate(store: RecordStore, file_name: str) -> Optional[FileRecordModel]:
    """Return the existing unprocessed record to update, ``None`` for a new
    file, or raise ``DuplicateError`` if the name was fully processed."""
    existing = store.find_file(file_name)
    if existing is None:
        logger.info("New file: %s", file_name)
        return None
    if existing.is_processed:
        logger.info("Rejecting duplicate: %s (record %s)", file_name, existing.id)
        raise DuplicateError()
    logger.info(
        "Reprocessing %s in place (record %s, status=%s)",
        file_name, existing.id, existing.status,
    )
    return existing
