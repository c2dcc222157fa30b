"""
Durable byte sink for uploaded documents: one file per original name,
overwritten when the same name is reprocessed.
"""
from __future__ import annotations

import logging
import os
import re
import unicodedata

from app.receipts.errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)


def sanitize_filename(name: str) -> str:
    name = unicodedata.normalize("NFKC", name)
    name = os.path.basename(name.replace("\\", "/"))
    name = re.sub(r'[\\/:*?"<>|\x00-\x1f]', "_", name)
    return name.strip(" .")


class FileStorage:
    def __init__(self, base_dir: str):
        self.base_dir = os.path.abspath(base_dir)

    def path_for(self, file_name: str) -> str:
        safe = sanitize_filename(file_name)
        if not safe:
            raise ValidationError(f"unusable file name: {file_name!r}")
        return os.path.join(self.base_dir, safe)

    def save(self, file_name: str, content: bytes) -> str:
        path = self.path_for(file_name)
        try:
            os.makedirs(self.base_dir, exist_ok=True)
            with open(path, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error("Could not write %s: %s", path, e)
            raise PersistenceError(f"could not store file: {e}") from e
        logger.info("Stored %d bytes at %s", len(content), path)
        return path
