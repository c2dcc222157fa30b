"""
Document validator — a decision on the caller-declared content type only.
"""
from __future__ import annotations

from typing import Optional

from app.config import settings
from app.receipts.schemas import ValidationResult


def _short_name(content_type: str) -> str:
    return content_type.split("/")[-1]


def validate_document(
    content_type: Optional[str], accepted: Optional[str] = None
) -> ValidationResult:
    """Return ``ValidationResult(is_valid, reason)``; never raises."""
    accepted = accepted or settings.ACCEPTED_CONTENT_TYPE
    actual = (content_type or "").split(";")[0].strip().lower()
    if actual == accepted:
        return ValidationResult(is_valid=True)
    return ValidationResult(
        is_valid=False,
        reason=(
            f"uploaded file is not {_short_name(accepted)}, "
            f"it is {actual or 'unknown'}"
        ),
    )
