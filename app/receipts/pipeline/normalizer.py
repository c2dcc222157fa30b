"""
Field normalizer: free-form model output → canonical amount and date.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from dateutil import parser as date_parser

from app.receipts.errors import NormalizationError
from app.receipts.schemas import NormalizedReceipt

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d-%m-%Y"

# Everything that is not a digit, a dot or a minus sign goes. Thousands and
# decimal separators are not told apart, so "1.234" stays 1.234.
_NON_NUMERIC = re.compile(r"[^0-9.\-]+")


def normalize_amount(raw: Any) -> Optional[Decimal]:
    """``"$1,937.66"`` → ``Decimal("1937.66")``; ``None`` passes through."""
    if raw is None:
        return None
    cleaned = _NON_NUMERIC.sub("", str(raw))
    if not cleaned:
        raise NormalizationError(f"amount {raw!r} has no numeric content")
    try:
        return Decimal(cleaned)
    except InvalidOperation as e:
        raise NormalizationError(f"amount {raw!r} is not a number") from e


def normalize_date(raw: Any) -> Optional[str]:
    """Reformat a free-text date to ``DD-MM-YYYY``.

    ISO dates are read strictly; anything else is read day-first, and as a
    last resort fuzzily (unknown tokens skipped). A fuzzy read is logged as
    low confidence but kept.
    """
    if raw is None or not str(raw).strip():
        return None
    text = str(raw).strip()

    try:
        return date_parser.isoparse(text).strftime(DATE_FORMAT)
    except ValueError:
        pass

    try:
        return date_parser.parse(text, dayfirst=True).strftime(DATE_FORMAT)
    except (ValueError, OverflowError):
        pass

    try:
        parsed = date_parser.parse(text, dayfirst=True, fuzzy=True)
    except (ValueError, OverflowError) as e:
        raise NormalizationError(f"date {raw!r} could not be parsed") from e
    logger.warning("Low-confidence date %r read as %s", text, parsed.date())
    return parsed.strftime(DATE_FORMAT)


def normalize_fields(extracted: dict[str, Any]) -> NormalizedReceipt:
    merchant = extracted.get("merchant_name")
    merchant = str(merchant).strip() if merchant is not None else None
    return NormalizedReceipt(
        merchant_name=merchant or None,
        purchased_at=normalize_date(extracted.get("receipt_date")),
        total_amount=normalize_amount(extracted.get("amount")),
    )
