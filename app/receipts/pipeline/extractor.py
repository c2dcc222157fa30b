"""
Extraction client: document bytes + a fixed instruction go to an
OpenAI-compatible multimodal model, the free-text reply comes back as a
dict of fields.
"""
from __future__ import annotations

import base64
import json
import logging
from typing import Any, Optional

import openai
from openai import OpenAI

from app.config import settings
from app.receipts.errors import ExtractionError

logger = logging.getLogger(__name__)

RECEIPT_PROMPT = """Extract ONLY the following in JSON format:
{
  "merchant_name": "[name]",
  "receipt_date": "[date]",
  "amount": "[total amount]"
}
Return ONLY JSON, no extra text."""

NO_JSON = {"error": "no JSON found"}


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------

def _balanced_object_end(text: str, start: int) -> Optional[int]:
    """Index just past the ``}`` closing the ``{`` at *start*, if any."""
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return idx + 1
    return None


def parse_reply(text: Optional[str]) -> dict[str, Any]:
    """Parse the first balanced JSON object in *text*.

    Models like to wrap the object in prose or code fences, so every ``{``
    is tried in order. Returns ``{"error": "no JSON found"}`` instead of
    raising when nothing parses.
    """
    if not text:
        return dict(NO_JSON)
    start = text.find("{")
    while start != -1:
        end = _balanced_object_end(text, start)
        if end is not None:
            try:
                value = json.loads(text[start:end])
            except json.JSONDecodeError:
                value = None
            if isinstance(value, dict):
                return value
        start = text.find("{", start + 1)
    return dict(NO_JSON)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class ExtractionClient:
    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: Optional[str] = None,
        prompt: str = RECEIPT_PROMPT,
    ):
        self._client = client
        self.model = model or settings.LLM_MODEL
        self.prompt = prompt

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not settings.LLM_API_KEY:
                raise ExtractionError("extraction service is not configured (LLM_API_KEY)")
            self._client = OpenAI(
                api_key=settings.LLM_API_KEY,
                base_url=settings.LLM_BASE_URL or None,
                timeout=settings.LLM_TIMEOUT_SECONDS,
                max_retries=0,
            )
        return self._client

    def generate(self, content: bytes, file_name: str, content_type: str) -> str:
        """Send the document and instruction, return the raw reply text."""
        encoded = base64.b64encode(content).decode("ascii")
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.prompt},
                        {
                            "type": "file",
                            "file": {
                                "filename": file_name,
                                "file_data": f"data:{content_type};base64,{encoded}",
                            },
                        },
                    ],
                }
            ],
        )
        return response.choices[0].message.content or ""

    def extract(
        self, content: bytes, file_name: str, content_type: str = "application/pdf"
    ) -> dict[str, Any]:
        logger.info("Extracting %s (%d bytes) with %s", file_name, len(content), self.model)
        try:
            reply = self.generate(content, file_name, content_type)
        except openai.APITimeoutError as e:
            logger.error("Extraction timed out for %s", file_name)
            raise ExtractionError(f"Processing failed: model call timed out ({e})") from e
        except openai.APIError as e:
            logger.error("Extraction failed for %s: %s", file_name, e)
            raise ExtractionError(f"Processing failed: {e}") from e

        fields = parse_reply(reply)
        if "error" in fields:
            logger.warning("No JSON object in model reply for %s", file_name)
        else:
            logger.info("Extracted fields for %s: %s", file_name, sorted(fields))
        return fields


def get_extraction_client() -> ExtractionClient:
    """FastAPI dependency; tests override it with a canned client."""
    return ExtractionClient()
