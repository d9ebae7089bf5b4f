"""
Bill extraction: purchase bill image/PDF in, validated ExtractedBill out.

Strategy:
1. Image + Groq configured  -> vision model reads the image directly
2. PDF + Groq configured    -> text layer via pdfplumber, text model parses it
3. No Groq configured       -> OCR text, deterministic regex parser

LLM OUTPUT IS NEVER TRUSTED BLINDLY: every payload, whichever path produced
it, is validated against ai.bill_schema.ExtractedBill. Anything that does not
validate raises ExtractionError before inventory is touched.
"""

import json
import logging
from typing import Optional

from pydantic import ValidationError as SchemaValidationError

from shopdesk.core.exceptions import ExtractionError
from shopdesk.services import ocr_service

from .bill_schema import ExtractedBill
from .fallback import parse_bill_text
from .groq_client import GroqClient
from .prompts import IMAGE_PROMPT, build_text_prompt

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 10


class BillExtractor:
    """Extraction collaborator used by the bill ingestion pipeline."""

    def __init__(self, groq_client: Optional[GroqClient] = None):
        self.groq = groq_client or GroqClient()

    def extract(self, image_bytes: bytes, mime_type: str) -> ExtractedBill:
        if self.groq.is_available() and mime_type != ocr_service.PDF_MIME_TYPE:
            logger.info(f"Extracting bill with vision model ({len(image_bytes)} bytes, {mime_type})")
            raw = self.groq.complete_image(IMAGE_PROMPT, image_bytes, mime_type)
            if raw is None:
                raise ExtractionError("Bill processing failed: extraction service unavailable")
            return parse_llm_response(raw)

        text = self._document_text(image_bytes, mime_type)

        if self.groq.is_available():
            logger.info(f"Extracting bill from {len(text)} chars of text with text model")
            raw = self.groq.complete_text(build_text_prompt(text))
            if raw is None:
                raise ExtractionError("Bill processing failed: extraction service unavailable")
            return parse_llm_response(raw)

        logger.info("LLM not available - using OCR fallback parser")
        return validate_payload(parse_bill_text(text))

    @staticmethod
    def _document_text(data: bytes, mime_type: str) -> str:
        try:
            text = ocr_service.extract_text(data, mime_type)
        except ocr_service.OCRError as e:
            raise ExtractionError(f"Bill processing failed: {e}") from e
        if len(text.strip()) < MIN_TEXT_LENGTH:
            raise ExtractionError("Could not extract sufficient text from image")
        return text


def strip_code_fences(response: str) -> str:
    """The LLM sometimes wraps JSON in ```json ... ``` despite instructions."""
    response_clean = response.strip()
    if response_clean.startswith("```"):
        lines = response_clean.split("\n")
        # Remove first line (```json or ```)
        lines = lines[1:]
        # Remove last line (```)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        response_clean = "\n".join(lines).strip()
    return response_clean


def parse_llm_response(response: str) -> ExtractedBill:
    """Decode the raw LLM response and validate it."""
    try:
        data = json.loads(strip_code_fences(response))
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON from LLM: {e}; raw response starts {response[:200]!r}")
        raise ExtractionError("Failed to parse AI response as JSON") from e
    return validate_payload(data)


def validate_payload(data) -> ExtractedBill:
    if not isinstance(data, dict):
        raise ExtractionError("Invalid response structure: expected a JSON object")
    if not isinstance(data.get("items"), list):
        raise ExtractionError("Invalid response structure: items array missing")

    try:
        bill = ExtractedBill.model_validate(data)
    except SchemaValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        logger.warning(f"Bill schema validation failed: {e.error_count()} error(s)")
        raise ExtractionError(f"Invalid bill data at {location}: {first['msg']}") from e

    logger.info(f"Successfully extracted bill with {len(bill.items)} items")
    return bill
