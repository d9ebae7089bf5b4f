"""AI Module for Groq LLM bill extraction.

Turns a purchase bill (photo or PDF) into validated structured line items.
It does NOT touch inventory - the ingestion pipeline does that.

If no LLM is configured, the system falls back to OCR + pattern parsing.
"""

from .bill_parser import BillExtractor
from .bill_schema import ExtractedBill, ExtractedLine
from .fallback import parse_bill_text

__all__ = ["BillExtractor", "ExtractedBill", "ExtractedLine", "parse_bill_text"]
