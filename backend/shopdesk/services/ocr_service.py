"""
OCR Service: turn an uploaded bill into plain text.

- Images: Tesseract (pytesseract) on a greyscaled, contrast-stretched copy
- PDFs: the embedded text layer via pdfplumber; scanned pages without a text
  layer are rasterized and sent through Tesseract

The text feeds either the Groq text prompt or the deterministic fallback parser.
"""
import io
import logging

import pdfplumber
import pytesseract
from PIL import Image, ImageFilter, ImageOps

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
PDF_OCR_RESOLUTION = 200


class OCRError(Exception):
    """Text could not be extracted from the document."""


def _prepare_image(image: Image.Image) -> Image.Image:
    """Greyscale, normalize and sharpen for better OCR."""
    image = ImageOps.grayscale(image)
    image = ImageOps.autocontrast(image)
    return image.filter(ImageFilter.SHARPEN)


def extract_text_from_image(image_bytes: bytes) -> str:
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            text = pytesseract.image_to_string(_prepare_image(image), lang="eng")
    except (OSError, pytesseract.TesseractError) as e:
        raise OCRError(f"OCR failed: {e}") from e

    logger.info(f"[OCR] Extracted {len(text)} chars from image")
    return text


def extract_text_from_pdf(pdf_bytes: bytes) -> str:
    pages = []
    try:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text() or ""
                if not page_text.strip():
                    # Scanned page: no text layer, OCR the rendered image
                    rendered = page.to_image(resolution=PDF_OCR_RESOLUTION).original
                    page_text = pytesseract.image_to_string(_prepare_image(rendered), lang="eng")
                pages.append(page_text)
    except Exception as e:
        # pdfminer raises its own syntax errors for damaged files
        raise OCRError(f"PDF text extraction failed: {e}") from e

    text = "\n".join(pages)
    logger.info(f"[OCR] Extracted {len(text)} chars from {len(pages)} PDF page(s)")
    return text


def extract_text(data: bytes, mime_type: str) -> str:
    if mime_type == PDF_MIME_TYPE:
        return extract_text_from_pdf(data)
    return extract_text_from_image(data)
