"""Bill extraction: LLM output handling, schema validation and the OCR fallback parser."""
from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaValidationError

from ai.bill_parser import BillExtractor, parse_llm_response, strip_code_fences, validate_payload
from ai.bill_schema import ExtractedBill
from ai.fallback import parse_bill_text
from shopdesk.core.exceptions import ExtractionError
from shopdesk.services import ocr_service

GOOD_JSON = """{
  "vendor": "Fresh Mart Wholesale",
  "billNumber": "FM-204",
  "date": "2024-03-12",
  "grandTotal": 95.0,
  "items": [
    {"item": "Rice 1kg", "quantity": 5, "price": 12.0, "total": 60.0},
    {"item": "Salt 500g", "quantity": 10, "price": 3.5}
  ]
}"""


class StubGroq:
    def __init__(self, response=None, available=True):
        self.response = response
        self.available = available
        self.image_calls = []
        self.text_calls = []

    def is_available(self):
        return self.available

    def complete_image(self, prompt, image_bytes, mime_type):
        self.image_calls.append(mime_type)
        return self.response

    def complete_text(self, prompt):
        self.text_calls.append(prompt)
        return self.response


def test_missing_line_total_is_computed():
    bill = parse_llm_response(GOOD_JSON)
    assert bill.vendor == "Fresh Mart Wholesale"
    assert bill.bill_number == "FM-204"
    assert bill.items[1].total == Decimal("35.0")
    assert bill.grand_total == Decimal("95.0")


def test_grand_total_defaults_to_sum_of_lines():
    bill = ExtractedBill.model_validate({
        "vendor": None,
        "items": [{"item": "Tea", "quantity": 2, "price": 4}, {"item": "Milk", "quantity": 1, "price": 1.5}],
    })
    assert bill.vendor == ""
    assert bill.grand_total == Decimal("9.5")


def test_code_fences_are_stripped():
    assert strip_code_fences("```json\n{\"a\": 1}\n```") == "{\"a\": 1}"
    assert parse_llm_response(f"```json\n{GOOD_JSON}\n```").items[0].item == "Rice 1kg"


def test_invalid_json_raises():
    with pytest.raises(ExtractionError) as exc:
        parse_llm_response("Sorry, I could not read this bill.")
    assert exc.value.message == "Failed to parse AI response as JSON"


def test_missing_items_array_raises():
    with pytest.raises(ExtractionError) as exc:
        validate_payload({"vendor": "Acme", "grandTotal": 10})
    assert exc.value.message == "Invalid response structure: items array missing"


def test_empty_items_raises():
    with pytest.raises(ExtractionError):
        validate_payload({"vendor": "Acme", "items": []})


@pytest.mark.parametrize("line", [
    {"item": "Rice", "quantity": "five", "price": 12.0},
    {"item": "Rice", "quantity": 5, "price": None},
    {"item": "Rice", "quantity": True, "price": 12.0},
    {"item": "   ", "quantity": 5, "price": 12.0},
    {"item": 42, "quantity": 5, "price": 12.0},
])
def test_malformed_lines_raise(line):
    with pytest.raises(ExtractionError) as exc:
        validate_payload({"vendor": "Acme", "items": [line]})
    assert exc.value.message.startswith("Invalid bill data at items.0")


def test_schema_accepts_field_names_and_aliases():
    by_alias = ExtractedBill.model_validate({"billNumber": "X1", "items": [{"item": "A", "quantity": 1, "price": 1}]})
    by_name = ExtractedBill(bill_number="X1", items=[{"item": "A", "quantity": 1, "price": 1}])
    assert by_alias.bill_number == by_name.bill_number == "X1"
    with pytest.raises(SchemaValidationError):
        ExtractedBill(items=[])


def test_image_goes_to_vision_model():
    groq = StubGroq(GOOD_JSON)
    bill = BillExtractor(groq).extract(b"jpeg bytes", "image/jpeg")
    assert groq.image_calls == ["image/jpeg"]
    assert groq.text_calls == []
    assert len(bill.items) == 2


def test_pdf_text_goes_to_text_model(monkeypatch):
    monkeypatch.setattr(ocr_service, "extract_text", lambda data, mime: "Fresh Mart\nRice 1kg 5 12.00 60.00")
    groq = StubGroq(GOOD_JSON)

    BillExtractor(groq).extract(b"%PDF", "application/pdf")

    assert groq.image_calls == []
    assert "Rice 1kg 5 12.00 60.00" in groq.text_calls[0]


def test_unavailable_llm_response_raises():
    with pytest.raises(ExtractionError):
        BillExtractor(StubGroq(None)).extract(b"jpeg bytes", "image/jpeg")


def test_fallback_without_llm(monkeypatch):
    monkeypatch.setattr(
        ocr_service,
        "extract_text",
        lambda data, mime: "Fresh Mart\nInvoice No: FM-204\nWidget 10 2.50 25.00\nGrand Total: 25.00",
    )
    bill = BillExtractor(StubGroq(available=False)).extract(b"png", "image/png")

    assert bill.vendor == "Fresh Mart"
    assert bill.bill_number == "FM-204"
    assert [(line.item, line.quantity, line.price) for line in bill.items] == [
        ("Widget", Decimal("10"), Decimal("2.5")),
    ]


def test_ocr_failure_becomes_extraction_error(monkeypatch):
    def broken(data, mime):
        raise ocr_service.OCRError("OCR failed: tesseract is not installed")

    monkeypatch.setattr(ocr_service, "extract_text", broken)
    with pytest.raises(ExtractionError) as exc:
        BillExtractor(StubGroq(available=False)).extract(b"png", "image/png")
    assert "tesseract is not installed" in exc.value.message


def test_too_little_text_raises(monkeypatch):
    monkeypatch.setattr(ocr_service, "extract_text", lambda data, mime: "  ok  ")
    with pytest.raises(ExtractionError) as exc:
        BillExtractor(StubGroq(available=False)).extract(b"png", "image/png")
    assert exc.value.message == "Could not extract sufficient text from image"


def test_fallback_parser_formats():
    text = "\n".join([
        "Sharma Traders",
        "Bill No: ST/991",
        "Date: 12/03/2024",
        "Item Qty Rate Amount",
        "Sugar 1kg 4 45.00 180.00",
        "Soap bar 38.00 x 3 = 114.00",
        "Subtotal 294.00",
        "GST 0.00",
        "Total: 294.00",
    ])
    data = parse_bill_text(text)

    assert data["vendor"] == "Sharma Traders"
    assert data["date"] == "12/03/2024"
    assert data["grandTotal"] == 294.0
    assert data["items"] == [
        {"item": "Sugar 1kg", "quantity": 4, "price": 45.0, "total": 180.0},
        {"item": "Soap bar", "quantity": 3, "price": 38.0, "total": 114.0},
    ]


def test_fallback_parser_loose_lines():
    data = parse_bill_text("Corner Shop\nBread loaf 30 30\nTotal 30")
    assert data["items"] == [{"item": "Bread loaf", "quantity": 1, "price": 30.0, "total": 30.0}]
