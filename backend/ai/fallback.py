"""
Deterministic bill text parser, used when no LLM is configured.

Works on plain text (OCR output or a PDF text layer) with pattern matching:
the first line is taken as the vendor, then invoice number, date and total
are searched for, and item rows are matched line by line.
"""
import re
import logging

logger = logging.getLogger(__name__)

_CURRENCY = r"(?:rs\.?|inr|₹|\$)?\s*"
_NUMBER = r"([\d,]+(?:\.\d+)?)"

BILL_NUMBER_PATTERN = re.compile(r"(?:invoice|bill|receipt)\s*(?:no\.?|number|#)?[\s#:]*([A-Za-z]*[-/]?\d[\w-]*)", re.IGNORECASE)
DATE_PATTERN = re.compile(r"(\d{1,2}[-/][A-Za-z]{3,}[-/]\d{2,4}|\d{1,2}[-/]\d{1,2}[-/]\d{2,4}|\d{4}-\d{2}-\d{2})")
TOTAL_PATTERN = re.compile(r"(?:grand\s+total|net\s+amount|total|amount)\s*[:\-]?\s*" + _CURRENCY + _NUMBER, re.IGNORECASE)

# Name Qty Price Total
QTY_PRICE_TOTAL = re.compile(
    r"^(.+?)\s+(\d+)\s+" + _CURRENCY + _NUMBER + r"\s+" + _CURRENCY + _NUMBER + r"$",
    re.IGNORECASE,
)
# Name Price x Qty = Total
PRICE_X_QTY = re.compile(
    r"^(.+?)\s+" + _CURRENCY + _NUMBER + r"\s*[x×*]\s*(\d+)\s*=?\s*" + _CURRENCY + _NUMBER + r"$",
    re.IGNORECASE,
)

HEADER_LINE = re.compile(r"^(sr|s\.no|no\.?|item|product|description|qty|quantity|rate|price|amount)\b", re.IGNORECASE)
SUMMARY_LINE = re.compile(r"\b(sub\s*total|total|tax|gst|vat|discount|balance|change|cash|paid)\b", re.IGNORECASE)


def _to_number(text: str) -> float:
    return float(text.replace(",", ""))


def _match_item(line: str) -> dict | None:
    match = QTY_PRICE_TOTAL.match(line)
    if match:
        name, qty, price, total = match.groups()
        return {"item": name.strip(), "quantity": int(qty), "price": _to_number(price), "total": _to_number(total)}

    match = PRICE_X_QTY.match(line)
    if match:
        name, price, qty, total = match.groups()
        return {"item": name.strip(), "quantity": int(qty), "price": _to_number(price), "total": _to_number(total)}

    return None


def _loose_items(lines: list[str]) -> list[dict]:
    """
    Last resort: any line with a name and at least two numbers becomes a
    single-unit item priced at its first number.
    """
    items = []
    for line in lines:
        if SUMMARY_LINE.search(line):
            continue
        numbers = re.findall(r"\d[\d,]*(?:\.\d+)?", line)
        if len(numbers) < 2 or len(line) <= 5:
            continue
        name = re.sub(r"[\d,.]+", "", line).strip(" -:|")
        if len(name) <= 3:
            continue
        price = _to_number(numbers[0])
        items.append({"item": name, "quantity": 1, "price": price, "total": _to_number(numbers[-1]) or price})
    return items


def parse_bill_text(text: str) -> dict:
    """
    Parse bill text into the extraction wire format.

    Returns:
        {"vendor", "billNumber", "date", "grandTotal", "items": [...]}
        items may be empty; the caller decides whether that is an error.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    result = {
        "vendor": lines[0] if lines else "Unknown Vendor",
        "billNumber": "",
        "date": "",
        "grandTotal": None,
        "items": [],
    }

    bill_match = BILL_NUMBER_PATTERN.search(text)
    if bill_match:
        result["billNumber"] = bill_match.group(1)

    date_match = DATE_PATTERN.search(text)
    if date_match:
        result["date"] = date_match.group(1)

    # The last "total" on a bill is the grand total; earlier ones are subtotals
    totals = TOTAL_PATTERN.findall(text)
    if totals:
        result["grandTotal"] = _to_number(totals[-1])

    for line in lines[1:]:
        if HEADER_LINE.match(line):
            continue
        item = _match_item(line)
        if item and len(item["item"]) > 2:
            result["items"].append(item)

    if not result["items"]:
        logger.info("No items found with row patterns, trying loose extraction")
        result["items"] = _loose_items(lines[1:])

    logger.debug(f"Fallback parser found {len(result['items'])} items")
    return result
