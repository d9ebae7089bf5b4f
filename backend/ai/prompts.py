"""
Prompts for Groq LLM: purchase bill extraction ONLY.

The LLM reads a bill and returns JSON. It does not decide prices, match
inventory, or write anything: its output is validated against
ai.bill_schema.ExtractedBill and the ingestion pipeline does the rest.
"""

# ==============================================================================
# OUTPUT CONTRACT: shared by the image and text prompts
# ==============================================================================

OUTPUT_FORMAT = """Return ONLY valid JSON in this exact format:
{
  "vendor": "Store Name",
  "billNumber": "INV-123",
  "date": "2024-01-15",
  "grandTotal": 150.50,
  "items": [
    {
      "item": "Coca-Cola 500ml",
      "quantity": 24,
      "price": 25.00,
      "total": 600.00
    }
  ]
}

Important:
- Extract ALL items visible in the bill
- Use exact product names as written
- quantity, price, total and grandTotal must be JSON numbers, not strings
- price is the unit price per item, not the line total
- Return empty string for missing vendor/billNumber/date
- No explanations, no markdown, JSON only"""


IMAGE_PROMPT = f"""Analyze this purchase bill/invoice image and extract the following information.

For each item found, provide:
- item: exact product name as written
- quantity: number of units purchased
- price: unit price per item (not total)
- total: total price for this item (quantity x price)

Also extract:
- vendor: store/vendor name
- billNumber: bill/invoice number if visible
- date: bill date if visible
- grandTotal: total bill amount

{OUTPUT_FORMAT}"""


def build_text_prompt(bill_text: str) -> str:
    """Prompt for bills we only have as text (PDF text layer or OCR output)."""
    # Bound the text so a huge PDF cannot blow the context window
    bill_text = bill_text.strip()[:12000]
    return f"""Analyze this purchase bill text and extract every purchased item, the vendor,
bill number, date and grand total.

BILL TEXT:
\"\"\"
{bill_text}
\"\"\"

{OUTPUT_FORMAT}"""
