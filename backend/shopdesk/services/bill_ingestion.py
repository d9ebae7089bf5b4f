"""
Purchase bill ingestion: uploaded bill in, inventory updated.

PIPELINE:
1. Validate the upload (size, image/PDF type)
2. Store the original file            -> StorageError aborts, nothing written
3. Extract structured line items      -> ExtractionError aborts, nothing written
4. Record the PurchaseBill
5. Apply each line in its own SAVEPOINT: update the matching item or create
   a new one, then write the PurchaseItem audit row. A failing line is rolled
   back on its own and reported; the remaining lines still go through.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator, List, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ai.bill_schema import ExtractedBill, ExtractedLine
from shopdesk.core.config import settings
from shopdesk.core.exceptions import ExtractionError, ItemUpsertError, NotFoundError, ValidationError
from shopdesk.models.item import Item
from shopdesk.models.purchase import PurchaseBill, PurchaseItem
from shopdesk.schemas.bill import (
    BillUpload,
    IngestionResult,
    IngestionSummary,
    ProcessedItem,
    PurchaseBillRecord,
    PurchaseLineRecord,
)
from shopdesk.services import inventory_service

logger = logging.getLogger(__name__)

ACTION_UPDATED = "updated"
ACTION_CREATED = "created"

# Column limits: Integer quantities, Numeric(10, 2) money
MAX_QUANTITY = 2**31 - 1
MAX_AMOUNT = Decimal("99999999.99")


@dataclass
class LineSuccess:
    line: ExtractedLine
    item: Item
    action: str


@dataclass
class LineFailure:
    line: ExtractedLine
    error: ItemUpsertError


LineResult = Union[LineSuccess, LineFailure]


def validate_upload(upload: BillUpload) -> None:
    if upload.size == 0:
        raise ValidationError("Bill image is required")
    if upload.size > settings.MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File too large: {upload.size} bytes (limit {settings.MAX_UPLOAD_BYTES} bytes)"
        )
    if not (upload.content_type.startswith("image/") or upload.content_type == "application/pdf"):
        raise ValidationError("Only image and PDF files are allowed")


def _whole_quantity(line: ExtractedLine) -> int:
    if not line.quantity.is_finite():
        raise ItemUpsertError(line.item, f"quantity is not a number, got {line.quantity}")
    if line.quantity <= 0:
        raise ItemUpsertError(line.item, f"quantity must be positive, got {line.quantity}")
    if line.quantity != line.quantity.to_integral_value():
        raise ItemUpsertError(line.item, f"quantity must be a whole number, got {line.quantity}")
    if line.quantity > MAX_QUANTITY:
        raise ItemUpsertError(line.item, f"quantity out of range, got {line.quantity}")
    return int(line.quantity)


def _amount(line: ExtractedLine, field: str, value: Decimal) -> Decimal:
    if not value.is_finite() or abs(value) > MAX_AMOUNT:
        raise ItemUpsertError(line.item, f"{field} out of range, got {value}")
    if value < 0:
        raise ItemUpsertError(line.item, f"{field} cannot be negative, got {value}")
    return value.quantize(Decimal("0.01"))


def upsert_line(db: Session, bill: PurchaseBill, line: ExtractedLine) -> LineSuccess:
    """
    Apply one extracted line to inventory and write its audit row.

    Runs inside the caller's savepoint; raises ItemUpsertError on any problem.
    """
    quantity = _whole_quantity(line)
    price = _amount(line, "price", line.price)
    total = _amount(line, "total", line.total)

    try:
        item = inventory_service.find_by_name(db, line.item)
        if item is not None:
            inventory_service.increment_stock(db, item.id, quantity, cost_price=price)
            db.refresh(item)
            action = ACTION_UPDATED
        else:
            item = Item(
                name=inventory_service.normalize_name(line.item),
                quantity=quantity,
                unit_price=price,
                cost_price=price,
            )
            db.add(item)
            db.flush()
            action = ACTION_CREATED

        db.add(PurchaseItem(
            bill_id=bill.id,
            item_id=item.id,
            quantity=quantity,
            unit_price=price,
            total_price=total,
        ))
        db.flush()
    except (SQLAlchemyError, NotFoundError, ArithmeticError) as e:
        raise ItemUpsertError(line.item, str(e)) from e

    return LineSuccess(line=line, item=item, action=action)


def iter_line_results(db: Session, bill: PurchaseBill, lines: List[ExtractedLine]) -> Iterator[LineResult]:
    """
    Lazily apply lines one at a time, each committed or rolled back on its own.
    """
    for line in lines:
        savepoint = db.begin_nested()
        try:
            result = upsert_line(db, bill, line)
            savepoint.commit()
            db.commit()
        except ItemUpsertError as e:
            savepoint.rollback()
            logger.error(f"Error processing item \"{line.item}\": {e.reason}")
            yield LineFailure(line=line, error=e)
            continue
        logger.debug(f"Bill {bill.id}: {result.action} item {result.item.id} '{result.item.name}'")
        yield result


def summarize(bill: ExtractedBill, results: List[LineResult]) -> IngestionSummary:
    successes = [r for r in results if isinstance(r, LineSuccess)]
    failures = [r for r in results if isinstance(r, LineFailure)]
    return IngestionSummary(
        totalItems=len(bill.items),
        processedItems=len(successes),
        failedItems=len(failures),
        vendor=bill.vendor,
        totalAmount=bill.grand_total,
        errors=[f.error.message for f in failures],
    )


def _processed_item(result: LineSuccess) -> ProcessedItem:
    item = result.item
    return ProcessedItem(
        id=item.id,
        name=item.name,
        quantity=item.quantity,
        unit_price=item.unit_price,
        cost_price=item.cost_price,
        action=result.action,
        purchased_quantity=int(result.line.quantity),
        purchase_price=result.line.price,
    )


def process_bill(db: Session, upload: BillUpload, storage, extractor) -> IngestionResult:
    """
    Run the whole ingestion pipeline for one uploaded bill.

    Raises:
        ValidationError: empty, oversized or wrong-type upload
        StorageError: the original file could not be stored
        ExtractionError: no usable bill data could be extracted
    """
    validate_upload(upload)
    logger.info(f"Processing bill: {upload.filename} ({upload.size} bytes)")

    image_url = storage.store(upload.data, upload.filename, upload.content_type, "bills")

    try:
        extracted = extractor.extract(upload.data, upload.content_type)
    except ExtractionError:
        # Nothing references the stored file yet
        if not storage.delete(image_url):
            logger.warning(f"Could not remove stored bill image {image_url}")
        raise

    try:
        bill = PurchaseBill(
            vendor_name=extracted.vendor,
            bill_number=extracted.bill_number,
            total_amount=extracted.grand_total,
            bill_image_url=image_url,
            processed_data=extracted.to_payload(),
        )
        db.add(bill)
        db.commit()
        db.refresh(bill)
    except SQLAlchemyError:
        db.rollback()
        raise

    results = list(iter_line_results(db, bill, extracted.items))
    summary = summarize(extracted, results)
    logger.info(
        f"Bill {bill.id} from '{summary.vendor}': processed {summary.processedItems} "
        f"of {summary.totalItems} item(s)"
    )

    processed = [_processed_item(r) for r in results if isinstance(r, LineSuccess)]
    return IngestionResult(bill=get_purchase_bill(db, bill.id), items=processed, summary=summary)


# ==============================================================================
# READ SIDE
# ==============================================================================

def to_record(bill: PurchaseBill) -> PurchaseBillRecord:
    lines = [
        PurchaseLineRecord(
            id=line.id,
            item_id=line.item_id,
            item_name=line.item.name if line.item else None,
            category=line.item.category if line.item else None,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
        )
        for line in bill.items
    ]
    return PurchaseBillRecord(
        id=bill.id,
        vendor_name=bill.vendor_name,
        bill_number=bill.bill_number,
        total_amount=bill.total_amount,
        bill_image_url=bill.bill_image_url,
        processed_data=bill.processed_data,
        status=bill.status,
        created_at=bill.created_at,
        item_count=len(lines),
        items=lines,
    )


def get_purchase_bill(db: Session, bill_id: int) -> PurchaseBillRecord:
    bill = (
        db.query(PurchaseBill)
        .options(selectinload(PurchaseBill.items).selectinload(PurchaseItem.item))
        .filter(PurchaseBill.id == bill_id)
        .first()
    )
    if not bill:
        raise NotFoundError("Purchase bill not found")
    return to_record(bill)


def list_purchase_bills(db: Session, limit: int = 50, offset: int = 0) -> List[PurchaseBillRecord]:
    bills = (
        db.query(PurchaseBill)
        .options(selectinload(PurchaseBill.items).selectinload(PurchaseItem.item))
        .order_by(PurchaseBill.created_at.desc(), PurchaseBill.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return [to_record(bill) for bill in bills]
