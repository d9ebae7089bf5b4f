"""FastAPI dependencies: DB session and the storage/extraction/rendering collaborators.

Tests swap any of these through app.dependency_overrides.
"""
from functools import lru_cache
from typing import Generator

from sqlalchemy.orm import Session

from ai.bill_parser import BillExtractor
from shopdesk.db.session import SessionLocal
from shopdesk.services.pdf_service import DocumentRenderer
from shopdesk.services.storage_service import build_storage


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_storage():
    """One storage backend per process (MinIO client or local directory)."""
    return build_storage()


@lru_cache
def get_extractor() -> BillExtractor:
    return BillExtractor()


def get_renderer() -> DocumentRenderer:
    return DocumentRenderer(get_storage())
