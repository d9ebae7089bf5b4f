"""Application configuration.

Environment variables override all defaults. A local .env file is loaded
for development when python-dotenv is installed.
"""

import os
from pathlib import Path
from typing import List


# Load .env for local development (safe no-op if not installed)
try:
    from dotenv import load_dotenv  # type: ignore

    _BACKEND_DIR = Path(__file__).resolve().parents[2]
    load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)
except ImportError:
    pass


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./shopdesk.db")

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS (dashboard origins only, no wildcards)
    CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        )
    )

    # Groq API (bill extraction). Must be set via .env, never in code
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    GROQ_VISION_MODEL: str = os.getenv("GROQ_VISION_MODEL", "meta-llama/llama-4-scout-17b-16e-instruct")
    GROQ_TEXT_MODEL: str = os.getenv("GROQ_TEXT_MODEL", "llama-3.3-70b-versatile")

    # Object storage. Empty endpoint -> files are kept under UPLOAD_DIR
    MINIO_ENDPOINT: str = os.getenv("MINIO_ENDPOINT", "")
    MINIO_ACCESS_KEY: str = os.getenv("MINIO_ACCESS_KEY", "minioadmin")
    MINIO_SECRET_KEY: str = os.getenv("MINIO_SECRET_KEY", "minioadmin")
    MINIO_BUCKET_NAME: str = os.getenv("MINIO_BUCKET_NAME", "shopdesk")
    MINIO_USE_SSL: bool = os.getenv("MINIO_USE_SSL", "false").lower() in ("1", "true", "yes")
    MINIO_PUBLIC_URL: str = os.getenv("MINIO_PUBLIC_URL", "")
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", str(Path(__file__).resolve().parents[2] / "uploads"))

    # Bill uploads
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

    # Customer bill rendering after a sale commits
    BILL_RENDER_RETRIES: int = int(os.getenv("BILL_RENDER_RETRIES", "2"))
    BILL_RENDER_BACKOFF_SECONDS: float = float(os.getenv("BILL_RENDER_BACKOFF_SECONDS", "0.5"))

    # Printed on customer bills and reports
    SHOP_NAME: str = os.getenv("SHOP_NAME", "ShopDesk Store")
    SHOP_CONTACT: str = os.getenv("SHOP_CONTACT", "")

    @property
    def storage_configured(self) -> bool:
        return bool(self.MINIO_ENDPOINT and self.MINIO_BUCKET_NAME)


settings = Settings()
