"""
Object storage for bill images and generated PDFs.

MinIOStorage is used when MINIO_ENDPOINT is configured. Otherwise files are
written under UPLOAD_DIR and served by the API at /uploads, so every stored
file still gets a stable URL.
"""
import io
import logging
import secrets
import time
from pathlib import Path
from urllib.parse import urlparse

from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError as TransportError

from shopdesk.core.config import settings
from shopdesk.core.exceptions import StorageError

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/uploads"


def generate_file_name(filename: str) -> str:
    """<epoch-ms>-<random hex>.<original extension>"""
    extension = Path(filename or "").suffix.lower().lstrip(".") or "bin"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"


class LocalStorage:
    """Development fallback: files on local disk."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root or settings.UPLOAD_DIR)

    def store(self, data: bytes, filename: str, mime_type: str, folder: str = "bills") -> str:
        target_dir = self.root / folder
        name = generate_file_name(filename)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            (target_dir / name).write_bytes(data)
        except OSError as e:
            logger.error(f"Local file save error: {e}")
            raise StorageError(f"Local file save failed: {e}") from e

        url = f"{LOCAL_URL_PREFIX}/{folder}/{name}"
        logger.info(f"File saved locally: {url} ({len(data)} bytes, {mime_type})")
        return url

    def path_for(self, url: str) -> Path | None:
        if not url.startswith(LOCAL_URL_PREFIX + "/"):
            return None
        relative = url[len(LOCAL_URL_PREFIX) + 1:]
        path = (self.root / relative).resolve()
        # Refuse anything that escapes the upload root
        if self.root.resolve() not in path.parents:
            return None
        return path

    def delete(self, url: str) -> bool:
        path = self.path_for(url)
        if path is None:
            return False
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Local file delete error: {e}")
            return False
        logger.info(f"Local file deleted: {url}")
        return True


class MinIOStorage:
    """S3-compatible object storage through the MinIO SDK."""

    def __init__(self, client: Minio | None = None, bucket_name: str | None = None, public_url: str | None = None):
        self.client = client or Minio(
            settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL,
        )
        self.bucket_name = bucket_name or settings.MINIO_BUCKET_NAME
        scheme = "https" if settings.MINIO_USE_SSL else "http"
        self.public_url = (public_url or settings.MINIO_PUBLIC_URL or f"{scheme}://{settings.MINIO_ENDPOINT}").rstrip("/")
        self._bucket_ready = False

    def _ensure_bucket_exists(self):
        """Ensure the bucket exists, create if it doesn't"""
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(self.bucket_name):
            self.client.make_bucket(self.bucket_name)
            logger.info(f"Created MinIO bucket: {self.bucket_name}")
        self._bucket_ready = True

    def store(self, data: bytes, filename: str, mime_type: str, folder: str = "bills") -> str:
        key = f"{folder}/{generate_file_name(filename)}"
        try:
            self._ensure_bucket_exists()
            self.client.put_object(
                self.bucket_name,
                key,
                io.BytesIO(data),
                length=len(data),
                content_type=mime_type,
            )
        except (S3Error, TransportError) as e:
            logger.error(f"MinIO upload error: {e}")
            raise StorageError(f"File upload failed: {e}") from e

        url = f"{self.public_url}/{self.bucket_name}/{key}"
        logger.info(f"File uploaded to object storage: {url}")
        return url

    def key_for(self, url: str) -> str | None:
        path = urlparse(url).path.lstrip("/")
        prefix = f"{self.bucket_name}/"
        if not path.startswith(prefix):
            return None
        return path[len(prefix):]

    def delete(self, url: str) -> bool:
        """Delete file from MinIO"""
        key = self.key_for(url)
        if key is None:
            return False
        try:
            self.client.remove_object(self.bucket_name, key)
        except (S3Error, TransportError) as e:
            logger.error(f"MinIO file deletion error: {e}")
            return False
        logger.info(f"File deleted from object storage: {key}")
        return True


def build_storage():
    """MinIO when configured, local disk otherwise."""
    if settings.storage_configured:
        return MinIOStorage()
    logger.warning("MINIO_ENDPOINT not configured. File uploads will be stored locally.")
    return LocalStorage()
