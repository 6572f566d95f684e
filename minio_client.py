"""MinIO client configuration and media object helpers"""
import logging
import os
import uuid
from urllib.parse import quote, unquote, urlparse

from minio import Minio
from minio.error import S3Error

from config import settings
from errors import StorageError

logger = logging.getLogger(__name__)


def get_minio_client() -> Minio:
    """Create and return a MinIO client instance"""
    return Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE
    )


def ensure_bucket_exists(client: Minio, bucket_name: str):
    """Create bucket if it doesn't exist"""
    try:
        if not client.bucket_exists(bucket_name):
            client.make_bucket(bucket_name)
            logger.info(f"Created MinIO bucket: {bucket_name}")
        else:
            logger.info(f"MinIO bucket exists: {bucket_name}")
    except S3Error as e:
        logger.error(f"Error ensuring bucket exists: {e}")
        raise


def bucket_for(media_type: str) -> str:
    return settings.VIDEO_BUCKET if media_type == "video" else settings.PHOTO_BUCKET


def build_object_name(prefix: str, filename: str) -> str:
    """Random object name that keeps the original extension, e.g. '<event>/<uuid>.jpg'."""
    ext = os.path.splitext(filename or "")[1].lower()
    name = f"{uuid.uuid4().hex}{ext}"
    return f"{prefix}/{name}" if prefix else name


def public_url(bucket_name: str, object_name: str) -> str:
    base = settings.MINIO_PUBLIC_URL.rstrip("/")
    return f"{base}/{bucket_name}/{quote(object_name)}"


def object_name_from_url(url: str) -> str:
    """Recover '<prefix>/<file>' from a public URL (last two path segments)."""
    path = unquote(urlparse(url).path)
    return "/".join(path.split("/")[-2:])


def put_media(client: Minio, bucket_name: str, object_name: str, data, length: int,
              content_type: str):
    try:
        client.put_object(
            bucket_name=bucket_name,
            object_name=object_name,
            data=data,
            length=length,
            content_type=content_type,
        )
    except S3Error as e:
        logger.error(f"Failed to store {bucket_name}/{object_name}: {e}")
        raise StorageError(f"Storage upload failed: {e}") from e
    logger.info(f"Media uploaded to MinIO: {bucket_name}/{object_name}")


def remove_media(client: Minio, bucket_name: str, object_name: str):
    try:
        client.remove_object(bucket_name, object_name)
    except S3Error as e:
        logger.error(f"Failed to remove {bucket_name}/{object_name}: {e}")
        raise StorageError(f"Storage delete failed: {e}") from e
    logger.info(f"Removed {bucket_name}/{object_name}")


def open_media(client: Minio, bucket_name: str, object_name: str):
    """Return a streaming response object; caller must close() and release_conn()."""
    try:
        return client.get_object(bucket_name, object_name)
    except S3Error as e:
        logger.error(f"Failed to read {bucket_name}/{object_name}: {e}")
        raise StorageError(f"Storage download failed: {e}") from e
