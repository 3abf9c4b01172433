# ticketflow/services/storage_service.py
"""Object storage for ticket attachments (S3 or local directory)"""
import os
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ticketflow.core.config import (
    STORAGE_BACKEND,
    S3_BUCKET,
    S3_REGION,
    S3_ENDPOINT_URL,
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    LOCAL_STORAGE_PATH,
)
from ticketflow.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class StoredObject:
    key: str
    size_bytes: int


def generate_storage_key(file_name: str) -> str:
    """Unique key: tickets/<epoch ms>-<uuid><ext>"""
    extension = os.path.splitext(file_name)[1].lower()
    return f"tickets/{int(time.time() * 1000)}-{uuid.uuid4()}{extension}"


class S3Storage:
    """Private S3 bucket; downloads go through presigned URLs."""

    def __init__(self, bucket: str = None, client=None):
        self.bucket = bucket or S3_BUCKET
        if not self.bucket:
            raise RuntimeError("AWS_S3_BUCKET is not configured")
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=S3_REGION,
                aws_access_key_id=AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=AWS_SECRET_ACCESS_KEY or None,
                endpoint_url=S3_ENDPOINT_URL or None,
            )
        return self._client

    def store(self, file_bytes: bytes, file_name: str, mime_type: Optional[str], uploader_id) -> StoredObject:
        key = generate_storage_key(file_name)
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=file_bytes,
            ContentLength=len(file_bytes),
            ContentType=mime_type or "application/octet-stream",
            Metadata={
                "originalName": file_name,
                "uploadedBy": str(uploader_id) if uploader_id is not None else "unknown",
            },
        )
        logger.info(f"Stored {file_name} as {key}")
        return StoredObject(key=key, size_bytes=len(file_bytes))

    def delete(self, key: str) -> bool:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error deleting {key} from S3: {e}")
            return False

    def signed_url(self, key: str, ttl_seconds: int = 3600) -> Optional[str]:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error generating signed URL for {key}: {e}")
            return None


class LocalStorage:
    """Filesystem storage for development."""

    def __init__(self, root: str = None):
        self.root = Path(root or LOCAL_STORAGE_PATH)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root / key

    def store(self, file_bytes: bytes, file_name: str, mime_type: Optional[str], uploader_id) -> StoredObject:
        key = generate_storage_key(file_name)
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(file_bytes)
        logger.info(f"Stored {file_name} locally as {key}")
        return StoredObject(key=key, size_bytes=len(file_bytes))

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except OSError as e:
            logger.error(f"Error deleting local file {key}: {e}")
            return False

    def signed_url(self, key: str, ttl_seconds: int = 3600) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.resolve().as_uri()


_storage = None


def get_storage():
    """FastAPI dependency returning the configured storage backend."""
    global _storage
    if _storage is None:
        if STORAGE_BACKEND == "local":
            _storage = LocalStorage()
        else:
            _storage = S3Storage()
    return _storage
