# examprep/services/storage_client.py
# S3 兼容对象存储 (Supabase Storage / R2 / MinIO), bucket 在调用时传入

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from examprep.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class ObjectNotFoundError(StorageError):
    pass


class ObjectStorage:
    def __init__(self, config: Optional[Settings] = None, *, client: Any = None) -> None:
        config = config or default_settings
        self._s3 = client or boto3.client(
            "s3",
            region_name=config.STORAGE_REGION,
            endpoint_url=config.STORAGE_ENDPOINT,
            aws_access_key_id=config.STORAGE_ACCESS_KEY_ID,
            aws_secret_access_key=config.STORAGE_SECRET_ACCESS_KEY,
        )

    def download(self, bucket: str, path: str) -> bytes:
        try:
            resp = self._s3.get_object(Bucket=bucket, Key=path)
            return resp["Body"].read()
        except ClientError as e:
            code = (e.response.get("Error") or {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                raise ObjectNotFoundError(f"{bucket}/{path} not found") from e
            raise StorageError(f"failed to download {bucket}/{path}: {code}") from e
        except BotoCoreError as e:
            raise StorageError(f"failed to download {bucket}/{path}: {e}") from e

    def upload(self, bucket: str, path: str, content: bytes, content_type: str | None = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self._s3.put_object(Bucket=bucket, Key=path, Body=content, **extra)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"failed to upload {bucket}/{path}: {e}") from e

    def delete(self, bucket: str, path: str) -> None:
        try:
            self._s3.delete_object(Bucket=bucket, Key=path)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"failed to delete {bucket}/{path}: {e}") from e


def extract_storage_key(file_path: str, bucket: str) -> str:
    """
    Normalise a stored file reference to an object key.

    Accepts a bare key, a ``<bucket>/<key>`` path, or a storage URL such as
    ``https://host/storage/v1/object/public/<bucket>/<key>``.
    """
    if not file_path:
        return ""
    path = file_path
    if file_path.startswith("http"):
        path = urlparse(file_path).path
        marker = "/storage/v1/object/"
        idx = path.find(marker)
        if idx != -1:
            path = path[idx + len(marker):]
        for prefix in ("sign/", "public/"):
            if path.startswith(prefix):
                path = path[len(prefix):]
        path = path.lstrip("/")
    if path.startswith(f"{bucket}/"):
        path = path[len(bucket) + 1:]
    return path
