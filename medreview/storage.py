"""S3-compatible object storage for uploaded medical documents.

Document rows only ever hold the object key; bytes live in the bucket and are
served through short-lived presigned URLs.
"""

import logging
import os
import uuid
from typing import Optional

import boto3
from botocore.config import Config

from .config import (
    PRESIGNED_URL_EXPIRATION,
    STORAGE_ACCESS_KEY_ID,
    STORAGE_ACCOUNT_ID,
    STORAGE_BUCKET_NAME,
    STORAGE_ENDPOINT_URL,
    STORAGE_SECRET_ACCESS_KEY,
)

logger = logging.getLogger(__name__)

__all__ = [
    "get_storage_client",
    "build_document_key",
    "upload_bytes",
    "delete_object",
    "generate_presigned_url",
]


def get_storage_client():
    """Create and return an R2 (S3-compatible) client."""
    endpoint_url = STORAGE_ENDPOINT_URL or f"https://{STORAGE_ACCOUNT_ID}.r2.cloudflarestorage.com"
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=STORAGE_ACCESS_KEY_ID,
        aws_secret_access_key=STORAGE_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def build_document_key(order_id: int, original_name: Optional[str]) -> str:
    """Generate a unique object key, keeping the original extension when there is one"""
    _, ext = os.path.splitext(original_name or "")
    return f"documents/{order_id}/{uuid.uuid4()}{ext.lower()}"


def upload_bytes(key: str, contents: bytes, content_type: str, client=None) -> str:
    """Store bytes under key and return the key"""
    s3 = client or get_storage_client()
    try:
        s3.put_object(
            Bucket=STORAGE_BUCKET_NAME,
            Key=key,
            Body=contents,
            ContentType=content_type,
        )
        logger.info(f"✅ Stored object {key} ({len(contents)} bytes)")
        return key
    except Exception as e:
        logger.error(f"❌ Failed to store object {key}: {e}")
        raise


def delete_object(key: str, client=None) -> None:
    s3 = client or get_storage_client()
    try:
        s3.delete_object(Bucket=STORAGE_BUCKET_NAME, Key=key)
        logger.info(f"🗑️ Deleted object {key}")
    except Exception as e:
        logger.error(f"❌ Failed to delete object {key}: {e}")
        raise

def generate_presigned_url(
    key: str,
    expiration: int = PRESIGNED_URL_EXPIRATION,
    download_name: Optional[str] = None,
    client=None,
) -> str:
    """Generate a presigned URL for reading a private object."""
    s3 = client or get_storage_client()

    params = {"Bucket": STORAGE_BUCKET_NAME, "Key": key}
    if download_name:
        params["ResponseContentDisposition"] = f'attachment; filename="{download_name}"'

    try:
        url = s3.generate_presigned_url(
            "get_object",
            Params=params,
            ExpiresIn=expiration,
        )
        logger.info(f"✅ Generated presigned URL for key: {key}")
        return url
    except Exception as e:
        logger.error(f"❌ Failed to generate presigned URL for key {key}: {e}")
        raise
