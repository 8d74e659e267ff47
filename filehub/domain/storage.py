# filehub/domain/storage.py
import hashlib
import hmac
import os
import time
from dataclasses import dataclass, field
from typing import Any, Tuple
from urllib.parse import quote, urlencode, urlparse

import boto3
from loguru import logger

from ..core.config import get_settings


def parse_key(url: str) -> Tuple[str | None, str]:
    """
    Split a stored file url into (bucket, key).

    Understands s3://bucket/key, virtual-hosted https://bucket.host/key and
    path-style https://host/bucket/key. Anything else is treated as a bare key.
    """
    parsed = urlparse(url)
    if parsed.scheme == "s3":
        return parsed.netloc, parsed.path.lstrip("/")
    if parsed.scheme in ("http", "https"):
        host = parsed.hostname or ""
        path = parsed.path.lstrip("/")
        if ".s3." in host or host.endswith(".s3.amazonaws.com"):
            return host.split(".", 1)[0], path
        bucket, _, key = path.partition("/")
        return bucket, key
    return None, url.lstrip("/")


# ---------------------------------------------------------
# Base class (must come first!)
# ---------------------------------------------------------
class BlobStore:
    def get_url(self, url: str, file_name: str | None = None, expires_in: int | None = None) -> str:
        """Return a time-limited URL for downloading the blob behind `url`."""
        raise NotImplementedError


# ---------------------------------------------------------
# Local filesystem implementation
# ---------------------------------------------------------
def sign_blob(secret: str, key: str, expires: int, file_name: str) -> str:
    message = f"{key}\n{expires}\n{file_name}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


@dataclass
class LocalBlobStore(BlobStore):
    root: str
    base_url: str
    secret: str
    default_expires: int = 3600

    def get_url(self, url: str, file_name: str | None = None, expires_in: int | None = None) -> str:
        _, key = parse_key(url)
        file_name = file_name or os.path.basename(key)
        expires = int(time.time()) + int(expires_in or self.default_expires)
        query = urlencode({
            "expires": expires,
            "filename": file_name,
            "signature": sign_blob(self.secret, key, expires, file_name),
        })
        return f"{self.base_url.rstrip('/')}/api/blobs/{quote(key)}?{query}"

    def verify(self, key: str, expires: int, file_name: str, signature: str) -> bool:
        if expires < int(time.time()):
            return False
        expected = sign_blob(self.secret, key, expires, file_name)
        return hmac.compare_digest(expected, signature)

    def get_path(self, key: str) -> str:
        root = os.path.abspath(self.root)
        path = os.path.abspath(os.path.join(root, key))
        if os.path.commonpath([root, path]) != root:
            raise ValueError(f"Key escapes blob root: {key}")
        return path


# ---------------------------------------------------------
# AWS S3 implementation
# ---------------------------------------------------------
@dataclass
class S3BlobStore(BlobStore):
    bucket: str
    region: str | None = None
    endpoint_url: str | None = None
    default_expires: int = 3600
    client: Any = field(default=None, repr=False)

    def __post_init__(self):
        if self.client is None:
            self.client = boto3.client("s3", region_name=self.region, endpoint_url=self.endpoint_url or None)

    def get_url(self, url: str, file_name: str | None = None, expires_in: int | None = None) -> str:
        bucket, key = parse_key(url)
        params = {"Bucket": bucket or self.bucket, "Key": key}
        if file_name:
            params["ResponseContentDisposition"] = f'attachment; filename="{file_name}"'
        return self.client.generate_presigned_url(
            "get_object",
            Params=params,
            ExpiresIn=int(expires_in or self.default_expires),
        )


# ---------------------------------------------------------
# Factory / global getter
# ---------------------------------------------------------
_blob_instance: BlobStore | None = None

def get_blob_store() -> BlobStore:
    """Return the active blob store instance (local or S3)."""
    global _blob_instance
    if _blob_instance:
        return _blob_instance

    s = get_settings()
    if s.STORAGE_BACKEND == "local":
        os.makedirs(s.BLOB_ROOT, exist_ok=True)
        _blob_instance = LocalBlobStore(
            root=s.BLOB_ROOT,
            base_url=s.BASE_URL,
            secret=s.BLOB_SIGNING_SECRET,
            default_expires=s.DOWNLOAD_URL_EXPIRES,
        )
    elif s.STORAGE_BACKEND == "s3":
        if not s.S3_UPLOAD_BUCKET:
            raise RuntimeError("S3 backend selected but S3_UPLOAD_BUCKET is not set")
        _blob_instance = S3BlobStore(
            bucket=s.S3_UPLOAD_BUCKET,
            region=s.AWS_REGION,
            endpoint_url=s.S3_ENDPOINT_URL or None,
            default_expires=s.DOWNLOAD_URL_EXPIRES,
        )
    else:
        raise NotImplementedError(f"Unknown STORAGE_BACKEND={s.STORAGE_BACKEND}")
    logger.info("Blob store initialized: {}", type(_blob_instance).__name__)
    return _blob_instance


def reset_blob_store() -> None:
    global _blob_instance
    _blob_instance = None
