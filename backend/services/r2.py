"""Cloudflare R2 file storage service for generated images."""

import asyncio
import logging

import aioboto3
from botocore.exceptions import ClientError

from backend.config import settings

logger = logging.getLogger(__name__)

# Retryable S3 error codes
_RETRYABLE_CODES = {"RequestTimeout", "ServiceUnavailable", "ThrottlingException", "Throttling"}


class R2Service:
    """Cloudflare R2 storage service using S3-compatible API."""

    def __init__(self) -> None:
        """Initialize R2 service with credentials from settings."""
        self.session = aioboto3.Session()
        self.endpoint = settings.R2_ENDPOINT
        self.access_key = settings.R2_ACCESS_KEY
        self.secret_key = settings.R2_SECRET_KEY

    def public_url(self, key: str) -> str:
        return f"{settings.R2_PUBLIC_URL.rstrip('/')}/{key}"

    async def upload_asset(self, key: str, data: bytes, content_type: str, max_retries: int = 1) -> str:
        """
        Upload a generated asset with retry on transient failures.

        Args:
            key: Object key, e.g. "images/<sha>.png"
            data: Raw bytes
            content_type: MIME type
            max_retries: Number of retries on transient failures (default 1)

        Returns:
            Public URL of the uploaded object
        """
        bucket = settings.R2_ASSET_BUCKET
        last_error: Exception | None = None

        for attempt in range(max_retries + 1):
            try:
                async with self.session.client(
                    "s3",
                    endpoint_url=self.endpoint,
                    aws_access_key_id=self.access_key,
                    aws_secret_access_key=self.secret_key,
                ) as s3:
                    await s3.put_object(
                        Bucket=bucket,
                        Key=key,
                        Body=data,
                        ContentType=content_type,
                        CacheControl="public, max-age=31536000, immutable",
                    )
                return self.public_url(key)
            except ClientError as e:
                error_code = e.response.get("Error", {}).get("Code", "")
                if error_code in _RETRYABLE_CODES and attempt < max_retries:
                    wait_time = 2**attempt
                    logger.warning("R2 upload error (attempt %d), retrying in %ds: %s", attempt + 1, wait_time, e)
                    await asyncio.sleep(wait_time)
                    last_error = e
                else:
                    raise
            except OSError as e:
                # Network errors, timeouts, etc.
                if attempt < max_retries:
                    wait_time = 2**attempt
                    logger.warning("R2 upload error (attempt %d), retrying in %ds: %s", attempt + 1, wait_time, e)
                    await asyncio.sleep(wait_time)
                    last_error = e
                else:
                    raise

        raise last_error  # type: ignore[misc]


# Singleton instance
r2_service = R2Service()
