"""Multipart upload of staged files to the bucket.

:class:`MultipartUploader` turns a part size in megabytes into a
``boto3.s3.transfer.TransferConfig`` and uploads local files through the
S3-compatible API.  The part size is clamped to the bounds object storage
accepts for a single part (5 MB .. 5 GB); config resolution itself never
clamps.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Any, Optional

from boto3.s3.transfer import TransferConfig

from ._constants import (
    DEFAULT_PART_SIZE_MB,
    DEFAULT_UPLOAD_CONCURRENCY,
    MAX_PART_SIZE_MB,
    MB,
    MIN_PART_SIZE_MB,
)

logger = logging.getLogger(__name__)


def object_key(bucket_path: str, stream: str, filename: str) -> str:
    """Return ``bucket_path/stream/filename`` with redundant slashes removed."""
    parts = [p.strip("/") for p in (bucket_path, stream, filename) if p and p.strip("/")]
    return posixpath.join(*parts)


class MultipartUploader:
    """Upload files in parts of :attr:`part_size` bytes.

    Args:
        bucket:          Target bucket name.
        s3_client:       A boto3 S3 client (see
                         :meth:`gcs_avro.config.GcsDestinationConfig.s3_client`).
        part_size_mb:    Requested part size; defaults to 5 MB.
        max_concurrency: Number of parts uploaded in parallel.
    """

    def __init__(
        self,
        bucket: str,
        s3_client: Any,
        part_size_mb: Optional[int] = None,
        max_concurrency: int = DEFAULT_UPLOAD_CONCURRENCY,
    ) -> None:
        self.bucket = bucket
        self.s3_client = s3_client
        self.max_concurrency = max(1, max_concurrency)
        self._part_size_mb = self._bounded(
            DEFAULT_PART_SIZE_MB if part_size_mb is None else part_size_mb
        )

    @staticmethod
    def _bounded(part_size_mb: int) -> int:
        if part_size_mb < MIN_PART_SIZE_MB:
            logger.warning(
                "Part size %d MB is below the %d MB minimum; using %d MB",
                part_size_mb, MIN_PART_SIZE_MB, MIN_PART_SIZE_MB,
            )
            return MIN_PART_SIZE_MB
        if part_size_mb > MAX_PART_SIZE_MB:
            logger.warning(
                "Part size %d MB is above the %d MB maximum; using %d MB",
                part_size_mb, MAX_PART_SIZE_MB, MAX_PART_SIZE_MB,
            )
            return MAX_PART_SIZE_MB
        return part_size_mb

    @property
    def part_size(self) -> int:
        """Part size in bytes."""
        return self._part_size_mb * MB

    @property
    def transfer_config(self) -> TransferConfig:
        return TransferConfig(
            multipart_threshold=self.part_size,
            multipart_chunksize=self.part_size,
            max_concurrency=self.max_concurrency,
        )

    def upload(self, local_path: str, key: str) -> str:
        """Upload *local_path* to ``s3://bucket/key`` and return the object URI."""
        logger.debug(
            "Uploading %s to %s/%s (part size %d bytes)",
            local_path, self.bucket, key, self.part_size,
        )
        self.s3_client.upload_file(
            local_path, self.bucket, key, Config=self.transfer_config,
        )
        return f"gs://{self.bucket}/{key}"

    def __repr__(self) -> str:
        return (
            f"MultipartUploader(bucket={self.bucket!r}, part_size={self.part_size}, "
            f"max_concurrency={self.max_concurrency})"
        )
