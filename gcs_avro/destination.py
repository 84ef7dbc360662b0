"""High-level facade: write a stream to Avro and upload it to GCS.

``GcsAvroDestination`` is the primary user-facing entry point::

    from gcs_avro import GcsAvroDestination

    dest = GcsAvroDestination.from_config("destination.yaml")
    summary = dest.write_stream("users", [{"id": 1, "name": "ada"}])

Each call stages Avro files under ``staging_dir/<stream>/``, uploads them
to ``<gcs_bucket_path>/<stream>/`` in the configured bucket, and removes
the local copies once uploaded.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ._constants import DEFAULT_MAX_RECORDS_PER_FILE, DEFAULT_STAGING_DIR
from .config import GcsDestinationConfig
from .uploader import MultipartUploader, object_key
from .writer import AvroWriter

logger = logging.getLogger(__name__)

_TEMP_SUFFIX = ".tmp"


def _clean_temp_files(data_dir: str) -> int:
    """Remove leftover temp files from a previous crashed write."""
    removed = 0
    for dirpath, _dirnames, filenames in os.walk(data_dir):
        for name in filenames:
            if name.endswith(_TEMP_SUFFIX):
                os.remove(os.path.join(dirpath, name))
                removed += 1
    if removed:
        logger.info("Cleaned up %d orphaned temp file(s) from %s", removed, data_dir)
    return removed


class GcsAvroDestination:
    """Write record streams as Avro objects into a GCS bucket.

    Args:
        config:               Parsed :class:`~gcs_avro.config.GcsDestinationConfig`.
        staging_dir:          Local directory for files awaiting upload.
        s3_client:            Optional boto3 S3 client; built from *config*
                              on first use when omitted.
        max_records_per_file: Records per Avro file before starting a new one.
    """

    def __init__(
        self,
        config: GcsDestinationConfig,
        *,
        staging_dir: str = DEFAULT_STAGING_DIR,
        s3_client: Any = None,
        max_records_per_file: int = DEFAULT_MAX_RECORDS_PER_FILE,
    ) -> None:
        self.config = config
        self.staging_dir = staging_dir
        self._s3_client = s3_client
        self.writer = AvroWriter(
            codec=config.format_config.codec,
            max_records_per_file=max_records_per_file,
        )

    @classmethod
    def from_config(
        cls,
        config: Union[str, Path, Mapping[str, Any]],
        *,
        staging_dir: Optional[str] = None,
        s3_client: Any = None,
    ) -> "GcsAvroDestination":
        """Create a destination from a config file path or an already-parsed dict."""
        return cls(
            GcsDestinationConfig.from_config(config),
            staging_dir=staging_dir or DEFAULT_STAGING_DIR,
            s3_client=s3_client,
        )

    @property
    def s3_client(self) -> Any:
        if self._s3_client is None:
            self._s3_client = self.config.s3_client()
        return self._s3_client

    @property
    def uploader(self) -> MultipartUploader:
        return MultipartUploader(
            self.config.bucket_name,
            self.s3_client,
            part_size_mb=self.config.format_config.part_size_mb,
        )

    def write_stream(self, stream: str, records: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        """Write *records* for *stream* and upload the resulting files.

        Returns a summary dict.  Files that fail to upload are left in the
        staging directory and the error propagates.
        """
        if not stream:
            raise ValueError("stream name must not be empty")

        t0 = time.monotonic()
        stream_dir = os.path.join(self.staging_dir, stream)
        os.makedirs(stream_dir, exist_ok=True)
        _clean_temp_files(stream_dir)

        files, record_count = self.writer.write(records, stream_dir, stream)

        objects: List[str] = []
        if files:
            uploader = self.uploader
            for path in files:
                key = object_key(self.config.bucket_path, stream, os.path.basename(path))
                objects.append(uploader.upload(path, key))
                os.remove(path)

        elapsed = time.monotonic() - t0
        format_config = self.config.format_config
        logger.info(
            "%s: %d records in %d object(s), codec %s, part size %d bytes (%.1fs)",
            stream, record_count, len(objects), format_config.codec,
            format_config.part_size_bytes, elapsed,
        )
        return {
            "stream": stream,
            "records_written": record_count,
            "objects": objects,
            "codec": str(format_config.codec),
            "part_size_bytes": format_config.part_size_bytes,
            "duration_seconds": round(elapsed, 2),
        }

    def __repr__(self) -> str:
        return (
            f"GcsAvroDestination(bucket={self.config.bucket_name!r}, "
            f"path={self.config.bucket_path!r}, codec={str(self.config.format_config.codec)!r})"
        )
