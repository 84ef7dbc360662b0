"""Tests for gcs_avro.uploader -- part size bounds and upload calls."""

from __future__ import annotations

import logging

import pytest
from boto3.s3.transfer import TransferConfig

from gcs_avro.format_config import AvroFormatConfig
from gcs_avro.uploader import MultipartUploader, object_key


class TestObjectKey:
    def test_joins_parts(self):
        assert object_key("exports", "users", "f.avro") == "exports/users/f.avro"

    def test_strips_redundant_slashes(self):
        assert object_key("/exports/", "/users/", "f.avro") == "exports/users/f.avro"

    def test_empty_bucket_path(self):
        assert object_key("", "users", "f.avro") == "users/f.avro"


class TestMultipartUploader:
    def test_part_size_from_resolved_config(self, mock_s3_client):
        fc = AvroFormatConfig.from_config({"format_type": "AVRO", "part_size_mb": 6})
        uploader = MultipartUploader("b", mock_s3_client, part_size_mb=fc.part_size_mb)
        assert uploader.part_size == 6291456

    def test_default_part_size(self, mock_s3_client):
        fc = AvroFormatConfig.from_config({"format_type": "AVRO"})
        assert MultipartUploader("b", mock_s3_client, fc.part_size_mb).part_size == 5242880
        assert MultipartUploader("b", mock_s3_client).part_size == 5242880

    def test_small_part_size_raised_to_minimum(self, mock_s3_client, caplog):
        with caplog.at_level(logging.WARNING, logger="gcs_avro.uploader"):
            uploader = MultipartUploader("b", mock_s3_client, part_size_mb=1)
        assert uploader.part_size == 5 * 1024 * 1024
        assert "below" in caplog.text

    def test_large_part_size_lowered_to_maximum(self, mock_s3_client):
        uploader = MultipartUploader("b", mock_s3_client, part_size_mb=10_000)
        assert uploader.part_size == 5 * 1024 * 1024 * 1024

    def test_transfer_config(self, mock_s3_client):
        uploader = MultipartUploader("b", mock_s3_client, part_size_mb=8, max_concurrency=4)
        cfg = uploader.transfer_config
        assert isinstance(cfg, TransferConfig)
        assert cfg.multipart_chunksize == 8 * 1024 * 1024
        assert cfg.multipart_threshold == 8 * 1024 * 1024
        assert cfg.max_concurrency == 4

    def test_upload_calls_client(self, mock_s3_client, tmp_path):
        path = tmp_path / "f.avro"
        path.write_bytes(b"data")
        uploader = MultipartUploader("bucket", mock_s3_client, part_size_mb=6)

        uri = uploader.upload(str(path), "exports/users/f.avro")

        assert uri == "gs://bucket/exports/users/f.avro"
        mock_s3_client.upload_file.assert_called_once()
        args, kwargs = mock_s3_client.upload_file.call_args
        assert args == (str(path), "bucket", "exports/users/f.avro")
        assert kwargs["Config"].multipart_chunksize == 6291456

    def test_upload_error_propagates(self, mock_s3_client, tmp_path):
        mock_s3_client.upload_file.side_effect = RuntimeError("denied")
        uploader = MultipartUploader("bucket", mock_s3_client)
        with pytest.raises(RuntimeError, match="denied"):
            uploader.upload(str(tmp_path / "f.avro"), "k")

    def test_repr(self, mock_s3_client):
        assert "part_size=5242880" in repr(MultipartUploader("b", mock_s3_client))
