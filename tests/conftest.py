"""Shared fixtures for gcs_avro tests."""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

BASE_CONFIG: Dict[str, Any] = {
    "gcs_bucket_name": "test-bucket-name",
    "gcs_bucket_path": "test_path",
    "gcs_bucket_region": "us-east-2",
    "credential": {
        "credential_type": "HMAC_KEY",
        "hmac_key_access_id": "some_hmac_key",
        "hmac_key_secret": "some_key_secret",
    },
}


def _make_config(format_block: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    config = copy.deepcopy(BASE_CONFIG)
    if format_block is not None:
        config["format"] = format_block
    return config


@pytest.fixture()
def make_config():
    """Return a builder for destination configs: ``make_config(format_block)``."""
    return _make_config


@pytest.fixture()
def mock_s3_client():
    """Return a ``MagicMock`` standing in for a boto3 S3 client."""
    return MagicMock()
