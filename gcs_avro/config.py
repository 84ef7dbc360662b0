"""Destination configuration loading.

Provides :class:`GcsDestinationConfig`, the parsed form of a destination
config document, plus the helpers used to read one from disk.

A config looks like (YAML or JSON)::

    gcs_bucket_name: my-bucket
    gcs_bucket_path: exports
    gcs_bucket_region: us-east1
    credential:
      credential_type: HMAC_KEY
      hmac_key_access_id: ${GCS_HMAC_ACCESS_ID}
      hmac_key_secret: ${GCS_HMAC_SECRET}
    format:
      format_type: AVRO
      compression_codec:
        codec: deflate
        compression_level: 5
      part_size_mb: 10

``${VAR}`` (or ``${VAR:-fallback}``) references are expanded from the environment.  A ``.env`` file
is loaded automatically (if present) via :func:`load_dotenv`.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

import boto3
import yaml

from ._constants import CREDENTIAL_TYPE_HMAC, FORMAT_TYPE_AVRO, GCS_ENDPOINT
from .format_config import AvroFormatConfig

logger = logging.getLogger(__name__)

_REQUIRED_KEYS = ("gcs_bucket_name", "gcs_bucket_path", "gcs_bucket_region", "credential")
_REQUIRED_CREDENTIAL_KEYS = ("hmac_key_access_id", "hmac_key_secret")

_dotenv_loaded: set = set()

_ENV_REF = re.compile(r"\$\{(\w+)(?::-([^}]*))?}")

_CONFIG_PARSERS: Dict[str, Callable[[str], Any]] = {
    ".json": json.loads,
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
}


def parse_dotenv(text: str) -> Dict[str, str]:
    """Parse ``KEY=value`` lines; ``#`` comments and an ``export`` prefix are allowed."""
    values: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("'\"")
    return values


def load_dotenv(path: Optional[Union[str, Path]] = None) -> int:
    """Copy variables from a ``.env`` file into ``os.environ``.

    Defaults to ``.env`` in the working directory.  Variables already set
    win over the file.  A given file is read at most once per process.
    Returns the number of variables added.
    """
    env_file = Path(path) if path is not None else Path.cwd() / ".env"
    key = str(env_file.resolve())
    if key in _dotenv_loaded or not env_file.is_file():
        return 0
    added = 0
    for name, value in parse_dotenv(env_file.read_text()).items():
        if name not in os.environ:
            os.environ[name] = value
            added += 1
    _dotenv_loaded.add(key)
    logger.debug("Loaded %d variable(s) from %s", added, env_file)
    return added


def expand_env(value: Any) -> Any:
    """Expand ``${VAR}`` and ``${VAR:-fallback}`` in string *value*.

    Non-string values are returned unchanged.  A reference to an unset
    variable with no fallback raises ``KeyError``.
    """
    if not isinstance(value, str):
        return value

    def _resolve(match: "re.Match[str]") -> str:
        name, fallback = match.group(1), match.group(2)
        if name in os.environ:
            return os.environ[name]
        if fallback is not None:
            return fallback
        raise KeyError(
            f"Environment variable {name!r} is not set "
            f"(referenced in config as ${{{name}}})"
        )

    return _ENV_REF.sub(_resolve, value)


def load_config_file(path: Union[str, Path]) -> dict:
    """Parse a destination config file.

    ``.json`` files use ``json``; everything else goes through PyYAML,
    which also accepts JSON.  The document must be a mapping.
    """
    p = Path(path)
    parse = _CONFIG_PARSERS.get(p.suffix.lower(), yaml.safe_load)
    data = parse(p.read_text())
    if not isinstance(data, dict):
        raise TypeError(f"config in {p} must be a mapping, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class HmacKeyCredential:
    """GCS interoperability key pair used against the S3-compatible API."""

    access_id: str
    secret: str = field(repr=False)

    @property
    def credential_type(self) -> str:
        return CREDENTIAL_TYPE_HMAC

    @classmethod
    def from_config(cls, credential: Mapping[str, Any]) -> "HmacKeyCredential":
        if not isinstance(credential, Mapping):
            raise TypeError(
                f"credential must be a mapping, got {type(credential).__name__}"
            )
        credential_type = str(credential.get("credential_type", CREDENTIAL_TYPE_HMAC)).upper()
        if credential_type != CREDENTIAL_TYPE_HMAC:
            raise ValueError(
                f"Unsupported credential_type {credential.get('credential_type')!r}; "
                f"only {CREDENTIAL_TYPE_HMAC!r} is supported"
            )
        missing = [k for k in _REQUIRED_CREDENTIAL_KEYS if not credential.get(k)]
        if missing:
            raise ValueError(f"credential is missing required key(s): {missing}")
        return cls(
            access_id=expand_env(credential["hmac_key_access_id"]),
            secret=expand_env(credential["hmac_key_secret"]),
        )


@dataclass(frozen=True)
class GcsDestinationConfig:
    bucket_name: str
    bucket_path: str
    bucket_region: str
    credential: HmacKeyCredential
    format_config: AvroFormatConfig

    @classmethod
    def from_config(cls, config: Union[str, Path, Mapping[str, Any]]) -> "GcsDestinationConfig":
        """Build a config from a file path (YAML/JSON) or an already-parsed dict."""
        load_dotenv()

        if isinstance(config, (str, Path)):
            config = load_config_file(config)

        missing = [k for k in _REQUIRED_KEYS if config.get(k) in (None, "")]
        if missing:
            raise ValueError(f"config is missing required key(s): {missing}")

        format_block = config.get("format") or {"format_type": FORMAT_TYPE_AVRO}
        return cls(
            bucket_name=expand_env(config["gcs_bucket_name"]),
            bucket_path=expand_env(config["gcs_bucket_path"]),
            bucket_region=expand_env(config["gcs_bucket_region"]),
            credential=HmacKeyCredential.from_config(config["credential"]),
            format_config=AvroFormatConfig.from_config(format_block),
        )

    def s3_client(self) -> Any:
        """Return a boto3 S3 client pointed at the GCS interoperability endpoint."""
        logger.debug(
            "Creating S3 client for gs://%s (region %s)", self.bucket_name, self.bucket_region,
        )
        return boto3.client(
            "s3",
            endpoint_url=GCS_ENDPOINT,
            region_name=self.bucket_region,
            aws_access_key_id=self.credential.access_id,
            aws_secret_access_key=self.credential.secret,
        )
