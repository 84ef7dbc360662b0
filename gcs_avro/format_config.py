"""Avro format configuration: codec selection and multipart part size.

The ``format`` block of a destination config looks like::

    {
      "format_type": "AVRO",
      "compression_codec": {"codec": "zstandard", "compression_level": 9},
      "part_size_mb": 10
    }

:func:`parse_codec_config` turns the ``compression_codec`` mapping into one
of the codec variants below, and :func:`resolve_part_size` applies the part
size default.  Both are pure functions of their input.

Each codec variant knows how to hand itself to ``fastavro.writer`` via
:meth:`fastavro_options`, and renders with the same names Avro's own codec
factories use (``deflate-5``, ``zstandard[3]``, ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from ._constants import (
    AVRO_FILE_EXTENSION,
    CODEC_BZIP2,
    CODEC_DEFLATE,
    CODEC_NULL,
    CODEC_SNAPPY,
    CODEC_XZ,
    CODEC_ZSTANDARD,
    DEFAULT_DEFLATE_LEVEL,
    DEFAULT_PART_SIZE_MB,
    DEFAULT_XZ_LEVEL,
    DEFAULT_ZSTANDARD_CHECKSUM,
    DEFAULT_ZSTANDARD_LEVEL,
    FORMAT_TYPE_AVRO,
    MB,
    VALID_CODECS,
)
from .errors import ConfigError, InvalidCodecError, InvalidPartSizeError


@dataclass(frozen=True)
class NullCodec:
    name = "null"

    def fastavro_options(self) -> Dict[str, Any]:
        return {"codec": self.name}

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DeflateCodec:
    level: int = DEFAULT_DEFLATE_LEVEL
    name = "deflate"

    def fastavro_options(self) -> Dict[str, Any]:
        return {"codec": self.name, "codec_compression_level": self.level}

    def __str__(self) -> str:
        return f"{self.name}-{self.level}"


@dataclass(frozen=True)
class Bzip2Codec:
    name = "bzip2"

    def fastavro_options(self) -> Dict[str, Any]:
        return {"codec": self.name}

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class XzCodec:
    level: int = DEFAULT_XZ_LEVEL
    name = "xz"

    def fastavro_options(self) -> Dict[str, Any]:
        return {"codec": self.name, "codec_compression_level": self.level}

    def __str__(self) -> str:
        return f"{self.name}-{self.level}"


@dataclass(frozen=True)
class ZstandardCodec:
    level: int = DEFAULT_ZSTANDARD_LEVEL
    include_checksum: bool = DEFAULT_ZSTANDARD_CHECKSUM
    name = "zstandard"

    def fastavro_options(self) -> Dict[str, Any]:
        # fastavro's zstandard block writer has no checksum switch
        return {"codec": self.name, "codec_compression_level": self.level}

    def __str__(self) -> str:
        return f"{self.name}[{self.level}]"


@dataclass(frozen=True)
class SnappyCodec:
    name = "snappy"

    def fastavro_options(self) -> Dict[str, Any]:
        return {"codec": self.name}

    def __str__(self) -> str:
        return self.name


Codec = Union[NullCodec, DeflateCodec, Bzip2Codec, XzCodec, ZstandardCodec, SnappyCodec]


def _option(config: Mapping[str, Any], key: str, default: Any) -> Any:
    """Return *key* from *config*, treating a missing key and JSON null alike."""
    value = config.get(key)
    return default if value is None else value


def _checksum_option(config: Mapping[str, Any]) -> bool:
    value = _option(config, "include_checksum", DEFAULT_ZSTANDARD_CHECKSUM)
    if not isinstance(value, bool):
        raise ConfigError(f"include_checksum must be a boolean, got {value!r}")
    return value


def parse_codec_config(codec_config: Optional[Mapping[str, Any]]) -> Codec:
    """Return the codec variant described by a ``compression_codec`` mapping.

    A missing ``codec`` key (or ``"no compression"``) selects :class:`NullCodec`.
    Raises :class:`~gcs_avro.errors.InvalidCodecError` for unknown names.
    """
    codec_config = codec_config or {}
    raw = codec_config.get("codec")
    if raw is None:
        return NullCodec()

    codec = str(raw).lower()
    if codec not in VALID_CODECS:
        raise InvalidCodecError(
            f"Unsupported Avro codec {raw!r}; must be one of {sorted(VALID_CODECS)}"
        )

    if codec == CODEC_NULL:
        return NullCodec()
    if codec == CODEC_DEFLATE:
        return DeflateCodec(level=_option(codec_config, "compression_level", DEFAULT_DEFLATE_LEVEL))
    if codec == CODEC_BZIP2:
        return Bzip2Codec()
    if codec == CODEC_XZ:
        return XzCodec(level=_option(codec_config, "compression_level", DEFAULT_XZ_LEVEL))
    if codec == CODEC_ZSTANDARD:
        return ZstandardCodec(
            level=_option(codec_config, "compression_level", DEFAULT_ZSTANDARD_LEVEL),
            include_checksum=_checksum_option(codec_config),
        )
    return SnappyCodec()


def resolve_part_size(config: Optional[Mapping[str, Any]]) -> int:
    """Return ``part_size_mb`` from *config*, or the 5 MB default when absent.

    Raises :class:`~gcs_avro.errors.InvalidPartSizeError` when the value is
    present but not a positive integer.
    """
    value = (config or {}).get("part_size_mb")
    if value is None:
        return DEFAULT_PART_SIZE_MB
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidPartSizeError(
            f"part_size_mb must be a positive integer, got {value!r}"
        )
    return value


@dataclass(frozen=True)
class AvroFormatConfig:
    """Resolved ``format`` block for Avro output."""

    codec: Codec
    part_size_mb: int = DEFAULT_PART_SIZE_MB

    @classmethod
    def from_config(cls, format_config: Optional[Mapping[str, Any]]) -> "AvroFormatConfig":
        format_config = format_config or {}
        format_type = str(format_config.get("format_type", FORMAT_TYPE_AVRO)).upper()
        if format_type != FORMAT_TYPE_AVRO:
            raise ValueError(
                f"format_type must be {FORMAT_TYPE_AVRO!r}, got {format_config['format_type']!r}"
            )
        return cls(
            codec=parse_codec_config(format_config.get("compression_codec")),
            part_size_mb=resolve_part_size(format_config),
        )

    @property
    def format_type(self) -> str:
        return FORMAT_TYPE_AVRO

    @property
    def file_extension(self) -> str:
        return AVRO_FILE_EXTENSION

    @property
    def part_size_bytes(self) -> int:
        return self.part_size_mb * MB

    def summary(self) -> Dict[str, Any]:
        """JSON-friendly view used by the CLI and write summaries."""
        result: Dict[str, Any] = {
            "format_type": self.format_type,
            "codec": str(self.codec),
            "part_size_mb": self.part_size_mb,
            "part_size_bytes": self.part_size_bytes,
        }
        if isinstance(self.codec, ZstandardCodec):
            result["include_checksum"] = self.codec.include_checksum
        return result
