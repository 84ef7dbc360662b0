"""gcs_avro -- Avro output to Google Cloud Storage with configurable codecs."""

from .config import GcsDestinationConfig, HmacKeyCredential
from .destination import GcsAvroDestination
from .errors import ConfigError, InvalidCodecError, InvalidPartSizeError
from .format_config import (
    AvroFormatConfig,
    Bzip2Codec,
    Codec,
    DeflateCodec,
    NullCodec,
    SnappyCodec,
    XzCodec,
    ZstandardCodec,
    parse_codec_config,
    resolve_part_size,
)
from .uploader import MultipartUploader
from .writer import AvroWriter

__all__ = [
    "GcsAvroDestination",
    "GcsDestinationConfig",
    "HmacKeyCredential",
    "AvroFormatConfig",
    "Codec",
    "NullCodec",
    "DeflateCodec",
    "Bzip2Codec",
    "XzCodec",
    "ZstandardCodec",
    "SnappyCodec",
    "parse_codec_config",
    "resolve_part_size",
    "AvroWriter",
    "MultipartUploader",
    "ConfigError",
    "InvalidCodecError",
    "InvalidPartSizeError",
]
