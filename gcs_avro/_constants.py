"""Shared constants for the gcs_avro package."""

MB = 1024 * 1024

FORMAT_TYPE_AVRO = "AVRO"
AVRO_FILE_EXTENSION = "avro"

DEFAULT_PART_SIZE_MB = 5

# Bounds enforced by the uploader, not by config resolution.
MIN_PART_SIZE_MB = 5
MAX_PART_SIZE_MB = 5 * 1024
DEFAULT_UPLOAD_CONCURRENCY = 10

# Avro codec names as configured by users (matched case-insensitively).
CODEC_NULL = "no compression"
CODEC_DEFLATE = "deflate"
CODEC_BZIP2 = "bzip2"
CODEC_XZ = "xz"
CODEC_ZSTANDARD = "zstandard"
CODEC_SNAPPY = "snappy"

VALID_CODECS = frozenset({
    CODEC_NULL, CODEC_DEFLATE, CODEC_BZIP2, CODEC_XZ, CODEC_ZSTANDARD, CODEC_SNAPPY,
})

DEFAULT_DEFLATE_LEVEL = 0
DEFAULT_XZ_LEVEL = 6
DEFAULT_ZSTANDARD_LEVEL = 3
DEFAULT_ZSTANDARD_CHECKSUM = False

GCS_ENDPOINT = "https://storage.googleapis.com"
CREDENTIAL_TYPE_HMAC = "HMAC_KEY"

DEFAULT_STAGING_DIR = "./staging"
DEFAULT_MAX_RECORDS_PER_FILE = 1_000_000
DEFAULT_SAMPLE_SIZE = 10_000
