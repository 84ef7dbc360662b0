"""Configuration errors raised while resolving destination settings."""


class ConfigError(ValueError):
    """Base class for invalid destination configuration."""


class InvalidCodecError(ConfigError):
    """The ``codec`` value is not one of the supported Avro codecs."""


class InvalidPartSizeError(ConfigError):
    """``part_size_mb`` is present but not a positive integer."""
