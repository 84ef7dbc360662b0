"""CLI entry-point:  python -m gcs_avro [OPTIONS]

Examples:
    python -m gcs_avro --config destination.yaml
    python -m gcs_avro --config destination.yaml --input users.jsonl --stream users -v
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, Iterator

from .destination import GcsAvroDestination

logger = logging.getLogger(__name__)


def _read_jsonl(path: str) -> Iterator[Dict[str, Any]]:
    """Yield one record per non-blank line of a JSON Lines file."""
    with open(path) as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            record = json.loads(line)
            if not isinstance(record, dict):
                raise ValueError(f"{path}:{lineno}: record must be a JSON object")
            yield record


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="gcs_avro",
        description="Write JSON records to Google Cloud Storage as Avro files.",
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to YAML or JSON destination config file",
    )
    parser.add_argument(
        "--input",
        default=None,
        help="JSON Lines file of records to write; omit to print the resolved format",
    )
    parser.add_argument(
        "--stream",
        default=None,
        help="Stream name used for object keys (required with --input)",
    )
    parser.add_argument(
        "--staging-dir",
        default=None,
        help="Local directory for files awaiting upload",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug-level logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.input and not args.stream:
        parser.error("--stream is required with --input")

    try:
        dest = GcsAvroDestination.from_config(args.config, staging_dir=args.staging_dir)
    except Exception as exc:
        logger.error("Failed to load config: %s", exc)
        sys.exit(1)

    logger.info("Destination: %s", dest)

    if not args.input:
        print(json.dumps(dest.config.format_config.summary(), indent=2))
        return

    try:
        result = dest.write_stream(args.stream, _read_jsonl(args.input))
    except Exception as exc:
        logger.error("Write failed: %s", exc)
        sys.exit(1)

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
