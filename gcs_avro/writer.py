"""Avro file writer for destination streams.

``AvroWriter`` streams record dicts into local ``.avro`` files using the
codec selected by :func:`gcs_avro.format_config.parse_codec_config`.

The Avro schema is inferred from the first *sample_size* records of a
stream: every field becomes a nullable union with a ``null`` default, so
records that omit a key still validate.  Keys that first appear after the sample
are dropped, with one warning per field name.  Two metadata fields are added to
every record:

* ``_airbyte_ab_id`` -- random UUID string.
* ``_airbyte_emitted_at`` -- epoch milliseconds (``timestamp-millis``).

Files follow a **write-then-rename** strategy: each file is written to a
``.tmp`` suffix first and only renamed to its final name after the full
write completes.  Downstream uploads therefore never see partial files.
Names carry a microsecond timestamp and a random run id, so repeated
writes of one stream never collide.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
import uuid
from datetime import datetime, timezone
from itertools import chain, islice
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import fastavro

from ._constants import DEFAULT_MAX_RECORDS_PER_FILE, DEFAULT_SAMPLE_SIZE
from .format_config import Codec, NullCodec

logger = logging.getLogger(__name__)

_TEMP_SUFFIX = ".tmp"
_AB_ID = "_airbyte_ab_id"
_EMITTED_AT = "_airbyte_emitted_at"
_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")

WriteResult = Tuple[List[str], int]


def _finalize_temp_files(temp_to_final: List[Tuple[str, str]]) -> List[str]:
    """Rename each temp file to its final name and return the final paths."""
    finals: List[str] = []
    for tmp, final in temp_to_final:
        os.replace(tmp, final)
        finals.append(final)
    return finals


def avro_field_name(key: str) -> str:
    """Map an arbitrary record key to a valid Avro field name."""
    name = _INVALID_NAME_CHARS.sub("_", str(key)) or "_"
    if name[0].isdigit():
        name = "_" + name
    return name


def _avro_type(value: Any) -> str:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "long"
    if isinstance(value, float):
        return "double"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (bytes, bytearray)):
        return "bytes"
    return "json"


def _merge_types(seen: set) -> str:
    """Collapse the non-null types observed for one field into a single Avro type."""
    if seen == {"long", "double"}:
        return "double"
    if len(seen) == 1:
        only = next(iter(seen))
        return "string" if only == "json" else only
    return "string"


def infer_schema(records: List[Mapping[str, Any]], name: str = "record") -> Dict[str, Any]:
    """Infer a nullable Avro record schema from *records*.

    All-null fields, nested values (dicts, lists, ...) and fields with
    conflicting types fall back to ``string``; the writer JSON-encodes their
    values.
    """
    order: List[str] = []
    types: Dict[str, set] = {}
    for record in records:
        for key, value in record.items():
            fname = avro_field_name(key)
            if fname not in types:
                order.append(fname)
                types[fname] = set()
            if value is not None:
                types[fname].add(_avro_type(value))

    fields: List[Dict[str, Any]] = [
        {"name": _AB_ID, "type": "string"},
        {"name": _EMITTED_AT, "type": {"type": "long", "logicalType": "timestamp-millis"}},
    ]
    for fname in order:
        if fname in (_AB_ID, _EMITTED_AT):
            continue
        avro_type = _merge_types(types[fname]) if types[fname] else "string"
        fields.append({"name": fname, "type": ["null", avro_type], "default": None})

    return {"type": "record", "name": avro_field_name(name), "fields": fields}


def _coerce(value: Any, avro_type: str) -> Any:
    if value is None:
        return None
    if avro_type == "string" and not isinstance(value, str):
        return json.dumps(value, default=str)
    if avro_type == "double" and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if avro_type == "bytes" and isinstance(value, bytearray):
        return bytes(value)
    return value


def _counting(rows: Iterable[Dict[str, Any]], counter: List[int]) -> Iterator[Dict[str, Any]]:
    for row in rows:
        counter[0] += 1
        yield row


class AvroWriter:
    """Write record dicts to Avro files with a configured codec.

    Splits output into multiple files when *max_records_per_file* is
    exceeded.  Records are streamed; only the schema sample of at most
    *sample_size* records is held in memory.
    """

    def __init__(
        self,
        codec: Optional[Codec] = None,
        max_records_per_file: int = DEFAULT_MAX_RECORDS_PER_FILE,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
    ) -> None:
        if max_records_per_file < 1:
            raise ValueError(f"max_records_per_file must be >= 1, got {max_records_per_file}")
        if sample_size < 1:
            raise ValueError(f"sample_size must be >= 1, got {sample_size}")
        self.codec: Codec = codec if codec is not None else NullCodec()
        self.max_records_per_file = max_records_per_file
        self.sample_size = sample_size

    @property
    def file_type(self) -> str:
        return "avro"

    def _prepare(
        self,
        records: Iterable[Mapping[str, Any]],
        field_types: Dict[str, str],
        emitted_at: int,
        prefix: str,
    ) -> Iterator[Dict[str, Any]]:
        dropped: set = set()
        for record in records:
            out: Dict[str, Any] = {
                _AB_ID: str(uuid.uuid4()),
                _EMITTED_AT: emitted_at,
            }
            for key, value in record.items():
                fname = avro_field_name(key)
                if fname in (_AB_ID, _EMITTED_AT):
                    continue
                avro_type = field_types.get(fname)
                if avro_type is None:
                    if fname not in dropped:
                        dropped.add(fname)
                        logger.warning(
                            "Field %r first seen after the schema sample; dropping it from %s",
                            key, prefix,
                        )
                    continue
                out[fname] = _coerce(value, avro_type)
            yield out

    def write(
        self,
        records: Iterable[Mapping[str, Any]],
        dir_path: str,
        prefix: str,
    ) -> WriteResult:
        """Write *records* under *dir_path*; returns ``(file_paths, record_count)``."""
        it = iter(records)
        sample = list(islice(it, self.sample_size))
        if not sample:
            logger.debug("No records for %s; nothing written", prefix)
            return [], 0

        schema = infer_schema(sample, name=prefix)
        parsed = fastavro.parse_schema(schema)
        field_types = {
            f["name"]: f["type"][1] for f in schema["fields"] if isinstance(f["type"], list)
        }
        emitted_at = int(time.time() * 1000)
        prepared = self._prepare(chain(sample, it), field_types, emitted_at, prefix)
        options = self.codec.fastavro_options()

        os.makedirs(dir_path, exist_ok=True)
        # microseconds plus a random suffix keep names unique across repeated writes
        ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        run_id = uuid.uuid4().hex[:8]
        pending: List[Tuple[str, str]] = []
        record_count = 0
        part = 1

        while True:
            batch = islice(prepared, self.max_records_per_file)
            first = next(batch, None)
            if first is None:
                break
            counted = [0]
            final = os.path.join(dir_path, f"{prefix}_{ts}_{run_id}_part{part}.{self.file_type}")
            tmp = final + _TEMP_SUFFIX
            with open(tmp, "wb") as fo:
                fastavro.writer(fo, parsed, _counting(chain([first], batch), counted), **options)
            pending.append((tmp, final))
            record_count += counted[0]
            part += 1

        files = _finalize_temp_files(pending)
        logger.debug(
            "Wrote %d file(s) (%d records, codec %s) to %s",
            len(files), record_count, self.codec, dir_path,
        )
        return files, record_count
