"""Read metadata records embedded in a compiled library.

Each record is stored in the artifact's data as::

    MARKER (13 bytes) | payload length (uint32, little endian) | UTF-8 JSON object

The JSON object carries a ``kind`` tag naming one of the record types in
:mod:`ffigen.metadata.records`. Records may appear anywhere in the file; the
scanner simply walks every marker occurrence.
"""

from __future__ import annotations

import json
import struct
from pathlib import Path
from typing import Any, List, Mapping

from ..errors import MetadataExtractionError
from ..logging import get_logger
from .records import Metadata, record_from_dict, record_to_dict

MARKER = b"\x00FFIGEN_META\x00"
_LENGTH = struct.Struct("<I")

logger = get_logger("metadata.extractor")


def encode_record(record: Metadata | Mapping[str, Any]) -> bytes:
    """Return the embedded wire form of ``record`` (a record or its dict form)."""
    payload = record if isinstance(record, Mapping) else record_to_dict(record)
    body = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return MARKER + _LENGTH.pack(len(body)) + body


def extract_from_bytes(data: bytes, *, origin: str = "<bytes>") -> List[Metadata]:
    """Decode every embedded record in ``data``, in file order."""
    records: List[Metadata] = []
    offset = data.find(MARKER)
    while offset != -1:
        header_end = offset + len(MARKER) + _LENGTH.size
        if header_end > len(data):
            raise MetadataExtractionError(f"Truncated metadata header at offset {offset} in {origin}")
        (length,) = _LENGTH.unpack_from(data, offset + len(MARKER))
        body_end = header_end + length
        if body_end > len(data):
            raise MetadataExtractionError(
                f"Truncated metadata record at offset {offset} in {origin} "
                f"({length} bytes declared, {len(data) - header_end} available)"
            )
        records.append(_decode(data[header_end:body_end], offset, origin))
        offset = data.find(MARKER, body_end)
    return records


def extract_from_library(library_path: Path) -> List[Metadata]:
    """Read ``library_path`` and return its metadata records.

    Fails when the file cannot be read or carries no metadata at all.
    """
    try:
        data = Path(library_path).read_bytes()
    except OSError as exc:
        raise MetadataExtractionError(f"Unable to read {library_path}: {exc}") from exc

    records = extract_from_bytes(data, origin=str(library_path))
    if not records:
        raise MetadataExtractionError(f"No ffigen metadata found in {library_path}")
    logger.debug("Extracted %d metadata records from %s", len(records), library_path)
    return records


def _decode(body: bytes, offset: int, origin: str) -> Metadata:
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MetadataExtractionError(
            f"Invalid metadata payload at offset {offset} in {origin}: {exc}"
        ) from exc
    if not isinstance(payload, dict):
        raise MetadataExtractionError(f"Metadata payload at offset {offset} in {origin} is not an object")
    try:
        return record_from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise MetadataExtractionError(
            f"Malformed {payload.get('kind', 'unknown')} record at offset {offset} in {origin}: {exc}"
        ) from exc


__all__ = ["MARKER", "encode_record", "extract_from_bytes", "extract_from_library"]
