"""Content-addressed identifiers for encryption key material.

A fingerprint is the SHA-256 digest of the raw key bytes rendered as 64
lowercase hex characters. The listing endpoint may also report the
colon-separated display form (``c0:e8:...``); ``normalize_fingerprint`` folds
both into the canonical one.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
import re

FINGERPRINT_HEX_LENGTH = 64

_HEX_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_COLON_RE = re.compile(r"^(?:[0-9a-fA-F]{2})(?::[0-9a-fA-F]{2}){31}$")
_FILE_CHUNK_SIZE = 64 * 1024


class HashInputInvalid(TypeError):
    pass


def fingerprint(data: bytes | bytearray | memoryview) -> str:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise HashInputInvalid(
            f"fingerprint expects a byte sequence, got {type(data).__name__}"
        )
    return hashlib.sha256(data).hexdigest()


def fingerprint_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for block in iter(lambda: handle.read(_FILE_CHUNK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


def normalize_fingerprint(value: str) -> str:
    candidate = value.strip()
    if _COLON_RE.match(candidate):
        candidate = candidate.replace(":", "")
    if not _HEX_RE.match(candidate):
        raise ValueError(f"Invalid SHA-256 fingerprint: {value!r}")
    return candidate.lower()


def format_fingerprint(value: str) -> str:
    """Render a fingerprint as colon-separated byte pairs for display."""
    digest = normalize_fingerprint(value)
    return ":".join(digest[index : index + 2] for index in range(0, len(digest), 2))
