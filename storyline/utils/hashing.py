"""Content fingerprints."""

import hashlib
from typing import Optional

PIVOT_HASH_LENGTH = 10


def pivot_signature(title: Optional[str], summary: Optional[str], details: Optional[str]) -> str:
    """Short sha1 fingerprint of a summary's three text fields."""
    payload = f"{title or ''}\n{summary or ''}\n{details or ''}"
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:PIVOT_HASH_LENGTH]


def translation_cache_key(text: str, src: str, dst: str) -> str:
    """Cache key for one (src, dst, text) translation."""
    digest = hashlib.sha1(f"{src}|{dst}|{text}".encode("utf-8")).hexdigest()
    return f"{src}->{dst}:{digest}"
