"""Shared helpers."""

from .hashing import pivot_signature, translation_cache_key
from .json_utils import parse_json_object, strip_code_fences
from .lang import base_lang, is_rtl_lang, normalize_bcp47
from .lru import BoundedLRU

__all__ = [
    "BoundedLRU",
    "base_lang",
    "is_rtl_lang",
    "normalize_bcp47",
    "parse_json_object",
    "pivot_signature",
    "strip_code_fences",
    "translation_cache_key",
]
