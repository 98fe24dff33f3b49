"""Translation cache entry model."""

from pydantic import BaseModel, Field


class TranslationCacheEntry(BaseModel):
    """Persistent memoization row keyed by hash(src, dst, text)."""

    key: str = Field(..., description="Cache key")
    src_lang: str = Field(..., description="Source language")
    dst_lang: str = Field(..., description="Destination language")
    text: str = Field(..., description="Translated text")
