"""Cached field and document translation on top of the generative-text provider."""

import json
import logging
import threading
import time
from typing import Dict, Optional

from ..config import TranslationConfig
from ..db import Datastore
from ..errors import ProviderError
from ..generation import LLMProvider
from ..models import TranslationCacheEntry
from ..utils import BoundedLRU, base_lang, normalize_bcp47, parse_json_object, translation_cache_key
from .chunking import chunk_by_paragraphs, join_chunks
from .models import FIELD_NAMES, SummaryFields, TranslatedFields, TranslationMetrics

logger = logging.getLogger(__name__)


class TranslationEngine:
    """
    Translate short fields or long documents with two-tier caching.

    The in-process cache and metrics belong to the instance; the persistent
    tier is the datastore's translations table. Public methods never raise
    unless called with strict=True, in which case provider failures surface
    as ProviderError so callers can retry.
    """

    def __init__(
        self,
        store: Optional[Datastore],
        llm: Optional[LLMProvider],
        config: Optional[TranslationConfig] = None,
    ) -> None:
        self.store = store
        self.llm = llm
        self.config = config or TranslationConfig()
        self.memory_cache: BoundedLRU[str] = BoundedLRU(self.config.cache_max)
        self._metrics = TranslationMetrics()
        self._metrics_lock = threading.Lock()

    @property
    def metrics(self) -> TranslationMetrics:
        """Snapshot of the engine counters."""
        with self._metrics_lock:
            return self._metrics.model_copy()

    def _count(self, **deltas: int) -> None:
        with self._metrics_lock:
            for name, delta in deltas.items():
                setattr(self._metrics, name, getattr(self._metrics, name) + delta)

    # Cache tiers

    def lookup(self, text: str, src: str, dst: str) -> Optional[str]:
        """Cached translation from memory, then the persistent store."""
        if not text:
            return None
        key = translation_cache_key(text, src, dst)
        cached = self.memory_cache.get(key)
        if cached:
            return cached
        if self.store is None:
            return None
        try:
            stored = self.store.get_cached_translation(key)
        except Exception as e:
            logger.debug("Persistent translation cache read failed: %s", e)
            return None
        if stored:
            self.memory_cache.set(key, stored)
        return stored or None

    def remember(self, original: str, translated: str, src: str, dst: str) -> None:
        """Write one translation to both cache tiers."""
        if not original or not translated:
            return
        key = translation_cache_key(original, src, dst)
        self.memory_cache.set(key, translated)
        if self.store is None:
            return
        try:
            self.store.put_cached_translation(
                TranslationCacheEntry(key=key, src_lang=src, dst_lang=dst, text=translated)
            )
        except Exception as e:
            logger.debug("Persistent translation cache write failed: %s", e)

    # Provider access

    def _call_provider(self, prompt: str) -> str:
        if self.llm is None:
            raise ProviderError("no translation provider configured")
        self._count(provider_calls=1)
        started = time.monotonic()
        try:
            text = self.llm.generate(prompt, max_tokens=self.config.max_tokens, temperature=0.2)
        except ProviderError:
            self._count(provider_errors=1)
            raise
        except Exception as e:
            self._count(provider_errors=1)
            raise ProviderError(str(e)) from e
        elapsed = int((time.monotonic() - started) * 1000)
        with self._metrics_lock:
            self._metrics.provider_latency_ms_last = elapsed
            self._metrics.provider_latency_ms_total += elapsed
            self._metrics.provider_latency_samples += 1
        return (text or "").strip()

    # Single text

    def translate_text(self, text: str, src: str, dst: str, strict: bool = False) -> Optional[str]:
        """Translate one string; None when no translation is available."""
        if not text or not dst:
            return None
        src = normalize_bcp47(src or "auto")
        dst = normalize_bcp47(dst)
        if base_lang(src) == base_lang(dst):
            return text

        cached = self.lookup(text, src, dst)
        if cached:
            self._count(cache_hits=1)
            return cached
        self._count(cache_misses=1)

        prompt = f"Translate to {dst}. Keep meaning, names, and terminology consistent.\n\nText:\n{text}"
        try:
            translated = self._call_provider(prompt)
        except ProviderError as e:
            logger.warning("Translation provider failed (%s->%s): %s", src, dst, e)
            if strict:
                raise
            return None

        if not translated:
            return None
        self.remember(text, translated, src, dst)
        return translated

    def translate_document(self, text: str, src: str, dst: str, strict: bool = False) -> Optional[str]:
        """
        Translate a long document chunk by chunk.

        Returns "" when the document exceeds the hard cap, and None when any
        chunk could not be translated.
        """
        body = (text or "").strip()
        if not body:
            return ""
        if len(body) > self.config.max_article_chars:
            logger.info("Document of %d chars exceeds the translation cap; skipping", len(body))
            return ""

        translated = []
        for chunk in chunk_by_paragraphs(body, self.config.chunk_max_chars):
            # Sequential to respect provider rate limits
            part = self.translate_text(chunk, src, dst, strict=strict)
            if not part:
                return None
            translated.append(part)
        return join_chunks(translated)

    # Fields

    def translate_fields(
        self,
        fields: SummaryFields,
        src: str,
        dst: str,
        strict: bool = False,
    ) -> TranslatedFields:
        """Translate title, summary and details together, reusing per-field cache entries."""
        src = normalize_bcp47(src or "auto")
        dst = normalize_bcp47(dst) if dst else ""
        originals = {name: getattr(fields, name) or "" for name in FIELD_NAMES}
        if not dst or not any(originals.values()) or base_lang(src) == base_lang(dst):
            return TranslatedFields(**originals)

        try:
            return self._translate_fields(originals, src, dst, strict)
        except ProviderError:
            if strict:
                raise
            return TranslatedFields(**originals)
        except Exception as e:
            if strict:
                raise ProviderError(str(e)) from e
            logger.warning("Field translation failed (%s->%s): %s", src, dst, e)
            return TranslatedFields(**originals)

    def _translate_fields(self, originals: Dict[str, str], src: str, dst: str, strict: bool) -> TranslatedFields:
        hits = {name: self.lookup(text, src, dst) for name, text in originals.items() if text}
        if all(hits.values()):
            self._count(cache_hits=len(hits))
            return TranslatedFields(
                **{name: (hits.get(name) or originals[name]).strip() for name in FIELD_NAMES},
                translated=list(hits),
            )

        if len(originals["details"]) > self.config.chunk_max_chars:
            return self._translate_with_chunked_details(originals, src, dst, strict)

        try:
            return self._translate_in_one_call(originals, src, dst)
        except ProviderError as e:
            logger.debug("Combined translation call failed; translating fields one by one: %s", e)
            return self._translate_each(originals, src, dst, strict)

    def _translate_with_chunked_details(
        self, originals: Dict[str, str], src: str, dst: str, strict: bool
    ) -> TranslatedFields:
        result = TranslatedFields()
        for name in ("title", "summary"):
            translated = self.translate_text(originals[name], src, dst, strict=strict)
            setattr(result, name, (translated or originals[name]).strip())
            if translated:
                result.translated.append(name)

        details = self.translate_document(originals["details"], src, dst, strict=strict)
        if details is None:
            result.details = originals["details"].strip()
        else:
            result.details = details
            if details:
                result.translated.append("details")
        return result

    def _translate_in_one_call(self, originals: Dict[str, str], src: str, dst: str) -> TranslatedFields:
        self._count(cache_misses=1)
        prompt = "\n".join([
            f"Translate the provided JSON fields from {src} to {dst}.",
            "Preserve meaning, names, terminology; no added commentary.",
            'Return STRICT minified JSON with keys "title","summary","details" only.',
            'Example: {"title":"...","summary":"...","details":"..."}',
            "Input:",
            json.dumps(originals, ensure_ascii=False),
        ])
        parsed = parse_json_object(self._call_provider(prompt))
        if parsed is None:
            raise ProviderError("combined translation response was not JSON")

        result = TranslatedFields()
        for name in FIELD_NAMES:
            value = parsed.get(name)
            translated = str(value).strip() if value is not None else ""
            if originals[name] and translated:
                setattr(result, name, translated)
                result.translated.append(name)
                self.remember(originals[name], translated, src, dst)
            else:
                setattr(result, name, originals[name].strip())
        return result

    def _translate_each(self, originals: Dict[str, str], src: str, dst: str, strict: bool) -> TranslatedFields:
        result = TranslatedFields()
        for name in FIELD_NAMES:
            translated = self.translate_text(originals[name], src, dst, strict=strict)
            setattr(result, name, (translated or originals[name]).strip())
            if translated:
                result.translated.append(name)
        return result
