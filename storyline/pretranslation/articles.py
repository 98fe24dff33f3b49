"""Warm the translation cache for recent full-text articles."""

import logging
from typing import List, Optional

from ..db import Datastore
from ..translation import SummaryFields, TranslationEngine
from ..utils import base_lang, normalize_bcp47
from .models import ArticleCycleSummary

logger = logging.getLogger(__name__)


def run_article_pretranslation(
    store: Datastore,
    engine: TranslationEngine,
    target_langs: List[str],
    limit: int = 100,
) -> ArticleCycleSummary:
    """Translate recent articles into target_langs so later reads hit the cache."""
    langs: List[str] = []
    for lang in target_langs:
        if lang and lang.strip() and normalize_bcp47(lang) not in langs:
            langs.append(normalize_bcp47(lang))
    if not langs:
        logger.info("No target languages configured; skipping article pretranslation")
        return ArticleCycleSummary()

    articles = store.list_recent_articles_with_text(limit)
    calls_before = engine.metrics.provider_calls
    processed = 0
    for article in articles:
        src = normalize_bcp47(article.language or "auto")
        fields = SummaryFields(
            title=article.title or "",
            summary=article.snippet or "",
            details=article.full_text or "",
        )
        for dst in langs:
            if base_lang(dst) == base_lang(src):
                continue
            result = engine.translate_fields(fields, src, dst)
            if result.any_translated:
                processed += 1

    summary = ArticleCycleSummary(
        checked=len(articles),
        processed=processed,
        provider_calls=engine.metrics.provider_calls - calls_before,
    )
    logger.info(
        "Article pretranslation done: checked=%d processed=%d provider_calls=%d langs=%s",
        summary.checked,
        summary.processed,
        summary.provider_calls,
        ",".join(langs),
    )
    return summary


def langs_or_default(langs: Optional[str], default: List[str]) -> List[str]:
    """Comma-separated CLI override, else the configured list."""
    if langs is None:
        return list(default)
    return [s.strip() for s in langs.split(",") if s.strip()]
