"""Derive a timeline entry (claim, stance, summary) from one article."""

import logging
import re
from typing import List, Optional, Pattern, Tuple

from pydantic import BaseModel

from ..config import ClusteringConfig
from ..generation import LLMProvider
from ..models import Article, Stance
from ..utils import parse_json_object
from ..utils.lang import base_lang

logger = logging.getLogger(__name__)

STANCES = ("supports", "contradicts", "neutral")

# Ordered: first match wins
EN_RULES: List[Tuple[Pattern, Stance]] = [
    (re.compile(r"(reject|den(y|ied|ies)|refus|turns? down|pulls? out)", re.I), "contradicts"),
    (re.compile(r"(confirm|official|announce|signed|seal|complete)", re.I), "supports"),
    (re.compile(r"(agree|agreement|deal|terms|progress|advanced|close to|nears?)", re.I), "supports"),
    (re.compile(r"(rumou?r|speculat|report(s|ed)?|sources? say)", re.I), "neutral"),
]

TR_RULES: List[Tuple[Pattern, Stance]] = [
    (re.compile(r"(reddetti|iptal|olumsuz|yalanlad[ıi])", re.I), "contradicts"),
    (re.compile(r"(resmi|açıkla(nd|d)[ıi]|anlaşt[ıi]|imzaland[ıi])", re.I), "supports"),
    (re.compile(r"(anlaşma|mutabakat|ileri|ilerliyor|yakın|yaklaşt[ıi])", re.I), "supports"),
    (re.compile(r"(iddia|söylenti|haberler[e]? göre)", re.I), "neutral"),
]

RULES_BY_LANG = {"en": EN_RULES, "tr": TR_RULES}

TRAILING_PUNCT_RE = re.compile(r"[\s\-–—.,;:!?…|]+$")


class ExtractedUpdate(BaseModel):
    """Timeline fields derived from an article."""

    claim: str = ""
    stance: Optional[Stance] = None
    summary: Optional[str] = None
    evidence: str = "reporting"
    lang: Optional[str] = None


def clean_claim(title: Optional[str]) -> str:
    """Title with trailing punctuation and dashes removed."""
    if not title:
        return ""
    return TRAILING_PUNCT_RE.sub("", title.strip())


def detect_stance_by_rules(title: str, lang: Optional[str]) -> Stance:
    """Keyword rules for the article language; neutral when nothing matches."""
    rules = RULES_BY_LANG.get(base_lang(lang), EN_RULES)
    for pattern, stance in rules:
        if pattern.search(title or ""):
            return stance
    return "neutral"


def build_stance_prompt(title: str, snippet: str, lang: str) -> str:
    """Prompt for a constrained three-label stance classification."""
    return (
        "Classify the stance of the headline toward the core claim. "
        'Output STRICT JSON only: {"stance":"supports|contradicts|neutral"}.\n\n'
        f"Language: {lang}\n"
        f"Title: {title}\n"
        f"Snippet: {snippet}"
    )


def parse_stance(raw: Optional[str]) -> Optional[Stance]:
    """Stance label from provider output, or None if it is not one of the three labels."""
    parsed = parse_json_object(raw)
    if parsed is not None:
        value = parsed.get("stance")
    else:
        value = (raw or "").strip().strip('"').strip()
    if isinstance(value, str) and value.strip().lower() in STANCES:
        return value.strip().lower()
    return None


class UpdateExtractor:
    """Build timeline entries for the clusterer."""

    def __init__(self, config: ClusteringConfig, llm: Optional[LLMProvider] = None) -> None:
        self.config = config
        self.llm = llm

    def _classify_with_llm(self, article: Article, lang: str) -> Optional[Stance]:
        if self.llm is None:
            logger.debug("Stance mode is llm but no provider is configured")
            return None
        prompt = build_stance_prompt(article.title or "", article.snippet or "", lang)
        try:
            raw = self.llm.generate(prompt, max_tokens=self.config.stance_llm_tokens, temperature=0.2)
        except Exception as e:
            logger.warning("LLM stance classification failed for article %s: %s", article.id, e)
            return None
        return parse_stance(raw)

    def extract(self, article: Article) -> ExtractedUpdate:
        """Derive claim, stance and summary; never raises."""
        lang = article.language or "en"
        try:
            stance: Optional[Stance] = None
            if self.config.stance_mode == "llm":
                stance = self._classify_with_llm(article, lang)
            elif self.config.stance_mode == "rules":
                stance = detect_stance_by_rules(article.title or "", lang)

            return ExtractedUpdate(
                claim=clean_claim(article.title or article.snippet),
                stance=stance,
                summary=article.snippet,
                lang=lang,
            )
        except Exception as e:
            logger.warning("Failed to extract update from article %s: %s", article.id, e)
            return ExtractedUpdate(
                claim=(article.title or "")[:200],
                summary=(article.snippet or "")[:500] or None,
                lang=article.language,
            )
