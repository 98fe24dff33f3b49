"""Story clustering and timeline extraction."""

from .clusterer import Clusterer, fingerprint, select_best_match
from .update_extractor import (
    ExtractedUpdate,
    UpdateExtractor,
    clean_claim,
    detect_stance_by_rules,
    parse_stance,
)

__all__ = [
    "Clusterer",
    "ExtractedUpdate",
    "UpdateExtractor",
    "clean_claim",
    "detect_stance_by_rules",
    "fingerprint",
    "parse_stance",
    "select_best_match",
]
