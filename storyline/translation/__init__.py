"""Translation cache and chunking engine."""

from .chunking import chunk_by_paragraphs, join_chunks, split_sentences
from .engine import TranslationEngine
from .models import SummaryFields, TranslatedFields, TranslationMetrics

__all__ = [
    "SummaryFields",
    "TranslatedFields",
    "TranslationEngine",
    "TranslationMetrics",
    "chunk_by_paragraphs",
    "join_chunks",
    "split_sentences",
]
