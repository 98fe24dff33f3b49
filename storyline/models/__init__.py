"""Data models for storyline."""

from .article import Article, SimilarArticle
from .cluster import Cluster, ClusterAI, ClusterUpdate, Stance
from .market import Market, parse_lang_list
from .translation import TranslationCacheEntry

__all__ = [
    "Article",
    "Cluster",
    "ClusterAI",
    "ClusterUpdate",
    "Market",
    "SimilarArticle",
    "Stance",
    "TranslationCacheEntry",
    "parse_lang_list",
]
