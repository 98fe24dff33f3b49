"""Pretranslation scheduler."""

from .articles import langs_or_default, run_article_pretranslation
from .models import ArticleCycleSummary, CycleSummary, Job, JobOutcome
from .scheduler import (
    PretranslationScheduler,
    choose_pivot_row,
    compute_global_targets,
    derives_from_pivot,
    is_fresh,
    pick_pivot,
    row_signature,
    select_markets,
)

__all__ = [
    "ArticleCycleSummary",
    "CycleSummary",
    "Job",
    "JobOutcome",
    "PretranslationScheduler",
    "choose_pivot_row",
    "compute_global_targets",
    "derives_from_pivot",
    "is_fresh",
    "langs_or_default",
    "pick_pivot",
    "row_signature",
    "run_article_pretranslation",
    "select_markets",
]
