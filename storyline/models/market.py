"""Market configuration model."""

import re
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.lang import normalize_bcp47


def parse_lang_list(raw: Any) -> List[str]:
    """Parse a language list given as a list, a Postgres text[] literal or a comma list."""
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        items = [str(s) for s in raw]
    else:
        items = re.split(r"[\s,]+", str(raw).replace("{", "").replace("}", ""))
    langs = []
    for item in items:
        if not item.strip():
            continue
        lang = normalize_bcp47(item)
        if lang not in langs:
            langs.append(lang)
    return langs


class Market(BaseModel):
    """App market: pivot language and the languages to pre-translate into."""

    id: Optional[str] = None
    market_code: str = Field(..., description="Market code")
    pivot_lang: Optional[str] = Field("en", description="Pivot language for summaries")
    show_langs: List[str] = Field(default_factory=list, description="Languages shown to users")
    pretranslate_langs: List[str] = Field(default_factory=list, description="Languages to pre-translate")
    enabled: bool = Field(True, description="Whether the market is enabled")

    @field_validator("show_langs", "pretranslate_langs", mode="before")
    @classmethod
    def validate_langs(cls, v: Any) -> List[str]:
        """Accept arrays, text[] literals and comma lists."""
        return parse_lang_list(v)

    @field_validator("enabled", mode="before")
    @classmethod
    def default_enabled(cls, v: Any) -> bool:
        """Treat a missing flag as enabled."""
        return True if v is None else v

    @property
    def target_langs(self) -> List[str]:
        """Languages to translate into, falling back to the shown languages."""
        return self.pretranslate_langs or self.show_langs
