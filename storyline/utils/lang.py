"""BCP-47 language code helpers (non-strict)."""

from typing import Optional

RTL_LANGS = ("ar", "he", "fa", "ur")


def normalize_bcp47(code: Optional[str], fallback: str = "en") -> str:
    """
    Normalize a language tag: lower-case language, title-case script, upper-case region.

    Underscores are accepted as separators. Empty or non-string input returns
    the fallback.
    """
    if not code or not isinstance(code, str):
        return fallback
    parts = [p for p in code.strip().replace("_", "-").split("-") if p]
    if not parts:
        return fallback

    lang = parts[0].lower()
    script = None
    region = None
    if len(parts) > 1:
        if len(parts[1]) == 4:
            script = parts[1].capitalize()
            if len(parts) > 2 and len(parts[2]) == 2:
                region = parts[2].upper()
        elif len(parts[1]) == 2:
            region = parts[1].upper()

    return "-".join(p for p in (lang, script, region) if p)


def base_lang(code: Optional[str]) -> str:
    """Primary language subtag, lower-cased ("pt-BR" -> "pt")."""
    return (code or "").split("-")[0].split("_")[0].lower()


def is_rtl_lang(code: Optional[str]) -> bool:
    """Whether the language is written right-to-left."""
    return base_lang(code) in RTL_LANGS
