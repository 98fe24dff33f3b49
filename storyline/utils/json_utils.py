"""Defensive JSON parsing for provider output."""

import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```[a-zA-Z0-9]*\n?", "", cleaned)
        cleaned = re.sub(r"\n?```\s*$", "", cleaned)
    return cleaned.strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the outermost balanced {...} substring, or None."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_json_object(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse a JSON object out of free-form model output.

    Strips code fences, then falls back to the outermost object embedded in
    surrounding prose. Returns None when nothing parseable is found.
    """
    cleaned = strip_code_fences(raw or "")
    if not cleaned:
        return None

    candidates = [cleaned]
    embedded = extract_json_object(cleaned)
    if embedded and embedded != cleaned:
        candidates.append(embedded)

    for candidate in candidates:
        try:
            data = json.loads(candidate, strict=False)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    logger.debug("Unparseable JSON from provider: %r", cleaned[:200])
    return None
