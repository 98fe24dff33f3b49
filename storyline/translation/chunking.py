"""Paragraph-aware splitting of long documents for translation."""

import re
import textwrap
from typing import List

PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")
SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+")


def split_sentences(paragraph: str, max_chars: int) -> List[str]:
    """Pack the sentences of an oversized paragraph into chunks of at most max_chars."""
    chunks: List[str] = []
    current = ""
    for sentence in SENTENCE_BREAK_RE.split(paragraph):
        if not sentence:
            continue
        pieces = [sentence] if len(sentence) <= max_chars else textwrap.wrap(sentence, max_chars)
        for piece in pieces:
            if current and len(current) + 1 + len(piece) > max_chars:
                chunks.append(current)
                current = piece
            else:
                current = f"{current} {piece}" if current else piece
    if current:
        chunks.append(current)
    return chunks


def chunk_by_paragraphs(text: str, max_chars: int) -> List[str]:
    """
    Group blank-line separated paragraphs into chunks no longer than max_chars.

    Paragraphs inside a chunk are joined by a blank line. A paragraph that is
    longer than max_chars on its own is split on sentence boundaries.
    """
    chunks: List[str] = []
    buffer: List[str] = []
    size = 0

    def flush() -> None:
        nonlocal buffer, size
        if buffer:
            chunks.append("\n\n".join(buffer))
        buffer, size = [], 0

    for raw in PARAGRAPH_BREAK_RE.split(text or ""):
        paragraph = raw.strip()
        if not paragraph:
            continue
        if len(paragraph) > max_chars:
            flush()
            chunks.extend(split_sentences(paragraph, max_chars))
            continue
        added = len(paragraph) + (2 if buffer else 0)
        if size + added > max_chars:
            flush()
            added = len(paragraph)
        buffer.append(paragraph)
        size += added
    flush()
    return chunks


def join_chunks(chunks: List[str]) -> str:
    """Reassemble translated chunks as paragraphs."""
    return "\n\n".join(c.strip() for c in chunks if c and c.strip()).strip()
