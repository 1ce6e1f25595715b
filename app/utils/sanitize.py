"""Strip markup from free-text review comments."""

import html
import logging
import re

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

_SCRIPT_BLOCK = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]*(?:>|$)")

# Each pass can only shrink the text; this bound is never reached in practice.
_MAX_PASSES = 32


def _strip_tags_fallback(text: str) -> str:
    text = _SCRIPT_BLOCK.sub("", text)
    return _TAG.sub("", text).strip()


def _strip_to_fixed_point(text: str) -> str:
    # Neither step can grow the text, so this ends once both are no-ops
    while True:
        stripped = html.unescape(_strip_tags_fallback(text))
        if stripped == text:
            return stripped
        text = stripped


def _clean_once(text: str) -> str:
    try:
        soup = BeautifulSoup(text, "html.parser")
        for element in soup(["script", "style"]):
            element.decompose()
        return soup.get_text().strip()
    except Exception as e:
        logger.warning("HTML parsing failed, stripping tag-like sequences: %s", e)
        return _strip_tags_fallback(text)


def sanitize(text: str | None) -> str:
    """Remove HTML and script content, keeping the human-readable text.

    Never raises. Repeats until the output is stable, so entity-encoded markup
    that decodes into tags is removed as well and ``sanitize`` is idempotent.
    """
    if not text:
        return ""
    current = text
    for _ in range(_MAX_PASSES):
        cleaned = _clean_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned
    logger.warning("Sanitizer did not settle after %d passes, stripping to a fixed point", _MAX_PASSES)
    return _strip_to_fixed_point(current)
