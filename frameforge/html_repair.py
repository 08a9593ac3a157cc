from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from frameforge.llm_parsing import strip_code_fences
from frameforge.render import render_document_shell


class HtmlVerdict(str, Enum):
    COMPLETE_DOCUMENT = "complete_document"
    FRAGMENT_LIKELY = "fragment_likely"
    NOT_HTML = "not_html"


_COMPLETE_START_RE = re.compile(r"^(?:<!doctype\b|<html\b)", re.IGNORECASE)
_PAIRED_TAGS = r"(div|span|p|a|button|ul|ol|li|table|tr|td|form|label|h[1-6]|nav|header|footer|article|aside|section|main|img|svg)"
# Attribute scan stops at the next "<" so unterminated tags stay cheap
_OPEN_TAG_RE = re.compile(r"<" + _PAIRED_TAGS + r"\b[^<>]*>", re.IGNORECASE)
_CLOSE_TAG_RE = re.compile(r"</" + _PAIRED_TAGS + r"\s*>", re.IGNORECASE)
_BLOCK_TAG_RE = re.compile(r"<(?:html|body|section|main|header|footer|nav|article|form)\b", re.IGNORECASE)
_DOC_START_RE = re.compile(r"<!doctype\b|<html\b", re.IGNORECASE)
_DOC_END_RE = re.compile(r"</html\s*>", re.IGNORECASE)


def _has_paired_tag(text: str) -> bool:
    """True when some listed tag opens and later closes. One pass per regex."""
    first_open = {}
    for m in _OPEN_TAG_RE.finditer(text):
        first_open.setdefault(m.group(1).lower(), m.end())
    if not first_open:
        return False
    for m in _CLOSE_TAG_RE.finditer(text):
        opened_at = first_open.get(m.group(1).lower())
        if opened_at is not None and opened_at <= m.start():
            return True
    return False


def _has_head_section(text: str) -> bool:
    lower = text.lower()
    start = lower.find("<head>")
    return start != -1 and lower.find("</head>", start) != -1


def classify_html(text: str) -> HtmlVerdict:
    """Heuristic verdict on whether model output is usable markup.

    Approximate by nature: a paired tag or a block-level tag anywhere is
    enough to call it a fragment.
    """
    t = strip_code_fences(text)
    if _COMPLETE_START_RE.match(t):
        return HtmlVerdict.COMPLETE_DOCUMENT
    if _BLOCK_TAG_RE.search(t) or _has_head_section(t) or _has_paired_tag(t):
        return HtmlVerdict.FRAGMENT_LIKELY
    return HtmlVerdict.NOT_HTML


def _embedded_document(text: str) -> Optional[str]:
    """Cut a full document out of surrounding prose; an unclosed one runs to the end."""
    start = _DOC_START_RE.search(text)
    if not start:
        return None
    ends = list(_DOC_END_RE.finditer(text, start.start()))
    if not ends:
        return text[start.start():].strip()
    return text[start.start() : ends[-1].end()]


def wrap_fragment(fragment: str) -> str:
    return render_document_shell(fragment.strip())


def repair(raw_text: str) -> str:
    """Return a complete HTML document for the completion when it holds markup.

    Complete documents come back unchanged. Text without any markup is
    returned fence-stripped so the caller can decide what to do with it.
    """
    text = strip_code_fences(raw_text)
    verdict = classify_html(text)
    if verdict is not HtmlVerdict.FRAGMENT_LIKELY:
        return text
    embedded = _embedded_document(text)
    if embedded:
        return embedded
    return wrap_fragment(text)
