from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from jsonschema.validators import Draft202012Validator

from frameforge.errors import MalformedOutput, ModelRefusal
from frameforge.models import UIDocument

UI_DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["html", "css"],
    "properties": {
        "html": {"type": "string", "minLength": 1},
        "css": {"type": "string"},
        "js": {"type": "string"},
    },
}
_VALIDATOR = Draft202012Validator(UI_DOCUMENT_SCHEMA)

_FENCED_BLOCK_RE = re.compile(r"^```[\w.+-]*[ \t]*\r?\n([\s\S]*?)^```[ \t]*$", re.MULTILINE)
_LEADING_FENCE_RE = re.compile(r"^```[\w.+-]*[ \t]*\r?\n?")
_TRAILING_FENCE_RE = re.compile(r"\r?\n?```$")
# A line opening with JSON or a full document means the payload is unfenced
_UNFENCED_PAYLOAD_RE = re.compile(r"^[ \t]*(?:\{|<!doctype\b|<html\b)", re.MULTILINE | re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Return the payload inside markdown fences.

    Only fences on their own line count. A complete ```lang ... ``` block
    wins when prose surrounds it, unless an unfenced payload begins before
    it; backticks inside such a payload belong to the payload. Otherwise
    lone leading/trailing fence markers are dropped, which covers
    completions cut off before the closing fence.
    """
    t = (text or "").strip()
    if t[:1] in ("{", "[", "<"):
        return _TRAILING_FENCE_RE.sub("", t, count=1).strip()
    m = _FENCED_BLOCK_RE.search(t)
    if m and not _UNFENCED_PAYLOAD_RE.search(t, 0, m.start()):
        return m.group(1).strip()
    t = _LEADING_FENCE_RE.sub("", t, count=1)
    t = _TRAILING_FENCE_RE.sub("", t, count=1)
    return t.strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the first brace-balanced {...} substring of `text`, or None.

    Braces inside JSON strings do not count; a backslash inside a string
    escapes exactly the next character.
    """
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_str = False
    esc = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _loosen_json(text: str) -> str:
    s = re.sub(r",\s*([}\]])", r"\1", text)
    return s.replace("“", '"').replace("”", '"')


def _parse_object(text: str) -> Dict[str, Any]:
    """json.loads that insists on an object; raises ValueError otherwise."""
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


def _coerce_document(payload: Dict[str, Any]) -> UIDocument:
    errors = sorted(_VALIDATOR.iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        err = errors[0]
        loc = ".".join(str(p) for p in err.path) or "(root)"
        raise MalformedOutput(
            "The model response was missing required html/css fields",
            detail=f"{loc}: {err.message}",
        )
    js = payload.get("js", "")
    return UIDocument(html=payload["html"], css=payload["css"], js=js)


def normalize(raw_text: Optional[str], refusal: Optional[str] = None) -> UIDocument:
    """Turn a free-form completion into a UIDocument or raise.

    Raises ModelRefusal when the completion is empty and a refusal is known,
    MalformedOutput for everything else that cannot be parsed.

    `refusal` is for callers holding only raw text plus the provider's
    refusal message; the orchestrator maps Refused results before this runs.
    """
    raw = raw_text or ""
    if not raw.strip():
        if refusal:
            raise ModelRefusal(refusal)
        raise MalformedOutput("The model returned an empty response", detail="empty completion")

    stripped = strip_code_fences(raw)
    try:
        return _coerce_document(_parse_object(stripped))
    except ValueError:
        pass

    candidate = extract_json_object(stripped)
    if candidate is None:
        raise MalformedOutput(
            "The model response did not contain a JSON object",
            detail="no balanced {...} object found",
        )
    try:
        payload = _parse_object(candidate)
    except ValueError as first_error:
        try:
            payload = _parse_object(_loosen_json(candidate))
        except ValueError:
            raise MalformedOutput(
                "The model response contained invalid JSON",
                detail=str(first_error),
            ) from first_error
    return _coerce_document(payload)
