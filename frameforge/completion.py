"""
One chat-completion call against an OpenAI-compatible endpoint.

Provider response shapes (content part arrays, refusal objects, finish
reasons) stop here: callers only ever see a CompletionResult variant.
No retries happen at this level.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import requests
from requests.exceptions import RequestException

from frameforge import config

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionRequest:
    system_prompt: str
    user_prompt: str
    max_output_tokens: int
    temperature: float
    attached_image: Optional[str] = None

    def __post_init__(self) -> None:
        if int(self.max_output_tokens) <= 0:
            raise ValueError("max_output_tokens must be positive")
        if not 0.0 <= float(self.temperature) <= 1.0:
            raise ValueError("temperature must be within [0, 1]")


@dataclass(frozen=True)
class Completed:
    text: str


@dataclass(frozen=True)
class Incomplete:
    reason: str


@dataclass(frozen=True)
class Refused:
    reason: str


@dataclass(frozen=True)
class TransportFailure:
    message: str


CompletionResult = Union[Completed, Incomplete, Refused, TransportFailure]


def status() -> Dict[str, Any]:
    return {
        "provider": "openai",
        "model": config.OPENAI_MODEL,
        "has_token": bool(config.OPENAI_API_KEY),
        "max_output_tokens": config.MAX_OUTPUT_TOKENS,
    }


def _build_messages(req: CompletionRequest) -> List[Dict[str, Any]]:
    content: List[Dict[str, Any]] = [{"type": "text", "text": req.user_prompt}]
    if req.attached_image:
        content.append({"type": "image_url", "image_url": {"url": req.attached_image}})
    return [
        {"role": "system", "content": req.system_prompt},
        {"role": "user", "content": content},
    ]


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return ""


def _result_from_payload(data: Any) -> CompletionResult:
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return TransportFailure("Provider response contained no choices")
    choice = choices[0]
    message = choice.get("message") if isinstance(choice.get("message"), dict) else {}
    finish_reason = choice.get("finish_reason")

    refusal = message.get("refusal")
    if isinstance(refusal, str) and refusal.strip():
        return Refused(refusal.strip())
    if finish_reason == "content_filter":
        return Refused("The provider's content filter blocked this response")
    if finish_reason == "length":
        return Incomplete("length")
    return Completed(_content_text(message.get("content")))


def request_completion(req: CompletionRequest) -> CompletionResult:
    """Issue one completion call; provider conditions come back as variants, never raised."""
    if not config.OPENAI_API_KEY:
        return TransportFailure("OPENAI_API_KEY is not configured")

    headers = {
        "Authorization": f"Bearer {config.OPENAI_API_KEY}",
        "Content-Type": "application/json",
    }
    body = {
        "model": config.OPENAI_MODEL,
        "messages": _build_messages(req),
        "max_tokens": int(req.max_output_tokens),
        "temperature": float(req.temperature),
    }
    try:
        resp = requests.post(config.OPENAI_ENDPOINT, headers=headers, json=body, timeout=config.LLM_TIMEOUT_SECS)
    except RequestException as e:
        log.warning("Completion request error: %r", e)
        return TransportFailure(f"Could not reach the model provider: {e.__class__.__name__}")

    if resp.status_code != 200:
        try:
            msg = resp.text[:400]
        except Exception:
            msg = str(resp.status_code)
        log.warning("Completion HTTP %s: %s", resp.status_code, msg)
        if resp.status_code in (401, 403):
            return TransportFailure("The model provider rejected the configured credentials")
        return TransportFailure(f"Model provider returned HTTP {resp.status_code}")

    try:
        data = resp.json()
    except ValueError:
        log.warning("Completion: non-JSON HTTP body")
        return TransportFailure("Model provider returned a non-JSON body")

    result = _result_from_payload(data)
    if not isinstance(result, Completed):
        log.info("Completion finished without usable text: %r", result)
    return result
