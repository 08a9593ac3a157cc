from __future__ import annotations

import dataclasses
import logging
import re
from typing import Callable, Iterable, Optional, Tuple, Union

from frameforge import completion, config
from frameforge.completion import (
    Completed,
    CompletionRequest,
    CompletionResult,
    Incomplete,
    Refused,
    TransportFailure,
)
from frameforge.errors import (
    InputValidationError,
    MalformedOutput,
    ModelRefusal,
    TransportError,
    TruncatedOutput,
)
from frameforge.html_repair import HtmlVerdict, classify_html, repair
from frameforge.llm_parsing import normalize
from frameforge.llm_prompts import (
    CANVAS_ASSISTANT_SYSTEM_PROMPT,
    HTML_CREATE_SYSTEM_PROMPT,
    HTML_EDIT_SYSTEM_PROMPT,
    HTML_ONLY_SYSTEM_PROMPT,
    IMAGE_SYSTEM_PROMPT,
    JSON_REPAIR_SYSTEM_PROMPT,
    build_chat_prompt,
    build_edit_prompt,
    build_image_prompt,
    build_repair_prompt,
    format_history,
)
from frameforge.models import ChatReply, ChatTurn, Conversation, ImageGeneration, UIDocument

log = logging.getLogger(__name__)

Requester = Callable[[CompletionRequest], CompletionResult]

_DATA_URI_RE = re.compile(r"^data:image/[\w.+-]+;base64,\S", re.IGNORECASE)

# Placeholder intent policy: questions about the drawing surface, not the page
_CANVAS_TERMS_RE = re.compile(
    r"\b(?:canvas|sketch(?:es|ing|ed)?|draw(?:s|n|ing)?|whiteboard|excalidraw|pen|eraser)\b",
    re.IGNORECASE,
)

_UPDATED_MESSAGE = "Updated the page to match your request."
_CREATED_MESSAGE = "Here is a page built from your description."
_NO_HTML_MESSAGE = "I couldn't turn that into an HTML update. Could you rephrase the change?"


def is_canvas_request(instruction: str) -> bool:
    return bool(_CANVAS_TERMS_RE.search(instruction or ""))


def _completion_text(result: CompletionResult) -> str:
    """Map non-text results onto the error taxonomy; return the completion text otherwise."""
    if isinstance(result, Completed):
        return result.text
    if isinstance(result, Incomplete):
        if result.reason == "length":
            raise TruncatedOutput(
                f"The model ran out of output tokens ({config.MAX_OUTPUT_TOKENS}) before finishing. "
                f"Raise {config.MAX_TOKENS_ENV} and try again.",
                detail="finish_reason=length",
            )
        raise MalformedOutput("The model response was incomplete", detail=f"incomplete: {result.reason}")
    if isinstance(result, Refused):
        raise ModelRefusal(result.reason)
    if isinstance(result, TransportFailure):
        raise TransportError("The model service is unavailable. Please try again shortly.", detail=result.message)
    raise TypeError(f"unexpected completion result {result!r}")


def _resolve(requester: Optional[Requester]) -> Requester:
    return requester or completion.request_completion


def _history_text(conversation: Union[Conversation, Iterable[ChatTurn], None]) -> str:
    if conversation is None:
        return ""
    if not isinstance(conversation, Conversation):
        conversation = Conversation(conversation)
    return format_history(conversation.recent(config.HISTORY_TURNS))


def _normalize_with_correction(call: Requester, original: CompletionRequest, text: str) -> UIDocument:
    """Normalize the first completion; on failure re-request once with stricter instructions."""
    try:
        return normalize(text)
    except MalformedOutput as first_error:
        log.info("normalize failed (%s); issuing one corrective request", first_error.detail)
        corrective = dataclasses.replace(
            original,
            system_prompt=f"{original.system_prompt}\n\n{JSON_REPAIR_SYSTEM_PROMPT}",
            user_prompt=f"{original.user_prompt}\n\n{build_repair_prompt(text, first_error.detail)}",
            temperature=config.RETRY_TEMPERATURE,
        )
    return normalize(_completion_text(call(corrective)))


def generate_from_image(image: str, prompt_hint: str = "", *, requester: Optional[Requester] = None) -> ImageGeneration:
    image = (image or "").strip()
    if not image:
        raise InputValidationError("A sketch image is required.")
    if not _DATA_URI_RE.match(image):
        raise InputValidationError("The sketch image must be a base64 data:image/... URI.")

    call = _resolve(requester)
    req = CompletionRequest(
        system_prompt=IMAGE_SYSTEM_PROMPT,
        user_prompt=build_image_prompt(prompt_hint),
        attached_image=image,
        max_output_tokens=config.MAX_OUTPUT_TOKENS,
        temperature=config.IMAGE_TEMPERATURE,
    )
    text = _completion_text(call(req))
    doc = _normalize_with_correction(call, req, text)
    log.info("image generation ok html_len=%d css_len=%d js_len=%d", len(doc.html), len(doc.css), len(doc.js))
    return ImageGeneration(document=doc, model=config.OPENAI_MODEL)


def _html_attempt(call: Requester, req: CompletionRequest) -> Tuple[str, Optional[str]]:
    """Run one request; return (raw text, repaired html or None when it is not HTML)."""
    raw = _completion_text(call(req))
    repaired = repair(raw)
    if classify_html(repaired) is HtmlVerdict.NOT_HTML:
        return raw, None
    return raw, repaired


def _answer_conversationally(call: Requester, instruction: str, history: str) -> ChatReply:
    req = CompletionRequest(
        system_prompt=CANVAS_ASSISTANT_SYSTEM_PROMPT,
        user_prompt=build_chat_prompt(instruction, history),
        max_output_tokens=config.MAX_OUTPUT_TOKENS,
        temperature=config.CHAT_TEMPERATURE,
    )
    answer = _completion_text(call(req)).strip()
    return ChatReply(message=answer or _NO_HTML_MESSAGE)


def generate_from_text(
    instruction: str,
    conversation: Union[Conversation, Iterable[ChatTurn], None] = None,
    current_html: Optional[str] = None,
    *,
    requester: Optional[Requester] = None,
) -> ChatReply:
    """Apply a natural-language instruction to the current page.

    Canvas questions get a plain answer. Everything else asks the model for a
    full replacement document; if that is not HTML, one stricter retry runs,
    and prose from the retry is returned as a conversational answer.
    """
    text = (instruction or "").strip()
    if not text:
        raise InputValidationError("Message must not be empty.")

    call = _resolve(requester)
    history = _history_text(conversation)
    if is_canvas_request(text):
        log.info("chat: routing canvas question to assistant")
        return _answer_conversationally(call, text, history)

    editing = bool(current_html and current_html.strip())
    req = CompletionRequest(
        system_prompt=HTML_EDIT_SYSTEM_PROMPT if editing else HTML_CREATE_SYSTEM_PROMPT,
        user_prompt=build_edit_prompt(text, current_html, history),
        max_output_tokens=config.MAX_OUTPUT_TOKENS,
        temperature=config.EDIT_TEMPERATURE,
    )

    # Step 1: attempt
    raw, html = _html_attempt(call, req)
    if html is None:
        # Step 2: the only retry
        log.info("chat: first answer had no HTML markers; retrying once with HTML-only prompt")
        strict = dataclasses.replace(
            req,
            system_prompt=f"{HTML_ONLY_SYSTEM_PROMPT}\n\n{req.system_prompt}",
            temperature=config.RETRY_TEMPERATURE,
        )
        retry_raw, html = _html_attempt(call, strict)
        raw = retry_raw if retry_raw.strip() else raw

    if html is None:
        log.info("chat: no HTML after retry; answering conversationally")
        return ChatReply(message=raw.strip() or _NO_HTML_MESSAGE)
    return ChatReply(message=_UPDATED_MESSAGE if editing else _CREATED_MESSAGE, updated_html=html)


def generate_from_voice_transcript(
    transcript: str,
    conversation: Union[Conversation, Iterable[ChatTurn], None] = None,
    current_html: Optional[str] = None,
    *,
    requester: Optional[Requester] = None,
) -> ChatReply:
    if not (transcript or "").strip():
        raise InputValidationError("The voice transcript is empty.")
    return generate_from_text(transcript, conversation, current_html, requester=requester)
