import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from frameforge import completion, config, generation
from frameforge.errors import GenerationError, InputValidationError
from frameforge.models import (
    ChatReply,
    ChatRequest,
    ChatResponse,
    GenerateUIRequest,
    GenerateUIResponse,
    VoiceRequest,
)
from frameforge.render import render_ui_document


if not logging.getLogger().handlers:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)

app = FastAPI(title=config.SERVICE_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CLIENT_ORIGINS or ["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    if isinstance(exc, InputValidationError):
        log.info("rejected request path=%s: %s", request.url.path, exc.message)
    else:
        log.warning("generation failed path=%s kind=%s detail=%s", request.url.path, exc.kind, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(config.SHOW_ERROR_DETAIL))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    err = InputValidationError("Invalid request body", detail="; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', []))}: {e.get('msg', 'invalid')}" for e in exc.errors()
    ))
    return JSONResponse(status_code=err.status_code, content=err.to_payload(config.SHOW_ERROR_DETAIL))


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/status")
def api_status() -> Dict[str, Any]:
    return {
        "service": config.SERVICE_NAME,
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/llm/status")
def llm_status_endpoint() -> Dict[str, Any]:
    return completion.status()


@app.post("/api/generate-ui", response_model=GenerateUIResponse)
def generate_ui(req: GenerateUIRequest) -> GenerateUIResponse:
    """Turn an exported sketch image into html/css/js plus a ready-to-render page."""
    result = generation.generate_from_image(req.image, req.prompt)
    doc = result.document
    return GenerateUIResponse(
        html=doc.html,
        css=doc.css,
        js=doc.js,
        model=result.model,
        document=render_ui_document(doc),
    )


def _chat_response(reply: ChatReply) -> JSONResponse:
    body = ChatResponse(message=reply.message, updated_html=reply.updated_html)
    return JSONResponse(body.model_dump(by_alias=True, exclude_none=True))


@app.post("/api/chat")
def chat(req: ChatRequest) -> JSONResponse:
    reply = generation.generate_from_text(req.message, req.history, req.current_html)
    return _chat_response(reply)


@app.post("/api/voice")
def voice(req: VoiceRequest) -> JSONResponse:
    reply = generation.generate_from_voice_transcript(req.transcript, req.history, req.current_html)
    return _chat_response(reply)
