from __future__ import annotations

from typing import Any, Dict, Optional


class GenerationError(Exception):
    """Base for every failure the generation core reports to a caller.

    `message` is safe to show to end users; `detail` carries diagnostics
    (parser errors, provider bodies) and is only exposed outside production.
    """

    kind = "generation_error"
    status_code = 500

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_payload(self, include_detail: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "kind": self.kind}
        if include_detail and self.detail:
            payload["detail"] = self.detail
        return payload


class InputValidationError(GenerationError):
    """Caller input failed a precondition; raised before any model call."""

    kind = "validation_error"
    status_code = 400


class TransportError(GenerationError):
    kind = "transport_error"
    status_code = 503


class TruncatedOutput(GenerationError):
    """The provider stopped at the output token budget."""

    kind = "incomplete"
    status_code = 502


class ModelRefusal(GenerationError):
    kind = "model_refusal"
    status_code = 422


class MalformedOutput(GenerationError):
    kind = "malformed_output"
    status_code = 502
