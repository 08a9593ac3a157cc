from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UIDocument(BaseModel):
    """Generated markup split into its three parts; js defaults to empty."""

    model_config = ConfigDict(frozen=True)

    html: str = Field(..., min_length=1)
    css: str = ""
    js: str = ""


class ChatTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class Conversation:
    """Append-only chat log. Edits are recorded as new turns, never in place."""

    def __init__(self, turns: Iterable[ChatTurn] = ()) -> None:
        self._turns: Tuple[ChatTurn, ...] = tuple(turns)

    @property
    def turns(self) -> Tuple[ChatTurn, ...]:
        return self._turns

    def __len__(self) -> int:
        return len(self._turns)

    def append(self, role: str, content: str) -> "Conversation":
        return Conversation(self._turns + (ChatTurn(role=role, content=content),))

    def resend_edited(self, index: int, content: str) -> "Conversation":
        """Re-send an earlier turn with new content as a fresh turn at the end."""
        original = self._turns[index]
        return self.append(original.role, content)

    def recent(self, limit: int) -> List[ChatTurn]:
        if limit <= 0:
            return []
        return list(self._turns[-limit:])


class ImageGeneration(BaseModel):
    document: UIDocument
    model: str


class ChatReply(BaseModel):
    message: str
    updated_html: Optional[str] = None


# HTTP payloads


class GenerateUIRequest(BaseModel):
    # Defaults let the orchestrator reject empty input with a uniform error body
    image: str = Field("", description="Sketch exported as a data:image/... URI")
    prompt: str = Field("", description="Optional hint sent alongside the sketch")


class GenerateUIResponse(BaseModel):
    html: str
    css: str
    js: str
    model: str
    document: str = Field(..., description="Self-contained HTML combining html, css and js")


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    history: List[ChatTurn] = Field(default_factory=list)
    current_html: Optional[str] = Field(default=None, alias="currentHtml")


class VoiceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: str = ""
    history: List[ChatTurn] = Field(default_factory=list)
    current_html: Optional[str] = Field(default=None, alias="currentHtml")


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    updated_html: Optional[str] = Field(default=None, alias="updatedHtml")
