"""Shared session state for a single podai workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .gateway import ChatSession
from .models import AudioFile, ChatMessage, PodcastResult
from .personas import Persona


class AppStage(str, Enum):
    """Workflow positions; exactly one is active at a time."""

    UPLOAD = "UPLOAD"
    TRANSCRIBING = "TRANSCRIBING"
    REVIEW_TRANSCRIPT = "REVIEW_TRANSCRIPT"
    SELECT_PERSONA = "SELECT_PERSONA"
    GENERATING = "GENERATING"
    RESULT = "RESULT"
    ERROR = "ERROR"


STAGE_DESCRIPTIONS = {
    AppStage.UPLOAD: "Upload an audio recording",
    AppStage.TRANSCRIBING: "Listening to your audio... transcribing audio into text",
    AppStage.REVIEW_TRANSCRIPT: "Review the transcript and choose a persona",
    AppStage.SELECT_PERSONA: "Persona selected, ready to generate",
    AppStage.GENERATING: "Crafting your persona... AI is rewriting your content",
    AppStage.RESULT: "Your transformed script is ready",
    AppStage.ERROR: "Something went wrong",
}


@dataclass
class SessionState:
    """The authoritative in-memory state of one session.

    Owned by :class:`podai.workflow.Workflow`; the chat controller receives
    the same instance and only touches the chat fields.
    """

    stage: AppStage = AppStage.UPLOAD
    audio: Optional[AudioFile] = None
    transcript: str = ""
    persona: Optional[Persona] = None
    result: Optional[PodcastResult] = None
    error: Optional[str] = None
    notice: Optional[str] = None
    chat_messages: List[ChatMessage] = field(default_factory=list)
    chat_session: Optional[ChatSession] = None
    chat_loading: bool = False

    def clear_chat(self) -> None:
        self.chat_messages = []
        self.chat_session = None
        self.chat_loading = False


class InvalidTransitionError(RuntimeError):
    """Raised when an action is not valid for the current stage."""

    def __init__(self, action: str, stage: AppStage) -> None:
        super().__init__(f"Cannot {action} while in stage {stage.value}")
        self.action = action
        self.stage = stage
