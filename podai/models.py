"""Records describing the objects that flow through a podai session."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(slots=True)
class Config:
    """User configuration stored on disk."""

    backend: str = "auto"
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    transcription_model: str = "gemini-2.5-flash"
    transform_model: str = "gemini-3-pro-preview"
    chat_model: str = "gemini-2.5-flash"
    openai_transcription_model: str = "gpt-4o-transcribe"
    openai_transform_model: str = "gpt-4o"
    openai_chat_model: str = "gpt-4o-mini"
    thinking_budget: int = 1024
    max_file_size_mb: int = 10
    history_limit: int = 50

    @property
    def max_file_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


@dataclass(slots=True)
class AudioFile:
    """An uploaded recording. Only ever held in memory."""

    path: Path
    preview_uri: str
    base64: str
    mime_type: str

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True, slots=True)
class PodcastResult:
    transcript: str
    transformed_content: str
    selected_persona_id: str


@dataclass(frozen=True, slots=True)
class ChatMessage:
    id: str
    role: Literal["user", "model"]
    text: str
    timestamp: int


class HistoryItem(BaseModel):
    """A persisted record of one completed transformation.

    Serialised with the camelCase keys used by history exports so that an
    exported archive can be read back by any earlier client.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    timestamp: int
    file_name: str = Field(alias="fileName")
    persona_id: str = Field(alias="personaId")
    # Kept for export compatibility; nothing reads it.
    transcript_snippet: str = Field(alias="transcriptSnippet")
    full_transcript: str = Field(alias="fullTranscript")
    transformed_content: str = Field(alias="transformedContent")
