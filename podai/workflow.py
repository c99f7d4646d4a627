"""The upload -> transcribe -> persona -> result workflow."""

from __future__ import annotations

import base64
import logging
import mimetypes
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, List, Optional, TypeVar, Union

from .chat import ChatController
from .gateway import AIGateway, GatewayConfigError
from .models import AudioFile, HistoryItem, PodcastResult
from .personas import get_persona
from .state import AppStage, InvalidTransitionError, SessionState
from .storage import HistoryStore, StorageError

MAX_FILE_SIZE_MB = 10
MAX_FILE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
RESTORED_SESSION_NAME = "restored_session"

T = TypeVar("T")


class AudioValidationError(ValueError):
    """Raised when a file cannot be accepted as an upload."""


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """The resolved value of a remote call: either a value or an error."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_task(fn: Callable[..., T], *args: Any) -> Outcome[T]:
    try:
        return Outcome(value=fn(*args))
    except Exception as exc:
        logging.exception("Remote call %s failed", getattr(fn, "__name__", fn))
        return Outcome(error=exc)


def guess_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


def validate_audio(name: str, mime_type: str, size: int, max_bytes: int = MAX_FILE_BYTES) -> None:
    if not mime_type.startswith("audio/"):
        raise AudioValidationError("Please upload an audio file (MP3, WAV, M4A, etc.)")
    if size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise AudioValidationError(f"File size exceeds {limit_mb}MB limit.")
    logging.debug("Accepted %s (%s, %d bytes)", name, mime_type, size)


def load_audio(path: Path, max_bytes: int = MAX_FILE_BYTES) -> AudioFile:
    """Validate *path* and read it into an in-memory :class:`AudioFile`."""

    path = Path(path)
    mime_type = guess_mime_type(path)
    validate_audio(path.name, mime_type, path.stat().st_size, max_bytes)
    payload = base64.b64encode(path.read_bytes()).decode("ascii")
    return AudioFile(path=path, preview_uri=path.resolve().as_uri(), base64=payload, mime_type=mime_type)


def scan_folder(directory: Path, max_bytes: int = MAX_FILE_BYTES) -> List[Path]:
    """Return the valid audio files in *directory*, silently skipping the rest."""

    accepted = []
    for candidate in sorted(Path(directory).rglob("*")):
        if not candidate.is_file():
            continue
        try:
            validate_audio(candidate.name, guess_mime_type(candidate), candidate.stat().st_size, max_bytes)
        except AudioValidationError:
            continue
        accepted.append(candidate)
    if not accepted:
        raise AudioValidationError("No valid audio files found in this folder.")
    return accepted


class Workflow:
    """Drive one session through its stages.

    Every action checks the current stage first and raises
    :class:`InvalidTransitionError` when it does not apply. Remote calls are
    resolved into an :class:`Outcome` before any transition is taken.
    """

    def __init__(
        self,
        gateway: Optional[AIGateway],
        history: HistoryStore,
        max_file_bytes: int = MAX_FILE_BYTES,
        state: Optional[SessionState] = None,
    ) -> None:
        self.gateway = gateway
        self.history = history
        self.max_file_bytes = max_file_bytes
        self.state = state or SessionState()
        self.chat = ChatController(self.state, gateway)

    @property
    def stage(self) -> AppStage:
        return self.state.stage

    def _require(self, action: str, *stages: AppStage) -> None:
        if self.state.stage not in stages:
            raise InvalidTransitionError(action, self.state.stage)

    def _require_gateway(self) -> AIGateway:
        if self.gateway is None:
            raise GatewayConfigError("No AI backend configured for this session.")
        return self.gateway

    def _fail(self, error: BaseException) -> None:
        self.state.error = str(error) or error.__class__.__name__
        self.state.stage = AppStage.ERROR

    def upload(self, path: Path) -> AppStage:
        """Validate and transcribe *path*.

        A rejected file leaves the stage untouched and records the reason in
        ``state.notice`` before re-raising.
        """

        self._require("upload a file", AppStage.UPLOAD)
        gateway = self._require_gateway()
        state = self.state
        state.notice = None
        try:
            audio = load_audio(path, self.max_file_bytes)
        except AudioValidationError as exc:
            state.notice = str(exc)
            raise

        state.stage = AppStage.TRANSCRIBING
        state.audio = audio
        outcome = run_task(gateway.transcribe, audio.base64, audio.mime_type, audio.name)
        if not outcome.ok:
            self._fail(outcome.error)
            return state.stage
        state.transcript = outcome.value
        state.stage = AppStage.REVIEW_TRANSCRIPT
        return state.stage

    def select_persona(self, persona_id: str) -> AppStage:
        self._require("select a persona", AppStage.REVIEW_TRANSCRIPT, AppStage.SELECT_PERSONA)
        self.state.persona = get_persona(persona_id)
        self.state.stage = AppStage.SELECT_PERSONA
        return self.state.stage

    def generate(self) -> AppStage:
        self._require("generate", AppStage.SELECT_PERSONA)
        state = self.state
        if state.persona is None or not state.transcript:
            raise InvalidTransitionError("generate without a persona and transcript", state.stage)

        gateway = self._require_gateway()
        persona = state.persona
        state.stage = AppStage.GENERATING
        outcome = run_task(gateway.transform, state.transcript, persona)
        if not outcome.ok:
            self._fail(outcome.error)
            return state.stage

        result = PodcastResult(
            transcript=state.transcript,
            transformed_content=outcome.value,
            selected_persona_id=persona.id,
        )
        state.result = result
        if state.audio is not None:
            try:
                self.history.add(result, state.audio.name)
            except (sqlite3.Error, OSError, StorageError):
                logging.exception("Failed to save %s to history", state.audio.name)
        self.chat.reset()
        state.stage = AppStage.RESULT
        return state.stage

    def reset(self) -> AppStage:
        self._require(
            "reset",
            AppStage.UPLOAD,
            AppStage.REVIEW_TRANSCRIPT,
            AppStage.SELECT_PERSONA,
            AppStage.RESULT,
        )
        return self._restart()

    def retry(self) -> AppStage:
        self._require("retry", AppStage.ERROR)
        return self._restart()

    def _restart(self) -> AppStage:
        state = self.state
        state.audio = None
        state.transcript = ""
        state.persona = None
        state.result = None
        state.error = None
        state.notice = None
        self.chat.reset()
        state.stage = AppStage.UPLOAD
        return state.stage

    def load_from_history(self, item: Union[HistoryItem, str]) -> AppStage:
        """Restore a saved result from any stage, skipping the intermediate ones."""

        if isinstance(item, str):
            item = self.history.get(item)
        state = self.state
        state.persona = get_persona(item.persona_id)
        state.result = PodcastResult(
            transcript=item.full_transcript,
            transformed_content=item.transformed_content,
            selected_persona_id=item.persona_id,
        )
        state.transcript = item.full_transcript
        state.audio = None
        state.error = None
        state.notice = None
        self.chat.reset()
        state.stage = AppStage.RESULT
        return state.stage

    def load_random_history(self) -> Optional[HistoryItem]:
        item = self.history.random()
        if item is not None:
            self.load_from_history(item)
        return item

    def delete_history(self, item_id: str) -> bool:
        return self.history.delete(item_id)

    def export_history(self, directory: Path) -> Path:
        return self.history.export(Path(directory))

    def script_text(self) -> str:
        """The transformed content with an attribution footer."""

        self._require("export the script", AppStage.RESULT)
        result = self.state.result
        persona = get_persona(result.selected_persona_id)
        return f"{result.transformed_content}\n\n---\nBased on: {self._source_stem()}\nPersona: {persona.name}"

    def script_filename(self) -> str:
        self._require("export the script", AppStage.RESULT)
        persona = get_persona(self.state.result.selected_persona_id)
        return f"PodAI_{'_'.join(persona.name.split())}_{self._source_stem()}.txt"

    def save_script(self, directory: Path) -> Path:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        destination = directory / self.script_filename()
        destination.write_text(self.script_text(), encoding="utf-8")
        return destination

    def _source_stem(self) -> str:
        if self.state.audio is None:
            return RESTORED_SESSION_NAME
        return self.state.audio.name.split(".")[0]
