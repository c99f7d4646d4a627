from typing import List, Optional

import pytest

from podai import config, storage
from podai.storage import HistoryStore, KeyValueStore
from podai.workflow import Workflow


class FakeChatSession:
    def __init__(self, replies: List[object]) -> None:
        self.replies = list(replies)
        self.sent: List[str] = []

    def send_message(self, text: str) -> str:
        self.sent.append(text)
        reply = self.replies.pop(0) if self.replies else f"echo: {text}"
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeGateway:
    def __init__(
        self,
        transcript: str = "Hello world",
        transformed: str = "A hilarious take on hello world",
        transcribe_error: Optional[Exception] = None,
        transform_error: Optional[Exception] = None,
        chat_replies: Optional[List[object]] = None,
    ) -> None:
        self.transcript = transcript
        self.transformed = transformed
        self.transcribe_error = transcribe_error
        self.transform_error = transform_error
        self.chat_replies = chat_replies or []
        self.calls: List[tuple] = []
        self.sessions: List[FakeChatSession] = []

    def transcribe(self, audio_base64: str, mime_type: str, file_name: Optional[str] = None) -> str:
        self.calls.append(("transcribe", mime_type, file_name))
        if self.transcribe_error:
            raise self.transcribe_error
        return self.transcript

    def transform(self, transcript, persona) -> str:
        self.calls.append(("transform", transcript, persona.id))
        if self.transform_error:
            raise self.transform_error
        return self.transformed

    def open_chat(self, transcript, persona) -> FakeChatSession:
        self.calls.append(("open_chat", transcript, persona.id))
        session = FakeChatSession(self.chat_replies)
        self.sessions.append(session)
        return session


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "config.json")
    monkeypatch.setattr(storage, "DB_PATH", tmp_path / "podai.db")
    for var in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "OPENAI_API_KEY"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def history(tmp_path):
    return HistoryStore(KeyValueStore(db_path=tmp_path / "history.db"))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def workflow(gateway, history):
    return Workflow(gateway, history)


@pytest.fixture
def meeting_mp3(tmp_path):
    path = tmp_path / "meeting.mp3"
    path.write_bytes(b"ID3" + b"\x00" * 2048)
    return path

