"""Conversational follow-up with the persona that produced a result."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import List, Optional

from .gateway import AIGateway, ChatSession, GatewayConfigError
from .models import ChatMessage
from .state import AppStage, InvalidTransitionError, SessionState

EMPTY_REPLY_TEXT = "I'm having trouble thinking of a response right now."
ERROR_REPLY_TEXT = "Sorry, I encountered an error. Please try again."


def _message(role: str, text: str) -> ChatMessage:
    return ChatMessage(id=uuid.uuid4().hex[:12], role=role, text=text, timestamp=int(time.time() * 1000))


class ChatController:
    """Relay user turns to a persona chat session scoped to the current result.

    The session is opened lazily on :meth:`activate` and reused until the
    workflow clears it. Sends are serialised so replies always follow the
    message that prompted them.
    """

    def __init__(self, state: SessionState, gateway: Optional[AIGateway]) -> None:
        self.state = state
        self.gateway = gateway
        self._lock = threading.Lock()

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self.state.chat_messages)

    @property
    def loading(self) -> bool:
        return self.state.chat_loading

    def activate(self) -> ChatSession:
        state = self.state
        if state.stage is not AppStage.RESULT or state.result is None or state.persona is None:
            raise InvalidTransitionError("open chat", state.stage)
        if state.chat_session is None:
            if self.gateway is None:
                raise GatewayConfigError("No AI backend configured for chat.")
            state.chat_session = self.gateway.open_chat(state.result.transcript, state.persona)
            logging.debug("Opened chat session with persona %s", state.persona.id)
        return state.chat_session

    def send_message(self, text: str) -> ChatMessage:
        """Append *text* as a user turn and return the model turn that answers it."""

        state = self.state
        with self._lock:
            session = self.activate()
            state.chat_messages.append(_message("user", text))
            state.chat_loading = True
            try:
                reply = _message("model", session.send_message(text) or EMPTY_REPLY_TEXT)
            except Exception:
                logging.exception("Chat turn failed")
                reply = _message("model", ERROR_REPLY_TEXT)
            finally:
                state.chat_loading = False
            if state.chat_session is session:
                state.chat_messages.append(reply)
        return reply

    def reset(self) -> None:
        self.state.clear_chat()
