"""Hosted generative-AI backends used to transcribe, transform and chat."""

from __future__ import annotations

import base64
import logging
import mimetypes
from pathlib import PurePath
from typing import Any, Dict, List, Optional, Protocol

import httpx

from .config import gemini_api_key, load_config, openai_api_key
from .models import Config
from .personas import Persona

TRANSCRIPTION_INSTRUCTION = (
    "Generate a verbatim transcription of this audio. Do not summarize. "
    "If there are multiple speakers, identify them as Speaker 1, Speaker 2, etc. "
    "If the audio is silent or unintelligible, state that clearly."
)


class GatewayError(RuntimeError):
    """Base class for failures talking to the AI provider."""


class GatewayConfigError(GatewayError):
    """Raised when no backend can be constructed."""


class TranscriptionError(GatewayError):
    pass


class TransformationError(GatewayError):
    pass


class ChatError(GatewayError):
    pass


def build_transform_prompt(transcript: str, persona: Persona) -> str:
    return f"""You are acting as the following persona: {persona.name} - {persona.role}.

System Instruction for this persona:
{persona.prompt_instruction}

Here is the raw source text (transcript):
"{transcript}"

Task:
Transform the source text into a script or monologue that matches your persona perfectly.
Maintain the core information/facts from the source, but completely change the tone, vocabulary, and structure to fit the persona.
Output ONLY the transformed content. Do not add introductory conversational filler like "Here is the rewritten text".
"""


def build_chat_instruction(transcript: str, persona: Persona) -> str:
    return f"""You are {persona.name}, a {persona.role}.
{persona.description}

Your personality instructions are:
{persona.prompt_instruction}

CONTEXT:
The user has provided a transcript of an audio recording. You must answer questions, discuss the content, or elaborate on the topics found in the transcript BELOW.

TRANSCRIPT:
"{transcript}"

RULES:
1. Stay in character as {persona.name} at all times.
2. Use the tone, vocabulary, and style defined in your personality instructions.
3. If the user asks about something not in the transcript, improvise based on your persona but mention it wasn't in the original audio if strictly necessary.
4. Be helpful but conversational.
"""


class ChatSession(Protocol):
    """A stateful conversation seeded with a persona and a transcript."""

    def send_message(self, text: str) -> str:
        """Return the model's reply, which may be empty."""


class AIGateway(Protocol):
    """Common interface for generative-AI backends."""

    def transcribe(self, audio_base64: str, mime_type: str, file_name: Optional[str] = None) -> str:
        ...

    def transform(self, transcript: str, persona: Persona) -> str:
        ...

    def open_chat(self, transcript: str, persona: Persona) -> ChatSession:
        ...


class GeminiChatSession:
    def __init__(self, chat: Any) -> None:
        self._chat = chat

    def send_message(self, text: str) -> str:
        from google.genai import errors

        try:
            response = self._chat.send_message(text)
        except (errors.APIError, httpx.HTTPError) as exc:
            raise ChatError(str(exc)) from exc
        return response.text or ""


class GeminiGateway:
    """Google Gemini backend.

    Transcription and chat run on the fast multimodal tier; the one-shot
    creative rewrite uses the quality tier with a bounded thinking budget.
    """

    def __init__(
        self,
        api_key: Optional[str],
        transcription_model: str,
        transform_model: str,
        chat_model: str,
        thinking_budget: int = 1024,
        client: Any = None,
    ) -> None:
        if client is None:
            if api_key is None:
                raise GatewayConfigError("A Gemini API key is required for this backend.")
            try:
                from google import genai
            except Exception as exc:  # pragma: no cover - optional dependency
                raise GatewayConfigError("The `google-genai` package is required for this backend.") from exc
            client = genai.Client(api_key=api_key)
        self._client = client
        self.transcription_model = transcription_model
        self.transform_model = transform_model
        self.chat_model = chat_model
        self.thinking_budget = thinking_budget

    def transcribe(self, audio_base64: str, mime_type: str, file_name: Optional[str] = None) -> str:
        from google.genai import errors, types

        audio = types.Part.from_bytes(data=base64.b64decode(audio_base64), mime_type=mime_type)
        try:
            response = self._client.models.generate_content(
                model=self.transcription_model,
                contents=[audio, TRANSCRIPTION_INSTRUCTION],
            )
        except (errors.APIError, httpx.HTTPError) as exc:
            raise TranscriptionError(str(exc)) from exc
        if not response.text:
            raise TranscriptionError("No transcription generated")
        return response.text

    def transform(self, transcript: str, persona: Persona) -> str:
        from google.genai import errors, types

        try:
            response = self._client.models.generate_content(
                model=self.transform_model,
                contents=build_transform_prompt(transcript, persona),
                config=types.GenerateContentConfig(
                    thinking_config=types.ThinkingConfig(thinking_budget=self.thinking_budget),
                ),
            )
        except (errors.APIError, httpx.HTTPError) as exc:
            raise TransformationError(str(exc)) from exc
        if not response.text:
            raise TransformationError("No content generated")
        return response.text

    def open_chat(self, transcript: str, persona: Persona) -> GeminiChatSession:
        from google.genai import types

        chat = self._client.chats.create(
            model=self.chat_model,
            config=types.GenerateContentConfig(
                system_instruction=build_chat_instruction(transcript, persona),
            ),
        )
        return GeminiChatSession(chat)


class OpenAIChatSession:
    """Chat completions are stateless, so the session keeps the message log."""

    def __init__(self, client: Any, model: str, system_instruction: str) -> None:
        self._client = client
        self._model = model
        self._messages: List[Dict[str, str]] = [{"role": "system", "content": system_instruction}]

    def send_message(self, text: str) -> str:
        from openai import OpenAIError

        messages = self._messages + [{"role": "user", "content": text}]
        try:
            response = self._client.chat.completions.create(model=self._model, messages=messages)
        except OpenAIError as exc:
            raise ChatError(str(exc)) from exc
        reply = response.choices[0].message.content or ""
        self._messages = messages + [{"role": "assistant", "content": reply}]
        return reply


class OpenAIGateway:
    """Cloud backend using the OpenAI API."""

    def __init__(
        self,
        api_key: Optional[str],
        transcription_model: str,
        transform_model: str,
        chat_model: str,
        client: Any = None,
    ) -> None:
        if client is None:
            if api_key is None:
                raise GatewayConfigError("An OpenAI API key is required for this backend.")
            try:
                from openai import OpenAI
            except Exception as exc:  # pragma: no cover - optional dependency
                raise GatewayConfigError("The `openai` package is required for this backend.") from exc
            client = OpenAI(api_key=api_key)
        self._client = client
        self.transcription_model = transcription_model
        self.transform_model = transform_model
        self.chat_model = chat_model

    def transcribe(self, audio_base64: str, mime_type: str, file_name: Optional[str] = None) -> str:
        from openai import OpenAIError

        suffix = PurePath(file_name).suffix if file_name else ""
        suffix = suffix or mimetypes.guess_extension(mime_type) or ""
        upload = (f"audio{suffix}", base64.b64decode(audio_base64), mime_type)
        try:
            response = self._client.audio.transcriptions.create(
                model=self.transcription_model,
                file=upload,
                prompt=TRANSCRIPTION_INSTRUCTION,
            )
        except OpenAIError as exc:
            raise TranscriptionError(str(exc)) from exc
        text = (response.text or "").strip()
        if not text:
            raise TranscriptionError("No transcription generated")
        return text

    def transform(self, transcript: str, persona: Persona) -> str:
        from openai import OpenAIError

        try:
            response = self._client.chat.completions.create(
                model=self.transform_model,
                messages=[{"role": "user", "content": build_transform_prompt(transcript, persona)}],
            )
        except OpenAIError as exc:
            raise TransformationError(str(exc)) from exc
        text = response.choices[0].message.content
        if not text:
            raise TransformationError("No content generated")
        return text

    def open_chat(self, transcript: str, persona: Persona) -> OpenAIChatSession:
        return OpenAIChatSession(
            self._client, self.chat_model, build_chat_instruction(transcript, persona)
        )


def get_gateway(preferred: Optional[str] = None, config: Optional[Config] = None) -> AIGateway:
    """Return the best available AI backend."""

    config = config or load_config()
    backend_name = preferred or config.backend

    if backend_name in {"gemini", "auto"}:
        try:
            return GeminiGateway(
                gemini_api_key(config),
                config.transcription_model,
                config.transform_model,
                config.chat_model,
                thinking_budget=config.thinking_budget,
            )
        except GatewayConfigError as exc:
            if backend_name == "gemini":
                raise GatewayConfigError(f"Failed to initialise Gemini backend: {exc}") from exc
            logging.debug("Gemini backend unavailable: %s", exc)

    if backend_name in {"openai", "auto"}:
        try:
            return OpenAIGateway(
                openai_api_key(config),
                config.openai_transcription_model,
                config.openai_transform_model,
                config.openai_chat_model,
            )
        except GatewayConfigError as exc:
            if backend_name == "openai":
                raise GatewayConfigError(f"Failed to initialise OpenAI backend: {exc}") from exc
            logging.debug("OpenAI backend unavailable: %s", exc)

    raise GatewayConfigError(
        "No AI backend available. Set GEMINI_API_KEY or OPENAI_API_KEY, "
        "or configure a key with `podai config`."
    )
