"""The fixed catalog of transformation personas."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class PersonaIcon(str, Enum):
    MIC = "mic"
    SEARCH = "search"
    BOOK_OPEN = "book-open"
    ZAP = "zap"
    HASH = "hash"
    BRAIN = "brain"


PERSONA_ICONS = {
    PersonaIcon.MIC: "🎤",
    PersonaIcon.SEARCH: "🔍",
    PersonaIcon.BOOK_OPEN: "📖",
    PersonaIcon.ZAP: "⚡",
    PersonaIcon.HASH: "#️⃣",
    PersonaIcon.BRAIN: "🧠",
}


class UnknownPersonaError(KeyError):
    """Raised when a persona id is not part of the catalog."""


@dataclass(frozen=True, slots=True)
class Persona:
    id: str
    name: str
    role: str
    description: str
    icon: PersonaIcon
    prompt_instruction: str
    color: str

    @property
    def glyph(self) -> str:
        return PERSONA_ICONS[self.icon]


PERSONAS: List[Persona] = [
    Persona(
        id="comedian",
        name="The Stand-Up",
        role="Comedy Host",
        description=(
            "Turns your recording into a witty, humorous monologue full of punchlines "
            "and observational comedy."
        ),
        icon=PersonaIcon.MIC,
        color="from-yellow-400 to-orange-500",
        prompt_instruction=(
            "Rewrite the following text as a stand-up comedy bit. Use humor, timing, punchlines, "
            "and a casual, energetic tone. Make fun of the concepts lightly but keep the core message."
        ),
    ),
    Persona(
        id="analyst",
        name="The Analyst",
        role="Tech Reviewer",
        description=(
            "Transforms the content into a deep-dive technical analysis, focusing on specs, "
            "logic, and structured pros/cons."
        ),
        icon=PersonaIcon.SEARCH,
        color="from-blue-400 to-cyan-500",
        prompt_instruction=(
            "Rewrite the following text as a technical analysis or deep-dive review. Use structured "
            "sections, bullet points, professional terminology, and a critical, objective voice."
        ),
    ),
    Persona(
        id="storyteller",
        name="The Narrator",
        role="NPR Style Host",
        description=(
            "Weaves your words into a compelling narrative with emotional depth, pauses, "
            "and atmospheric descriptions."
        ),
        icon=PersonaIcon.BOOK_OPEN,
        color="from-emerald-400 to-teal-500",
        prompt_instruction=(
            "Rewrite the following text as a narrative storytelling podcast script (like This American "
            "Life). Focus on emotion, setting the scene, rhetorical questions, and a calm, soothing cadence."
        ),
    ),
    Persona(
        id="debater",
        name="The Provocateur",
        role="Hot Take Host",
        description=(
            "Takes a controversial stance on your recording, challenging the ideas and creating "
            "a high-energy debate format."
        ),
        icon=PersonaIcon.ZAP,
        color="from-red-500 to-pink-600",
        prompt_instruction=(
            'Rewrite the following text as a controversial, high-energy "hot take" radio segment. '
            "Challenge the premises, use strong language, and be opinionated and provocative."
        ),
    ),
    Persona(
        id="minimalist",
        name="The Essentialist",
        role="Productivity Guru",
        description="Distills everything down to the absolute essentials. Short, punchy, and actionable advice.",
        icon=PersonaIcon.HASH,
        color="from-gray-400 to-white",
        prompt_instruction=(
            "Rewrite the following text as a minimalist productivity tip. Strip away all fluff. "
            'Use short sentences. Focus on "The One Thing" and actionable steps.'
        ),
    ),
    Persona(
        id="futurist",
        name="The Futurist",
        role="Sci-Fi Visionary",
        description=(
            "Reimagines your content through the lens of future technology, AI, and the "
            "evolution of humanity."
        ),
        icon=PersonaIcon.BRAIN,
        color="from-violet-500 to-purple-600",
        prompt_instruction=(
            "Rewrite the following text from the perspective of a futurist. Connect the ideas to AI, "
            "space travel, or the year 2050. Use visionary language and speculation."
        ),
    ),
]

_BY_ID: Dict[str, Persona] = {persona.id: persona for persona in PERSONAS}


def list_personas() -> List[Persona]:
    return list(PERSONAS)


def get_persona(persona_id: str) -> Persona:
    try:
        return _BY_ID[persona_id]
    except KeyError:
        raise UnknownPersonaError(f"Unknown persona: {persona_id}") from None
