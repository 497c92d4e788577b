"""
Persona catalog: voice profiles, lexical affinity tables, prompt directives

Affinity scoring adds the persona weight for each keyword found, 0.8x for an
emotional emoji, 1.2x for a question pattern and 0.9x for any other cue.
"""

import re
from typing import Dict, List, NamedTuple, Optional, Union

from ..models import BlendedPersona, PersonaId, PersonaIntensity, SimplePersona
from ..patterns import PatternSet


class PersonaProfile(NamedTuple):
    id: PersonaId
    name: str
    description: str
    prompt: str


PERSONAS: Dict[PersonaId, PersonaProfile] = {
    PersonaId.EDUCATOR: PersonaProfile(
        PersonaId.EDUCATOR,
        "Educator",
        "Patient teacher who builds understanding step by step.",
        "Teach step by step. Check understanding before moving on, use one worked "
        "example per idea, and connect new ideas to what the learner already knows.",
    ),
    PersonaId.SOCRATIC: PersonaProfile(
        PersonaId.SOCRATIC,
        "Socratic Guide",
        "Asks guiding questions so the learner reaches the answer.",
        "Lead with questions instead of answers. Offer one hint at a time and let the "
        "learner make the next move; explore alternatives together.",
    ),
    PersonaId.DETAILED: PersonaProfile(
        PersonaId.DETAILED,
        "Detailed Expert",
        "Thorough, structured explanations with depth and edge cases.",
        "Give a complete, well-structured explanation: definitions, mechanism, "
        "examples, edge cases and a short summary at the end.",
    ),
    PersonaId.CONCISE: PersonaProfile(
        PersonaId.CONCISE,
        "Concise Helper",
        "Direct answers with only the essential steps.",
        "Answer directly. Keep it short: the result first, then only the essential "
        "steps. Skip background unless asked.",
    ),
    PersonaId.FRIENDLY: PersonaProfile(
        PersonaId.FRIENDLY,
        "Friendly Buddy",
        "Warm, encouraging companion who mirrors the learner's casual register.",
        "Be warm and encouraging. Acknowledge the feeling first, mirror the learner's "
        "Roman Urdu / English mix naturally, and break the problem into small wins.",
    ),
    PersonaId.FORMAL: PersonaProfile(
        PersonaId.FORMAL,
        "Formal Tutor",
        "Respectful, precise academic register.",
        "Use a respectful, precise academic register (aap, not tum). Structure the "
        "answer clearly and avoid slang.",
    ),
}

PERSONA_WEIGHTS = {
    PersonaId.FRIENDLY: 0.7,
    PersonaId.SOCRATIC: 0.6,
    PersonaId.DETAILED: 0.8,
    PersonaId.CONCISE: 0.9,
    PersonaId.EDUCATOR: 0.7,
    PersonaId.FORMAL: 0.6,
}

KEYWORD_FACTOR = 1.0
EMOJI_FACTOR = 0.8
QUESTION_FACTOR = 1.2
CUE_FACTOR = 0.9

_AFFINITY_CUES = {
    PersonaId.FRIENDLY: {
        "keywords": ["help", "confused", "stuck", "frustrated", "don't understand", "struggling"],
        "emoji": ["😕", "😔", "😞", "😣", "😤", "😩"],
        "cues": ["urgent", "asap", "quickly"],
    },
    PersonaId.SOCRATIC: {
        "keywords": ["why", "how", "what if", "explore", "discover", "think about"],
        "questions": ["what would happen if", "how might we", "what are the implications"],
        "cues": ["let's think", "brainstorm", "discuss"],
    },
    PersonaId.DETAILED: {
        "keywords": ["comprehensive", "thorough", "detailed", "complete", "in-depth"],
        "cues": ["research", "analysis", "documentation", "complex", "advanced", "sophisticated"],
    },
    PersonaId.CONCISE: {
        "keywords": ["quick", "brief", "summary", "short", "fast"],
        "cues": ["tldr", "bottom line", "key points", "main idea", "deadline", "urgent", "limited time"],
    },
    PersonaId.EDUCATOR: {
        "keywords": ["learn", "teach", "explain", "understand", "guide"],
        "cues": ["beginner", "new to", "starting with", "basics", "step by step", "gradually"],
    },
    PersonaId.FORMAL: {
        "keywords": ["professional", "academic", "scholarly", "formal"],
        "cues": ["meeting", "presentation", "report", "thesis", "research", "paper"],
    },
}

_FACTORS = {"keywords": KEYWORD_FACTOR, "emoji": EMOJI_FACTOR, "questions": QUESTION_FACTOR, "cues": CUE_FACTOR}


def _phrase_regex(phrase: str) -> str:
    if not any(ch.isalnum() for ch in phrase):
        return re.escape(phrase)
    body = r"\s+".join(re.escape(piece) for piece in phrase.split())
    return rf"(?<![\w']){body}(?![\w'])"


def _build_affinity() -> Dict[PersonaId, PatternSet]:
    tables = {}
    for persona, groups in _AFFINITY_CUES.items():
        weight = PERSONA_WEIGHTS[persona]
        patterns = []
        for group, phrases in groups.items():
            patterns.extend((_phrase_regex(p), weight * _FACTORS[group]) for p in phrases)
        tables[persona] = PatternSet(patterns)
    return tables


AFFINITY_PATTERNS = _build_affinity()


def persona_affinity(text: str) -> Dict[PersonaId, float]:
    """Lexical affinity score per persona (0 when nothing matches)."""
    return {persona: round(patterns.score(text or "")[0], 3) for persona, patterns in AFFINITY_PATTERNS.items()}


_INTENSITY_NOTES = {
    PersonaIntensity.HIGH: "Lean fully into this voice.",
    PersonaIntensity.MEDIUM: "Use this voice clearly but keep it natural.",
    PersonaIntensity.LOW: "Apply this voice lightly.",
}


def blend_prompt(primary: PersonaId, secondary: PersonaId, ratio: float) -> str:
    share = round(ratio * 100)
    return (
        f"PRIMARY PERSONA ({share}%): {PERSONAS[primary].prompt}\n"
        f"SECONDARY PERSONA ({100 - share}%): {PERSONAS[secondary].prompt}\n"
        "Blend the two naturally, leading with the primary voice."
    )


def get_persona_prompt(
    persona: Union[PersonaId, SimplePersona, BlendedPersona],
    intensity: Optional[PersonaIntensity] = None,
) -> str:
    if isinstance(persona, BlendedPersona):
        prompt = blend_prompt(persona.primary, persona.secondary, persona.ratio)
    else:
        persona_id = persona.id if isinstance(persona, SimplePersona) else PersonaId(persona)
        profile = PERSONAS[persona_id]
        prompt = f"PERSONA: {profile.name}. {profile.prompt}"
    if intensity is not None:
        prompt = f"{prompt}\n{_INTENSITY_NOTES[intensity]}"
    return prompt


def persona_names() -> List[str]:
    return [profile.name for profile in PERSONAS.values()]
