"""Persona catalog and selection."""

from .catalog import PERSONAS, blend_prompt, get_persona_prompt, persona_names
from .selector import PersonaSelector

__all__ = [
    "PERSONAS",
    "PersonaSelector",
    "blend_prompt",
    "get_persona_prompt",
    "persona_names",
]
