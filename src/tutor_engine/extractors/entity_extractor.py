"""
Entity and register-marker extraction: rule based, no model calls

Design:
- curated lexicons matched whole-word and case-insensitively
- structural regexes for dates, numbers, emails and phone-like tokens
- every category de-duplicated (case-insensitive, first appearance wins)
- non-string or empty input returns an empty EntitySet, never raises
"""

import re
from typing import Dict, Iterable, List

from ..models import EntitySet, Message, MessageRole
from ..patterns import find_words, word_regex
from .lexicons import (
    CITIES,
    EMOTION_WORDS,
    EVENT_WORDS,
    INSTITUTION_ACRONYMS,
    INSTITUTION_NAMES,
    INSTITUTION_WORDS,
    LOCATIONS,
    NAMES,
    SUBJECT_FAMILIES,
    TIME_EXPRESSIONS,
    VERNACULAR_FUNCTION_WORDS,
    VERNACULAR_MARKERS,
)

_MONTHS = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*"

DATE_PATTERNS = [
    re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}\b"),
    re.compile(r"\b\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}\b"),
    re.compile(rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTHS}(?:,?\s+\d{{4}})?\b", re.IGNORECASE),
    re.compile(rf"\b{_MONTHS}\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?\b", re.IGNORECASE),
]
NUMBER_PATTERN = re.compile(r"(?<![\w.])\d+(?:\.\d+)?(?![\w])")
EMAIL_PATTERN = re.compile(r"\b[\w.+-]+@[\w-]+(?:\.[\w-]+)+\b")
PHONE_PATTERN = re.compile(r"(?<![\w+])(?:\+92|0)?\d{10,11}(?!\d)")


def _canonical_map(words: Iterable[str]) -> Dict[str, str]:
    return {" ".join(w.lower().split()): w for w in words}


_NAME_RE = word_regex(NAMES)
_NAME_CANON = _canonical_map(NAMES)
_CITY_RE = word_regex(CITIES)
_CITY_CANON = _canonical_map(CITIES)
_LOCATION_RE = word_regex(LOCATIONS)

_SUBJECT_CANON = {
    " ".join(keyword.lower().split()): subject
    for subject, keywords in SUBJECT_FAMILIES.items()
    for keyword in keywords
}
_SUBJECT_RE = word_regex(_SUBJECT_CANON)

_INSTITUTION_RE = word_regex(INSTITUTION_WORDS + INSTITUTION_NAMES)
_INSTITUTION_CANON = _canonical_map(INSTITUTION_WORDS + INSTITUTION_NAMES)
_ACRONYM_RE = word_regex(INSTITUTION_ACRONYMS, flags=0)

_TIME_RE = word_regex(TIME_EXPRESSIONS)
_EMOTION_RE = word_regex(EMOTION_WORDS)
_EVENT_RE = word_regex(EVENT_WORDS)

MARKER_REGEXES = {category: word_regex(words) for category, words in VERNACULAR_MARKERS.items()}
_FUNCTION_WORD_RE = word_regex(VERNACULAR_FUNCTION_WORDS)


def _dedupe(values: Iterable[str]) -> List[str]:
    seen: Dict[str, str] = {}
    for value in values:
        key = value.lower()
        if key not in seen:
            seen[key] = value
    return list(seen.values())


def _canonical(regex: "re.Pattern[str]", canon: Dict[str, str], text: str) -> List[str]:
    return _dedupe(canon.get(word, word) for word in find_words(regex, text))


def _structural(patterns: Iterable["re.Pattern[str]"], text: str) -> List[str]:
    found = []
    for pattern in patterns:
        found.extend(m.group(0) for m in pattern.finditer(text))
    return _dedupe(found)


def extract_entities(text) -> EntitySet:
    """Named entities, topics and structural tokens found in ``text``."""
    if not isinstance(text, str) or not text.strip():
        return EntitySet()

    places = _canonical(_CITY_RE, _CITY_CANON, text) + find_words(_LOCATION_RE, text)
    institutions = _canonical(_INSTITUTION_RE, _INSTITUTION_CANON, text)
    institutions += [m.group(0) for m in _ACRONYM_RE.finditer(text)]

    return EntitySet(
        names=_canonical(_NAME_RE, _NAME_CANON, text),
        places=_dedupe(places),
        subjects=_dedupe(_SUBJECT_CANON[w] for w in find_words(_SUBJECT_RE, text)),
        institutions=_dedupe(institutions),
        time_expressions=find_words(_TIME_RE, text),
        emotions=find_words(_EMOTION_RE, text),
        events=find_words(_EVENT_RE, text),
        dates=_structural(DATE_PATTERNS, text),
        numbers=_structural([NUMBER_PATTERN], text),
        emails=_structural([EMAIL_PATTERN], text),
        phones=_structural([PHONE_PATTERN], text),
    )


def extract_markers(text) -> Dict[str, List[str]]:
    """Vernacular register markers per category; only non-empty categories are returned."""
    if not isinstance(text, str) or not text.strip():
        return {}
    markers = {}
    for category, regex in MARKER_REGEXES.items():
        found = find_words(regex, text)
        if found:
            markers[category] = found
    return markers


def vernacular_word_count(text) -> int:
    """Distinct vernacular tokens (markers plus function words) in ``text``."""
    if not isinstance(text, str) or not text.strip():
        return 0
    words = set(find_words(_FUNCTION_WORD_RE, text))
    for found in extract_markers(text).values():
        words.update(found)
    return len(words)


def is_mixed_vernacular(text) -> bool:
    return vernacular_word_count(text) > 0


def extract_entities_from_history(messages: Iterable[Message]) -> EntitySet:
    """Union of the entities in every user turn, in order of appearance."""
    merged: Dict[str, List[str]] = {name: [] for name in EntitySet.model_fields}
    for message in messages:
        if not isinstance(message, Message) or message.role != MessageRole.USER:
            continue
        entities = extract_entities(message.text)
        for name in merged:
            merged[name].extend(getattr(entities, name))
    return EntitySet(**{name: _dedupe(values) for name, values in merged.items()})


def entity_stats(text) -> Dict[str, int]:
    entities = extract_entities(text)
    stats = entities.counts()
    stats["total"] = sum(stats.values())
    return stats
