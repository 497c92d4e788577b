"""
Weighted pattern scoring: one scorer for intents, states, scenarios, personas, markers

A `PatternSet` is an ordered list of (compiled regex, weight). Callers pick
the aggregation they need:
- `score()`: sum of matched weights (intent / state / persona affinity)
- `strongest()`: single highest-weight match (conviction scenarios)
- `find_words()` on a `word_regex()`: matched surface strings (markers, lexicons)

All matching is case-insensitive. Lexicon words are compiled as whole-word
alternations so short vernacular tokens ("na", "hai") never match inside
English words ("banana", "chair").
"""

import re
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, TypeVar, Union

K = TypeVar("K")

PatternSpec = Union[str, "re.Pattern[str]"]


class PatternMatch(NamedTuple):
    pattern: str
    weight: float
    text: str


def word_regex(words: Iterable[str], flags: int = re.IGNORECASE) -> "re.Pattern[str]":
    """Whole-word alternation; multi-word phrases tolerate any run of spaces."""
    parts = []
    for word in sorted({w.strip() for w in words if w and w.strip()}, key=len, reverse=True):
        parts.append(r"\s+".join(re.escape(piece) for piece in word.split()))
    if not parts:
        return re.compile(r"(?!x)x")
    return re.compile(r"(?<![\w'])(?:" + "|".join(parts) + r")(?![\w'])", flags)


def find_words(regex: "re.Pattern[str]", text: str) -> List[str]:
    """Matched surface strings, lower-cased and de-duplicated in order of appearance."""
    if not text:
        return []
    seen: Dict[str, None] = {}
    for m in regex.finditer(text):
        seen.setdefault(" ".join(m.group(0).lower().split()), None)
    return list(seen)


class PatternSet:
    """Ordered weighted regexes sharing one label."""

    def __init__(self, patterns: Iterable[Tuple[PatternSpec, float]], flags: int = re.IGNORECASE):
        self._patterns: List[Tuple["re.Pattern[str]", float]] = []
        for spec, weight in patterns:
            regex = spec if isinstance(spec, re.Pattern) else re.compile(spec, flags)
            self._patterns.append((regex, float(weight)))

    def __len__(self) -> int:
        return len(self._patterns)

    def matches(self, text: str) -> List[PatternMatch]:
        if not text:
            return []
        found = []
        for regex, weight in self._patterns:
            m = regex.search(text)
            if m:
                found.append(PatternMatch(regex.pattern, weight, m.group(0)))
        return found

    def score(self, text: str) -> Tuple[float, List[PatternMatch]]:
        """Sum of matched weights plus the matches."""
        found = self.matches(text)
        return sum(m.weight for m in found), found

    def strongest(self, text: str) -> Optional[PatternMatch]:
        """Highest-weight match; earlier patterns win ties."""
        best: Optional[PatternMatch] = None
        for m in self.matches(text):
            if best is None or m.weight > best.weight:
                best = m
        return best

    def any(self, text: str) -> bool:
        if not text:
            return False
        return any(regex.search(text) for regex, _ in self._patterns)


class ScoredLabel(NamedTuple):
    label: Any
    score: float
    matches: List[PatternMatch]


def score_all(sets: Sequence[Tuple[K, PatternSet]], text: str) -> List[ScoredLabel]:
    """Score every labelled set; only labels with a positive score are returned."""
    results = []
    for label, pattern_set in sets:
        total, found = pattern_set.score(text)
        if total > 0:
            results.append(ScoredLabel(label, total, found))
    return results


def best_label(sets: Sequence[Tuple[K, PatternSet]], text: str) -> Optional[ScoredLabel]:
    """Highest summed score; declaration order breaks ties."""
    best: Optional[ScoredLabel] = None
    for scored in score_all(sets, text):
        if best is None or scored.score > best.score:
            best = scored
    return best


def first_label(sets: Sequence[Tuple[K, PatternSet]], text: str) -> Optional[ScoredLabel]:
    """First labelled set (priority order) with any match."""
    for label, pattern_set in sets:
        total, found = pattern_set.score(text)
        if total > 0:
            return ScoredLabel(label, total, found)
    return None
