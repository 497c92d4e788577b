"""
Conviction policy evaluator: decides when to push back on a flawed learning strategy

Design:
- each scenario owns weighted bilingual trigger patterns
- the single highest-weight match decides; trigger at >= conviction_trigger_threshold
- history triggers over the last N user turns (repeated confusion / repeated
  failure) override the lexical scenario with better_alternative
- intensity: scenario default, gentle for frustrated / anxious users,
  firm for confident users; history triggers stay gentle
- response slots are picked deterministically from the message text
"""

import re
import zlib
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from ..classifier.message_classifier import is_confused_turn
from ..config import EngineConfig, get_engine_config
from ..models import (
    ClassificationResult,
    ConvictionDecision,
    ConvictionIntensity,
    ConvictionResponse,
    ConvictionScenario,
    Message,
    UserState,
)
from ..patterns import PatternMatch, PatternSet
from ..utils.validation import clamp, coerce_text, normalize_history, user_turns
from .phrases import ALTERNATIVE_APPROACHES, PHRASE_BANK, SUPPORTIVE_SCENARIOS, TONES

Scenario = ConvictionScenario
Intensity = ConvictionIntensity

# (scenario, default intensity, patterns); table order breaks weight ties
SCENARIO_PATTERNS: List[Tuple[ConvictionScenario, ConvictionIntensity, PatternSet]] = [
    (Scenario.FACTUAL_ERROR, Intensity.FIRM, PatternSet([
        (r"\b2\s*\+\s*2\s*(?:=|is|equals)\s*5\b", 0.95),
        (r"\bearth\b.{0,20}\bflat\b", 0.9),
        (r"\bgravity\b.{0,20}\b(?:doesn'?t|does\s+not|isn'?t)\s+(?:exist|real)\b", 0.9),
        (r"\bsun\b.{0,30}\b(?:revolves|goes)\s+around\s+the\s+earth\b", 0.85),
        (r"\bevolution\b.{0,20}\b(?:fake|hoax|myth)\b", 0.8),
    ])),
    (Scenario.POTENTIALLY_HARMFUL, Intensity.FIRM, PatternSet([
        (r"\b(?:pills?|tablets?|drugs?)\b.{0,30}\b(?:stay\s+awake|focus|concentrate)\b", 0.9),
        (r"\b(?:cheat(?:ing)?\s+(?:in|on)\s+the\s+(?:exam|test)|copy\s+(?:the\s+)?answers|buy\s+(?:the\s+)?(?:paper|answers))\b", 0.8),
        (r"\b(?:study|studying|padh\w*)\b.{0,30}\b(?:without\s+(?:any\s+)?sleep|no\s+sleep)\b", 0.75),
        (r"\bskip(?:ping)?\s+(?:sleep|meals|food|eating)\b", 0.7),
        (r"\bneend\s*nahi\s*(?:lunga|lungi|karunga)\b", 0.7),
    ])),
    (Scenario.LEARNING_MISCONCEPTION, Intensity.MEDIUM, PatternSet([
        (r"\bheavier\s+(?:objects|things)\s+fall\s+faster\b", 0.85),
        (r"\bmultiplication\s+always\s+makes\b.{0,20}\bbigger\b", 0.8),
        (r"\bdivi(?:sion|ding)\s+always\s+makes\b.{0,20}\bsmaller\b", 0.8),
        (r"\bvariables?\s+(?:are|is)\s+just\s+letters\b", 0.75),
        (r"\b(?:only|just)\s+an?\s+(?:visual|auditory)\s+learner\b", 0.65),
    ])),
    (Scenario.INEFFICIENT_APPROACH, Intensity.MEDIUM, PatternSet([
        (r"\bratta\s*(?:maar|laga)\w*", 0.85),
        (r"\bjust\b.{0,30}\bmemori[sz]e\b", 0.8),
        (r"\bdon'?t\s+need\s+to\s+understand\b", 0.75),
        (r"\bshortcuts?\s+only\b|\bonly\s+shortcuts?\b", 0.7),
        (r"\bcram\w*\b.{0,30}\bnight\s+before\b", 0.7),
    ])),
    (Scenario.CONTRADICTS_GOALS, Intensity.MEDIUM, PatternSet([
        (r"\b(?:want|need|goal)\b.{0,40}\b(?:pass|top|ace|clear|improve)\b.{0,60}\bwithout\s+(?:studying|practi[cs]ing|revising|any\s+effort)\b", 0.75),
        (r"\b(?:won'?t|will\s+not|not\s+going\s+to)\s+(?:study|practi[cs]e|revise)\b.{0,40}\b(?:pass|top|ace|clear)\b", 0.7),
        (r"\bpadhna\s*nahi\b.{0,30}\bpass\b", 0.7),
    ])),
    (Scenario.DEAD_END_PATH, Intensity.GENTLE, PatternSet([
        (r"\bchod\s*(?:deta|deti|dun|du|diya)\b", 0.85),
        (r"\bgiv(?:e|ing)\s+up\b", 0.8),
        (r"\bcan'?t\s+do\s+this\b", 0.75),
        (r"\bimpossible\s*hai\b", 0.7),
        (r"\bquit(?:ting)?\s+(?:this|studying|the\s+course|math\w*|physics|programming)\b", 0.7),
        (r"\btoo\s+difficult\b", 0.6),
    ])),
    (Scenario.SKIPPING_FUNDAMENTALS, Intensity.MEDIUM, PatternSet([
        (r"\bdon'?t\s+need\s+to\s+learn\b.{0,20}\bbasics\b", 0.85),
        (r"\bskip\b.{0,20}\bbasics?\b", 0.8),
        (r"\bjust\s+teach\b.{0,20}\badvanced\b", 0.8),
        (r"\badvanced\s+topics?\b.{0,20}\bdirectly\b", 0.75),
        (r"\bfundamentals\b.{0,20}\bboring\b", 0.7),
        (r"\balready\s+know\b.{0,20}\bbasics\b", 0.6),
    ])),
    (Scenario.NEGATIVE_SELF_TALK, Intensity.GENTLE, PatternSet([
        (r"\bbe(?:v|w)a(?:k|q)oof\s*hun\b", 0.85),
        (r"\bi(?:'m|\s+am)\s+(?:so\s+|too\s+|just\s+)?(?:stupid|dumb|useless)\b", 0.8),
        (r"\bnot\s+smart\s+enough\b", 0.8),
        (r"\bnever\s+(?:going\s+to\s+)?understand\b", 0.75),
    ])),
    (Scenario.PERFECTIONISM_PARALYSIS, Intensity.GENTLE, PatternSet([
        (r"\bafraid\b.{0,20}\btry\b.{0,30}\bmistakes?\b", 0.8),
        (r"\bany\s+mistake\b.{0,20}\bfailure\b", 0.75),
        (r"\bmight\s+make\s+mistakes\b", 0.75),
        (r"\bmust\s+be\s+perfect\b", 0.7),
        (r"\bcan'?t\s+(?:make|afford)\s+(?:any\s+)?(?:errors|mistakes)\b", 0.7),
        (r"\b100\s*(?:%|percent)\s+(?:correct|perfect)\b", 0.65),
    ])),
]

HISTORY_FAILURE = re.compile(r"\bwrong\b|\bfail(?:ed|ing|ure)?\b|\bmistakes?\b|\bgalat\b", re.IGNORECASE)

HISTORY_CONFUSION_CONFIDENCE = 0.7
HISTORY_FAILURE_CONFIDENCE = 0.65
HISTORY_MIN_HITS = 2

SLOT_ORDER = ("acknowledge", "alternative", "reasoning", "persuasive_nudge", "empower_choice")


def _pick(slot: str, intensity: ConvictionIntensity, seed: str, bank_slot: Optional[str] = None) -> str:
    options = PHRASE_BANK[bank_slot or slot][intensity]
    index = zlib.crc32(f"{slot}:{seed}".encode("utf-8")) % len(options)
    return options[index]


def adjust_intensity(base: ConvictionIntensity, state: Optional[UserState]) -> ConvictionIntensity:
    if state in (UserState.FRUSTRATED, UserState.ANXIOUS):
        return Intensity.GENTLE
    if state == UserState.CONFIDENT:
        return Intensity.FIRM
    return base


def build_response(scenario: ConvictionScenario, intensity: ConvictionIntensity, seed: str) -> ConvictionResponse:
    nudge_bank = "encouragement" if scenario in SUPPORTIVE_SCENARIOS else None
    return ConvictionResponse(
        acknowledge=_pick("acknowledge", intensity, seed),
        alternative=_pick("alternative", intensity, seed),
        reasoning=_pick("reasoning", intensity, seed),
        persuasive_nudge=_pick("persuasive_nudge", intensity, seed, bank_slot=nudge_bank),
        empower_choice=_pick("empower_choice", intensity, seed),
    )


class ConvictionEvaluator:
    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or get_engine_config()

    def evaluate(
        self,
        message,
        history: Optional[Sequence] = None,
        classification: Optional[ClassificationResult] = None,
    ) -> ConvictionDecision:
        text = coerce_text(message)
        window = normalize_history(history, window=self._config.history_max)
        state = classification.user_state if classification is not None else None

        scenario, confidence, intensity, matches = self._lexical(text)
        rationale = f"matched {scenario.value} trigger" if scenario else ""

        history_hit = self._history_trigger(window)
        if history_hit is not None:
            scenario, floor, reason = history_hit
            confidence = max(confidence, floor)
            intensity = Intensity.GENTLE
            rationale = reason

        if scenario is None or confidence < self._config.conviction_trigger_threshold:
            return ConvictionDecision.no_intervention()

        if history_hit is None:
            intensity = adjust_intensity(intensity, state)
        decision = ConvictionDecision(
            should_trigger=True,
            scenario=scenario,
            confidence=clamp(confidence),
            intensity=intensity,
            rationale=rationale,
            matched_patterns=[m.text for m in matches],
            alternative_approach=ALTERNATIVE_APPROACHES[scenario],
            response=build_response(scenario, intensity, text),
            tone=TONES[intensity],
        )
        logger.debug(
            f"[Conviction] Triggered {scenario.value} conf={decision.confidence:.2f} intensity={intensity.value}"
        )
        return decision

    def _lexical(
        self, text: str
    ) -> Tuple[Optional[ConvictionScenario], float, ConvictionIntensity, List[PatternMatch]]:
        best: Optional[Tuple[ConvictionScenario, ConvictionIntensity, PatternMatch]] = None
        for scenario, intensity, patterns in SCENARIO_PATTERNS:
            match = patterns.strongest(text)
            if match is not None and (best is None or match.weight > best[2].weight):
                best = (scenario, intensity, match)
        if best is None:
            return None, 0.0, Intensity.NONE, []
        return best[0], best[2].weight, best[1], [best[2]]

    def _history_trigger(self, history: List[Message]) -> Optional[Tuple[ConvictionScenario, float, str]]:
        recent = user_turns(history)[-self._config.conviction_history_window:]
        confused = sum(1 for m in recent if is_confused_turn(m))
        if confused >= HISTORY_MIN_HITS:
            return Scenario.BETTER_ALTERNATIVE, HISTORY_CONFUSION_CONFIDENCE, f"repeated confusion in {confused} recent turns"
        failed = sum(1 for m in recent if HISTORY_FAILURE.search(m.text))
        if failed >= HISTORY_MIN_HITS:
            return Scenario.BETTER_ALTERNATIVE, HISTORY_FAILURE_CONFIDENCE, f"repeated failures in {failed} recent turns"
        return None


def format_conviction_directive(decision: ConvictionDecision, markers: Optional[Sequence[str]] = None) -> str:
    """Directive block for the generative backend prompt; empty when nothing triggered."""
    if not decision.should_trigger or decision.response is None or decision.scenario is None:
        return ""
    slots = decision.response.model_dump()
    lines = [
        "CONVICTION GUIDANCE:",
        f"Scenario: {decision.scenario.value}",
        f"Intensity: {decision.intensity.value}",
        f"Tone: {decision.tone}",
        "Response structure:",
    ]
    lines.extend(f"{i}. {slots[slot]}" for i, slot in enumerate(SLOT_ORDER, start=1))
    if markers:
        lines.append(f"Register markers to mirror: {', '.join(markers)}")
    lines.append(f"Alternative approach: {decision.alternative_approach}")
    lines.append("Guide toward the better approach while leaving the final choice to the learner.")
    return "\n".join(lines)
