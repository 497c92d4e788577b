"""
Conversation flow analyzer: trend metrics over the trailing window

Design:
- reads only user turns of the last ``flow_window`` messages
- one label by priority: deep_learning > building_engagement >
  structured_learning > exploratory_browsing; fewer than 3 messages -> initial
- recommendations sorted high -> low priority
"""

import re
from typing import Dict, List, Optional, Sequence

from loguru import logger

from ..classifier.intent_patterns import ENTHUSIASM_PATTERNS, EXCITEMENT_PATTERNS, STUCK_PATTERNS
from ..classifier.message_classifier import analyze_formality, analyze_mood, is_confused_turn, learning_phase
from ..config import EngineConfig, get_engine_config
from ..extractors.entity_extractor import extract_entities, is_mixed_vernacular
from ..models import (
    CulturalAlignment,
    EngagementTrend,
    FlowAnalysis,
    FlowLabel,
    FlowRecommendation,
    FormalityLevel,
    LearningProgression,
    Message,
    QuestionSequence,
    TopicProgression,
)
from ..utils.validation import clamp, normalize_history, user_turns

MIN_MESSAGES = 3
SCATTER_RATIO = 0.7
FOCUSED_MAX_TOPICS = 2
ENTHUSIASM_BONUS = 0.3
STUCK_WINDOW = 5
STUCK_MIN_CONFUSED = 3
PERSONA_SWITCH_LIMIT = 5

QUESTION_TYPES = [
    ("why", re.compile(r"\b(?:why|kyun|kyon)\b", re.IGNORECASE)),
    ("how", re.compile(r"\b(?:how|kaise)\b", re.IGNORECASE)),
    ("what", re.compile(r"\b(?:what|kya)\b", re.IGNORECASE)),
]

PROGRESSION_STEPS = {
    ("confusion", "understanding"): 2.0,
    ("understanding", "application"): 1.5,
    ("understanding", "confusion"): -0.5,
}

_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


def question_type(text: str) -> str:
    for label, regex in QUESTION_TYPES:
        if regex.search(text):
            return label
    return "other"


class FlowAnalyzer:
    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or get_engine_config()

    def analyze(self, history: Optional[Sequence] = None, persona_switches: int = 0) -> FlowAnalysis:
        messages = normalize_history(history)
        if len(messages) < MIN_MESSAGES:
            return FlowAnalysis(
                flow=FlowLabel.INITIAL,
                confidence=0.5,
                message_count=len(messages),
                is_stuck=self.is_stuck(user_turns(messages)),
            )

        users = user_turns(messages[-self._config.flow_window:])
        questions = self.question_sequence(users)
        topics = self.topic_progression(users)
        engagement = self.engagement_trend(users)
        progression = self.learning_progression(users)
        alignment = self.cultural_alignment(users)

        if questions.is_deep_diving:
            flow, confidence = FlowLabel.DEEP_LEARNING, 0.8
        elif engagement.trend == "rising":
            flow, confidence = FlowLabel.BUILDING_ENGAGEMENT, 0.7
        elif progression.is_progressing:
            flow, confidence = FlowLabel.STRUCTURED_LEARNING, 0.8
        elif topics.is_scattered:
            flow, confidence = FlowLabel.EXPLORATORY_BROWSING, 0.7
        else:
            flow, confidence = FlowLabel.EXPLORATORY_BROWSING, 0.5

        analysis = FlowAnalysis(
            flow=flow,
            confidence=confidence,
            message_count=len(messages),
            question_sequence=questions,
            topic_progression=topics,
            engagement=engagement,
            learning_progression=progression,
            cultural_alignment=alignment,
            is_stuck=self.is_stuck(users),
            recommendations=self.recommendations(questions, topics, engagement, progression, alignment, persona_switches),
        )
        logger.debug(f"[Flow] {flow.value} ({confidence}) users={len(users)} stuck={analysis.is_stuck}")
        return analysis

    @staticmethod
    def question_sequence(users: List[Message]) -> QuestionSequence:
        questions = [m for m in users if "?" in m.text]
        types = [question_type(m.text) for m in questions]
        return QuestionSequence(
            question_types=types,
            question_count=len(questions),
            is_deep_diving=len(questions) >= 2 and "why" in types and "how" in types,
        )

    @staticmethod
    def topic_progression(users: List[Message]) -> TopicProgression:
        topics: List[str] = []
        for message in users:
            for subject in extract_entities(message.text).subjects:
                if subject not in topics:
                    topics.append(subject)
        ratio = len(topics) / len(users) if users else 0.0
        return TopicProgression(
            topics=topics,
            topic_switches=max(0, len(topics) - 1),
            scatter_ratio=clamp(ratio),
            is_scattered=ratio > SCATTER_RATIO,
            is_focused=len(topics) <= FOCUSED_MAX_TOPICS,
        )

    @staticmethod
    def engagement_trend(users: List[Message]) -> EngagementTrend:
        scores = []
        for message in users:
            score = analyze_mood(message.text).mood_score
            if EXCITEMENT_PATTERNS.any(message.text) or ENTHUSIASM_PATTERNS.any(message.text):
                score += ENTHUSIASM_BONUS
            scores.append(round(clamp(score), 3))
        trend = "stable"
        if len(scores) > 2:
            if scores[-1] > scores[0]:
                trend = "rising"
            elif scores[-1] < scores[0]:
                trend = "falling"
        average = sum(scores) / len(scores) if scores else 0.0
        return EngagementTrend(scores=scores, average=clamp(average), trend=trend)

    @staticmethod
    def learning_progression(users: List[Message]) -> LearningProgression:
        score = 0.0
        indicators: List[str] = []
        last: Optional[str] = None
        for message in users:
            phase = learning_phase(message.text)
            if phase is None:
                continue
            step = PROGRESSION_STEPS.get((last, phase))
            if step is not None:
                score += step
                indicators.append(f"{last}->{phase}")
            last = phase
        if score > 3:
            level = "advancing"
        elif score > 1:
            level = "developing"
        else:
            level = "beginning"
        return LearningProgression(score=score, indicators=indicators, is_progressing=score > 0, level=level)

    @staticmethod
    def cultural_alignment(users: List[Message]) -> CulturalAlignment:
        counts: Dict[FormalityLevel, int] = {}
        vernacular = 0
        current = FormalityLevel.NEUTRAL
        for message in users:
            current, _ = analyze_formality(message.text)
            counts[current] = counts.get(current, 0) + 1
            if is_mixed_vernacular(message.text):
                vernacular += 1
        if not counts:
            return CulturalAlignment()
        # ties resolve to the earlier level in enum order
        dominant = max(FormalityLevel, key=lambda level: counts.get(level, 0))
        return CulturalAlignment(
            style_counts=counts,
            dominant_style=dominant,
            current_style=current,
            vernacular_turns=vernacular,
            adaptation_needed=current != dominant,
        )

    @staticmethod
    def is_stuck(users: List[Message]) -> bool:
        if not users:
            return False
        recent = users[-STUCK_WINDOW:]
        if sum(1 for m in recent if is_confused_turn(m)) >= STUCK_MIN_CONFUSED:
            return True
        return STUCK_PATTERNS.any(users[-1].text)

    @staticmethod
    def recommendations(
        questions: QuestionSequence,
        topics: TopicProgression,
        engagement: EngagementTrend,
        progression: LearningProgression,
        alignment: CulturalAlignment,
        persona_switches: int = 0,
    ) -> List[FlowRecommendation]:
        recs: List[FlowRecommendation] = []
        if engagement.trend == "falling":
            recs.append(FlowRecommendation(
                type="engagement_boost",
                suggestion="Switch to a warmer persona and add interactive elements",
                priority="high",
            ))
        if questions.is_deep_diving:
            recs.append(FlowRecommendation(
                type="persona_adjustment",
                suggestion="Use the detailed or socratic persona to support deep inquiry",
                priority="high",
            ))
        if persona_switches > PERSONA_SWITCH_LIMIT:
            recs.append(FlowRecommendation(
                type="persona_stability",
                suggestion="Hold one persona for a few turns to reduce switching",
                priority="medium",
            ))
        if topics.is_scattered:
            recs.append(FlowRecommendation(
                type="focus_guidance",
                suggestion="Offer a learning path that narrows the topics",
                priority="medium",
            ))
        if progression.is_progressing:
            recs.append(FlowRecommendation(
                type="progression_support",
                suggestion="Raise the difficulty and offer a harder practice problem",
                priority="medium",
            ))
        if alignment.adaptation_needed:
            recs.append(FlowRecommendation(
                type="cultural_adjustment",
                suggestion=f"Match the {alignment.current_style.value} register of the latest message",
                priority="low",
            ))
        return sorted(recs, key=lambda r: _PRIORITY_RANK[r.priority])
