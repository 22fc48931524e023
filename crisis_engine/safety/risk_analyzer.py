"""
Crisis Risk Analysis

Scores free-form user text against the weighted crisis lexicon and
classifies it into a risk tier.

IMPORTANT: This is keyword matching, not language understanding. It is a
supplementary safety layer, not a replacement for professional crisis
intervention services.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional

from crisis_engine.safety.lexicon import LexiconConfig, TierThresholds, get_default_lexicon
from crisis_engine.safety.models import RiskTier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiskAssessment:
    """Result of risk analysis. Immutable; created fresh per analyze() call."""

    tier: RiskTier
    score: int = 0
    confidence: float = 0.0
    indicators: list[str] = field(default_factory=list)
    requires_immediate: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "tier": self.tier.value,
            "score": self.score,
            "confidence": self.confidence,
            "indicators": list(self.indicators),
            "requires_immediate": self.requires_immediate,
        }


def classify_tier(score: int, thresholds: TierThresholds) -> RiskTier:
    """Map a total score to its tier. Exhaustive and monotonic in score."""
    if score >= thresholds.critical:
        return RiskTier.CRITICAL
    elif score >= thresholds.high:
        return RiskTier.HIGH
    elif score >= thresholds.moderate:
        return RiskTier.MODERATE
    elif score >= thresholds.low:
        return RiskTier.LOW
    return RiskTier.NONE


def _round_half_up(value: float, places: int = 2) -> float:
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


class RiskAnalyzer:
    """
    Scores text against the crisis lexicon.

    Scoring:
    - Each distinct lexicon phrase found adds its bucket weight once
    - Each co-occurring phrase pair adds the combination weight and
      records a "<a> + <b>" indicator
    - The total score maps to a tier through the lexicon thresholds

    Usage:
        analyzer = RiskAnalyzer()
        assessment = analyzer.analyze("I want to hurt myself")
        if assessment.requires_immediate:
            ...
    """

    def __init__(self, lexicon: Optional[LexiconConfig] = None):
        """
        Initialize Risk Analyzer.

        Args:
            lexicon: Validated lexicon (packaged default if omitted)
        """
        self.lexicon = lexicon or get_default_lexicon()
        self._buckets = self.lexicon.bucket_phrases()

        logger.info(
            f"RiskAnalyzer initialized with lexicon version={self.lexicon.version}, "
            f"phrases={self.lexicon.phrase_count}, "
            f"combinations={len(self.lexicon.combinations)}"
        )

    def analyze(self, text: Any) -> RiskAssessment:
        """
        Analyze text for crisis indicators.

        Args:
            text: User message. Anything other than a non-empty string
                  yields a "none" assessment.

        Returns:
            RiskAssessment with tier, score, confidence and indicators
        """
        if not isinstance(text, str) or not text.strip():
            return RiskAssessment(tier=RiskTier.NONE)

        normalized = text.lower().strip()
        indicators: list[str] = []
        seen: set[str] = set()
        score = 0

        for bucket, phrases, weight in self._buckets:
            for phrase in phrases:
                if phrase in seen or phrase not in normalized:
                    continue
                seen.add(phrase)
                indicators.append(phrase)
                score += weight
                logger.debug(f"Crisis phrase matched in bucket={bucket} (+{weight})")

        # Raw substring containment, no word boundaries
        for first, second in self.lexicon.combinations:
            if first in normalized and second in normalized:
                indicators.append(f"{first} + {second}")
                score += self.lexicon.combination_weight

        tier = classify_tier(score, self.lexicon.thresholds)
        assessment = RiskAssessment(
            tier=tier,
            score=score,
            confidence=self._confidence(tier, score),
            indicators=indicators,
            requires_immediate=tier.requires_immediate,
        )

        if assessment.requires_immediate:
            logger.warning(
                f"Elevated crisis risk detected: tier={tier.value}, score={score}, "
                f"indicators={len(indicators)}"
            )
        else:
            logger.debug(f"Risk analysis complete: tier={tier.value}, score={score}")

        return assessment

    def _confidence(self, tier: RiskTier, score: int) -> float:
        if tier == RiskTier.NONE:
            return 0.0
        scale = self.lexicon.confidence[tier]
        return _round_half_up(min(score / scale.denominator, scale.cap))

    def classify(self, score: int) -> RiskTier:
        """Tier for a raw score under this analyzer's thresholds."""
        return classify_tier(score, self.lexicon.thresholds)
