"""
Crisis Lexicon Configuration

Weighted phrase buckets, co-occurrence pairs, tier thresholds and confidence
scaling used by the risk analyzer. The default lexicon ships as package data
(data/crisis_lexicon.json) so phrase lists and weights can be updated
without code changes. An override file can replace individual top-level
sections.
"""

import json
import logging
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from crisis_engine.safety.models import RiskTier

logger = logging.getLogger(__name__)

DEFAULT_LEXICON_RESOURCE = "crisis_lexicon.json"

# Buckets are scanned in this order; a phrase listed in several buckets
# scores only in the first one.
KEYWORD_BUCKETS = ("critical", "high", "urgency", "concerning")


class LexiconError(Exception):
    """Raised when a lexicon file cannot be read or fails validation."""
    pass


class ConfidenceScale(BaseModel):
    """confidence = min(score / denominator, cap)"""
    denominator: float = Field(gt=0)
    cap: float = Field(gt=0, le=1.0)


class KeywordBuckets(BaseModel):
    critical: list[str] = Field(min_length=1)
    high: list[str] = Field(min_length=1)
    urgency: list[str] = Field(min_length=1)
    concerning: list[str] = Field(min_length=1)

    @field_validator("critical", "high", "urgency", "concerning")
    @classmethod
    def normalize_phrases(cls, phrases: list[str]) -> list[str]:
        normalized = [p.lower().strip() for p in phrases]
        if any(not p for p in normalized):
            raise ValueError("lexicon phrases must be non-empty")
        return normalized


class BucketWeights(BaseModel):
    critical: int = Field(gt=0)
    high: int = Field(gt=0)
    urgency: int = Field(gt=0)
    concerning: int = Field(gt=0)


class TierThresholds(BaseModel):
    """Minimum total score for each tier. Below `low` the tier is none."""
    critical: int
    high: int
    moderate: int
    low: int = Field(ge=1)

    @model_validator(mode="after")
    def check_ordering(self) -> "TierThresholds":
        if not (self.critical > self.high > self.moderate > self.low):
            raise ValueError("thresholds must be strictly decreasing: critical > high > moderate > low")
        return self


class LexiconConfig(BaseModel):
    """Validated crisis lexicon."""
    version: str = "unversioned"
    keywords: KeywordBuckets
    weights: BucketWeights
    combinations: list[tuple[str, str]] = Field(default_factory=list)
    combination_weight: int = Field(gt=0)
    thresholds: TierThresholds
    confidence: dict[RiskTier, ConfidenceScale]

    @field_validator("combinations")
    @classmethod
    def normalize_combinations(cls, pairs: list[tuple[str, str]]) -> list[tuple[str, str]]:
        normalized = [(a.lower().strip(), b.lower().strip()) for a, b in pairs]
        if any(not a or not b for a, b in normalized):
            raise ValueError("combination phrases must be non-empty")
        return normalized

    @model_validator(mode="after")
    def check_confidence_tiers(self) -> "LexiconConfig":
        missing = {RiskTier.LOW, RiskTier.MODERATE, RiskTier.HIGH, RiskTier.CRITICAL} - set(self.confidence)
        if missing:
            raise ValueError(f"confidence scale missing for tiers: {sorted(t.value for t in missing)}")
        return self

    def bucket_phrases(self) -> list[tuple[str, list[str], int]]:
        """(bucket, phrases, weight) in scan order."""
        return [
            (bucket, getattr(self.keywords, bucket), getattr(self.weights, bucket))
            for bucket in KEYWORD_BUCKETS
        ]

    @property
    def phrase_count(self) -> int:
        return sum(len(phrases) for _, phrases, _ in self.bucket_phrases())


def _read_default_lexicon() -> dict[str, Any]:
    data = resources.files("crisis_engine.safety") / "data" / DEFAULT_LEXICON_RESOURCE
    return json.loads(data.read_text(encoding="utf-8"))


def _read_override(path: str | Path) -> dict[str, Any]:
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise LexiconError(f"Cannot read lexicon override {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise LexiconError(f"Lexicon override {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise LexiconError(f"Lexicon override {path} must be a JSON object")
    return data


def merge_lexicon(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Replace top-level sections of `base` with those present in `override`."""
    merged = dict(base)
    merged.update(override)
    return merged


def parse_lexicon(data: dict[str, Any]) -> LexiconConfig:
    """Validate raw lexicon data."""
    try:
        return LexiconConfig.model_validate(data)
    except ValidationError as e:
        raise LexiconError(f"Invalid crisis lexicon: {e}") from e


def load_lexicon(path: Optional[str | Path] = None) -> LexiconConfig:
    """
    Load the crisis lexicon.

    Args:
        path: Optional override file. Its top-level sections replace the
              packaged defaults before validation.

    Returns:
        Validated LexiconConfig. If the override is unreadable or invalid,
        the error is logged and the packaged default is returned.
    """
    default_data = _read_default_lexicon()

    if path is None:
        return parse_lexicon(default_data)

    try:
        lexicon = parse_lexicon(merge_lexicon(default_data, _read_override(path)))
    except LexiconError as e:
        logger.error(f"Lexicon override rejected, using packaged default: {e}")
        return parse_lexicon(default_data)

    logger.info(f"Loaded crisis lexicon override from {path} (version={lexicon.version})")
    return lexicon


@lru_cache
def get_default_lexicon() -> LexiconConfig:
    """Packaged lexicon, parsed once."""
    return parse_lexicon(_read_default_lexicon())
