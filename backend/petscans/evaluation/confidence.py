"""
Analysis confidence from match rate, score source and OCR confidence.
Presentation only: never feeds back into any score.
"""
from enum import Enum
from typing import Optional

from petscans.models.score import ScoreBreakdown, ScoreSource

# Typed-in labels are trusted slightly less than verified database text
_SOURCE_FACTOR = {
    ScoreSource.DATABASE_VERIFIED: 1.0,
    ScoreSource.MANUAL_ENTRY: 0.95,
    ScoreSource.OCR_ESTIMATED: 1.0,
}
# Used when OCR text arrives without a confidence value
_DEFAULT_OCR_CONFIDENCE = 0.6


class ConfidenceBand(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def compute_confidence(
    match_rate: float,
    score_source: ScoreSource,
    ocr_confidence: Optional[float] = None,
) -> float:
    """
    confidence = match_rate * source_factor, further scaled by OCR confidence
    when the text came from OCR. Clamped to [0, 1].
    """
    value = max(0.0, min(1.0, match_rate)) * _SOURCE_FACTOR[score_source]
    if score_source == ScoreSource.OCR_ESTIMATED:
        ocr = _DEFAULT_OCR_CONFIDENCE if ocr_confidence is None else ocr_confidence
        value *= max(0.0, min(1.0, ocr))
    return round(value, 4)


def confidence_band(value: float) -> ConfidenceBand:
    if value >= 0.85:
        return ConfidenceBand.HIGH
    if value >= 0.6:
        return ConfidenceBand.MEDIUM
    return ConfidenceBand.LOW


def analysis_confidence(breakdown: ScoreBreakdown) -> ConfidenceBand:
    return confidence_band(
        compute_confidence(breakdown.match_rate, breakdown.score_source, breakdown.ocr_confidence)
    )
