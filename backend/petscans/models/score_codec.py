"""
Versioned (de)serialization of ScoreBreakdown for persisted scan history.
Legacy shapes are migrated to the current schema before decoding, so scoring
code only ever sees current-version records.
"""
import logging
from typing import Any, Callable

from .score import (
    ScoreBreakdown,
    ScoreExplanation,
    ScoreSource,
    WarningFlag,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2


def _migrate_v1(d: dict) -> dict:
    """v1 carried a nutrition sub-score and no processing score."""
    out = {k: v for k, v in d.items() if k not in ("nutrition", "nutrition_explanation")}
    out["processing"] = None
    out["processing_explanation"] = None
    out["schema_version"] = 2
    return out


_MIGRATIONS: dict[int, Callable[[dict], dict]] = {
    1: _migrate_v1,
}


def migrate(d: dict) -> dict:
    version = int(d.get("schema_version", 1))
    if version > SCHEMA_VERSION:
        raise ValueError(f"score schema_version {version} is newer than supported {SCHEMA_VERSION}")
    while version < SCHEMA_VERSION:
        logger.debug("SCORE_CODEC migrating schema_version=%d", version)
        d = _MIGRATIONS[version](d)
        version = int(d["schema_version"])
    return d


def score_breakdown_to_dict(breakdown: ScoreBreakdown) -> dict[str, Any]:
    d = breakdown.to_dict()
    d["schema_version"] = SCHEMA_VERSION
    return d


def score_breakdown_from_dict(d: dict) -> ScoreBreakdown:
    d = migrate(dict(d))
    processing = d.get("processing")
    ocr = d.get("ocr_confidence")
    return ScoreBreakdown(
        total=float(d.get("total", 0.0)),
        safety=float(d.get("safety", 0.0)),
        suitability=float(d.get("suitability", 0.0)),
        processing=float(processing) if processing is not None else None,
        flags=tuple(WarningFlag.from_dict(f) for f in d.get("flags") or []),
        unmatched=tuple(d.get("unmatched") or []),
        matched_count=int(d.get("matched_count", 0)),
        total_count=int(d.get("total_count", 0)),
        score_source=ScoreSource(d.get("score_source", ScoreSource.DATABASE_VERIFIED.value)),
        ocr_confidence=float(ocr) if ocr is not None else None,
        safety_explanation=ScoreExplanation.from_dict(d.get("safety_explanation")),
        suitability_explanation=ScoreExplanation.from_dict(d.get("suitability_explanation")),
        processing_explanation=ScoreExplanation.from_dict(d.get("processing_explanation")),
    )
