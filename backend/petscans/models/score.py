"""
Score breakdown produced by the calculator. Single format for the API, share
text and persisted scan history.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from petscans.rules.rule_schema import Severity


class ScoreSource(str, Enum):
    DATABASE_VERIFIED = "database_verified"
    OCR_ESTIMATED = "ocr_estimated"
    MANUAL_ENTRY = "manual_entry"

    @property
    def badge(self) -> str:
        return {
            ScoreSource.DATABASE_VERIFIED: "Verified",
            ScoreSource.OCR_ESTIMATED: "Estimated (OCR)",
            ScoreSource.MANUAL_ENTRY: "Manual entry",
        }[self]


class WarningType(str, Enum):
    ALLERGEN = "allergen"
    SAFETY = "safety"
    GENERAL = "general"


class RatingLabel(str, Enum):
    AVOID = "avoid"
    CAUTION = "caution"
    GOOD = "good"
    EXCELLENT = "excellent"

    @property
    def order(self) -> int:
        return _LABEL_ORDER[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def from_score(cls, score: float) -> "RatingLabel":
        if score >= 75:
            return cls.EXCELLENT
        if score >= 50:
            return cls.GOOD
        if score >= 25:
            return cls.CAUTION
        return cls.AVOID

    @staticmethod
    def worst(*labels: Optional["RatingLabel"]) -> "RatingLabel":
        present = [l for l in labels if l is not None]
        return min(present, key=lambda l: l.order)


_LABEL_ORDER = {
    RatingLabel.AVOID: 0,
    RatingLabel.CAUTION: 1,
    RatingLabel.GOOD: 2,
    RatingLabel.EXCELLENT: 3,
}


@dataclass(frozen=True)
class WarningFlag:
    severity: Severity
    title: str
    explain: str
    type: WarningType = WarningType.GENERAL
    ingredient_id: Optional[str] = None
    source: Optional[str] = None

    @property
    def identity(self) -> str:
        return f"{self.severity.value}-{self.type.value}-{self.ingredient_id or self.title}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.identity,
            "severity": self.severity.value,
            "title": self.title,
            "explain": self.explain,
            "type": self.type.value,
            "ingredient_id": self.ingredient_id,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "WarningFlag":
        return cls(
            severity=Severity(d["severity"]),
            title=d.get("title", ""),
            explain=d.get("explain", ""),
            type=WarningType(d.get("type", "general")),
            ingredient_id=d.get("ingredient_id"),
            source=d.get("source"),
        )


class FactorImpact(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class ExplanationFactor:
    id: str
    description: str
    impact: FactorImpact
    ingredient_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "impact": self.impact.value,
            "ingredient_name": self.ingredient_name,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ExplanationFactor":
        return cls(
            id=d["id"],
            description=d.get("description", ""),
            impact=FactorImpact(d.get("impact", "neutral")),
            ingredient_name=d.get("ingredient_name"),
        )


@dataclass(frozen=True)
class ScoreExplanation:
    factors: tuple[ExplanationFactor, ...] = ()
    summary: str = ""
    label_override: Optional[RatingLabel] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "factors": [f.to_dict() for f in self.factors],
            "summary": self.summary,
            "label_override": self.label_override.value if self.label_override else None,
        }

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> Optional["ScoreExplanation"]:
        if not d:
            return None
        override = d.get("label_override")
        return cls(
            factors=tuple(ExplanationFactor.from_dict(f) for f in d.get("factors") or []),
            summary=d.get("summary", ""),
            label_override=RatingLabel(override) if override else None,
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    total: float
    safety: float
    suitability: float
    processing: Optional[float] = None
    flags: tuple[WarningFlag, ...] = ()
    unmatched: tuple[str, ...] = ()
    matched_count: int = 0
    total_count: int = 0
    score_source: ScoreSource = ScoreSource.DATABASE_VERIFIED
    ocr_confidence: Optional[float] = None
    safety_explanation: Optional[ScoreExplanation] = None
    suitability_explanation: Optional[ScoreExplanation] = None
    processing_explanation: Optional[ScoreExplanation] = None

    @classmethod
    def empty(cls, score_source: ScoreSource = ScoreSource.DATABASE_VERIFIED) -> "ScoreBreakdown":
        return cls(total=0.0, safety=0.0, suitability=0.0, score_source=score_source)

    @property
    def match_rate(self) -> float:
        if self.total_count <= 0:
            return 0.0
        return self.matched_count / self.total_count

    @property
    def match_percentage(self) -> int:
        return int(round(self.match_rate * 100))

    @property
    def has_critical_flags(self) -> bool:
        return any(f.severity == Severity.CRITICAL for f in self.flags)

    @property
    def rating_label(self) -> RatingLabel:
        overrides = [
            e.label_override
            for e in (self.safety_explanation, self.suitability_explanation, self.processing_explanation)
            if e is not None and e.label_override is not None
        ]
        return RatingLabel.worst(RatingLabel.from_score(self.total), *overrides)

    @property
    def allergen_flags(self) -> list[WarningFlag]:
        return [f for f in self.flags if f.type == WarningType.ALLERGEN]

    @property
    def other_flags(self) -> list[WarningFlag]:
        return [f for f in self.flags if f.type != WarningType.ALLERGEN]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "safety": self.safety,
            "suitability": self.suitability,
            "processing": self.processing,
            "flags": [f.to_dict() for f in self.flags],
            "unmatched": list(self.unmatched),
            "matched_count": self.matched_count,
            "total_count": self.total_count,
            "score_source": self.score_source.value,
            "ocr_confidence": self.ocr_confidence,
            "safety_explanation": self.safety_explanation.to_dict() if self.safety_explanation else None,
            "suitability_explanation": (
                self.suitability_explanation.to_dict() if self.suitability_explanation else None
            ),
            "processing_explanation": (
                self.processing_explanation.to_dict() if self.processing_explanation else None
            ),
            "rating_label": self.rating_label.value,
            "match_percentage": self.match_percentage,
        }
