"""
Analysis facade: raw ingredient text (typed, database or OCR) -> matched list + score.
Single entry point used by the API, the pipeline consumer and scripts.
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional
import logging

from petscans.evaluation.confidence import analysis_confidence
from petscans.evaluation.score_calculator import ScoreCalculator
from petscans.external_apis.base import OCRError, OCRResult
from petscans.matching.ingredient_matcher import IngredientMatcher
from petscans.models.matched import MatchedIngredient
from petscans.models.pet_profile import allergen_set
from petscans.models.score import ScoreBreakdown, ScoreSource
from petscans.normalization.label_parser import LabelTextParser
from petscans.ontology.ingredient_schema import Category, Species
from petscans.ontology.knowledge_base import get_knowledge_base

logger = logging.getLogger(__name__)

# OCR text below this confidence is rejected rather than scored
MIN_OCR_CONFIDENCE = 0.6


@dataclass(frozen=True)
class AnalysisResult:
    matched: List[MatchedIngredient]
    breakdown: ScoreBreakdown
    parsed_text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "matched": [m.to_dict() for m in self.matched],
            "breakdown": self.breakdown.to_dict(),
            "rating_label": self.breakdown.rating_label.value,
            "confidence": analysis_confidence(self.breakdown).value,
            "parsed_text": self.parsed_text,
        }


def analyze_ingredients_text(
    ingredients_text: str,
    species: Species,
    category: Category,
    allergens: Optional[Iterable[str]] = None,
    pet_name: Optional[str] = None,
    score_source: ScoreSource = ScoreSource.DATABASE_VERIFIED,
    ocr_confidence: Optional[float] = None,
    matcher: Optional[IngredientMatcher] = None,
    calculator: Optional[ScoreCalculator] = None,
) -> AnalysisResult:
    matcher = matcher or IngredientMatcher()
    calculator = calculator or ScoreCalculator()
    matched = matcher.match(ingredients_text)
    breakdown = calculator.calculate(
        species,
        category,
        matched,
        allergens=allergen_set(allergens),
        score_source=score_source,
        ocr_confidence=ocr_confidence,
        pet_name=pet_name,
    )
    logger.info(
        "ANALYSIS species=%s category=%s source=%s labels=%d matched=%d total=%s label=%s",
        species.value, category.value, score_source.value, breakdown.total_count,
        breakdown.matched_count, breakdown.total, breakdown.rating_label.value,
    )
    return AnalysisResult(matched=matched, breakdown=breakdown, parsed_text=ingredients_text or "")


def analyze_ocr_result(
    ocr: OCRResult,
    species: Species,
    category: Category,
    allergens: Optional[Iterable[str]] = None,
    pet_name: Optional[str] = None,
    parser: Optional[LabelTextParser] = None,
    matcher: Optional[IngredientMatcher] = None,
    calculator: Optional[ScoreCalculator] = None,
) -> AnalysisResult:
    """
    Score text recognized from a label photo. Raises OCRError when there is no
    text or recognition confidence is too low to trust.
    """
    if not ocr.text or not ocr.text.strip():
        raise OCRError(OCRError.Reason.NO_TEXT)
    if ocr.confidence < MIN_OCR_CONFIDENCE:
        logger.info("ANALYSIS ocr rejected confidence=%.2f min=%.2f", ocr.confidence, MIN_OCR_CONFIDENCE)
        raise OCRError(OCRError.Reason.LOW_CONFIDENCE, f"{ocr.confidence:.2f}")
    parser = parser or LabelTextParser.from_synonym_index(get_knowledge_base().synonyms)
    text = parser.parse(ocr.text)
    if not text:
        raise OCRError(OCRError.Reason.NO_TEXT, "no ingredients after parsing")
    return analyze_ingredients_text(
        text,
        species,
        category,
        allergens=allergens,
        pet_name=pet_name,
        score_source=ScoreSource.OCR_ESTIMATED,
        ocr_confidence=ocr.confidence,
        matcher=matcher,
        calculator=calculator,
    )
