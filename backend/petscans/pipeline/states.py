"""
Pipeline steps, unified error classification and the state snapshots the
pipeline yields.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from petscans.models.matched import MatchedIngredient


class PipelineStep(str, Enum):
    LOOKUP_BARCODE = "lookup-barcode"
    SEARCH_PRODUCT = "search-product"
    EXTRACT_INGREDIENTS = "extract-ingredients"
    MATCH_INGREDIENTS = "match-ingredients"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineStep.COMPLETE, PipelineStep.FAILED)

    @property
    def display_title(self) -> str:
        return _STEP_TITLES[self]


_STEP_TITLES = {
    PipelineStep.LOOKUP_BARCODE: "Looking up barcode...",
    PipelineStep.SEARCH_PRODUCT: "Searching for product...",
    PipelineStep.EXTRACT_INGREDIENTS: "Finding ingredients...",
    PipelineStep.MATCH_INGREDIENTS: "Analyzing ingredients...",
    PipelineStep.COMPLETE: "Complete!",
    PipelineStep.FAILED: "Search failed",
}


class ErrorClassification(str, Enum):
    BARCODE_NOT_FOUND = "barcode-not-found"
    PRODUCT_NOT_FOUND = "product-not-found"
    INGREDIENTS_NOT_FOUND = "ingredients-not-found"
    NETWORK_ERROR = "network-error"


_MESSAGES = {
    ErrorClassification.BARCODE_NOT_FOUND: (
        "Barcode not recognized",
        "This barcode isn't in our product database. Try taking a photo of the ingredients instead.",
    ),
    ErrorClassification.PRODUCT_NOT_FOUND: (
        "Product not found online",
        "We couldn't find this product on pet food websites. Try taking a photo of the ingredients.",
    ),
    ErrorClassification.INGREDIENTS_NOT_FOUND: (
        "Couldn't find ingredients",
        "We found the product but couldn't extract ingredients. Try taking a photo instead.",
    ),
    ErrorClassification.NETWORK_ERROR: (
        "Network error",
        "Please check your internet connection and try again.",
    ),
}


@dataclass(frozen=True)
class PipelineError:
    classification: ErrorClassification
    message: str
    recovery_suggestion: str
    rate_limited: bool = False
    detail: str = ""

    @classmethod
    def of(cls, classification: ErrorClassification, rate_limited: bool = False, detail: str = "") -> "PipelineError":
        message, suggestion = _MESSAGES[classification]
        if rate_limited:
            suggestion = "The lookup service is busy. Please wait a moment and try again."
        return cls(
            classification=classification,
            message=message,
            recovery_suggestion=suggestion,
            rate_limited=rate_limited,
            detail=detail,
        )

    @property
    def retryable(self) -> bool:
        return self.classification == ErrorClassification.NETWORK_ERROR

    @property
    def offers_manual_entry(self) -> bool:
        return self.classification != ErrorClassification.NETWORK_ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "classification": self.classification.value,
            "message": self.message,
            "recovery_suggestion": self.recovery_suggestion,
            "rate_limited": self.rate_limited,
            "retryable": self.retryable,
            "offers_manual_entry": self.offers_manual_entry,
        }


@dataclass(frozen=True)
class ProductDetails:
    name: Optional[str] = None
    brand: Optional[str] = None
    ingredients_text: str = ""
    image_url: Optional[str] = None
    data_source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "brand": self.brand,
            "ingredients_text": self.ingredients_text,
            "image_url": self.image_url,
            "data_source": self.data_source,
        }


@dataclass(frozen=True)
class PipelineState:
    step: PipelineStep
    completed_steps: frozenset = field(default_factory=frozenset)
    error: Optional[PipelineError] = None
    product: Optional[ProductDetails] = None
    matched: tuple[MatchedIngredient, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        order = list(PipelineStep)
        return {
            "step": self.step.value,
            "title": self.step.display_title,
            "completed_steps": [s.value for s in sorted(self.completed_steps, key=order.index)],
            "error": self.error.to_dict() if self.error else None,
            "product": self.product.to_dict() if self.product else None,
            "matched": [m.to_dict() for m in self.matched],
        }
