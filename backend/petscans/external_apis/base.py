"""
Collaborator contracts for product resolution and their error taxonomy.
Every provider failure carries a reason; each reason maps to one ErrorKind.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class ErrorKind(str, Enum):
    NOT_FOUND = "not-found"
    TRANSIENT_NETWORK = "transient-network"
    RATE_LIMITED = "rate-limited"
    MALFORMED_RESPONSE = "malformed-response"


class ProviderError(Exception):
    """Base for provider failures. Subclasses define Reason and _KINDS."""
    provider = "provider"
    _KINDS: dict = {}

    def __init__(self, reason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{self.provider}: {getattr(reason, 'value', reason)}" + (f" ({detail})" if detail else ""))

    @property
    def kind(self) -> ErrorKind:
        return self._KINDS[self.reason]


class BarcodeLookupReason(str, Enum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    INVALID_BARCODE = "invalid_barcode"
    MALFORMED = "malformed"


class BarcodeLookupError(ProviderError):
    provider = "barcode_lookup"
    Reason = BarcodeLookupReason
    _KINDS = {
        BarcodeLookupReason.NOT_FOUND: ErrorKind.NOT_FOUND,
        BarcodeLookupReason.INVALID_BARCODE: ErrorKind.NOT_FOUND,
        BarcodeLookupReason.RATE_LIMITED: ErrorKind.RATE_LIMITED,
        BarcodeLookupReason.NETWORK: ErrorKind.TRANSIENT_NETWORK,
        BarcodeLookupReason.MALFORMED: ErrorKind.MALFORMED_RESPONSE,
    }


class ProductSearchReason(str, Enum):
    NO_RESULTS = "no_results"
    RATE_LIMITED = "rate_limited"
    INVALID_API_KEY = "invalid_api_key"
    NETWORK = "network"
    MALFORMED = "malformed"


class ProductSearchError(ProviderError):
    provider = "product_search"
    Reason = ProductSearchReason
    _KINDS = {
        ProductSearchReason.NO_RESULTS: ErrorKind.NOT_FOUND,
        ProductSearchReason.RATE_LIMITED: ErrorKind.RATE_LIMITED,
        # A rejected key is a configuration fault surfaced like an outage
        ProductSearchReason.INVALID_API_KEY: ErrorKind.TRANSIENT_NETWORK,
        ProductSearchReason.NETWORK: ErrorKind.TRANSIENT_NETWORK,
        ProductSearchReason.MALFORMED: ErrorKind.MALFORMED_RESPONSE,
    }


class ExtractionReason(str, Enum):
    NO_RESULTS = "no_results"
    NOT_FOUND = "not_found"
    BLOCKED = "blocked"
    PARSING_FAILED = "parsing_failed"
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"


class ExtractionError(ProviderError):
    provider = "extraction"
    Reason = ExtractionReason
    _KINDS = {
        ExtractionReason.NO_RESULTS: ErrorKind.NOT_FOUND,
        ExtractionReason.NOT_FOUND: ErrorKind.NOT_FOUND,
        ExtractionReason.BLOCKED: ErrorKind.NOT_FOUND,
        ExtractionReason.PARSING_FAILED: ErrorKind.MALFORMED_RESPONSE,
        ExtractionReason.NETWORK: ErrorKind.TRANSIENT_NETWORK,
        ExtractionReason.RATE_LIMITED: ErrorKind.RATE_LIMITED,
    }


class OCRReason(str, Enum):
    NO_TEXT = "no_text"
    LOW_CONFIDENCE = "low_confidence"
    IMAGE_TOO_SMALL = "image_too_small"
    PROCESSING_FAILED = "processing_failed"


class OCRError(ProviderError):
    provider = "ocr"
    Reason = OCRReason
    _KINDS = {
        OCRReason.NO_TEXT: ErrorKind.NOT_FOUND,
        OCRReason.LOW_CONFIDENCE: ErrorKind.NOT_FOUND,
        OCRReason.IMAGE_TOO_SMALL: ErrorKind.NOT_FOUND,
        OCRReason.PROCESSING_FAILED: ErrorKind.MALFORMED_RESPONSE,
    }


@dataclass(frozen=True)
class BarcodeProduct:
    display_name: str
    brand: Optional[str] = None
    search_query: str = ""

    @property
    def has_search_query(self) -> bool:
        return bool(self.search_query and self.search_query.strip())


@dataclass(frozen=True)
class SearchCandidate:
    url: str
    source: str  # retailer tag, e.g. "chewy"


@dataclass(frozen=True)
class ExtractedProduct:
    name: Optional[str] = None
    brand: Optional[str] = None
    ingredients: Optional[list[str]] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None

    @property
    def ingredients_text(self) -> str:
        return ", ".join(i.strip() for i in (self.ingredients or []) if i and i.strip())

    @property
    def has_ingredients(self) -> bool:
        return bool(self.ingredients_text)


@dataclass(frozen=True)
class OCRResult:
    text: str
    confidence: float  # 0..1


@dataclass(frozen=True)
class CachedProduct:
    barcode: str
    name: Optional[str] = None
    brand: Optional[str] = None
    ingredients_text: str = ""
    image_url: Optional[str] = None
    source: str = "cache"

    def to_dict(self) -> dict:
        return {
            "barcode": self.barcode,
            "name": self.name,
            "brand": self.brand,
            "ingredients_text": self.ingredients_text,
            "image_url": self.image_url,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "CachedProduct":
        return cls(
            barcode=str(d.get("barcode", "")),
            name=d.get("name"),
            brand=d.get("brand"),
            ingredients_text=d.get("ingredients_text") or "",
            image_url=d.get("image_url"),
            source=d.get("source") or "cache",
        )


@runtime_checkable
class BarcodeLookup(Protocol):
    async def lookup(self, barcode: str) -> BarcodeProduct: ...


@runtime_checkable
class ProductSearch(Protocol):
    async def search(self, query: str, sources: tuple[str, ...]) -> list[SearchCandidate]: ...


@runtime_checkable
class ProductExtractor(Protocol):
    async def extract(self, url: str) -> ExtractedProduct: ...


@runtime_checkable
class ProductCache(Protocol):
    def lookup_cached(self, barcode: str) -> Optional[CachedProduct]: ...
