"""
Product resolution pipeline: barcode -> ingredient text -> matched ingredients.

Steps run strictly in order (lookup-barcode, search-product, extract-ingredients,
match-ingredients, complete); any step may end in failed. Each yielded state
carries every step completed so far. Provider errors are converted to an
ErrorClassification here and nowhere else.
"""
import asyncio
import logging
from typing import AsyncIterator, Optional

from petscans.external_apis.base import (
    BarcodeLookup,
    BarcodeLookupError,
    CachedProduct,
    ErrorKind,
    ExtractedProduct,
    ProductExtractor,
    ProductSearch,
    ProductSearchError,
    ProviderError,
    SearchCandidate,
)
from petscans.matching.ingredient_matcher import IngredientMatcher
from petscans.pipeline.async_utils import first_success
from petscans.pipeline.states import (
    ErrorClassification,
    PipelineError,
    PipelineState,
    PipelineStep,
    ProductDetails,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCES: tuple[str, ...] = ("chewy", "petco", "petsmart")


def _log_provider_error(step: PipelineStep, err: ProviderError) -> None:
    """not-found is an expected outcome, network trouble a warning, malformed data an error."""
    reason = getattr(err.reason, "value", err.reason)
    if err.kind == ErrorKind.NOT_FOUND:
        logger.info("PIPELINE step=%s not_found reason=%s", step.value, reason)
    elif err.kind == ErrorKind.MALFORMED_RESPONSE:
        logger.error("PIPELINE step=%s malformed_response reason=%s detail=%s", step.value, reason, err.detail)
    else:
        logger.warning("PIPELINE step=%s %s reason=%s detail=%s", step.value, err.kind.value, reason, err.detail)


def _network_error(err: ProviderError) -> PipelineError:
    return PipelineError.of(
        ErrorClassification.NETWORK_ERROR,
        rate_limited=err.kind == ErrorKind.RATE_LIMITED,
        detail=str(err),
    )


class ProductResolutionPipeline:
    def __init__(
        self,
        barcode_lookup: BarcodeLookup,
        product_search: ProductSearch,
        extractor: ProductExtractor,
        matcher: IngredientMatcher,
        product_cache=None,
        sources: tuple[str, ...] = DEFAULT_SOURCES,
    ):
        self._barcode_lookup = barcode_lookup
        self._product_search = product_search
        self._extractor = extractor
        self._matcher = matcher
        self._cache = product_cache
        self._sources = tuple(sources)

    async def run(self, barcode: str) -> AsyncIterator[PipelineState]:
        """
        Yield one state per transition. Terminal states are complete or failed.
        Closing the generator (or cancelling its consumer) cancels in-flight work.
        """
        completed: set[PipelineStep] = set()

        def state(step: PipelineStep, **kwargs) -> PipelineState:
            return PipelineState(step=step, completed_steps=frozenset(completed), **kwargs)

        def failed(error: PipelineError) -> PipelineState:
            logger.info(
                "PIPELINE barcode=%s failed classification=%s rate_limited=%s",
                barcode, error.classification.value, error.rate_limited,
            )
            return state(PipelineStep.FAILED, error=error)

        yield state(PipelineStep.LOOKUP_BARCODE)

        cached = self._lookup_cache(barcode)
        if cached is not None:
            completed.update((
                PipelineStep.LOOKUP_BARCODE,
                PipelineStep.SEARCH_PRODUCT,
                PipelineStep.EXTRACT_INGREDIENTS,
            ))
            product = ProductDetails(
                name=cached.name,
                brand=cached.brand,
                ingredients_text=cached.ingredients_text,
                image_url=cached.image_url,
                data_source="offline_cache",
            )
            async for s in self._match(barcode, product, completed, state, store=False):
                yield s
            return

        # lookup-barcode
        try:
            barcode_product = await self._barcode_lookup.lookup(barcode)
        except BarcodeLookupError as e:
            _log_provider_error(PipelineStep.LOOKUP_BARCODE, e)
            if e.kind == ErrorKind.NOT_FOUND:
                yield failed(PipelineError.of(ErrorClassification.BARCODE_NOT_FOUND, detail=str(e)))
            else:
                yield failed(_network_error(e))
            return
        if not barcode_product.has_search_query:
            logger.info("PIPELINE barcode=%s lookup returned no usable search query", barcode)
            yield failed(PipelineError.of(ErrorClassification.BARCODE_NOT_FOUND, detail="empty search query"))
            return
        completed.add(PipelineStep.LOOKUP_BARCODE)
        logger.info("PIPELINE barcode=%s step=lookup-barcode query=%s", barcode, barcode_product.search_query[:80])

        # search-product
        yield state(PipelineStep.SEARCH_PRODUCT)
        try:
            candidates = await self._product_search.search(barcode_product.search_query, self._sources)
        except ProductSearchError as e:
            _log_provider_error(PipelineStep.SEARCH_PRODUCT, e)
            if e.kind == ErrorKind.NOT_FOUND:
                yield failed(PipelineError.of(ErrorClassification.PRODUCT_NOT_FOUND, detail=str(e)))
            else:
                yield failed(_network_error(e))
            return
        if not candidates:
            logger.info("PIPELINE barcode=%s step=search-product no candidates", barcode)
            yield failed(PipelineError.of(ErrorClassification.PRODUCT_NOT_FOUND))
            return
        completed.add(PipelineStep.SEARCH_PRODUCT)
        logger.info(
            "PIPELINE barcode=%s step=search-product candidates=%s",
            barcode, [c.source for c in candidates],
        )

        # extract-ingredients
        yield state(PipelineStep.EXTRACT_INGREDIENTS)
        winner, errors = await first_success(
            (self._extract(c) for c in candidates),
            accept=lambda r: r is not None and r[0].has_ingredients,
        )
        if winner is None:
            yield failed(self._classify_extraction_failure(errors, len(candidates)))
            return
        extracted, candidate = winner
        completed.add(PipelineStep.EXTRACT_INGREDIENTS)
        product = ProductDetails(
            name=extracted.name or barcode_product.display_name or None,
            brand=extracted.brand or barcode_product.brand,
            ingredients_text=extracted.ingredients_text,
            image_url=extracted.image_url,
            data_source=candidate.source,
        )
        logger.info("PIPELINE barcode=%s step=extract-ingredients source=%s", barcode, candidate.source)

        async for s in self._match(barcode, product, completed, state, store=True):
            yield s

    async def _match(self, barcode, product: ProductDetails, completed, state, store: bool):
        yield state(PipelineStep.MATCH_INGREDIENTS)
        matched = tuple(self._matcher.match(product.ingredients_text))
        completed.add(PipelineStep.MATCH_INGREDIENTS)
        if store:
            await self._store_cache(barcode, product)
        logger.info(
            "PIPELINE barcode=%s complete source=%s labels=%d matched=%d",
            barcode, product.data_source, len(matched), sum(1 for m in matched if m.is_matched),
        )
        yield state(PipelineStep.COMPLETE, product=product, matched=matched)

    async def _extract(self, candidate: SearchCandidate) -> Optional[tuple[ExtractedProduct, SearchCandidate]]:
        extracted = await self._extractor.extract(candidate.url)
        if not extracted.has_ingredients:
            logger.info("PIPELINE candidate=%s returned empty ingredients", candidate.source)
        return extracted, candidate

    def _classify_extraction_failure(self, errors: list[BaseException], candidate_count: int) -> PipelineError:
        provider_errors = [e for e in errors if isinstance(e, ProviderError)]
        for e in errors:
            if isinstance(e, ProviderError):
                _log_provider_error(PipelineStep.EXTRACT_INGREDIENTS, e)
            else:
                logger.error("PIPELINE step=extract-ingredients unexpected error=%r", e)
        transient = (ErrorKind.TRANSIENT_NETWORK, ErrorKind.RATE_LIMITED)
        # Network only when every candidate failed for transient reasons
        if len(provider_errors) == candidate_count and all(e.kind in transient for e in provider_errors):
            return PipelineError.of(
                ErrorClassification.NETWORK_ERROR,
                rate_limited=any(e.kind == ErrorKind.RATE_LIMITED for e in provider_errors),
                detail=str(provider_errors[0]),
            )
        return PipelineError.of(ErrorClassification.INGREDIENTS_NOT_FOUND)

    def _lookup_cache(self, barcode: str) -> Optional[CachedProduct]:
        if self._cache is None:
            return None
        cached = self._cache.lookup_cached(barcode)
        if cached is None or not cached.ingredients_text.strip():
            return None
        logger.info("PIPELINE barcode=%s offline cache hit", barcode)
        return cached

    async def _store_cache(self, barcode: str, product: ProductDetails) -> None:
        store = getattr(self._cache, "store", None)
        if store is None:
            return
        cached = CachedProduct(
            barcode=barcode,
            name=product.name,
            brand=product.brand,
            ingredients_text=product.ingredients_text,
            image_url=product.image_url,
            source=product.data_source,
        )
        # File write; keep it off the event loop. A failed write never fails the scan.
        try:
            await asyncio.to_thread(store, barcode, cached)
        except OSError as e:
            logger.warning("PIPELINE cache store failed barcode=%s error=%s", barcode, e)
