"""
PetScans FastAPI application.

Endpoints:
    GET  /                          Health check + knowledge base counts
    POST /analyze                   Ingredient text -> matched list + score
    POST /scan                      Barcode -> NDJSON stream of pipeline states, then score
    GET  /ingredients/{ingredient_id}  Knowledge base record
"""
from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List, Optional
import logging
import json
from dotenv import load_dotenv
from pathlib import Path

# Load env vars
load_dotenv(Path(__file__).parent / ".env")

# Logger
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from petscans.config import log_config
from petscans.analysis import analyze_ingredients_text
from petscans.evaluation.confidence import analysis_confidence
from petscans.evaluation.score_calculator import ScoreCalculator
from petscans.external_apis import FirecrawlClient, SerperClient, UPCitemdbClient, get_product_cache
from petscans.matching.ingredient_matcher import IngredientMatcher
from petscans.models.pet_profile import allergen_set
from petscans.models.score import ScoreSource
from petscans.ontology.ingredient_schema import Category, Species
from petscans.ontology.knowledge_base import get_knowledge_base
from petscans.pipeline import PipelineStep, ProductResolutionPipeline

log_config()

# Initialize App
app = FastAPI(title="PetScans Ingredient Analysis API")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Request Models ---
class AnalyzeRequest(BaseModel):
    ingredients_text: str
    species: str = "dog"
    category: str = "food"
    allergens: List[str] = Field(default_factory=list)
    pet_name: Optional[str] = None
    score_source: str = ScoreSource.MANUAL_ENTRY.value
    ocr_confidence: Optional[float] = None


class ScanRequest(BaseModel):
    barcode: str
    species: str = "dog"
    category: str = "food"
    allergens: List[str] = Field(default_factory=list)
    pet_name: Optional[str] = None


def _parse_enum(enum_cls, value: str, field_name: str):
    try:
        return enum_cls((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise HTTPException(status_code=400, detail=f"Invalid {field_name} '{value}'. Use one of: {allowed}")


def get_pipeline() -> ProductResolutionPipeline:
    """Pipeline wired to the real providers; tests patch this."""
    return ProductResolutionPipeline(
        barcode_lookup=UPCitemdbClient(),
        product_search=SerperClient(),
        extractor=FirecrawlClient(),
        matcher=IngredientMatcher(),
        product_cache=get_product_cache(),
    )


# --- Endpoints ---
@app.get("/")
def health_check():
    return {"status": "ok", "service": "PetScans", "knowledge_base": get_knowledge_base().stats()}


@app.post("/analyze")
def analyze(request: AnalyzeRequest):
    species = _parse_enum(Species, request.species, "species")
    category = _parse_enum(Category, request.category, "category")
    score_source = _parse_enum(ScoreSource, request.score_source, "score_source")
    if not request.ingredients_text or not request.ingredients_text.strip():
        raise HTTPException(status_code=400, detail="ingredients_text is empty")
    logger.info(
        "ANALYZE request species=%s category=%s chars=%d allergens=%d",
        species.value, category.value, len(request.ingredients_text), len(request.allergens),
    )
    result = analyze_ingredients_text(
        request.ingredients_text,
        species,
        category,
        allergens=request.allergens,
        pet_name=request.pet_name,
        score_source=score_source,
        ocr_confidence=request.ocr_confidence,
    )
    return result.to_dict()


@app.post("/scan")
async def scan_barcode(request: ScanRequest):
    species = _parse_enum(Species, request.species, "species")
    category = _parse_enum(Category, request.category, "category")
    barcode = (request.barcode or "").strip()
    if not barcode:
        raise HTTPException(status_code=400, detail="barcode is empty")
    pipeline = get_pipeline()
    logger.info("SCAN request barcode=%s species=%s category=%s", barcode, species.value, category.value)

    async def generate_states():
        async for state in pipeline.run(barcode):
            yield json.dumps({"state": state.to_dict()}) + "\n"
            if state.step == PipelineStep.COMPLETE:
                breakdown = ScoreCalculator().calculate(
                    species,
                    category,
                    state.matched,
                    allergens=allergen_set(request.allergens),
                    score_source=ScoreSource.DATABASE_VERIFIED,
                    pet_name=request.pet_name,
                )
                yield json.dumps({
                    "score": breakdown.to_dict(),
                    "confidence": analysis_confidence(breakdown).value,
                }) + "\n"

    return StreamingResponse(generate_states(), media_type="application/x-ndjson")


@app.get("/ingredients/{ingredient_id}")
def get_ingredient(ingredient_id: str):
    kb = get_knowledge_base()
    ing = kb.ingredients.get(ingredient_id)
    if ing is None:
        raise HTTPException(status_code=404, detail=f"Unknown ingredient '{ingredient_id}'")
    d = ing.to_dict()
    d["synonyms"] = kb.synonyms.phrases_for(ing.id)
    return d


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
