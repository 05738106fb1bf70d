from .states import ErrorClassification, PipelineError, PipelineState, PipelineStep, ProductDetails
from .product_pipeline import DEFAULT_SOURCES, ProductResolutionPipeline

__all__ = [
    "ErrorClassification",
    "PipelineError",
    "PipelineState",
    "PipelineStep",
    "ProductDetails",
    "DEFAULT_SOURCES",
    "ProductResolutionPipeline",
]
