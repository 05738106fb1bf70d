"""Plain-text summary of a score for sharing."""
from typing import Optional

from petscans.models.score import ScoreBreakdown
from petscans.ontology.ingredient_schema import Category, Species


def generate_share_text(
    breakdown: ScoreBreakdown,
    product_name: Optional[str],
    brand: Optional[str],
    species: Species,
    category: Category,
) -> str:
    lines = ["PetScans Analysis", "━━━━━━━━━━━━━━━━━━", ""]
    if product_name:
        lines.append(f"Product: {product_name}")
    if brand:
        lines.append(f"Brand: {brand}")
    lines.append(f"For: {species.display_name}")
    lines.append(f"Type: {category.display_name}")
    lines.append("")
    lines.append(f"Overall Score: {int(breakdown.total)}/100 ({breakdown.rating_label.display_name})")
    lines.append(f"Safety: {int(breakdown.safety)}/100")
    lines.append(f"Suitability: {int(breakdown.suitability)}/100")
    if breakdown.processing is not None:
        lines.append(f"Processing: {int(breakdown.processing)}/100")
    if breakdown.flags:
        lines.append("")
        lines.append("Warnings:")
        for flag in breakdown.flags:
            lines.append(f"• {flag.title}: {flag.explain}")
    lines.append("")
    lines.append("Scanned with PetScans")
    return "\n".join(lines)
