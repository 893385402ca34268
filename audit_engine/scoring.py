"""
audit_engine/scoring.py

Score conversion and opportunity ranking for engine results.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.domain.audit import NOT_APPLICABLE, CategoryScores, Opportunity

MANDATORY_CATEGORIES: tuple[str, ...] = ("performance", "accessibility", "best-practices", "seo")
OPTIONAL_CATEGORY = "pwa"


def to_percentage(fraction: float | None) -> int:
    """
    Convert a [0, 1] score fraction to an integer percentage, rounding half up.

    ``Decimal(str(...))`` keeps 0.005 from becoming 0.49999... before rounding.
    """

    if fraction is None:
        return 0
    try:
        scaled = Decimal(str(fraction)) * 100
        rounded = int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return 0
    return max(0, min(100, rounded))


def convert_scores(category_scores: Mapping[str, float | None]) -> CategoryScores:
    mandatory = {name: to_percentage(category_scores.get(name)) for name in MANDATORY_CATEGORIES}
    optional = category_scores.get(OPTIONAL_CATEGORY)
    return CategoryScores(
        performance=mandatory["performance"],
        accessibility=mandatory["accessibility"],
        best_practices=mandatory["best-practices"],
        seo=mandatory["seo"],
        pwa=NOT_APPLICABLE if optional is None else to_percentage(optional),
    )


def rank_opportunities(opportunities: Iterable[Opportunity]) -> tuple[Opportunity, ...]:
    """
    Order opportunities by descending estimated impact.

    Equal impacts keep the engine's order (sorted() is stable with reverse=True).
    """

    return tuple(
        sorted(
            opportunities,
            key=lambda item: item.numeric_value or 0.0,
            reverse=True,
        )
    )
