"""
Form bottleneck analysis.

Estimates how many visitors make it through each form field, finds the
field that loses the most of them and turns the cumulative completion rate
into a lead estimate for form and field predictions.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from .constants import FORM_CLICK_ALLOCATION, INDUSTRY_MODIFIERS, MIN_FORM_COMPLETION_RATE
from .element_features import field_complexity, label_clarity
from .models import FieldCompletion, FormBottleneckAnalysis, PageContext

logger = logging.getLogger(__name__)

_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def field_completion_rate(field) -> float:
    position = 0.9 if field.is_above_fold else 0.6
    rate = 0.9 - field_complexity(field) * 0.3 - (1 - position) * 0.2 - (1 - label_clarity(field)) * 0.1
    return max(MIN_FORM_COMPLETION_RATE, rate)


def field_optimizations(field) -> tuple:
    """(priority, recommendations) for one field."""
    recommendations: List[str] = []
    priority = "low"
    complexity = field_complexity(field)
    clarity = label_clarity(field)

    if complexity > 0.6:
        recommendations.append("Simplify field requirements")
        priority = "high"
    if clarity < 0.4:
        recommendations.append("Add clear field labels")
        if priority != "high":
            priority = "medium"
    if not field.is_above_fold:
        recommendations.append("Move field above the fold")
        if priority == "low":
            priority = "medium"
    if field.required and not field.label:
        recommendations.append("Add label to required field")
        priority = "high"
    if not field.has_autocomplete and field.input_type in ("email", "tel"):
        recommendations.append("Enable autocomplete for better UX")
        if priority == "low":
            priority = "medium"

    return priority, recommendations


def analyze_form_bottleneck(
    fields: Sequence,
    context: PageContext,
    total_clicks: float,
) -> FormBottleneckAnalysis:
    """Per-field completion, bottleneck field and industry-adjusted completion rate.

    Args:
        fields: FieldElement instances, in page order.
        context: Page context (industry drives the completion modifier).
        total_clicks: Total predicted page clicks; 30% are allocated to the form.
    """
    if not fields:
        return FormBottleneckAnalysis()

    breakdown = []
    for field in fields:
        rate = field_completion_rate(field)
        breakdown.append(
            FieldCompletion(
                field_id=field.id,
                label=field.label,
                completion_rate=rate,
                dropoff_rate=1 - rate,
            )
        )

    bottleneck = min(breakdown, key=lambda f: f.completion_rate)

    completion_rate = 1.0
    for item in breakdown:
        completion_rate *= item.completion_rate
    if context.industry is not None and context.industry.value in INDUSTRY_MODIFIERS:
        completion_rate *= INDUSTRY_MODIFIERS[context.industry.value]["form_completion_rate"]

    optimizations = []
    for field in fields:
        priority, recommendations = field_optimizations(field)
        name = field.label or field.id
        optimizations.extend((_PRIORITY_ORDER[priority], f"{name}: {rec}") for rec in recommendations)
    optimizations.sort(key=lambda item: item[0])

    above_fold = sum(1 for field in fields if field.is_above_fold)
    logger.debug(
        f"Form analysis: {len(fields)} fields, bottleneck {bottleneck.field_id} "
        f"({bottleneck.completion_rate:.2f}), completion {completion_rate:.3f}"
    )

    return FormBottleneckAnalysis(
        bottleneck_field=bottleneck.field_id,
        bottleneck_completion_rate=bottleneck.completion_rate,
        completion_rate=completion_rate,
        form_clicks=total_clicks * FORM_CLICK_ALLOCATION,
        field_breakdown=breakdown,
        above_fold_fields=above_fold,
        below_fold_fields=len(fields) - above_fold,
        recommended_optimizations=[text for _, text in optimizations],
    )
