"""
Click Prediction Engine — per-element click predictions for one page.

Turns a page's structural elements plus page context into one ClickPrediction
per interactive element: CTR, click share, wasted clicks/spend, confidence
and risk factors. Pure and deterministic: identical input always produces
identical output.

Usage:
    from ctatracker.services.conversion_prediction import predict_clicks, PageContext

    context = PageContext.for_device("desktop", url="https://example.com", total_impressions=5000)
    result = predict_clicks(elements, context)
    if result.ok:
        for prediction in result.value.predictions:
            print(prediction.element_id, prediction.ctr)
    else:
        print(result.failure.kind, result.failure.message)
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .constants import (
    ABOVE_FOLD_MULTIPLIER,
    BELOW_FOLD_MULTIPLIER,
    BUTTON_STYLING_MULTIPLIER,
    DECORATIVE_MULTIPLIER,
    FORM_FIELD_MULTIPLIER,
    HIDDEN_MULTIPLIER,
    HIGH_CONTRAST_MULTIPLIER,
    INTERACTIVE_MULTIPLIER,
    MAX_ELEMENTS,
    MAX_FORM_FIELDS,
    MIN_SCORE,
    NEIGHBOR_DEPRESSION_FLOOR,
    NEIGHBOR_DEPRESSION_STEP,
    VIEWPORT_WIDTH_RANGES,
    VISUAL_NOISE_MULTIPLIER,
)
from .cpc_estimator import enrich_context, estimate_cpc
from .element_features import extract_features, is_form_field, weighted_score
from .feature_extractor import derive_fold
from .form_analyzer import analyze_form_bottleneck
from .helpers import round_half_up
from .models import (
    ClickPrediction,
    ClickPredictionReport,
    ElementKind,
    FormBottleneckAnalysis,
    PageContext,
    PredictionMetadata,
)
from .results import EngineResult, FailureKind
from .risk import assess_reliability, calculate_confidence_level, generate_risk_factors, generate_warnings
from .traffic import apply_traffic_adjustments, calculate_traffic_modifiers
from .waste import calculate_waste

logger = logging.getLogger(__name__)


# ============================================================================
# Preconditions
# ============================================================================

def _has_box(element) -> bool:
    return element.bounds.has_area()


def _validate(elements: Sequence, context: PageContext) -> Optional[EngineResult]:
    """Failure result for unusable input, or None when the input is usable."""
    if not elements:
        return EngineResult.fail(FailureKind.INSUFFICIENT_DATA, "No page elements supplied")

    if not any(e.is_interactive and _has_box(e) for e in elements):
        return EngineResult.fail(
            FailureKind.INSUFFICIENT_DATA,
            "No interactive element with a usable bounding box",
            total_elements=len(elements),
        )

    if context.total_impressions <= 0:
        return EngineResult.fail(
            FailureKind.INVALID_CONTEXT,
            f"Impressions must be positive (got {context.total_impressions})",
        )

    if context.fold_line <= 0:
        return EngineResult.fail(
            FailureKind.INVALID_CONTEXT,
            f"Fold line must be positive (got {context.fold_line})",
        )

    low, high = VIEWPORT_WIDTH_RANGES[context.device_type.value]
    if not low <= context.viewport_width <= high:
        return EngineResult.fail(
            FailureKind.INVALID_CONTEXT,
            f"Viewport width {context.viewport_width}px does not match device "
            f"'{context.device_type.value}' ({low}-{high}px)",
            device=context.device_type.value,
            viewport_width=context.viewport_width,
        )

    return None


# ============================================================================
# Pipeline Steps
# ============================================================================

def filter_valid_elements(elements: Sequence) -> List:
    """Elements with a positive box that are visible form fields, or visible/interactive."""
    valid = []
    for element in elements:
        if not _has_box(element):
            continue
        if is_form_field(element):
            if element.is_visible:
                valid.append(element)
            continue
        if element.is_visible or element.is_interactive:
            valid.append(element)
    return valid[:MAX_ELEMENTS]


def classify_elements(elements: Sequence) -> Tuple[List, List]:
    """(scorable elements, form fields). Form fields are scored too."""
    interactive = []
    fields = []
    for element in elements:
        if is_form_field(element):
            fields.append(element)
            interactive.append(element)
        elif element.is_interactive:
            interactive.append(element)
    return interactive, fields[:MAX_FORM_FIELDS]


def _is_noisy(element) -> bool:
    return element.is_decorative or element.has_visual_noise


def score_element(element, context: PageContext, noisy_neighbors: int = 0) -> float:
    """Raw attractiveness score: weighted features times element modifiers.

    Args:
        element: Element to score.
        context: Page context.
        noisy_neighbors: Decorative/noisy elements on the page other than this one.
    """
    element = derive_fold(element, context.fold_line)
    score = weighted_score(extract_features(element, context))

    if not element.is_visible:
        score *= HIDDEN_MULTIPLIER
    score *= ABOVE_FOLD_MULTIPLIER if element.is_above_fold else BELOW_FOLD_MULTIPLIER

    if is_form_field(element):
        score *= FORM_FIELD_MULTIPLIER
    if element.has_button_styling:
        score *= BUTTON_STYLING_MULTIPLIER
    if element.has_high_contrast:
        score *= HIGH_CONTRAST_MULTIPLIER
    if element.is_interactive:
        score *= INTERACTIVE_MULTIPLIER
    if element.is_decorative:
        score *= DECORATIVE_MULTIPLIER
    if element.has_visual_noise:
        score *= VISUAL_NOISE_MULTIPLIER

    # Decoration and noise pull attention away from CTAs competing nearby
    if element.has_nearby_cta and noisy_neighbors:
        score *= max(NEIGHBOR_DEPRESSION_FLOOR, 1.0 - NEIGHBOR_DEPRESSION_STEP * noisy_neighbors)

    return max(score, MIN_SCORE)


def _apply_form_analysis(
    predictions: List[ClickPrediction],
    analysis: FormBottleneckAnalysis,
    field_ids: set,
) -> List[ClickPrediction]:
    updated = []
    for prediction in predictions:
        if prediction.element_id in field_ids or prediction.kind == ElementKind.FORM:
            prediction = prediction.model_copy(update={
                "form_completion_rate": analysis.completion_rate,
                "lead_count": round_half_up(prediction.predicted_clicks * analysis.completion_rate),
                "bottleneck_field": analysis.bottleneck_field,
            })
        updated.append(prediction)
    return updated


# ============================================================================
# Entry Point
# ============================================================================

def predict_clicks(elements: Sequence, context: PageContext) -> EngineResult[ClickPredictionReport]:
    """Predict clicks for every interactive element on a page.

    Algorithm:
        0. Validate input (typed failure instead of an empty result) and
           re-derive above-fold flags from each box and the fold line
        1. Enrich context (industry, business type) and estimate CPC
        2. Filter valid elements, split out form fields
        3. Score each element (features, modifiers, neighbor depression)
        4. Apply traffic adjustments and normalize to click shares
        5. Distribute total page clicks; derive CTR and waste
        6. Form bottleneck analysis, reliability and warnings

    Args:
        elements: PageElement variants for one page snapshot.
        context: Page context (device, traffic, trust signals, fold line).

    Returns:
        EngineResult wrapping a ClickPredictionReport, or a failure with
        kind INSUFFICIENT_DATA / INVALID_CONTEXT.
    """
    failure = _validate(elements, context)
    if failure is not None:
        logger.info(f"Click prediction rejected: {failure.failure.message}")
        return failure

    elements = [derive_fold(e, context.fold_line) for e in elements]
    page_text = " ".join(e.text for e in elements if e.text)
    context = enrich_context(context, page_text)
    cpc = estimate_cpc(context)
    avg_cpc = round(cpc.final_cpc, 2)

    valid = filter_valid_elements(elements)
    interactive, fields = classify_elements(valid)
    if not interactive:
        return EngineResult.fail(
            FailureKind.INSUFFICIENT_DATA,
            "No scorable elements after filtering",
            total_elements=len(elements),
        )

    logger.info(
        f"Predicting clicks for {len(interactive)} elements "
        f"({len(fields)} form fields) on {context.url or 'page'}"
    )

    noisy_total = sum(1 for e in valid if _is_noisy(e))
    scores = []
    for element in interactive:
        neighbors = noisy_total - (1 if _is_noisy(element) else 0)
        score = score_element(element, context, neighbors)
        scores.append(score)
        logger.debug(f"Scored {element.id}: {score:.4f}")

    modifiers = calculate_traffic_modifiers(context)
    adjusted = np.array([apply_traffic_adjustments(s, modifiers) for s in scores], dtype=float)
    shares = adjusted / adjusted.sum()
    total_clicks = modifiers.total_clicks

    predictions = []
    for element, score, share in zip(interactive, scores, shares):
        share = float(share)
        clicks = share * total_clicks
        waste = calculate_waste(element, valid, context)
        wasted_clicks = round_half_up(clicks * waste.capped_waste_rate)
        predictions.append(
            ClickPrediction(
                element_id=element.id,
                text=element.text,
                kind=element.kind,
                tag_name=element.tag_name,
                bounds=element.bounds,
                predicted_clicks=clicks,
                ctr=min(1.0, clicks / context.total_impressions),
                click_share=share,
                raw_score=score,
                estimated_clicks=round_half_up(clicks),
                wasted_clicks=wasted_clicks,
                wasted_spend=round(wasted_clicks * avg_cpc, 2),
                avg_cpc=avg_cpc,
                confidence=calculate_confidence_level(element, score, context),
                risk_factors=generate_risk_factors(element, context),
                waste_breakdown=waste,
            )
        )

    form_analysis = None
    if fields:
        form_analysis = analyze_form_bottleneck(fields, context, total_clicks)
        predictions = _apply_form_analysis(predictions, form_analysis, {f.id for f in fields})

    predictions.sort(key=lambda p: (-p.predicted_clicks, p.element_id))

    defaulted = sum(1 for e in valid if e.defaulted_fields)
    metadata = PredictionMetadata(
        total_elements=len(elements),
        analyzed_elements=len(valid),
        interactive_elements=len(interactive),
        form_fields=len(fields),
        total_clicks=total_clicks,
        bounce_rate=modifiers.bounce_rate,
        estimated_cpc=cpc.final_cpc,
        cpc_breakdown=cpc,
        traffic_modifier=modifiers.traffic_source_modifier,
        device_modifier=modifiers.device_modifier,
        industry_cta_modifier=modifiers.industry_cta_modifier,
        data_completeness=1.0 - defaulted / len(valid),
        defaulted_elements=defaulted,
    )

    report = ClickPredictionReport(
        predictions=predictions,
        metadata=metadata,
        reliability=assess_reliability(list(zip(interactive, scores)), context),
        warnings=generate_warnings(interactive, context),
        form_analysis=form_analysis,
    )

    top = predictions[0]
    logger.info(
        f"Predicted {total_clicks:.0f} clicks across {len(predictions)} elements; "
        f"top element {top.element_id} ({top.ctr:.2%} CTR)"
    )
    return EngineResult.success(report)
