"""
Funnel Probability Calculator - chains per-step rates into an end-to-end conversion estimate.

Single-step (form CTA, or no step 2 yet):
    p1 = step1.predicted_ctr / 100, n2 = n1, p_total = p1, n_conv = round(n1 * p1)

Two-step (non-form CTA with a followed next page):
    n2 = round(n1 * p1), p2 = step2.predicted_ctr / 100,
    p_total = p1 * p2, n_conv = round(n2 * p2)

Rounding is half-up. ``FunnelStep.predicted_ctr`` is a percentage; every
other rate here is a decimal.

Usage:
    result = analyze_funnel_from_capture(snapshot, initial_visitors=1000)
    funnel = result.unwrap()

    target = follow_primary_cta(snapshot, funnel.url)
    if target.followable:
        step2 = create_funnel_step(step2_snapshot, target.next_url, post_click_prediction=prediction)
        funnel = update_funnel_with_step2(funnel, step2).unwrap()
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urljoin, urlparse

from .form_boundary import DEFAULT_DISPLAY_SIZE, determine_is_form_related
from .helpers import extract_keywords, round_half_up
from .models import (
    BoundingBox,
    CaptureSnapshot,
    ClickPrediction,
    CtaPerformance,
    FunnelData,
    FunnelMetrics,
    FunnelStep,
    FunnelType,
    NavigationTarget,
    PostClickPrediction,
    PrimaryCtaInsight,
    Size,
)
from .results import EngineResult, FailureKind

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_VISITORS = 1000
DEFAULT_IMAGE_SIZE = Size(width=800, height=600)

FALLBACK_CTR_PERCENT = 5.0
FALLBACK_PREDICTED_CLICKS = 50
UNKNOWN_CTA_TEXT = "Unknown CTA"

LINK_STOP_WORDS = ["the", "and", "for", "with", "you", "your", "all", "new", "get", "now"]
SHOPPING_CTA_WORDS = ["buy", "shop", "purchase"]
SHOPPING_LINK_WORDS = {"mac", "ipad", "iphone", "product", "store", "shop"}


# ============================================================================
# Funnel Construction
# ============================================================================

def create_initial_funnel_data(url: str = "", initial_visitors: int = DEFAULT_INITIAL_VISITORS) -> FunnelData:
    return FunnelData(url=url, type=FunnelType.NONE, n1=initial_visitors)


def calculate_funnel_metrics(
    step1: Optional[FunnelStep],
    step2: Optional[FunnelStep] = None,
    initial_visitors: int = DEFAULT_INITIAL_VISITORS,
) -> FunnelMetrics:
    """Session, click and conversion counts for a one- or two-step funnel."""
    n1 = initial_visitors
    if step1 is None:
        return FunnelMetrics(n1=n1)

    p1 = step1.predicted_ctr / 100
    if step2 is None:
        return FunnelMetrics(
            n1=n1,
            p1=p1,
            n2=n1,
            p2=p1,
            p_total=p1,
            n_conv=round_half_up(n1 * p1),
        )

    n2 = round_half_up(n1 * p1)
    p2 = step2.predicted_ctr / 100
    return FunnelMetrics(
        n1=n1,
        p1=p1,
        n2=n2,
        p2=p2,
        p_total=p1 * p2,
        n_conv=round_half_up(n2 * p2),
    )


# ============================================================================
# CTA Detection
# ============================================================================

def extract_primary_cta(snapshot: CaptureSnapshot) -> Optional[PrimaryCtaInsight]:
    """The detected primary CTA; no guessing from other page elements."""
    insight = snapshot.primary_cta
    if insight is None:
        return None
    if not insight.text:
        insight = insight.model_copy(update={"text": UNKNOWN_CTA_TEXT})
    return insight


def _is_primary(prediction: ClickPrediction, cta: PrimaryCtaInsight) -> bool:
    if cta.element_id and prediction.element_id == cta.element_id:
        return True
    return bool(cta.text) and prediction.text.strip().lower() == cta.text.strip().lower()


def _cta_box(snapshot: CaptureSnapshot) -> Optional[BoundingBox]:
    """The primary CTA's own box; None rather than another element's."""
    if snapshot.primary_cta_prediction is not None and snapshot.primary_cta_prediction.bounds is not None:
        return snapshot.primary_cta_prediction.bounds
    cta = snapshot.primary_cta
    if cta is None:
        return None
    if cta.coordinates is not None:
        return cta.coordinates
    for prediction in snapshot.click_predictions:
        if prediction.bounds is not None and _is_primary(prediction, cta):
            return prediction.bounds
    return None


def detect_primary_cta_type(snapshot: CaptureSnapshot) -> FunnelType:
    """Classify the funnel by where the primary CTA sits relative to above-fold forms."""
    has_cta = (
        snapshot.primary_cta is not None
        or snapshot.primary_cta_prediction is not None
        or bool(snapshot.click_predictions)
    )
    if not has_cta:
        return FunnelType.NONE

    if not snapshot.dom.forms:
        return FunnelType.NON_FORM

    cta_box = _cta_box(snapshot)
    if cta_box is None:
        return FunnelType.NON_FORM

    form_boxes = [
        form.coordinates
        for form in snapshot.dom.forms
        if form.coordinates is not None and form.is_above_fold
    ]
    if not form_boxes:
        return FunnelType.NON_FORM

    is_form = determine_is_form_related(
        cta_box,
        form_boxes,
        snapshot.image_size or DEFAULT_IMAGE_SIZE,
        snapshot.display_size or DEFAULT_DISPLAY_SIZE,
    )
    return FunnelType.FORM if is_form else FunnelType.NON_FORM


# ============================================================================
# Navigation
# ============================================================================

def _domain(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host[4:] if host.startswith("www.") else host


def _resolve(href: str, base_url: str) -> Optional[str]:
    resolved = urljoin(base_url, href)
    parsed = urlparse(resolved)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    return resolved


def _find_related_link(snapshot: CaptureSnapshot, cta_text: str):
    cta_lower = cta_text.lower()
    cta_keywords = extract_keywords(cta_lower, LINK_STOP_WORDS)
    shopping = any(word in cta_lower for word in SHOPPING_CTA_WORDS)

    for link in snapshot.dom.links:
        if not link.href or not link.text:
            continue
        link_keywords = extract_keywords(link.text, LINK_STOP_WORDS)
        if shopping:
            if any(keyword in SHOPPING_LINK_WORDS for keyword in link_keywords):
                return link
        elif any(keyword in link_keywords for keyword in cta_keywords):
            return link
    return None


def follow_primary_cta(snapshot: CaptureSnapshot, base_url: str) -> NavigationTarget:
    """Where the primary CTA leads, or why it cannot be followed.

    Relative hrefs are resolved against ``base_url``. Targets on another
    domain (``www.`` ignored) are returned unfollowable with a manual-entry
    reason. Buttons without an href fall back to a related same-domain link.
    """
    cta = extract_primary_cta(snapshot)
    if cta is None:
        return NavigationTarget(next_url=base_url, reason="No primary CTA detected for step 2")

    if not cta.href:
        link = _find_related_link(snapshot, cta.text)
        if link is None:
            return NavigationTarget(
                next_url=base_url,
                reason="Primary CTA is a button without target URL - manual entry required",
            )

        next_url = _resolve(link.href, base_url)
        if next_url is None:
            return NavigationTarget(next_url=base_url, reason="Related link found but URL validation failed")
        if _domain(next_url) != _domain(base_url):
            return NavigationTarget(
                next_url=base_url,
                reason=f'Related link "{link.text}" goes to external domain - manual entry required',
            )
        return NavigationTarget(
            next_url=next_url,
            reason=f'Following related link: "{link.text}"',
            followable=True,
        )

    next_url = _resolve(cta.href, base_url)
    if next_url is None:
        return NavigationTarget(next_url=base_url, reason="CTA link could not be resolved - manual entry required")
    if _domain(next_url) != _domain(base_url):
        return NavigationTarget(next_url=next_url, reason="External domain - manual entry required")
    return NavigationTarget(next_url=next_url, reason="Following CTA link", followable=True)


# ============================================================================
# CTA Performance
# ============================================================================

def _matches(prediction: ClickPrediction, cta_text: str) -> bool:
    if not prediction.text or not cta_text:
        return False
    p_text = prediction.text.lower().strip()
    c_text = cta_text.lower().strip()
    return p_text in c_text or c_text in p_text or ("apply" in c_text and "apply" in p_text)


def _performance_from(prediction: ClickPrediction, cta_text: str) -> CtaPerformance:
    ctr_percent = prediction.ctr * 100
    return CtaPerformance(
        ctr_percent=ctr_percent,
        predicted_clicks=prediction.predicted_clicks or prediction.estimated_clicks
        or round_half_up(DEFAULT_INITIAL_VISITORS * prediction.ctr),
        wasted_spend=prediction.wasted_spend,
        wasted_clicks=prediction.wasted_clicks,
        confidence=prediction.confidence,
        text=cta_text,
    )


def get_primary_cta_performance(snapshot: CaptureSnapshot) -> CtaPerformance:
    """Engine predictions for the detected CTA, with CTR converted to a percentage.

    Prefers the primary CTA's own prediction, then a prediction whose text
    matches the detected CTA, then the highest-CTR prediction. The detected
    CTA text is kept when there is one. With no predictions at all the
    labelled baseline is returned.
    """
    cta_text = snapshot.primary_cta.text if snapshot.primary_cta and snapshot.primary_cta.text else UNKNOWN_CTA_TEXT

    primary = snapshot.primary_cta_prediction
    if primary is not None:
        if cta_text == UNKNOWN_CTA_TEXT and primary.text:
            cta_text = primary.text
        return _performance_from(primary, cta_text)

    predictions: List[ClickPrediction] = list(snapshot.click_predictions)
    if predictions:
        match = next((p for p in predictions if _matches(p, cta_text)), None)
        if match is None:
            match = max(predictions, key=lambda p: p.ctr)
        return _performance_from(match, cta_text)

    logger.debug(f"No click predictions for '{cta_text}', using baseline CTR")
    return CtaPerformance(
        ctr_percent=FALLBACK_CTR_PERCENT,
        predicted_clicks=FALLBACK_PREDICTED_CLICKS,
        text=cta_text,
        is_fallback=True,
    )


def create_funnel_step(
    snapshot: CaptureSnapshot,
    url: Optional[str] = None,
    visitors: int = DEFAULT_INITIAL_VISITORS,
    post_click_prediction: Optional[PostClickPrediction] = None,
) -> FunnelStep:
    """A funnel step for one capture.

    With a post-click prediction the step's rate is the predicted conversion
    rate; otherwise it is the primary CTA's predicted CTR.
    """
    cta = extract_primary_cta(snapshot)
    performance = get_primary_cta_performance(snapshot)

    if post_click_prediction is not None:
        ctr_percent = post_click_prediction.predicted_rate * 100
    else:
        ctr_percent = performance.ctr_percent

    step = FunnelStep(
        url=url or snapshot.url,
        cta_text=performance.text,
        predicted_ctr=ctr_percent,
        predicted_clicks=round_half_up(visitors * ctr_percent / 100),
        post_click_prediction=post_click_prediction,
    )
    if cta is not None:
        step = step.model_copy(update={"cta_type": cta.element_type})
    return step


# ============================================================================
# Entry Points
# ============================================================================

def _with_metrics(funnel: FunnelData, metrics: FunnelMetrics) -> FunnelData:
    return funnel.model_copy(update=metrics.model_dump())


def analyze_funnel_from_capture(
    snapshot: CaptureSnapshot,
    url: Optional[str] = None,
    initial_visitors: int = DEFAULT_INITIAL_VISITORS,
) -> EngineResult[FunnelData]:
    """Single-step funnel from a step-1 capture.

    A page without a detected primary CTA is a valid ``none`` funnel carrying
    an error message, not a failure.
    """
    url = url or snapshot.url
    if initial_visitors <= 0:
        return EngineResult.fail(
            FailureKind.INVALID_CONTEXT,
            f"Initial visitors must be positive (got {initial_visitors})",
        )

    funnel = create_initial_funnel_data(url, initial_visitors)
    cta = extract_primary_cta(snapshot)
    if cta is None:
        logger.info(f"No primary CTA detected on {url or 'page'}; funnel type none")
        return EngineResult.success(funnel.model_copy(update={"error": "No primary CTA detected"}))

    funnel_type = detect_primary_cta_type(snapshot)
    step1 = create_funnel_step(snapshot, url, initial_visitors)
    metrics = calculate_funnel_metrics(step1, None, initial_visitors)

    funnel = _with_metrics(funnel.model_copy(update={"type": funnel_type, "step1": step1}), metrics)
    logger.info(
        f"Funnel for {url or 'page'}: {funnel_type.value}, p1={metrics.p1:.3f}, "
        f"{metrics.n_conv}/{metrics.n1} conversions"
    )
    return EngineResult.success(funnel)


def update_funnel_with_step2(funnel: FunnelData, step2: FunnelStep) -> EngineResult[FunnelData]:
    """Attach a second step; the funnel becomes two-step (non-form)."""
    if funnel.step1 is None:
        return EngineResult.fail(
            FailureKind.INSUFFICIENT_DATA,
            "Funnel has no step 1 to chain step 2 onto",
            url=funnel.url,
        )

    metrics = calculate_funnel_metrics(funnel.step1, step2, funnel.n1)
    updated = _with_metrics(
        funnel.model_copy(update={"step2": step2, "type": FunnelType.NON_FORM}),
        metrics,
    )
    logger.info(
        f"Two-step funnel for {funnel.url or 'page'}: p1={metrics.p1:.3f}, p2={metrics.p2:.3f}, "
        f"p_total={metrics.p_total:.4f}"
    )
    return EngineResult.success(updated)
