"""
Post-Click Factor Model - conversion likelihood for the primary CTA of a funnel's second page.

Each UX-quality factor contributes a lift of ``max_lift * score``. Factors are
combined multiplicatively (or as additive shifts in logit space), applied to a
cold-traffic base rate scaled by audience warmth, then capped.

    predicted_rate = cold_base_rate * audience_multiplier * PRODUCT(1 + max_lift_i * score_i)

Factor scores come from structural signals on the step-2 capture; message match
compares step-1 and step-2 copy.

Usage:
    from ctatracker.services.conversion_prediction import create_step2_prediction

    result = create_step2_prediction(step1_snapshot, step2_snapshot, audience_warmth="warm")
    prediction = result.unwrap()
    print(prediction.predicted_rate, prediction.combined_factor_multiplier)
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence, Union

from .helpers import clamp, extract_keywords
from .models import (
    AudienceWarmth,
    BoundingBox,
    CaptureSnapshot,
    PostClickConfig,
    PostClickFactor,
    PostClickPrediction,
    PostClickStep,
    PredictionMode,
)
from .results import EngineResult, FailureKind

logger = logging.getLogger(__name__)


# ============================================================================
# Defaults
# ============================================================================

DEFAULT_REFERENCE_RATE = 0.20
LOGIT_EPSILON = 1e-6

DEFAULT_POST_CLICK_CONFIG = PostClickConfig()

DEFAULT_POST_CLICK_FACTORS: List[PostClickFactor] = [
    PostClickFactor(
        factor="message_match_scent", score=0.80, max_lift=0.40,
        note="Primary CTA message consistency between pages (copy/design/offer)",
    ),
    PostClickFactor(
        factor="cta_form_friction", score=0.60, max_lift=0.70,
        note="Primary CTA friction: form fields, steps, validation ease",
    ),
    PostClickFactor(
        factor="page_speed_ux", score=0.90, max_lift=0.10,
        note="Page load speed affecting primary CTA accessibility",
    ),
    PostClickFactor(
        factor="mobile_cta_optimization", score=0.70, max_lift=0.20,
        note="Primary CTA mobile UX: touch targets, visibility",
    ),
    PostClickFactor(
        factor="cta_clarity_focus", score=0.75, max_lift=0.35,
        note="Primary CTA visual hierarchy and clarity vs distractions",
    ),
    PostClickFactor(
        factor="trust_signals_cta", score=0.50, max_lift=0.15,
        note="Trust elements near/in primary CTA (badges, security)",
    ),
    PostClickFactor(
        factor="commitment_momentum_cta", score=0.50, max_lift=0.25,
        note="Progress indication and momentum toward primary CTA",
    ),
]

STEP2_STEP_NAME = "Step 2 (Post-Click)"
STEP2_COLD_BASE_RATE = 0.10
STEP2_UPPER_CAP = 0.65

DEFAULT_POST_CLICK_STEPS: List[PostClickStep] = [
    PostClickStep(
        step_name="Step 2 Primary CTA (Email Form)",
        cold_base_rate=STEP2_COLD_BASE_RATE,
        audience=AudienceWarmth.WARM,
        upper_cap=STEP2_UPPER_CAP,
    ),
]

MIN_TOUCH_TARGET = 44
SMALL_TOUCH_TARGET = 32

ACTION_WORDS = ["submit", "continue", "next", "complete", "finish", "proceed", "confirm"]
TRUST_KEYWORDS = [
    "secure", "ssl", "guarantee", "certified", "verified", "trusted",
    "testimonial", "review", "award", "badge", "privacy", "security",
]
PROGRESS_KEYWORDS = [
    "step", "progress", "complete", "finish", "continue", "next",
    "almost", "final", "last", "stage", "phase",
]
MOMENTUM_WORDS = ["continue", "next", "complete", "finish", "finalize", "proceed"]
INVESTMENT_KEYWORDS = ["review", "confirm", "summary", "details", "information"]

MESSAGE_MATCH_STOP_WORDS = {
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "a", "an", "is", "are", "was", "were", "be", "been", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may",
    "might", "can", "this", "that", "these", "those", "i", "you", "he", "she",
    "it", "we", "they", "me", "him", "her", "us", "them", "my", "your", "his",
    "its", "our", "their",
}
MESSAGE_MATCH_KEYWORD_LIMIT = 10


# ============================================================================
# Factor Math
# ============================================================================

def factor_multiplier(score: float, max_lift: float) -> float:
    """``1 + max_lift * clamp(score, 0, 1)``."""
    return 1 + max_lift * clamp(score, 0.0, 1.0)


def _logit(rate: float) -> float:
    rate = clamp(rate, LOGIT_EPSILON, 1 - LOGIT_EPSILON)
    return math.log(rate / (1 - rate))


def _logistic(value: float) -> float:
    return 1 / (1 + math.exp(-value))


def calculate_logit_contribution(
    score: float,
    max_lift: float,
    reference_rate: float = DEFAULT_REFERENCE_RATE,
) -> float:
    """Logit-space shift of a factor, measured at ``reference_rate`` and scaled by score."""
    delta = _logit(reference_rate * (1 + max_lift)) - _logit(reference_rate)
    return delta * clamp(score, 0.0, 1.0)


def combine_factor_multipliers(
    factors: Sequence[PostClickFactor],
    mode: Union[PredictionMode, str] = PredictionMode.MULTIPLICATIVE,
) -> float:
    """Product of factor multipliers, or the summed logit shift in logit mode."""
    if PredictionMode(mode) == PredictionMode.MULTIPLICATIVE:
        combined = 1.0
        for factor in factors:
            combined *= factor_multiplier(factor.score, factor.max_lift)
        return combined

    return sum(calculate_logit_contribution(f.score, f.max_lift) for f in factors)


def predict_step_rate(
    step: PostClickStep,
    config: PostClickConfig = DEFAULT_POST_CLICK_CONFIG,
    factors: Sequence[PostClickFactor] = DEFAULT_POST_CLICK_FACTORS,
) -> PostClickPrediction:
    """Predict one step's conversion rate, keeping every intermediate quantity.

    In logit mode ``combined_factor_multiplier`` holds the effective multiplier
    (raw rate / adjusted base rate) and ``logit_shift`` the summed shift.
    """
    warmth_multiplier = config.audience_multipliers.get(step.audience, 1.0)
    adjusted_base_rate = step.cold_base_rate * warmth_multiplier

    logit_shift = None
    if config.mode == PredictionMode.MULTIPLICATIVE:
        combined = combine_factor_multipliers(factors, PredictionMode.MULTIPLICATIVE)
        raw_rate = adjusted_base_rate * combined
    else:
        logit_shift = combine_factor_multipliers(factors, PredictionMode.LOGIT)
        raw_rate = _logistic(_logit(adjusted_base_rate) + logit_shift)
        combined = raw_rate / adjusted_base_rate if adjusted_base_rate > 0 else 1.0

    rate = raw_rate
    cap_applied = False
    if config.apply_cap and step.upper_cap is not None and rate > step.upper_cap:
        rate = step.upper_cap
        cap_applied = True
    rate = clamp(rate, 0.0, 1.0)

    return PostClickPrediction(
        step_name=step.step_name,
        audience=step.audience,
        mode=config.mode,
        cold_base_rate=step.cold_base_rate,
        warmth_multiplier_applied=warmth_multiplier,
        adjusted_base_rate=adjusted_base_rate,
        combined_factor_multiplier=combined,
        logit_shift=logit_shift,
        upper_cap=step.upper_cap,
        raw_predicted_rate=raw_rate,
        predicted_rate=rate,
        cap_applied=cap_applied,
        factors_analyzed=list(factors),
    )


def predict_all_steps(
    steps: Sequence[PostClickStep],
    config: PostClickConfig = DEFAULT_POST_CLICK_CONFIG,
    factors: Sequence[PostClickFactor] = DEFAULT_POST_CLICK_FACTORS,
) -> List[PostClickPrediction]:
    return [predict_step_rate(step, config, factors) for step in steps]


# ============================================================================
# Factor Scoring From a Capture
# ============================================================================

def _primary_text(snapshot: CaptureSnapshot) -> str:
    if snapshot.primary_cta_prediction is not None and snapshot.primary_cta_prediction.text:
        return snapshot.primary_cta_prediction.text
    if snapshot.primary_cta is not None:
        return snapshot.primary_cta.text
    return ""


def _primary_box(snapshot: CaptureSnapshot) -> Optional[BoundingBox]:
    if snapshot.primary_cta is not None and snapshot.primary_cta.coordinates is not None:
        return snapshot.primary_cta.coordinates
    if snapshot.primary_cta_prediction is not None:
        return snapshot.primary_cta_prediction.bounds
    return None


def _page_text(snapshot: CaptureSnapshot, links: bool = False) -> str:
    dom = snapshot.dom
    parts = [b.text or "" for b in dom.buttons]
    if links:
        parts += [link.text or "" for link in dom.links]
    parts += [h.text for h in dom.headings]
    return " ".join(parts).lower()


def _keyword_hits(text: str, keywords: Sequence[str]) -> int:
    return sum(1 for keyword in keywords if keyword in text)


def analyze_page_speed(snapshot: CaptureSnapshot) -> float:
    dom = snapshot.dom
    score = 0.80
    if len(dom.images) > 20:
        score -= 0.15
    if len(dom.scripts) > 15:
        score -= 0.10
    if any(image.loading == "lazy" for image in dom.images):
        score += 0.05
    return clamp(score, 0.3, 1.0)


def analyze_mobile_cta_optimization(snapshot: CaptureSnapshot) -> float:
    dom = snapshot.dom
    score = 0.70

    if any(meta.name == "viewport" for meta in dom.meta):
        score += 0.15
    if any("media" in style and "max-width" in style for style in dom.styles):
        score += 0.10

    box = _primary_box(snapshot)
    if box is not None:
        if box.width >= MIN_TOUCH_TARGET and box.height >= MIN_TOUCH_TARGET:
            score += 0.15
        elif box.width < SMALL_TOUCH_TARGET or box.height < SMALL_TOUCH_TARGET:
            score -= 0.20

    primary_text = _primary_text(snapshot)
    has_small_buttons = any(
        button.coordinates is not None
        and (button.text or "") != primary_text
        and (button.coordinates.width < MIN_TOUCH_TARGET or button.coordinates.height < MIN_TOUCH_TARGET)
        for button in dom.buttons
    )
    if has_small_buttons:
        score -= 0.10

    return clamp(score, 0.2, 1.0)


def analyze_cta_clarity(snapshot: CaptureSnapshot) -> float:
    dom = snapshot.dom
    score = 0.60

    total_ctas = len(dom.buttons) + len(dom.links)
    if total_ctas <= 3:
        score += 0.20
    elif total_ctas <= 7:
        score += 0.10
    elif total_ctas > 15:
        score -= 0.20

    insight = snapshot.primary_cta
    if insight is not None:
        if insight.confidence > 0.8:
            score += 0.15
        elif 0 < insight.confidence < 0.5:
            score -= 0.15

    if any(word in _primary_text(snapshot).lower() for word in ACTION_WORDS):
        score += 0.10

    return clamp(score, 0.2, 1.0)


def analyze_trust_signals(snapshot: CaptureSnapshot) -> float:
    score = 0.40 + 0.08 * _keyword_hits(_page_text(snapshot, links=True), TRUST_KEYWORDS)

    cta_text = _primary_text(snapshot).lower()
    if "secure" in cta_text or "protected" in cta_text:
        score += 0.10

    badge_terms = ("badge", "secure", "certified")
    if any(any(term in image.alt.lower() for term in badge_terms) for image in snapshot.dom.images):
        score += 0.10

    return clamp(score, 0.1, 1.0)


def analyze_form_friction(snapshot: CaptureSnapshot) -> float:
    """Form friction for form CTAs; overall page simplicity otherwise."""
    dom = snapshot.dom
    score = 0.70

    insight = snapshot.primary_cta
    is_form_cta = insight is not None and (insight.is_form_related or insight.has_form)
    if not is_form_cta:
        interactive = len(dom.buttons) + len(dom.links)
        if interactive <= 5:
            score += 0.15
        elif interactive > 15:
            score -= 0.15
        return clamp(score, 0.3, 1.0)

    if not dom.forms:
        return score

    # First form is taken as the primary CTA's form
    inputs = dom.forms[0].inputs
    field_count = len(inputs)
    if field_count <= 2:
        score += 0.20
    elif field_count <= 4:
        score += 0.10
    elif field_count > 8:
        score -= 0.25

    if any(field.required for field in inputs):
        score -= 0.05
    if any(field.placeholder for field in inputs):
        score += 0.05
    if any("step" in h.text.lower() or "progress" in h.text.lower() for h in dom.headings):
        score += 0.10

    return clamp(score, 0.2, 1.0)


def analyze_commitment_momentum(snapshot: CaptureSnapshot) -> float:
    dom = snapshot.dom
    text = _page_text(snapshot)
    score = 0.40 + 0.08 * _keyword_hits(text, PROGRESS_KEYWORDS)

    if any(word in _primary_text(snapshot).lower() for word in MOMENTUM_WORDS):
        score += 0.15

    if any(
        form.method.lower() == "post" or any(field.type == "hidden" for field in form.inputs)
        for form in dom.forms
    ):
        score += 0.10

    score += 0.05 * _keyword_hits(text, INVESTMENT_KEYWORDS)
    return clamp(score, 0.1, 1.0)


# message_match_scent needs both pages; see analyze_message_match
FACTOR_ANALYZERS: Dict[str, Callable[[CaptureSnapshot], float]] = {
    "page_speed_ux": analyze_page_speed,
    "mobile_cta_optimization": analyze_mobile_cta_optimization,
    "cta_clarity_focus": analyze_cta_clarity,
    "trust_signals_cta": analyze_trust_signals,
    "cta_form_friction": analyze_form_friction,
    "commitment_momentum_cta": analyze_commitment_momentum,
}


def analyze_factors_from_capture(
    snapshot: CaptureSnapshot,
    base_factors: Sequence[PostClickFactor] = DEFAULT_POST_CLICK_FACTORS,
) -> List[PostClickFactor]:
    """Re-score each known factor from the capture's structure; unknown factors keep their score."""
    factors = []
    for factor in base_factors:
        analyzer = FACTOR_ANALYZERS.get(factor.factor)
        score = analyzer(snapshot) if analyzer else factor.score
        factors.append(factor.model_copy(update={"score": clamp(score, 0.0, 1.0)}))
    return factors


def analyze_message_match(step1: CaptureSnapshot, step2: CaptureSnapshot) -> float:
    """Keyword overlap between step-1 CTA/copy and step-2 copy, scaled into [0.2, 1]."""
    step1_keywords = extract_keywords(
        f"{_primary_text(step1)} {_page_text(step1)}",
        MESSAGE_MATCH_STOP_WORDS,
        MESSAGE_MATCH_KEYWORD_LIMIT,
    )
    step2_keywords = set(extract_keywords(_page_text(step2), MESSAGE_MATCH_STOP_WORDS, MESSAGE_MATCH_KEYWORD_LIMIT))

    overlap = [keyword for keyword in step1_keywords if keyword in step2_keywords]
    overlap_ratio = len(overlap) / max(len(step1_keywords), 1)
    return clamp(0.60 + min(0.30, overlap_ratio * 0.40), 0.2, 1.0)


# ============================================================================
# Entry Point
# ============================================================================

def create_step2_prediction(
    step1: CaptureSnapshot,
    step2: CaptureSnapshot,
    audience_warmth: Union[AudienceWarmth, str] = AudienceWarmth.WARM,
    config: PostClickConfig = DEFAULT_POST_CLICK_CONFIG,
) -> EngineResult[PostClickPrediction]:
    """Predict the step-2 primary CTA conversion rate from two captures.

    Args:
        step1: Capture of the page whose CTA leads to step 2.
        step2: Capture of the post-click page.
        audience_warmth: cold, mixed or warm.
        config: Combination mode, capping and audience multipliers.

    Returns:
        EngineResult wrapping PostClickPrediction, or INSUFFICIENT_DATA when
        the step-2 capture has no structural data.
    """
    if step2.dom.is_empty():
        return EngineResult.fail(
            FailureKind.INSUFFICIENT_DATA,
            "Step 2 capture has no buttons, links, forms or headings",
            url=step2.url,
        )

    factors = analyze_factors_from_capture(step2)
    message_match = analyze_message_match(step1, step2)
    factors = [
        f.model_copy(update={"score": message_match}) if f.factor == "message_match_scent" else f
        for f in factors
    ]

    step = PostClickStep(
        step_name=STEP2_STEP_NAME,
        cold_base_rate=STEP2_COLD_BASE_RATE,
        audience=AudienceWarmth(audience_warmth),
        upper_cap=STEP2_UPPER_CAP,
    )
    prediction = predict_step_rate(step, config, factors)

    logger.info(
        f"Step 2 prediction for {step2.url or 'page'}: {prediction.predicted_rate:.1%} "
        f"({step.audience.value}, factors x{prediction.combined_factor_multiplier:.2f}"
        f"{', capped' if prediction.cap_applied else ''})"
    )
    return EngineResult.success(prediction)
