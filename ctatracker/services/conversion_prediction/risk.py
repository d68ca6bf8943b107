"""Risk factors, confidence levels, reliability and warnings for click predictions."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from .element_features import has_validation, is_form_field
from .models import (
    ConfidenceLevel,
    DeviceType,
    PageContext,
    ReliabilityAssessment,
    TrafficSource,
)

MAX_RISK_FACTORS = 5
MAX_WARNINGS = 3
MIN_TOUCH_TARGET = 44

CONVERSION_KEYWORDS = ["buy", "purchase", "sign up", "subscribe", "download", "get started"]

TRAFFIC_RELIABILITY = {
    TrafficSource.ORGANIC: 0.1,
    TrafficSource.PAID: 0.15,
    TrafficSource.EMAIL: 0.1,
    TrafficSource.DIRECT: 0.05,
    TrafficSource.SOCIAL: -0.05,
    TrafficSource.REFERRAL: 0.0,
    TrafficSource.UNKNOWN: -0.1,
}


def _level(score: float, high: float = 0.7, medium: float = 0.4) -> ConfidenceLevel:
    if score >= high:
        return ConfidenceLevel.HIGH
    if score >= medium:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _is_complex_field(element) -> bool:
    return (
        element.input_type in ("password", "email")
        or element.required
        or has_validation(element)
    )


def _is_conversion_element(element) -> bool:
    text = element.text.lower()
    return any(keyword in text for keyword in CONVERSION_KEYWORDS)


def _too_small_for_touch(element) -> bool:
    return element.bounds.width < MIN_TOUCH_TARGET or element.bounds.height < MIN_TOUCH_TARGET


def generate_risk_factors(element, context: PageContext) -> List[str]:
    """Human-readable risks for one element, most fundamental first (max 5)."""
    risks: List[str] = []

    if not element.is_visible:
        risks.append("Element is not visible")
    if not element.is_above_fold:
        risks.append("Element is below the fold")

    if not element.is_interactive:
        risks.append("Element is not interactive")
    elif not element.has_button_styling:
        risks.append("Poor visual affordance")

    if len(element.text) < 3:
        risks.append("Insufficient text content")
    if len(element.text) > 50:
        risks.append("Text content may be too long")

    if is_form_field(element):
        if element.required and not element.label:
            risks.append("Required field without clear label")
        if element.input_type == "password" and not context.has_ssl:
            risks.append("Password field without SSL")
        if _is_complex_field(element):
            risks.append("Complex field may cause abandonment")

    if context.load_time > 5.0:
        risks.append("Slow page load time may affect engagement")

    if context.traffic_source == TrafficSource.SOCIAL:
        risks.append("Social traffic typically has lower engagement")
    if context.traffic_source == TrafficSource.PAID and context.ad_message_match < 0.5:
        risks.append("Poor ad-to-page message match")

    if context.device_type == DeviceType.MOBILE and _too_small_for_touch(element):
        risks.append("Touch target too small for mobile")

    if element.distance_from_top > 2000:
        risks.append("Element requires significant scrolling")

    if element.href_value in ("#", "javascript:void(0)"):
        risks.append("Non-functional link")

    if not context.has_ssl:
        risks.append("Page lacks SSL security")
    if not context.has_trust_badges and _is_conversion_element(element):
        risks.append("Lack of trust signals for conversion element")

    return risks[:MAX_RISK_FACTORS]


def calculate_confidence_level(element, score: float, context: PageContext) -> ConfidenceLevel:
    """Confidence in one element's prediction.

    Elements whose text, coordinates or type had to be defaulted by the
    extractor are always ``low``.
    """
    if element.defaulted_fields:
        return ConfidenceLevel.LOW

    confidence = 0.0
    if score > 0.7:
        confidence += 0.4
    elif score > 0.4:
        confidence += 0.2

    if element.is_interactive:
        confidence += 0.3
    if element.has_button_styling:
        confidence += 0.2
    if element.is_visible and element.is_above_fold:
        confidence += 0.3

    if context.total_impressions > 1000:
        confidence += 0.1
    if context.traffic_source != TrafficSource.UNKNOWN:
        confidence += 0.1
    if 5 < len(element.text) < 30:
        confidence += 0.1

    if context.has_ssl:
        confidence += 0.05
    if context.load_time < 3.0:
        confidence += 0.05
    if context.industry is not None:
        confidence += 0.1

    confidence -= len(generate_risk_factors(element, context)) * 0.05
    return _level(confidence)


def assess_reliability(scored: Sequence[Tuple[object, float]], context: PageContext) -> ReliabilityAssessment:
    """Overall reliability of a prediction run from volume, mix and score spread."""
    score = 0.5
    factors: List[str] = []

    if context.total_impressions > 10000:
        score += 0.2
        factors.append("High impression volume")
    elif context.total_impressions < 100:
        score -= 0.2
        factors.append("Low impression volume")

    total = len(scored)
    interactive = sum(1 for element, _ in scored if element.is_interactive)
    interactive_ratio = interactive / total if total else 0.0
    if interactive_ratio > 0.7:
        score += 0.15
        factors.append("High proportion of interactive elements")
    elif interactive_ratio < 0.3:
        score -= 0.15
        factors.append("Low proportion of interactive elements")

    variance = float(np.var([s for _, s in scored])) if scored else 0.0
    if variance > 0.1:
        score += 0.1
        factors.append("Good score differentiation")
    else:
        score -= 0.1
        factors.append("Poor score differentiation")

    score += TRAFFIC_RELIABILITY.get(context.traffic_source, 0.0)

    if context.load_time < 3.0:
        score += 0.05
        factors.append("Fast page load time")
    elif context.load_time > 5.0:
        score -= 0.1
        factors.append("Slow page load time")

    if context.has_ssl:
        score += 0.05
        factors.append("SSL security present")

    score = max(0.0, min(1.0, score))
    return ReliabilityAssessment(score=score, level=_level(score), factors=factors)


def generate_warnings(elements: Sequence, context: PageContext) -> List[str]:
    warnings: List[str] = []

    if context.total_impressions < 1000:
        warnings.append("Low impression volume may affect prediction accuracy")
    if context.traffic_source in (TrafficSource.SOCIAL, TrafficSource.PAID):
        warnings.append("Traffic source typically has higher bounce rates")
    if context.load_time > 5.0:
        warnings.append("Slow page load may significantly impact actual performance")

    if context.device_type == DeviceType.MOBILE:
        small = sum(1 for element in elements if _too_small_for_touch(element))
        if small:
            warnings.append(f"{small} elements may be too small for mobile interaction")

    poor_content = sum(1 for element in elements if len(element.text) < 3)
    if poor_content > len(elements) * 0.3:
        warnings.append("Many elements lack sufficient text content")

    non_interactive = sum(1 for element in elements if not element.is_interactive)
    if non_interactive > len(elements) * 0.5:
        warnings.append("High proportion of non-interactive elements detected")

    return warnings[:MAX_WARNINGS]
