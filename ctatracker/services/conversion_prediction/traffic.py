"""Traffic analysis: bounce rate, total page clicks and traffic modifiers."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    AVG_CLICKS_PER_ENGAGED_USER,
    BASE_BOUNCE_RATES,
    DEFAULT_BOUNCE_RATE,
    DEFAULT_DEVICE_MODIFIER,
    DEFAULT_TRAFFIC_MODIFIER,
    DEVICE_MODIFIERS,
    INDUSTRY_MODIFIERS,
    TRAFFIC_SOURCE_MODIFIERS,
)
from .helpers import clamp
from .models import PageContext


@dataclass(frozen=True)
class TrafficModifiers:
    traffic_source_modifier: float
    device_modifier: float
    industry_cta_modifier: float
    bounce_rate: float
    engagement_rate: float
    total_clicks: float


def _industry_modifier(context: PageContext, key: str, default: float) -> float:
    if context.industry is None:
        return default
    modifiers = INDUSTRY_MODIFIERS.get(context.industry.value)
    if not modifiers:
        return default
    return modifiers[key]


def calculate_bounce_rate(context: PageContext) -> float:
    """Bounce rate in [0.1, 0.9] from source, device, speed and ad match."""
    bounce_rate = BASE_BOUNCE_RATES.get(context.traffic_source.value, DEFAULT_BOUNCE_RATE)
    bounce_rate *= DEVICE_MODIFIERS.get(context.device_type.value, DEFAULT_DEVICE_MODIFIER)

    # Slow pages lose 10% more visitors per second over 3s
    if context.load_time > 3.0:
        bounce_rate *= 1 + (context.load_time - 3.0) * 0.1

    bounce_rate *= 1 - context.ad_message_match * 0.2
    bounce_rate += _industry_modifier(context, "bounce_rate_adjustment", 0.0)

    return clamp(bounce_rate, 0.1, 0.9)


def calculate_total_clicks(context: PageContext) -> float:
    """Impressions x engagement rate x clicks per engaged visitor."""
    engagement_rate = 1 - calculate_bounce_rate(context)
    return context.total_impressions * engagement_rate * AVG_CLICKS_PER_ENGAGED_USER


def traffic_source_modifier(context: PageContext) -> float:
    return TRAFFIC_SOURCE_MODIFIERS.get(context.traffic_source.value, DEFAULT_TRAFFIC_MODIFIER)


def device_modifier(context: PageContext) -> float:
    return DEVICE_MODIFIERS.get(context.device_type.value, DEFAULT_DEVICE_MODIFIER)


def industry_cta_modifier(context: PageContext) -> float:
    return _industry_modifier(context, "cta_click_rate", 1.0)


def calculate_traffic_modifiers(context: PageContext) -> TrafficModifiers:
    bounce_rate = calculate_bounce_rate(context)
    engagement_rate = 1 - bounce_rate
    return TrafficModifiers(
        traffic_source_modifier=traffic_source_modifier(context),
        device_modifier=device_modifier(context),
        industry_cta_modifier=industry_cta_modifier(context),
        bounce_rate=bounce_rate,
        engagement_rate=engagement_rate,
        total_clicks=context.total_impressions * engagement_rate * AVG_CLICKS_PER_ENGAGED_USER,
    )


def apply_traffic_adjustments(score: float, modifiers: TrafficModifiers) -> float:
    """Scale an element score by the page's traffic, device and industry modifiers."""
    return score * modifiers.traffic_source_modifier * modifiers.device_modifier * modifiers.industry_cta_modifier
