"""
Per-element waste rate.

The share of an element's predicted clicks that does not move the visitor
toward conversion, computed in four phases plus legacy quality factors:

1. Element classification (navigation, social, external, ...)
2. Attention ratio (clickable elements per primary CTA on the page)
3. Visual emphasis (contrast, carousels, overlays, sticky elements)
4. Content clutter (long copy, decoration, animation, competition)

The summed rate is capped at MAX_WASTE_RATE.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from .constants import (
    ATTENTION_RATIO_THRESHOLDS,
    CONTENT_CLUTTER_WASTE,
    ELEMENT_WASTE_RATES,
    LEGACY_QUALITY_WASTE,
    MAX_WASTE_RATE,
    VISUAL_EMPHASIS_WASTE,
)
from .helpers import contains_any
from .models import PageContext, WasteBreakdown

HIGH_Z_INDEX = 1000

PRIMARY_TEXT = ["buy", "purchase", "order", "subscribe", "sign up", "get started", "download", "try free"]
PRIMARY_CLASSES = ["primary", "cta", "btn-primary"]
NAVIGATION_CLASSES = ["nav", "menu", "header", "breadcrumb"]
SOCIAL_HOSTS = ["facebook", "twitter", "instagram", "linkedin", "youtube", "tiktok"]
COMPETING_TEXT = ["learn more", "read more", "explore", "discover", "see more"]
COMPETING_CLASSES = ["secondary", "btn-secondary"]
INTERRUPTIVE_CLASSES = ["modal", "popup", "overlay", "notification", "alert", "banner", "toast"]
SUPPORTING_TEXT = ["help", "support", "faq", "contact", "about", "terms", "privacy"]
TRUST_TEXT = ["testimonial", "review", "guarantee", "secure", "certified", "verified"]
TRUST_CLASSES = ["trust", "badge", "seal"]
NOISE_CLASSES = ["animation", "blink", "flash"]


# ============================================================================
# Element Classification
# ============================================================================

def _host(url: str) -> Optional[str]:
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def is_primary_cta(element) -> bool:
    return contains_any(element.text, PRIMARY_TEXT) or contains_any(element.class_name, PRIMARY_CLASSES)


def is_navigation(element) -> bool:
    return element.tag_name.lower() == "nav" or contains_any(element.class_name, NAVIGATION_CLASSES)


def is_social_media(element) -> bool:
    return (
        contains_any(element.href_value or "", SOCIAL_HOSTS)
        or "social" in element.class_name.lower()
        or contains_any(element.text, ["follow", "share"])
    )


def is_external_link(element, page_url: str = "") -> bool:
    href = element.href_value or ""
    if not href.startswith("http"):
        return False
    link_host = _host(href)
    if link_host is None:
        return False
    if page_url:
        return link_host != _host(page_url)
    return "localhost" not in href and "127.0.0.1" not in href


def is_interruptive(element) -> bool:
    return contains_any(element.class_name, INTERRUPTIVE_CLASSES)


def is_auto_playing_media(element) -> bool:
    tag = element.tag_name.lower()
    return (
        (tag in ("video", "audio") and element.autoplay)
        or contains_any(element.class_name, ["autoplay", "auto-play"])
    )


def is_competing_cta(element) -> bool:
    competing = contains_any(element.text, COMPETING_TEXT) or contains_any(element.class_name, COMPETING_CLASSES)
    return competing and not is_primary_cta(element)


def is_internal_navigation(element, page_url: str = "") -> bool:
    href = element.href_value or ""
    if href.startswith("/") or href.startswith("#"):
        return True
    if href.startswith("http") and page_url:
        link_host = _host(href)
        return link_host is not None and link_host == _host(page_url)
    return "localhost" in href or "127.0.0.1" in href


def is_trust_indicator(element) -> bool:
    return contains_any(element.text, TRUST_TEXT) or contains_any(element.class_name, TRUST_CLASSES)


def is_supporting_content(element) -> bool:
    return contains_any(element.text, SUPPORTING_TEXT)


def is_sticky(element) -> bool:
    return element.is_sticky or contains_any(element.class_name, ["sticky", "fixed"])


# (category label, waste-rate key, predicate); first match wins
_CLASSIFIERS = [
    ("Primary CTA", "primary_cta", lambda e, url: is_primary_cta(e)),
    ("Navigation", "navigation", lambda e, url: is_navigation(e)),
    ("Social Media", "social_media", lambda e, url: is_social_media(e)),
    ("External Link", "external_link", is_external_link),
    ("Interruptive", "interruptive", lambda e, url: is_interruptive(e)),
    ("Auto-playing Media", "auto_playing_media", lambda e, url: is_auto_playing_media(e)),
    ("Competing CTA", "competing_cta", lambda e, url: is_competing_cta(e)),
    ("Internal Navigation", "internal_navigation", is_internal_navigation),
    ("Trust Indicator", "trust_indicator", lambda e, url: is_trust_indicator(e)),
    ("Supporting Content", "supporting_content", lambda e, url: is_supporting_content(e)),
]


def classify_element(element, page_url: str = "") -> Tuple[str, float]:
    """Phase 1: (category, waste rate)."""
    for category, key, predicate in _CLASSIFIERS:
        if predicate(element, page_url):
            return category, ELEMENT_WASTE_RATES[key]
    return "Unknown", ELEMENT_WASTE_RATES["unknown"]


# ============================================================================
# Phases 2-4 and Legacy Factors
# ============================================================================

def attention_ratio_waste(page_elements: Sequence) -> Tuple[float, Optional[float]]:
    """Phase 2: (waste rate, clickable-per-primary ratio)."""
    if not page_elements:
        return 0.0, None
    clickable = sum(1 for e in page_elements if e.is_interactive)
    primaries = sum(1 for e in page_elements if is_primary_cta(e)) or 1
    ratio = clickable / primaries
    for _, threshold, waste in ATTENTION_RATIO_THRESHOLDS:
        if ratio > threshold:
            return waste, ratio
    return 0.0, ratio


def visual_emphasis_waste(element) -> Tuple[float, List[str]]:
    waste = 0.0
    factors: List[str] = []
    primary = is_primary_cta(element)

    if element.has_high_contrast and not primary:
        waste += VISUAL_EMPHASIS_WASTE["high_contrast_distraction"]
        factors.append("High contrast distraction")

    if element.is_auto_rotating or contains_any(element.class_name, ["carousel", "slider"]):
        waste += VISUAL_EMPHASIS_WASTE["auto_rotating"]
        factors.append("Auto-rotating component")

    if element.z_index is not None and element.z_index > HIGH_Z_INDEX:
        waste += VISUAL_EMPHASIS_WASTE["high_z_index_overlay"]
        factors.append("High z-index overlay")

    if is_sticky(element):
        if primary:
            waste += VISUAL_EMPHASIS_WASTE["sticky_cta"]
            factors.append("Sticky CTA (beneficial)")
        else:
            waste += VISUAL_EMPHASIS_WASTE["sticky_navigation"]
            factors.append("Sticky navigation")

    return waste, factors


def content_clutter_waste(element) -> Tuple[float, List[str]]:
    waste = 0.0
    factors: List[str] = []

    if len(element.text) > 500 and not element.has_nearby_cta:
        waste += CONTENT_CLUTTER_WASTE["long_text_without_cta"]
        factors.append("Long text without nearby CTA")

    if element.is_decorative:
        waste += CONTENT_CLUTTER_WASTE["decorative_images"]
        factors.append("Decorative element")

    if element.has_visual_noise or contains_any(element.class_name, NOISE_CLASSES):
        waste += CONTENT_CLUTTER_WASTE["visual_noise"]
        factors.append("Visual noise/animation")

    if element.has_multiple_competing_elements:
        waste += CONTENT_CLUTTER_WASTE["competing_elements"]
        factors.append("Multiple competing elements")

    return waste, factors


def legacy_quality_waste(element) -> Tuple[float, List[str]]:
    waste = 0.0
    factors: List[str] = []

    if not element.is_interactive:
        waste += LEGACY_QUALITY_WASTE["non_interactive"]
        factors.append("Non-interactive element")
    elif not element.has_button_styling:
        waste += LEGACY_QUALITY_WASTE["missing_button_styling"]
        factors.append("Missing button styling")

    if not element.is_above_fold:
        waste += LEGACY_QUALITY_WASTE["below_fold"]
        factors.append("Below the fold")

    if element.text and len(element.text) < 3:
        waste += LEGACY_QUALITY_WASTE["minimal_text"]
        factors.append("Minimal text content")

    return waste, factors


def calculate_waste(element, page_elements: Sequence, context: PageContext) -> WasteBreakdown:
    """Full waste breakdown for one element on a page."""
    category, classification = classify_element(element, context.url)
    attention, ratio = attention_ratio_waste(page_elements)
    visual, visual_factors = visual_emphasis_waste(element)
    clutter, clutter_factors = content_clutter_waste(element)
    legacy, legacy_factors = legacy_quality_waste(element)

    total = classification + attention + visual + clutter + legacy
    return WasteBreakdown(
        element_classification=classification,
        attention_ratio_waste=attention,
        visual_emphasis=visual,
        content_clutter=clutter,
        legacy_quality=legacy,
        total_waste_rate=total,
        capped_waste_rate=max(0.0, min(total, MAX_WASTE_RATE)),
        element_category=category,
        attention_ratio=ratio,
        visual_factors=visual_factors,
        clutter_factors=clutter_factors,
        legacy_factors=legacy_factors,
    )
