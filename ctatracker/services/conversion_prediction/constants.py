"""Heuristic tables for the click prediction engine.

Feature weights, waste-rate tables, traffic/device/industry modifiers and
CPC calibration data. Values are encoded domain heuristics, not trained
parameters. Nothing here is mutated at runtime.
"""

from __future__ import annotations

from typing import Dict


# ============================================================================
# Feature Weights
# ============================================================================

FEATURE_WEIGHTS: Dict[str, float] = {
    # Core interaction features
    "visibility": 0.15,
    "information_scent": 0.12,
    "friction": 0.10,
    "interactivity": 0.08,
    "heatmap_attention": 0.09,
    # Content and credibility
    "credibility": 0.08,
    "content_depth": 0.07,
    "intent": 0.06,
    "visual_affordance": 0.06,
    "scroll_depth": 0.05,
    # Performance and technical
    "performance": 0.05,
    "trust_boost": 0.04,
    "segment": 0.03,
    "social_proof": 0.03,
    "progress": 0.03,
    # Enhancement factors
    "dynamic": 0.02,
    "urgency": 0.02,
    "auto_completion": 0.02,
    "field_grouping": 0.02,
    # Minor factors
    "emotional_color": 0.01,
    "cross_device": 0.01,
    # Penalties
    "dead_click_risk": -0.04,
    "cognitive_load": -0.02,
    "field_complexity": -0.08,
}


# ============================================================================
# Limits and Behavioral Constants
# ============================================================================

MAX_ELEMENTS = 100
MAX_FORM_FIELDS = 20
MIN_SCORE = 0.001
MAX_WASTE_RATE = 0.8

AVG_CLICKS_PER_ENGAGED_USER = 2.3
FORM_CLICK_ALLOCATION = 0.3
ABOVE_FOLD_MULTIPLIER = 1.0
BELOW_FOLD_MULTIPLIER = 0.6

DEFAULT_BOUNCE_RATE = 0.6
DEFAULT_TRAFFIC_MODIFIER = 0.85
DEFAULT_DEVICE_MODIFIER = 1.0

MIN_FORM_COMPLETION_RATE = 0.1
MAX_FORM_COMPLETION_RATE = 0.9

HIGH_RELIABILITY_THRESHOLD = 0.8
MEDIUM_RELIABILITY_THRESHOLD = 0.5

# Element modifiers applied after the weighted feature sum
HIDDEN_MULTIPLIER = 0.1
FORM_FIELD_MULTIPLIER = 0.8
BUTTON_STYLING_MULTIPLIER = 1.2
HIGH_CONTRAST_MULTIPLIER = 1.1
INTERACTIVE_MULTIPLIER = 1.1
DECORATIVE_MULTIPLIER = 0.5
VISUAL_NOISE_MULTIPLIER = 0.7

# Each decorative/noisy element on the page depresses CTA neighbors by 8%,
# never below half their score.
NEIGHBOR_DEPRESSION_STEP = 0.08
NEIGHBOR_DEPRESSION_FLOOR = 0.5


# ============================================================================
# Device Geometry
# ============================================================================

DEVICE_VIEWPORTS: Dict[str, Dict[str, int]] = {
    "desktop": {"width": 1920, "height": 1080, "fold_line": 1000},
    "tablet": {"width": 820, "height": 1180, "fold_line": 900},
    "mobile": {"width": 390, "height": 844, "fold_line": 650},
}

# Inclusive viewport width range that counts as the given device
VIEWPORT_WIDTH_RANGES: Dict[str, tuple] = {
    "mobile": (240, 600),
    "tablet": (600, 1366),
    "desktop": (1024, 7680),
}


# ============================================================================
# Waste Rates (4 phases + legacy quality factors)
# ============================================================================

ELEMENT_WASTE_RATES: Dict[str, float] = {
    "primary_cta": 0.0,
    "navigation": 0.4,
    "social_media": 0.35,
    "external_link": 0.3,
    "interruptive": 0.3,
    "auto_playing_media": 0.25,
    "competing_cta": 0.2,
    "internal_navigation": 0.1,
    "supporting_content": 0.05,
    "trust_indicator": 0.05,
    "unknown": 0.15,
}

# (clickable elements per primary CTA threshold, waste rate), checked in order
ATTENTION_RATIO_THRESHOLDS = (
    ("high", 20, 0.25),
    ("medium", 10, 0.15),
)

VISUAL_EMPHASIS_WASTE: Dict[str, float] = {
    "high_contrast_distraction": 0.1,
    "sticky_navigation": 0.2,
    "sticky_cta": -0.05,
    "auto_rotating": 0.15,
    "high_z_index_overlay": 0.1,
}

CONTENT_CLUTTER_WASTE: Dict[str, float] = {
    "long_text_without_cta": 0.1,
    "decorative_images": 0.05,
    "visual_noise": 0.08,
    "competing_elements": 0.12,
}

LEGACY_QUALITY_WASTE: Dict[str, float] = {
    "non_interactive": 0.3,
    "missing_button_styling": 0.1,
    "below_fold": 0.1,
    "minimal_text": 0.15,
}


# ============================================================================
# Traffic, Device and Industry Modifiers
# ============================================================================

TRAFFIC_SOURCE_MODIFIERS: Dict[str, float] = {
    "organic": 0.85,
    "paid": 1.2,
    "social": 0.7,
    "email": 1.1,
    "direct": 0.9,
    "referral": 0.8,
    "unknown": 0.75,
}

DEVICE_MODIFIERS: Dict[str, float] = {
    "desktop": 1.0,
    "mobile": 0.85,
    "tablet": 0.95,
}

BASE_BOUNCE_RATES: Dict[str, float] = {
    "organic": 0.45,
    "paid": 0.65,
    "social": 0.7,
    "email": 0.35,
    "direct": 0.4,
    "referral": 0.55,
}

INDUSTRY_MODIFIERS: Dict[str, Dict[str, float]] = {
    "saas": {"form_completion_rate": 0.85, "cta_click_rate": 1.2, "bounce_rate_adjustment": -0.05, "avg_cpc": 8.5},
    "ecommerce": {"form_completion_rate": 0.75, "cta_click_rate": 1.4, "bounce_rate_adjustment": 0.1, "avg_cpc": 1.16},
    "leadgen": {"form_completion_rate": 0.65, "cta_click_rate": 1.1, "bounce_rate_adjustment": 0.05, "avg_cpc": 4.2},
    "content": {"form_completion_rate": 0.7, "cta_click_rate": 0.9, "bounce_rate_adjustment": -0.1, "avg_cpc": 2.4},
    "legal": {"form_completion_rate": 0.8, "cta_click_rate": 1.3, "bounce_rate_adjustment": 0.0, "avg_cpc": 6.75},
    "finance": {"form_completion_rate": 0.75, "cta_click_rate": 1.1, "bounce_rate_adjustment": 0.05, "avg_cpc": 3.44},
    "technology": {"form_completion_rate": 0.8, "cta_click_rate": 1.2, "bounce_rate_adjustment": -0.05, "avg_cpc": 3.8},
    "automotive": {"form_completion_rate": 0.7, "cta_click_rate": 1.0, "bounce_rate_adjustment": 0.0, "avg_cpc": 2.46},
    "realestate": {"form_completion_rate": 0.75, "cta_click_rate": 1.1, "bounce_rate_adjustment": 0.0, "avg_cpc": 2.37},
    "travel": {"form_completion_rate": 0.65, "cta_click_rate": 0.9, "bounce_rate_adjustment": 0.1, "avg_cpc": 1.53},
    "consumerservices": {"form_completion_rate": 0.7, "cta_click_rate": 1.0, "bounce_rate_adjustment": 0.0, "avg_cpc": 6.4},
    "education": {"form_completion_rate": 0.75, "cta_click_rate": 0.95, "bounce_rate_adjustment": -0.05, "avg_cpc": 2.4},
    "healthcare": {"form_completion_rate": 0.78, "cta_click_rate": 1.15, "bounce_rate_adjustment": 0.02, "avg_cpc": 4.8},
}


# ============================================================================
# CPC Calibration
# ============================================================================

MIN_REALISTIC_CPC = 2.93
B2B_CPC_MULTIPLIER = 1.24
B2C_CPC_MULTIPLIER = 0.98

TRAFFIC_SOURCE_CPC: Dict[str, float] = {
    "organic": 0.0,
    "paid": 1.0,
    "social": 0.4,
    "email": 0.05,
    "direct": 0.0,
    "referral": 0.15,
    "unknown": 0.3,
    "linkedin": 2.0,
}

DEVICE_CPC_MODIFIERS: Dict[str, float] = {
    "desktop": 1.0,
    "mobile": 0.85,
    "tablet": 0.92,
}

GEO_MODIFIERS: Dict[str, float] = {
    "tier1": 1.0,
    "tier2": 0.7,
    "tier3": 0.4,
    "unknown": 0.8,
}

COMPETITION_MODIFIERS: Dict[str, float] = {
    "high": 1.4,
    "medium": 1.0,
    "low": 0.7,
    "unknown": 1.0,
}

QUALITY_SCORE_MODIFIERS: Dict[str, float] = {
    "excellent": 0.7,
    "good": 0.85,
    "average": 1.0,
    "poor": 1.3,
    "unknown": 1.0,
}


# ============================================================================
# Keyword Lists
# ============================================================================

FIELD_TYPE_COMPLEXITY: Dict[str, float] = {
    "text": 0.1,
    "email": 0.3,
    "password": 0.5,
    "tel": 0.4,
    "number": 0.2,
    "date": 0.3,
    "select": 0.2,
    "textarea": 0.4,
    "checkbox": 0.1,
    "radio": 0.1,
}

HIGH_INTENT_KEYWORDS = [
    "buy", "purchase", "order", "get", "start", "begin", "try", "download",
    "sign up", "signup", "register", "join", "subscribe", "book", "schedule",
    "request", "claim", "unlock", "access", "upgrade", "activate",
]

URGENCY_KEYWORDS = [
    "now", "today", "limited", "hurry", "fast", "quick", "instant",
    "immediate", "deadline", "expires", "ending", "last chance", "final",
    "urgent",
]

TRUST_INDICATORS = [
    "guarantee", "secure", "safe", "protected", "verified", "certified",
    "trusted", "ssl", "encrypted", "privacy", "refund", "money back",
]
