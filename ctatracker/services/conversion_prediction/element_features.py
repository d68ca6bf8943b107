"""
Element Features — pluggable feature scorers for the click prediction engine.

Each feature maps one page element (plus its page context) to a number. The
engine combines them with FEATURE_WEIGHTS into a raw attractiveness score:

    raw = sum(weight[f.name] * f.score(element, context) for f in ELEMENT_FEATURES)

Most features are in [0, 1]. "Boost" features are multipliers centred on 1.0
(e.g. 1.2 for an element with a security badge) and are weighted the same way.
"""

import re
from abc import ABC, abstractmethod
from typing import Dict, List

from .constants import (
    FEATURE_WEIGHTS,
    FIELD_TYPE_COMPLEXITY,
    HIGH_INTENT_KEYWORDS,
    URGENCY_KEYWORDS,
)
from .helpers import contains_any
from .models import DeviceType, ElementKind, PageContext

CTA_PATTERNS = ["get", "start", "try", "buy", "sign up", "download", "learn more"]

_USER_COUNT = re.compile(r"\d+.*users?", re.IGNORECASE)
_COUNTDOWN = re.compile(r"\d+:\d+")
_BROKEN_HREFS = ("#", "javascript:void(0)")


def is_form_field(element) -> bool:
    return element.kind == ElementKind.FIELD.value


def has_validation(element) -> bool:
    return bool(
        getattr(element, "pattern", None)
        or getattr(element, "min_length", None)
        or getattr(element, "max_length", None)
    )


def field_complexity(element) -> float:
    """Input complexity of a form field in [0, 1]."""
    input_type = getattr(element, "input_type", "text") or "text"
    complexity = 0.2 + FIELD_TYPE_COMPLEXITY.get(input_type, 0.3)
    if getattr(element, "required", False):
        complexity += 0.2
    if has_validation(element):
        complexity += 0.1
    return min(complexity, 1.0)


def label_clarity(element) -> float:
    clarity = 0.0
    label = getattr(element, "label", "") or ""
    if label:
        clarity += 0.5
    if getattr(element, "placeholder", ""):
        clarity += 0.3
    if 5 < len(label) < 20:
        clarity += 0.2
    return min(clarity, 1.0)


class ElementFeature(ABC):
    """Base class for element features.

    Features are stateless: everything they need is on the element or the
    page context.
    """
    name: str

    @abstractmethod
    def score(self, element, context: PageContext) -> float:
        ...


# ============================================================================
# Core Interaction Features
# ============================================================================

class VisibilityFeature(ElementFeature):
    name = "visibility"

    def score(self, element, context):
        if not element.is_visible:
            return 0.0
        return 0.8 if element.is_above_fold else 0.4


class InformationScentFeature(ElementFeature):
    """Longer, action-worded text gives a stronger scent."""
    name = "information_scent"

    def score(self, element, context):
        action = 0.3 if contains_any(element.text, HIGH_INTENT_KEYWORDS) else 0.0
        return min(len(element.text) / 50 * 0.7 + action, 1.0)


class FrictionFeature(ElementFeature):
    name = "friction"

    def score(self, element, context):
        value = 0.8
        if is_form_field(element):
            value -= 0.2
        if getattr(element, "required", False):
            value -= 0.15
        if getattr(element, "form_action", None) is not None or getattr(element, "button_type", None) == "submit":
            value -= 0.1
        return max(value, 0.0)


class InteractivityFeature(ElementFeature):
    name = "interactivity"

    def score(self, element, context):
        if not element.is_interactive:
            return 0.2
        return 0.8 if element.has_button_styling else 0.6


class HeatmapAttentionFeature(ElementFeature):
    """Attention decays with distance from the top of the page."""
    name = "heatmap_attention"

    def score(self, element, context):
        if element.is_above_fold:
            return max(0.3, 1.0 - element.distance_from_top / 1000)
        return max(0.1, 0.5 - element.distance_from_top / 2000)


# ============================================================================
# Content and Credibility
# ============================================================================

class CredibilityFeature(ElementFeature):
    name = "credibility"

    def score(self, element, context):
        value = 0.0
        if context.has_ssl:
            value += 0.2
        if context.has_trust_badges:
            value += 0.3
        if context.has_testimonials:
            value += 0.2
        value += context.brand_recognition * 0.3
        return min(value, 1.0)


class ContentDepthFeature(ElementFeature):
    name = "content_depth"

    def score(self, element, context):
        return min(len(element.text) / 100, 1.0)


class IntentFeature(ElementFeature):
    name = "intent"

    def score(self, element, context):
        value = 0.0
        if contains_any(element.text, HIGH_INTENT_KEYWORDS):
            value += 0.4
        if contains_any(element.text, CTA_PATTERNS):
            value += 0.6
        return min(value, 1.0)


class VisualAffordanceFeature(ElementFeature):
    name = "visual_affordance"

    def score(self, element, context):
        class_name = element.class_name.lower()
        value = 0.0
        if element.has_button_styling:
            value += 0.4
        # hover effects
        if "hover" in class_name or element.has_button_styling:
            value += 0.2
        # pointer cursor
        if element.is_interactive:
            value += 0.2
        if element.has_button_styling or "cta" in class_name:
            value += 0.2
        return min(value, 1.0)


class ScrollDepthFeature(ElementFeature):
    name = "scroll_depth"

    def score(self, element, context):
        if element.is_above_fold:
            return 1.0
        return max(0.2, 1.0 - element.distance_from_top / 3000)


# ============================================================================
# Performance and Technical
# ============================================================================

class PerformanceFeature(ElementFeature):
    name = "performance"

    def score(self, element, context):
        return max(0.0, 1.0 - (context.load_time - 2.0) / 10.0)


class TrustBoostFeature(ElementFeature):
    name = "trust_boost"

    def score(self, element, context):
        text = element.text.lower()
        boost = 1.0
        if "secure" in text:
            boost *= 1.2
        if "guarantee" in text:
            boost *= 1.15
        if "contact" in text:
            boost *= 1.1
        return boost


class SegmentFeature(ElementFeature):
    """Audience/persona match. Without targeting data every element matches."""
    name = "segment"

    def score(self, element, context):
        return 1.2 * 1.1


class SocialProofFeature(ElementFeature):
    name = "social_proof"

    def score(self, element, context):
        class_name = element.class_name.lower()
        boost = 1.0
        if "review" in element.text.lower():
            boost *= 1.2
        if _USER_COUNT.search(element.text):
            boost *= 1.1
        if "share" in class_name or "social" in class_name:
            boost *= 1.05
        return boost


class ProgressFeature(ElementFeature):
    name = "progress"

    def score(self, element, context):
        class_name = element.class_name.lower()
        value = 0.0
        if "progress" in class_name:
            value += 0.5
        if "step" in class_name:
            value += 0.5
        return min(value, 1.0)


# ============================================================================
# Enhancement Factors
# ============================================================================

class DynamicContentFeature(ElementFeature):
    name = "dynamic"

    def score(self, element, context):
        boost = 1.0
        # personalized copy
        if "you" in element.text:
            boost *= 1.3
        if contains_any(element.text, URGENCY_KEYWORDS):
            boost *= 1.2
        return boost


class UrgencyFeature(ElementFeature):
    name = "urgency"

    def score(self, element, context):
        text = element.text.lower()
        boost = 1.0
        if contains_any(text, URGENCY_KEYWORDS):
            boost *= 1.3
        if "countdown" in element.class_name.lower() or _COUNTDOWN.search(element.text):
            boost *= 1.4
        if "limited" in text:
            boost *= 1.2
        return boost


class AutoCompletionFeature(ElementFeature):
    name = "auto_completion"

    def score(self, element, context):
        return 0.8 if getattr(element, "has_autocomplete", False) else 0.2


class FieldGroupingFeature(ElementFeature):
    name = "field_grouping"

    def score(self, element, context):
        class_name = element.class_name.lower()
        return 0.7 if ("group" in class_name or "fieldset" in class_name) else 0.3


# ============================================================================
# Minor Factors
# ============================================================================

class EmotionalColorFeature(ElementFeature):
    name = "emotional_color"

    def score(self, element, context):
        class_name = element.class_name.lower()
        boost = 1.0
        if "red" in class_name or "danger" in class_name:
            boost *= 1.1
        if "orange" in class_name or "warning" in class_name:
            boost *= 1.05
        if "green" in class_name or "success" in class_name:
            boost *= 1.03
        return boost


class CrossDeviceFeature(ElementFeature):
    name = "cross_device"

    def score(self, element, context):
        class_name = element.class_name.lower()
        boost = 1.0
        if context.device_type == DeviceType.MOBILE and element.bounds.width >= 44:
            boost *= 1.1
        if "responsive" in class_name or "mobile" in class_name:
            boost *= 1.05
        return boost


# ============================================================================
# Penalties (negative weights)
# ============================================================================

class DeadClickRiskFeature(ElementFeature):
    name = "dead_click_risk"

    def score(self, element, context):
        risk = 0.0
        if not element.is_interactive:
            risk += 0.7
        if element.href_value in _BROKEN_HREFS:
            risk += 0.3
        return risk


class CognitiveLoadFeature(ElementFeature):
    name = "cognitive_load"

    def score(self, element, context):
        return max(0.5, 1.0 - context.page_complexity / 100)


class FieldComplexityFeature(ElementFeature):
    name = "field_complexity"

    def score(self, element, context):
        if not is_form_field(element):
            return 0.0
        return field_complexity(element)


ELEMENT_FEATURES: List[ElementFeature] = [
    VisibilityFeature(),
    InformationScentFeature(),
    FrictionFeature(),
    InteractivityFeature(),
    HeatmapAttentionFeature(),
    CredibilityFeature(),
    ContentDepthFeature(),
    IntentFeature(),
    VisualAffordanceFeature(),
    ScrollDepthFeature(),
    PerformanceFeature(),
    TrustBoostFeature(),
    SegmentFeature(),
    SocialProofFeature(),
    ProgressFeature(),
    DynamicContentFeature(),
    UrgencyFeature(),
    AutoCompletionFeature(),
    FieldGroupingFeature(),
    EmotionalColorFeature(),
    CrossDeviceFeature(),
    DeadClickRiskFeature(),
    CognitiveLoadFeature(),
    FieldComplexityFeature(),
]


def extract_features(element, context: PageContext) -> Dict[str, float]:
    """Feature vector for one element, keyed by feature name."""
    return {feature.name: feature.score(element, context) for feature in ELEMENT_FEATURES}


def weighted_score(features: Dict[str, float], weights: Dict[str, float] = FEATURE_WEIGHTS) -> float:
    """Weighted sum of a feature vector. Unknown feature names are ignored."""
    return sum(value * weights[name] for name, value in features.items() if name in weights)
