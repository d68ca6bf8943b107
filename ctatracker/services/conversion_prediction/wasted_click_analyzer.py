"""
Wasted-Attention Analyzer — which elements cannibalize clicks from the primary CTA.

Scores every non-primary clickable element for wasted-click potential, flags
the high-risk ones, and simulates removing them: their click share is
redistributed (not deleted) toward the primary CTA, subject to the page's
interaction budget ceiling.

Scoring per element:
    base  = 0.25 * distraction * visibility + 0.15 * attractiveness
          + 0.30 * click distraction index (the element's click share)
          + penalties (intent mismatch, path loop, clarity, timing, budget, loopback)
          + competition signal + decoration/noise penalty
    score = clamp(base * fold * duplication * direct response, 0, 1)
          * form-context multiplier, clamped to [0, 1]

Usage:
    result = analyze_wasted_clicks(elements, primary, report.predictions, context)
    for wasted in result.unwrap().high_risk_elements:
        print(wasted.element_id, wasted.wasted_click_score, wasted.recommendation)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
from urllib.parse import urlparse

from .element_features import is_form_field
from .helpers import contains_any
from .models import (
    ClickPrediction,
    CtaContextType,
    ElementClassification,
    FormContext,
    ImplementationDifficulty,
    PageContext,
    ProjectedImprovements,
    Recommendation,
    RecommendationCategory,
    WastedClickAnalysis,
    WastedClickBreakdown,
    WastedClickType,
    WastedElement,
)
from .results import EngineResult, FailureKind

logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

HIGH_RISK_THRESHOLD = 0.05
INTERACTION_BUDGET_CEILING = 0.85
CAPTURE_RATE = {CtaContextType.FORM_CTA: 0.6, CtaContextType.NON_FORM_CTA: 0.5}
REVENUE_MULTIPLIER = {CtaContextType.FORM_CTA: 1.3, CtaContextType.NON_FORM_CTA: 1.15}
ASSUMED_CONVERSION_RATE = 0.1
MAX_CTR_IMPROVEMENT_FOR_PRIORITY = 0.5

COMPETITION_WEIGHT = 0.15
DECORATIVE_PENALTY = 0.05
NOISE_PENALTY = 0.08

# Click budget (clicks a visitor will spend) by industry; tight budgets raise risk
INDUSTRY_CLICK_BUDGETS = {"saas": 2.5, "ecommerce": 3.0, "leadgen": 2.0, "content": 4.0}

FORM_CTA_KEYWORDS = [
    "sign up", "register", "subscribe", "join", "create account", "get started",
    "submit", "send", "contact us", "request", "apply", "book", "schedule", "reserve",
]
NON_FORM_CTA_KEYWORDS = [
    "buy", "purchase", "add to cart", "checkout", "order", "download", "install",
    "watch", "play", "read more", "learn more", "view", "browse", "explore",
]
ADDITIONAL_CTA_TERMS = ["sign up", "get started", "try now", "buy now", "subscribe", "register"]
GENERIC_TERMS = ["click here", "learn more", "read more", "continue", "next"]
VAGUE_TERMS = ["click here", "learn more", "read more", "continue"]
NEUTRAL_TERMS = ["privacy", "terms", "legal", "disclaimer", "cookie"]
TRUST_TERMS = ["secure", "guaranteed", "certified", "verified", "trusted"]
SOCIAL_DOMAINS = ["facebook.com", "twitter.com", "linkedin.com", "instagram.com", "youtube.com"]

FORM_CTA_RECOMMENDATIONS: Dict[WastedClickType, str] = {
    WastedClickType.BLOG: "Remove blog links from form pages - major distraction from completion",
    WastedClickType.SOCIAL: "Hide social links during form completion - save for thank you page",
    WastedClickType.NAVIGATION: "Minimize navigation on form pages - use breadcrumbs instead",
    WastedClickType.ADDITIONAL_CTA: "Remove competing CTAs from form pages - focus on single conversion",
    WastedClickType.EXTERNAL: "Remove all external links from form pages",
    WastedClickType.RESOURCE: "Move resources to post-form completion",
    WastedClickType.MODAL: "Avoid modals during form completion",
    WastedClickType.CHAT: "Make chat less prominent during form completion",
    WastedClickType.DOWNLOAD: "Offer downloads after form completion",
    WastedClickType.FOOTER: "Minimize footer links on form pages",
    WastedClickType.SIDEBAR: "Remove sidebar distractions from form pages",
    WastedClickType.FORM_RELATED: "Keep only the fields the primary form needs",
}

NON_FORM_CTA_RECOMMENDATIONS: Dict[WastedClickType, str] = {
    WastedClickType.BLOG: "Move blog links to post-purchase or separate section",
    WastedClickType.SOCIAL: "Relocate social links to footer - don't compete with purchase",
    WastedClickType.NAVIGATION: "Streamline navigation to support purchase decision",
    WastedClickType.ADDITIONAL_CTA: "Remove competing CTAs that don't support purchase intent",
    WastedClickType.EXTERNAL: "Remove external links that take users away from purchase",
    WastedClickType.RESOURCE: "Provide resources that support purchase decision only",
    WastedClickType.MODAL: "Use modals for purchase support, not distractions",
    WastedClickType.CHAT: "Position chat to support purchase questions",
    WastedClickType.DOWNLOAD: "Offer downloads that support purchase decision",
    WastedClickType.FOOTER: "Keep essential links only in footer",
    WastedClickType.SIDEBAR: "Use sidebar for purchase-supporting content only",
    WastedClickType.FORM_RELATED: "Move secondary forms (newsletter, contact) to post-purchase flow",
}

# category, effort, impact, effort weight
RECOMMENDATION_GROUPS = {
    RecommendationCategory.QUICK_WINS: ("1-2 hrs", "+3-5%", 1),
    RecommendationCategory.FORM_FIXES: ("3-5 hrs", "+5-8%", 2),
    RecommendationCategory.STRUCTURAL_CHANGES: ("1-2 days", "+8-12%", 3),
}

TYPE_CATEGORY = {
    WastedClickType.SOCIAL: RecommendationCategory.QUICK_WINS,
    WastedClickType.FOOTER: RecommendationCategory.QUICK_WINS,
    WastedClickType.SIDEBAR: RecommendationCategory.QUICK_WINS,
    WastedClickType.EXTERNAL: RecommendationCategory.QUICK_WINS,
    WastedClickType.DOWNLOAD: RecommendationCategory.QUICK_WINS,
    WastedClickType.RESOURCE: RecommendationCategory.QUICK_WINS,
    WastedClickType.BLOG: RecommendationCategory.QUICK_WINS,
    WastedClickType.FORM_RELATED: RecommendationCategory.FORM_FIXES,
    WastedClickType.NAVIGATION: RecommendationCategory.STRUCTURAL_CHANGES,
    WastedClickType.MODAL: RecommendationCategory.STRUCTURAL_CHANGES,
    WastedClickType.CHAT: RecommendationCategory.STRUCTURAL_CHANGES,
    WastedClickType.ADDITIONAL_CTA: RecommendationCategory.STRUCTURAL_CHANGES,
}

DIFFICULTY_EASE = {
    ImplementationDifficulty.EASY: 1.0,
    ImplementationDifficulty.MODERATE: 0.6,
    ImplementationDifficulty.HARD: 0.3,
}


@dataclass(frozen=True)
class _Page:
    """Per-call analysis state shared by the scoring helpers."""
    primary: object
    form_context: FormContext
    url: str
    host: Optional[str]
    path: str
    fold_line: int
    industry: Optional[str]


# ============================================================================
# Element Predicates
# ============================================================================

def _href(element) -> str:
    return (element.href_value or "").lower()


def _is_social(element) -> bool:
    return any(domain in _href(element) for domain in SOCIAL_DOMAINS)


def _is_nav(element) -> bool:
    return "nav" in element.class_name.lower() or element.tag_name.lower() == "nav"


def _is_additional_cta(element, page: _Page) -> bool:
    return contains_any(element.text, ADDITIONAL_CTA_TERMS) and element.id != page.primary.id


def _is_external(element, page: _Page) -> bool:
    href = _href(element)
    if not href.startswith("http"):
        return False
    host = urlparse(href).hostname
    return page.host is None or host != page.host


def _is_trust(element) -> bool:
    class_name = element.class_name.lower()
    return contains_any(element.text, TRUST_TERMS) or "trust-badge" in class_name or "security-seal" in class_name


def _is_internal_navigation(element, page: _Page) -> bool:
    href = _href(element)
    if href.startswith("#"):
        return False
    return href.startswith("/") or (page.host is not None and page.host in href)


def _same_destination(element, primary) -> bool:
    return primary.href_value is not None and element.href_value == primary.href_value


def _is_clickable(element) -> bool:
    return element.tag_name.lower() in ("a", "button", "input") or element.is_interactive


def _same_row(element, primary) -> bool:
    a, b = element.bounds, primary.bounds
    return a.y < b.bottom and b.y < a.bottom


# ============================================================================
# Form Context
# ============================================================================

def detect_form_context(primary, elements: Sequence) -> FormContext:
    """Whether the primary CTA completes a form on this page."""
    href = _href(primary)
    field_count = sum(1 for e in elements if is_form_field(e))

    is_form_cta = contains_any(primary.text, FORM_CTA_KEYWORDS) or any(
        word in href for word in ("signup", "register", "contact", "subscribe")
    )
    is_non_form_cta = contains_any(primary.text, NON_FORM_CTA_KEYWORDS) or any(
        word in href for word in ("buy", "purchase", "cart", "checkout")
    )

    if is_form_cta or field_count > 2:
        cta_type = CtaContextType.FORM_CTA
    elif is_non_form_cta:
        cta_type = CtaContextType.NON_FORM_CTA
    elif field_count > 0:
        cta_type = CtaContextType.FORM_CTA
    else:
        cta_type = CtaContextType.NON_FORM_CTA

    return FormContext(type=cta_type, form_field_count=field_count, primary_cta_text=primary.text)


def _form_context_insights(wasted: List[WastedElement], form_context: FormContext, fields: set) -> List[str]:
    insights = []
    if form_context.type == CtaContextType.FORM_CTA:
        if any(w.type == WastedClickType.SOCIAL for w in wasted):
            insights.append("FORM OPTIMIZATION: Remove social media links from form pages to reduce abandonment")
        if sum(1 for w in wasted if w.type == WastedClickType.NAVIGATION) > 2:
            insights.append(
                "FORM OPTIMIZATION: Simplify navigation during form completion - use progress indicators instead"
            )
        if form_context.form_field_count > 5:
            insights.append("FORM OPTIMIZATION: Consider multi-step form to reduce cognitive load")
    else:
        if any(w.element_id in fields for w in wasted):
            insights.append("PURCHASE OPTIMIZATION: Remove competing newsletter/contact forms from purchase pages")
        if form_context.form_field_count > 0:
            insights.append("PURCHASE OPTIMIZATION: Move secondary forms (newsletter, contact) to post-purchase flow")
    return insights


# ============================================================================
# Scoring Factors
# ============================================================================

def _distraction(element, page: _Page) -> float:
    score = 0.1
    if element.has_high_contrast:
        score += 0.2
    if element.bounds.width > 200 or element.bounds.height > 50:
        score += 0.15
    if element.has_button_styling:
        score += 0.1
    if element.bounds.y < 500:
        score += 0.2
    if element.is_sticky:
        score += 0.15
    return min(score, 1.0)


def _visibility_weight(element, page: _Page) -> float:
    weight = 1.0 if element.bounds.y < page.fold_line else 0.7
    if element.is_sticky:
        weight = min(weight * 1.2, 1.0)
    return weight


def _attractiveness(element) -> float:
    score = 0.3
    if element.has_button_styling:
        score += 0.3
    if element.is_interactive:
        score += 0.2
    if element.is_auto_rotating:
        score += 0.2
    return min(score, 1.0)


def _intent_mismatch(element) -> float:
    text = element.text.lower()
    href = _href(element)
    penalty = 1.0
    if "pricing" in text and ("blog" in href or "about" in href):
        penalty += 0.5
    if "demo" in text and "contact" in href:
        penalty += 0.4
    if "buy" in text and "checkout" not in href and "purchase" not in href:
        penalty += 0.3
    return min(penalty, 1.5)


def _path_loop(element, page: _Page) -> float:
    href = _href(element)
    penalty = 1.0
    if any(p in href for p in ("/about", "/contact", "/blog")):
        penalty += 0.1
    if _is_external(element, page):
        penalty += 0.2
    return penalty


def _clarity(element) -> float:
    penalty = 1.0
    if len(element.text) < 2:
        penalty += 0.3
    if contains_any(element.text, VAGUE_TERMS):
        penalty += 0.2
    return min(penalty, 1.3)


def _timing(element, page: _Page) -> float:
    penalty = 1.0
    if contains_any(element.class_name, ["modal", "popup"]):
        penalty += 0.2
    if element.is_sticky and element.bounds.y > page.fold_line:
        penalty += 0.15
    return min(penalty, 1.25)


def _duplication(element, page: _Page) -> float:
    if element.href_value == page.primary.href_value and element.text == page.primary.text:
        return 0.85
    return 1.0


def _direct_response(element, page: _Page) -> float:
    penalty = 1.0
    if _is_additional_cta(element, page):
        penalty += 0.35
    if _is_social(element):
        penalty += 0.4
    if element.bounds.y < 100 and _is_nav(element):
        penalty += 0.4
    if contains_any(element.text, GENERIC_TERMS):
        penalty += 0.3
    if (
        contains_any(element.class_name, ["popup", "modal"])
        or element.is_auto_rotating
        or _href(element).startswith("mailto:")
    ):
        penalty += 0.4
    return min(penalty, 1.75)


def _click_budget_risk(page: _Page) -> float:
    budget = INDUSTRY_CLICK_BUDGETS.get(page.industry or "saas", 2.5)
    return 1.3 if budget < 2.0 else 1.0


def _loopback(element, page: _Page) -> float:
    href = element.href_value or ""
    if href and len(href) < len(page.path) and page.path.startswith(href):
        return 1.2
    return 1.0


def _competition_signal(element, page: _Page) -> float:
    primary = page.primary
    signal = 0.0
    if _same_row(element, primary):
        signal += 0.4
    if element.has_button_styling and primary.has_button_styling:
        signal += 0.3
    if element.has_nearby_cta:
        signal += 0.3
    return signal


def _noise_penalty(element) -> float:
    penalty = 0.0
    if element.is_decorative:
        penalty += DECORATIVE_PENALTY
    if element.has_visual_noise:
        penalty += NOISE_PENALTY
    return penalty


def _form_context_multiplier(form_context: FormContext) -> float:
    if form_context.type == CtaContextType.FORM_CTA:
        return 0.75 * (0.85 if form_context.form_field_count > 3 else 1.0)
    return 1.1 if form_context.form_field_count > 0 else 1.0


def score_breakdown(element, page: _Page, click_share: float) -> WastedClickBreakdown:
    """All scoring factors for one element, with form-context adjustments applied."""
    distraction = _distraction(element, page)
    intent = _intent_mismatch(element)
    direct = _direct_response(element, page)
    field = is_form_field(element)

    if page.form_context.type == CtaContextType.FORM_CTA:
        if field:
            distraction *= 0.2
            direct *= 0.3
            intent *= 0.1
        else:
            distraction *= 1.3
            direct *= 1.4
            if _is_social(element):
                direct *= 1.6
        if _is_trust(element):
            distraction *= 0.1
            direct *= 0.2
    else:
        if field:
            distraction *= 1.8
            direct *= 2.0
            intent *= 1.5
        if _is_internal_navigation(element, page):
            direct *= 0.8

    return WastedClickBreakdown(
        distraction_factor=distraction,
        visibility_weight=_visibility_weight(element, page),
        attractiveness=_attractiveness(element),
        intent_mismatch=intent,
        path_loop=_path_loop(element, page),
        clarity=_clarity(element),
        timing=_timing(element, page),
        fold_weight=0.7 if element.bounds.y >= page.fold_line else 1.0,
        duplication_factor=_duplication(element, page),
        direct_response_penalty=direct,
        click_distraction_index=click_share,
        click_budget_risk=_click_budget_risk(page),
        loopback=_loopback(element, page),
        competition_signal=_competition_signal(element, page),
        noise_penalty=_noise_penalty(element),
        form_context_multiplier=_form_context_multiplier(page.form_context),
    )


def wasted_click_score(b: WastedClickBreakdown) -> float:
    score = (
        b.distraction_factor * 0.25 * b.visibility_weight
        + b.attractiveness * 0.15
        + (b.intent_mismatch - 1) * 0.2
        + (b.path_loop - 1) * 0.1
        + (b.clarity - 1) * 0.1
        + (b.timing - 1) * 0.05
        + b.click_distraction_index * 0.3
        + (b.click_budget_risk - 1) * 0.1
        + (b.loopback - 1) * 0.05
        + b.competition_signal * COMPETITION_WEIGHT
        + b.noise_penalty
    )
    score *= b.fold_weight * b.duplication_factor * b.direct_response_penalty
    score = min(max(score, 0.0), 1.0)
    return min(max(score * b.form_context_multiplier, 0.0), 1.0)


# ============================================================================
# Classification and Recommendations
# ============================================================================

def classify_element(element, page: _Page) -> ElementClassification:
    primary = page.primary
    if _same_destination(element, primary) and element.text == primary.text:
        return ElementClassification.SUPPORTIVE

    field = is_form_field(element)
    if page.form_context.type == CtaContextType.FORM_CTA:
        if field or _is_trust(element):
            return ElementClassification.SUPPORTIVE
    elif field:
        return ElementClassification.WASTED

    if contains_any(element.text, NEUTRAL_TERMS):
        return ElementClassification.NEUTRAL
    return ElementClassification.WASTED


def determine_element_type(element, page: _Page) -> WastedClickType:
    href = _href(element)
    text = element.text.lower()
    class_name = element.class_name.lower()

    if is_form_field(element):
        return WastedClickType.FORM_RELATED
    if "blog" in href or "article" in href:
        return WastedClickType.BLOG
    if _is_social(element):
        return WastedClickType.SOCIAL
    if _is_nav(element):
        return WastedClickType.NAVIGATION
    if _is_additional_cta(element, page):
        return WastedClickType.ADDITIONAL_CTA
    if _is_external(element, page):
        return WastedClickType.EXTERNAL
    if "download" in href or "download" in text:
        return WastedClickType.DOWNLOAD
    if "modal" in class_name or "popup" in class_name:
        return WastedClickType.MODAL
    if "chat" in class_name or "chat" in text:
        return WastedClickType.CHAT
    if "footer" in class_name:
        return WastedClickType.FOOTER
    if "sidebar" in class_name:
        return WastedClickType.SIDEBAR
    return WastedClickType.RESOURCE


def distraction_factors(element, b: WastedClickBreakdown, element_type: WastedClickType, page: _Page) -> List[str]:
    factors = []
    if b.distraction_factor > 0.5:
        factors.append("high visual prominence")
    if b.intent_mismatch > 1.2:
        factors.append("intent mismatch")
    if b.path_loop > 1.1:
        factors.append("off-path click")
    if b.direct_response_penalty > 1.3:
        factors.append("direct response violation")
    if b.click_distraction_index > 0.3:
        factors.append("high click attraction")
    if b.competition_signal > 0:
        factors.append("competes with primary CTA")
    if b.noise_penalty > 0:
        factors.append("decorative or noisy")
    if element.is_sticky:
        factors.append("sticky positioning")
    if element.bounds.y < page.fold_line:
        factors.append("above fold competition")

    if page.form_context.type == CtaContextType.FORM_CTA:
        if is_form_field(element):
            factors.append("form field supports conversion")
        elif element_type == WastedClickType.SOCIAL:
            factors.append("social link disrupts form completion")
        elif element_type == WastedClickType.NAVIGATION:
            factors.append("navigation competes with form focus")
    elif is_form_field(element):
        factors.append("form field competes with purchase intent")
    return factors


def element_recommendation(element_type: WastedClickType, score: float, form_context: FormContext) -> str:
    if score < HIGH_RISK_THRESHOLD:
        return "Low priority - monitor for changes"

    table = FORM_CTA_RECOMMENDATIONS if form_context.type == CtaContextType.FORM_CTA else NON_FORM_CTA_RECOMMENDATIONS
    recommendation = table[element_type]
    label = form_context.type.value.upper()
    if score > 0.3:
        return f"CRITICAL ({label}): {recommendation}"
    if score > 0.15:
        return f"HIGH PRIORITY ({label}): {recommendation}"
    if score > 0.08:
        return f"MEDIUM PRIORITY ({label}): {recommendation}"
    return recommendation


def _global_insights(analyzed: List[WastedElement]) -> List[str]:
    insights = []
    if sum(1 for w in analyzed if w.wasted_click_score > 0.3) > 5:
        insights.append("High interactive element density detected - consider simplifying page layout")
    if sum(1 for w in analyzed if w.type == WastedClickType.SOCIAL) > 2:
        insights.append("Multiple social links competing for attention - consolidate or relocate")
    if sum(1 for w in analyzed if w.type == WastedClickType.ADDITIONAL_CTA) > 1:
        insights.append("Multiple CTAs creating decision paralysis - focus on single primary action")
    if any("above fold competition" in w.distraction_factors for w in analyzed):
        insights.append("Above-fold elements competing with primary CTA - prioritize conversion elements")
    return insights


def build_recommendations(flagged: List[WastedElement], form_context: FormContext) -> List[Recommendation]:
    """One recommendation per category that has flagged elements."""
    groups: Dict[RecommendationCategory, List[WastedElement]] = {}
    for wasted in flagged:
        groups.setdefault(TYPE_CATEGORY[wasted.type], []).append(wasted)

    recommendations = []
    for category, (effort, impact, _) in RECOMMENDATION_GROUPS.items():
        members = groups.get(category)
        if not members:
            continue
        avg_score = sum(w.wasted_click_score for w in members) / len(members)
        labels = ", ".join(f'"{w.text}"' if w.text else w.element_id for w in members[:3])
        more = f" and {len(members) - 3} more" if len(members) > 3 else ""
        actions = list(dict.fromkeys(w.recommendation.split(": ", 1)[-1] for w in members))
        recommendations.append(
            Recommendation(
                title=f"{category.value}: {len(members)} element{'s' if len(members) != 1 else ''} "
                      f"competing with \"{form_context.primary_cta_text}\"",
                description=f"{'; '.join(actions)}. Affects {labels}{more}.",
                category=category,
                effort=effort,
                impact=impact,
                confidence=50 + avg_score * 80,
                element_ids=[w.element_id for w in members],
            )
        )
    return recommendations


# ============================================================================
# Projection
# ============================================================================

def project_improvements(
    flagged: List[WastedElement],
    primary_prediction: ClickPrediction,
    shares: Dict[str, float],
    form_context: FormContext,
    context: PageContext,
) -> ProjectedImprovements:
    """Simulate removing every flagged element.

    Their click share moves toward the primary CTA at the capture rate,
    never past the interaction budget ceiling and never below the baseline.
    """
    baseline_share = primary_prediction.click_share
    absorbed = sum(shares.get(w.element_id, 0.0) for w in flagged)
    projected_share = max(
        baseline_share,
        min(INTERACTION_BUDGET_CEILING, baseline_share + absorbed * CAPTURE_RATE[form_context.type]),
    )

    baseline_ctr = primary_prediction.ctr
    if baseline_share > 0:
        projected_ctr = min(1.0, baseline_ctr * projected_share / baseline_share)
    else:
        projected_ctr = baseline_ctr
    ctr_improvement = (projected_ctr - baseline_ctr) / baseline_ctr if baseline_ctr > 0 else 0.0

    additional_clicks = (projected_ctr - baseline_ctr) * context.monthly_traffic
    revenue_impact = (
        additional_clicks
        * context.avg_order_value
        * ASSUMED_CONVERSION_RATE
        * REVENUE_MULTIPLIER[form_context.type]
    )

    effort = sum(RECOMMENDATION_GROUPS[TYPE_CATEGORY[w.type]][2] for w in flagged)
    if effort <= 5:
        difficulty = ImplementationDifficulty.EASY
    elif effort <= 10:
        difficulty = ImplementationDifficulty.MODERATE
    else:
        difficulty = ImplementationDifficulty.HARD

    impact = min(1.0, ctr_improvement / MAX_CTR_IMPROVEMENT_FOR_PRIORITY)
    priority = round(100 * (0.7 * impact + 0.3 * DIFFICULTY_EASE[difficulty])) if flagged else 0

    return ProjectedImprovements(
        ctr_improvement=ctr_improvement,
        revenue_impact=revenue_impact,
        implementation_difficulty=difficulty,
        priority_score=max(0, min(100, priority)),
        projected_ctr=projected_ctr,
        baseline_click_share=baseline_share,
        projected_click_share=projected_share,
    )


# ============================================================================
# Entry Point
# ============================================================================

def analyze_wasted_clicks(
    elements: Sequence,
    primary_element,
    predictions: Sequence[ClickPrediction],
    context: Optional[PageContext] = None,
) -> EngineResult[WastedClickAnalysis]:
    """Flag elements that pull attention from the primary CTA and project the uplift.

    Args:
        elements: All page elements.
        primary_element: The primary CTA element (must have a prediction).
        predictions: Click predictions for the same page.
        context: Page context (fold line, URL, traffic and order value assumptions).

    Returns:
        EngineResult wrapping WastedClickAnalysis, or INSUFFICIENT_DATA when the
        primary element or its prediction is missing.
    """
    if primary_element is None:
        return EngineResult.fail(FailureKind.INSUFFICIENT_DATA, "Primary CTA element is required")
    if not predictions:
        return EngineResult.fail(FailureKind.INSUFFICIENT_DATA, "Click predictions are required")

    shares = {p.element_id: p.click_share for p in predictions}
    primary_prediction = next((p for p in predictions if p.element_id == primary_element.id), None)
    if primary_prediction is None:
        return EngineResult.fail(
            FailureKind.INSUFFICIENT_DATA,
            f"Primary CTA '{primary_element.id}' has no click prediction",
            primary_element_id=primary_element.id,
        )

    context = context or PageContext()
    form_context = detect_form_context(primary_element, elements)
    parsed = urlparse(context.url) if context.url else None
    page = _Page(
        primary=primary_element,
        form_context=form_context,
        url=context.url,
        host=parsed.hostname if parsed else None,
        path=parsed.path if parsed else "",
        fold_line=context.fold_line,
        industry=context.industry.value if context.industry else None,
    )

    analyzed: List[WastedElement] = []
    for element in elements:
        if element.id == primary_element.id or _same_destination(element, primary_element):
            continue
        if not _is_clickable(element):
            continue
        breakdown = score_breakdown(element, page, shares.get(element.id, 0.0))
        score = wasted_click_score(breakdown)
        element_type = determine_element_type(element, page)
        analyzed.append(
            WastedElement(
                element_id=element.id,
                text=element.text,
                type=element_type,
                wasted_click_score=score,
                recommendation=element_recommendation(element_type, score, form_context),
                classification=classify_element(element, page),
                distraction_factors=distraction_factors(element, breakdown, element_type, page),
                breakdown=breakdown,
            )
        )
        logger.debug(f"Wasted-click score {element.id}: {score:.3f} ({element_type.value})")

    analyzed.sort(key=lambda w: (-w.wasted_click_score, w.element_id))
    flagged = [w for w in analyzed if w.wasted_click_score > HIGH_RISK_THRESHOLD]
    average = sum(w.wasted_click_score for w in flagged) / len(flagged) if flagged else 0.0

    field_ids = {e.id for e in elements if is_form_field(e)}
    form_context = form_context.model_copy(
        update={"insights": _form_context_insights(flagged, form_context, field_ids)}
    )

    analysis = WastedClickAnalysis(
        total_wasted_elements=len(flagged),
        elements_analyzed=len(analyzed),
        average_wasted_score=average,
        high_risk_elements=flagged,
        form_context=form_context,
        projected_improvements=project_improvements(flagged, primary_prediction, shares, form_context, context),
        recommendations=build_recommendations(flagged, form_context),
        insights=_global_insights(analyzed),
    )

    logger.info(
        f"Wasted-attention analysis: {len(flagged)}/{len(analyzed)} elements flagged "
        f"({form_context.type.value}), projected CTR +{analysis.projected_improvements.ctr_improvement:.1%}"
    )
    return EngineResult.success(analysis)
