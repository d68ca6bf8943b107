"""
CPC Estimator — estimated cost per click for wasted-spend calculations.

Derives the industry, business type, competition level and landing page
quality score from whatever the page context and captured text reveal, then
multiplies the industry CPC through every modifier. The result never drops
below MIN_REALISTIC_CPC.

Usage:
    context = enrich_context(context, page_text="Enterprise CRM dashboard ...")
    breakdown = estimate_cpc(context)
    wasted_spend = wasted_clicks * breakdown.final_cpc
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

from .constants import (
    B2B_CPC_MULTIPLIER,
    B2C_CPC_MULTIPLIER,
    COMPETITION_MODIFIERS,
    DEVICE_CPC_MODIFIERS,
    GEO_MODIFIERS,
    INDUSTRY_MODIFIERS,
    MIN_REALISTIC_CPC,
    QUALITY_SCORE_MODIFIERS,
    TRAFFIC_SOURCE_CPC,
)
from .models import (
    BusinessType,
    CpcBreakdown,
    Industry,
    PageContext,
    Seasonality,
    TimeOfDay,
    TrafficSource,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Keyword Tables
# ============================================================================

# Checked in order; the first matching group wins
URL_INDUSTRY_PATTERNS = [
    (Industry.SAAS, ["saas", "software", "app", "platform"]),
    (Industry.ECOMMERCE, ["shop", "store", "buy", "cart"]),
    (Industry.LEGAL, ["law", "legal", "attorney", "lawyer"]),
    (Industry.FINANCE, ["bank", "finance", "insurance", "loan"]),
    (Industry.TECHNOLOGY, ["tech", "ai", "cloud", "api"]),
    (Industry.REALESTATE, ["real", "property", "homes", "realty"]),
    (Industry.TRAVEL, ["travel", "hotel", "flight", "booking"]),
    (Industry.AUTOMOTIVE, ["auto", "car", "vehicle", "dealer"]),
]

INDUSTRY_KEYWORDS: Dict[Industry, List[str]] = {
    Industry.LEGAL: [
        "attorney", "lawyer", "legal", "law firm", "litigation", "lawsuit", "court",
        "legal advice", "legal services", "paralegal", "solicitor", "barrister",
        "personal injury", "criminal defense", "divorce", "custody", "estate planning",
        "contract law", "corporate law", "immigration law", "bankruptcy", "dui",
        "workers compensation", "medical malpractice", "wrongful death",
    ],
    Industry.FINANCE: [
        "bank", "banking", "loan", "mortgage", "insurance", "financial", "investment",
        "credit", "finance", "wealth management", "financial advisor", "retirement",
        "portfolio", "stocks", "bonds", "mutual funds", "ira", "401k", "annuity",
        "life insurance", "auto insurance", "home insurance", "health insurance",
        "business insurance", "liability insurance", "refinance", "equity",
    ],
    Industry.TECHNOLOGY: [
        "software", "technology", "tech", "ai", "artificial intelligence",
        "machine learning", "cloud", "api", "development", "programming", "coding",
        "app", "mobile app", "web development", "cybersecurity", "data", "analytics",
        "blockchain", "cryptocurrency", "digital transformation", "automation", "iot",
        "saas",
    ],
    Industry.SAAS: [
        "saas", "software as a service", "platform", "dashboard", "subscription",
        "cloud-based", "enterprise software", "business software", "crm", "erp",
        "project management", "collaboration", "productivity", "workflow",
        "integration", "scalable", "multi-tenant", "b2b software",
    ],
    Industry.ECOMMERCE: [
        "shop", "store", "buy", "purchase", "cart", "checkout", "product", "sale",
        "discount", "free shipping", "return policy", "customer reviews", "wishlist",
        "inventory", "catalog", "marketplace", "retail", "online store", "e-commerce",
        "payment", "secure checkout", "add to cart", "buy now",
    ],
    Industry.REALESTATE: [
        "real estate", "property", "homes", "house", "apartment", "condo", "rental",
        "buy home", "sell home", "mortgage", "realtor", "agent", "listing", "mls",
        "property management", "commercial real estate", "residential",
        "investment property", "home value", "market analysis", "closing",
    ],
    Industry.HEALTHCARE: [
        "doctor", "medical", "health", "healthcare", "clinic", "hospital", "physician",
        "dentist", "dental", "surgery", "treatment", "patient", "appointment",
        "medical practice", "specialist", "therapy", "diagnosis", "prescription",
        "insurance accepted", "telehealth", "urgent care",
    ],
    Industry.EDUCATION: [
        "education", "school", "university", "college", "course", "training", "learn",
        "student", "degree", "certification", "online learning", "e-learning",
        "tutorial", "class", "instructor", "curriculum", "academic", "scholarship",
        "enrollment", "tuition", "campus",
    ],
    Industry.TRAVEL: [
        "travel", "hotel", "flight", "booking", "vacation", "trip", "resort", "airline",
        "cruise", "tour", "destination", "accommodation", "reservation", "hospitality",
        "restaurant", "dining", "tourism", "adventure", "package deal",
    ],
    Industry.AUTOMOTIVE: [
        "auto", "car", "vehicle", "automotive", "dealership", "used cars", "new cars",
        "truck", "suv", "motorcycle", "parts", "service", "repair", "maintenance",
        "financing", "lease", "trade-in", "warranty", "insurance", "registration",
    ],
    Industry.CONSUMERSERVICES: [
        "service", "repair", "maintenance", "cleaning", "landscaping", "plumbing",
        "electrical", "hvac", "roofing", "painting", "construction", "renovation",
        "home improvement", "contractor", "handyman", "installation",
        "emergency service", "local service", "professional service", "licensed",
        "insured",
    ],
}

B2B_KEYWORDS = [
    "enterprise", "business", "corporate", "b2b", "professional", "organization",
    "company", "team", "workflow", "productivity", "collaboration", "integration",
    "scalable", "roi", "efficiency", "automation", "dashboard", "analytics",
]

B2C_KEYWORDS = [
    "personal", "individual", "family", "home", "consumer", "lifestyle", "everyday",
    "simple", "easy", "convenient", "affordable", "budget", "save money", "deal",
    "discount", "free trial", "no commitment",
]

B2B_INDUSTRIES = {Industry.SAAS, Industry.TECHNOLOGY, Industry.LEGAL, Industry.FINANCE,
                  Industry.LEADGEN, Industry.HEALTHCARE}
B2C_INDUSTRIES = {Industry.ECOMMERCE, Industry.TRAVEL, Industry.CONSUMERSERVICES}

HIGH_COMPETITION_INDUSTRIES = {Industry.LEGAL, Industry.FINANCE, Industry.CONSUMERSERVICES,
                               Industry.SAAS, Industry.HEALTHCARE}
MEDIUM_COMPETITION_INDUSTRIES = {Industry.TECHNOLOGY, Industry.AUTOMOTIVE, Industry.REALESTATE}
LOW_COMPETITION_INDUSTRIES = {Industry.CONTENT, Industry.TRAVEL}

MIN_INDUSTRY_KEYWORD_SCORE = 3
MIN_BUSINESS_KEYWORD_SCORE = 2


# ============================================================================
# Detection
# ============================================================================

def keyword_density(text: str, keywords: Iterable[str]) -> float:
    """Whole-word keyword hits; multi-word phrases count 1.5x."""
    matches = 0.0
    for keyword in keywords:
        pattern = r"\b" + r"\s+".join(re.escape(word) for word in keyword.split()) + r"\b"
        hits = len(re.findall(pattern, text, re.IGNORECASE))
        matches += hits
        if " " in keyword and hits:
            matches += hits * 0.5
    return matches


def detect_industry_from_url(url: str) -> Optional[Industry]:
    url_lower = (url or "").lower()
    for industry, patterns in URL_INDUSTRY_PATTERNS:
        if any(p in url_lower for p in patterns):
            return industry
    return None


def detect_industry_from_text(text: str) -> Optional[Industry]:
    """Industry with the highest keyword density, if it reaches the minimum score."""
    if not text:
        return None
    scores = {industry: keyword_density(text, words) for industry, words in INDUSTRY_KEYWORDS.items()}
    top_industry = max(scores, key=scores.get)
    if scores[top_industry] >= MIN_INDUSTRY_KEYWORD_SCORE:
        return top_industry
    return None


def detect_business_type(context: PageContext, page_text: str = "") -> BusinessType:
    if context.industry in B2B_INDUSTRIES:
        return BusinessType.B2B
    if context.industry in B2C_INDUSTRIES:
        return BusinessType.B2C

    if context.traffic_source == TrafficSource.LINKEDIN:
        return BusinessType.B2B
    if context.traffic_source == TrafficSource.SOCIAL:
        return BusinessType.B2C

    url_lower = context.url.lower()
    if any(word in url_lower for word in ("enterprise", "business", "b2b", "corporate")):
        return BusinessType.B2B
    if any(word in url_lower for word in ("consumer", "personal", "individual")):
        return BusinessType.B2C

    if page_text:
        b2b_score = keyword_density(page_text, B2B_KEYWORDS)
        b2c_score = keyword_density(page_text, B2C_KEYWORDS)
        if b2b_score > b2c_score and b2b_score >= MIN_BUSINESS_KEYWORD_SCORE:
            return BusinessType.B2B
        if b2c_score > b2b_score and b2c_score >= MIN_BUSINESS_KEYWORD_SCORE:
            return BusinessType.B2C

    return BusinessType.UNKNOWN


def estimate_competition_level(context: PageContext) -> str:
    if context.industry in HIGH_COMPETITION_INDUSTRIES:
        return "high"
    if context.industry in MEDIUM_COMPETITION_INDUSTRIES:
        return "medium"
    if context.industry in LOW_COMPETITION_INDUSTRIES:
        return "low"
    if context.competitor_presence:
        return "high"
    return "medium"


def estimate_quality_score(context: PageContext) -> str:
    """Landing page quality tier from speed, trust signals, brand and ad match."""
    score = 0.0
    if context.load_time <= 2:
        score += 2
    elif context.load_time <= 3:
        score += 1
    elif context.load_time >= 5:
        score -= 1

    score += sum(1 for flag in (context.has_ssl, context.has_trust_badges, context.has_testimonials) if flag)
    score += context.brand_recognition * 2

    if context.ad_message_match > 0.8:
        score += 2
    elif context.ad_message_match > 0.6:
        score += 1

    if score >= 6:
        return "excellent"
    if score >= 4:
        return "good"
    if score >= 2:
        return "average"
    return "poor"


def _time_multiplier(context: PageContext) -> float:
    multiplier = 1.0
    if context.time_of_day in (TimeOfDay.MORNING, TimeOfDay.AFTERNOON):
        multiplier *= 1.1
    if context.seasonality == Seasonality.HIGH:
        multiplier *= 1.2
    elif context.seasonality == Seasonality.LOW:
        multiplier *= 0.85
    return multiplier


# ============================================================================
# Estimation
# ============================================================================

def enrich_context(context: PageContext, page_text: str = "") -> PageContext:
    """Fill in industry and business type when the caller left them unset."""
    updates = {}
    industry = context.industry
    if industry is None:
        industry = detect_industry_from_url(context.url) or detect_industry_from_text(page_text)
        if industry is not None:
            updates["industry"] = industry

    if context.business_type is None:
        probe = context.model_copy(update={"industry": industry})
        updates["business_type"] = detect_business_type(probe, page_text)

    if not updates:
        return context
    logger.debug(f"Enriched page context: {updates}")
    return context.model_copy(update=updates)


def estimate_cpc(context: PageContext) -> CpcBreakdown:
    """Estimated CPC with every multiplier that produced it."""
    industry_cpc = MIN_REALISTIC_CPC
    if context.industry is not None and context.industry.value in INDUSTRY_MODIFIERS:
        industry_cpc = max(INDUSTRY_MODIFIERS[context.industry.value]["avg_cpc"], MIN_REALISTIC_CPC)

    business_type = context.business_type or BusinessType.UNKNOWN
    business_multiplier = B2B_CPC_MULTIPLIER if business_type == BusinessType.B2B else B2C_CPC_MULTIPLIER
    traffic_multiplier = TRAFFIC_SOURCE_CPC.get(context.traffic_source.value, 0.3)
    device_multiplier = DEVICE_CPC_MODIFIERS.get(context.device_type.value, 1.0)
    competition_level = estimate_competition_level(context)
    competition_multiplier = COMPETITION_MODIFIERS[competition_level]
    quality_score = estimate_quality_score(context)
    quality_multiplier = QUALITY_SCORE_MODIFIERS[quality_score]
    geo_multiplier = GEO_MODIFIERS["tier1"]
    time_multiplier = _time_multiplier(context)

    final_cpc = max(
        industry_cpc
        * business_multiplier
        * traffic_multiplier
        * device_multiplier
        * competition_multiplier
        * quality_multiplier
        * geo_multiplier
        * time_multiplier,
        MIN_REALISTIC_CPC,
    )

    return CpcBreakdown(
        base_cpc=industry_cpc,
        business_type=business_type.value,
        business_multiplier=business_multiplier,
        traffic_source_multiplier=traffic_multiplier,
        device_multiplier=device_multiplier,
        competition_level=competition_level,
        competition_multiplier=competition_multiplier,
        quality_score=quality_score,
        quality_multiplier=quality_multiplier,
        geo_multiplier=geo_multiplier,
        time_multiplier=time_multiplier,
        final_cpc=final_cpc,
    )
