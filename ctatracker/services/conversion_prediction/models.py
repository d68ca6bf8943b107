"""
Pydantic models for conversion prediction and funnel modeling.

These models provide immutable, validated data structures for:
- Page structure (PageElement variants, PageContext)
- Click predictions (ClickPrediction, ClickPredictionReport)
- Wasted-attention diagnosis (WastedClickAnalysis)
- Post-click factor modeling (PostClickFactor, PostClickStep, PostClickPrediction)
- Funnel modeling (FunnelStep, FunnelData, NavigationTarget)
- Capture snapshots produced by the page capture layer (CaptureSnapshot)

Every model is frozen: an analysis builds fresh instances and never mutates
them afterwards.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .constants import DEVICE_VIEWPORTS
from .helpers import clamp01, non_negative


_FROZEN = {"frozen": True}


# ============================================================================
# Enums
# ============================================================================

class ElementKind(str, Enum):
    """Closed set of page element variants."""
    BUTTON = "button"
    LINK = "link"
    FORM = "form"
    FIELD = "field"


class DeviceType(str, Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"


class TrafficSource(str, Enum):
    ORGANIC = "organic"
    PAID = "paid"
    SOCIAL = "social"
    EMAIL = "email"
    DIRECT = "direct"
    REFERRAL = "referral"
    LINKEDIN = "linkedin"
    UNKNOWN = "unknown"


class Industry(str, Enum):
    SAAS = "saas"
    ECOMMERCE = "ecommerce"
    LEADGEN = "leadgen"
    CONTENT = "content"
    LEGAL = "legal"
    FINANCE = "finance"
    TECHNOLOGY = "technology"
    AUTOMOTIVE = "automotive"
    REALESTATE = "realestate"
    TRAVEL = "travel"
    CONSUMERSERVICES = "consumerservices"
    EDUCATION = "education"
    HEALTHCARE = "healthcare"


class BusinessType(str, Enum):
    B2B = "b2b"
    B2C = "b2c"
    UNKNOWN = "unknown"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class DayOfWeek(str, Enum):
    WEEKDAY = "weekday"
    WEEKEND = "weekend"


class Seasonality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AudienceWarmth(str, Enum):
    """Visitor-intent tier used to scale baseline conversion rates."""
    COLD = "cold"
    MIXED = "mixed"
    WARM = "warm"


class PredictionMode(str, Enum):
    MULTIPLICATIVE = "multiplicative"
    LOGIT = "logit"


class FunnelType(str, Enum):
    FORM = "form"
    NON_FORM = "non-form"
    NONE = "none"


class CtaElementType(str, Enum):
    BUTTON = "button"
    LINK = "link"
    FORM = "form"


class WastedClickType(str, Enum):
    """Why a non-primary element competes with the primary CTA."""
    BLOG = "blog"
    NAVIGATION = "navigation"
    SOCIAL = "social"
    FOOTER = "footer"
    SIDEBAR = "sidebar"
    MODAL = "modal"
    EXTERNAL = "external"
    ADDITIONAL_CTA = "additional-cta"
    FORM_RELATED = "form-related"
    DOWNLOAD = "download"
    CHAT = "chat"
    RESOURCE = "resource"


class ElementClassification(str, Enum):
    SUPPORTIVE = "supportive"
    NEUTRAL = "neutral"
    WASTED = "wasted"


class CtaContextType(str, Enum):
    FORM_CTA = "form-cta"
    NON_FORM_CTA = "non-form-cta"


class ImplementationDifficulty(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"


class RecommendationCategory(str, Enum):
    QUICK_WINS = "Quick Wins"
    FORM_FIXES = "Form Fixes"
    STRUCTURAL_CHANGES = "Structural Changes"


# ============================================================================
# Geometry
# ============================================================================

class BoundingBox(BaseModel):
    """Element geometry in page pixels. Negative or non-numeric input clamps to 0."""
    model_config = _FROZEN

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @field_validator("x", "y", "width", "height", mode="before")
    @classmethod
    def clamp_non_negative(cls, v: Any) -> float:
        return non_negative(v)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def has_area(self) -> bool:
        return self.width > 0 and self.height > 0


class Size(BaseModel):
    model_config = _FROZEN

    width: float = 0.0
    height: float = 0.0

    @field_validator("width", "height", mode="before")
    @classmethod
    def clamp_non_negative(cls, v: Any) -> float:
        return non_negative(v)


# ============================================================================
# Page Elements (closed tagged union)
# ============================================================================

class _ElementBase(BaseModel):
    model_config = _FROZEN

    id: str
    tag_name: str = ""
    text: str = ""
    class_name: str = ""
    bounds: BoundingBox = Field(default_factory=BoundingBox)

    is_visible: bool = True
    is_above_fold: bool = False
    distance_from_top: float = 0.0
    is_interactive: bool = True
    has_button_styling: bool = False
    has_high_contrast: bool = False

    # Decorative / noise flags
    is_decorative: bool = False
    has_visual_noise: bool = False
    has_nearby_cta: bool = False
    has_multiple_competing_elements: bool = False
    is_auto_rotating: bool = False
    is_sticky: bool = False
    autoplay: bool = False
    z_index: Optional[int] = None

    defaulted_fields: List[str] = Field(
        default_factory=list,
        description="Attributes the extractor had to default (text, coordinates, type)"
    )

    @field_validator("distance_from_top", mode="before")
    @classmethod
    def clamp_distance(cls, v: Any) -> float:
        return non_negative(v)

    @property
    def href_value(self) -> Optional[str]:
        return getattr(self, "href", None)

    @property
    def is_form_field(self) -> bool:
        return self.kind == ElementKind.FIELD.value


class ButtonElement(_ElementBase):
    kind: Literal["button"] = "button"
    button_type: str = "button"
    form_action: Optional[str] = None
    href: Optional[str] = None


class LinkElement(_ElementBase):
    kind: Literal["link"] = "link"
    href: Optional[str] = None


class FormElement(_ElementBase):
    kind: Literal["form"] = "form"
    form_action: Optional[str] = None
    method: str = "get"
    field_count: int = 0
    has_submit_button: bool = False


class FieldElement(_ElementBase):
    kind: Literal["field"] = "field"
    input_type: str = "text"
    name: str = ""
    required: bool = False
    label: str = ""
    placeholder: str = ""
    has_autocomplete: bool = False
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None


PageElement = Annotated[
    Union[ButtonElement, LinkElement, FormElement, FieldElement],
    Field(discriminator="kind"),
]


# ============================================================================
# Page Context
# ============================================================================

class PageContext(BaseModel):
    """Page-level metadata used to calibrate predictions. Immutable per call."""
    model_config = _FROZEN

    url: str = ""
    total_impressions: int = 1000
    traffic_source: TrafficSource = TrafficSource.UNKNOWN
    device_type: DeviceType = DeviceType.DESKTOP
    industry: Optional[Industry] = None
    business_type: Optional[BusinessType] = None
    time_of_day: Optional[TimeOfDay] = None
    day_of_week: Optional[DayOfWeek] = None
    seasonality: Optional[Seasonality] = None
    competitor_presence: bool = False
    brand_recognition: float = 0.5
    load_time: float = 3.0
    ad_message_match: float = 0.7
    has_ssl: bool = True
    has_trust_badges: bool = False
    has_testimonials: bool = False
    page_complexity: float = 50.0
    viewport_width: int = 1920
    viewport_height: int = 1080
    fold_line: int = 1000
    monthly_traffic: int = 10000
    avg_order_value: float = 100.0
    elements: List[PageElement] = Field(default_factory=list)

    @field_validator("brand_recognition", mode="before")
    @classmethod
    def clamp_brand_recognition(cls, v: Any) -> float:
        return clamp01(v, default=0.5)

    @field_validator("ad_message_match", mode="before")
    @classmethod
    def clamp_message_match(cls, v: Any) -> float:
        return clamp01(v, default=0.7)

    @field_validator("load_time", "page_complexity", "avg_order_value", mode="before")
    @classmethod
    def clamp_non_negative(cls, v: Any) -> float:
        return non_negative(v)

    @classmethod
    def for_device(cls, device: Union[DeviceType, str] = DeviceType.DESKTOP, **kwargs) -> "PageContext":
        """Build a context with the viewport and fold line of ``device``."""
        device = DeviceType(device)
        viewport = DEVICE_VIEWPORTS[device.value]
        values = {
            "device_type": device,
            "viewport_width": viewport["width"],
            "viewport_height": viewport["height"],
            "fold_line": viewport["fold_line"],
        }
        values.update(kwargs)
        return cls(**values)


# ============================================================================
# Click Prediction Models
# ============================================================================

class WasteBreakdown(BaseModel):
    """Per-element waste rate by phase, for auditability."""
    model_config = _FROZEN

    base_waste_rate: float = 0.0
    element_classification: float = 0.0
    attention_ratio_waste: float = 0.0
    visual_emphasis: float = 0.0
    content_clutter: float = 0.0
    legacy_quality: float = 0.0
    total_waste_rate: float = 0.0
    capped_waste_rate: float = 0.0
    element_category: str = "unknown"
    attention_ratio: Optional[float] = None
    visual_factors: List[str] = Field(default_factory=list)
    clutter_factors: List[str] = Field(default_factory=list)
    legacy_factors: List[str] = Field(default_factory=list)


class ClickPrediction(BaseModel):
    """Predicted click behavior for one element. ``ctr`` is a decimal in [0, 1]."""
    model_config = _FROZEN

    element_id: str
    text: str = ""
    kind: ElementKind = ElementKind.BUTTON
    tag_name: str = ""
    bounds: Optional[BoundingBox] = None
    predicted_clicks: float = 0.0
    ctr: float = 0.0
    click_share: float = 0.0
    raw_score: float = 0.0
    estimated_clicks: int = 0
    wasted_clicks: int = 0
    wasted_spend: float = 0.0
    avg_cpc: float = 0.0
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    risk_factors: List[str] = Field(default_factory=list)
    waste_breakdown: Optional[WasteBreakdown] = None
    form_completion_rate: Optional[float] = None
    lead_count: Optional[int] = None
    bottleneck_field: Optional[str] = None

    @field_validator("ctr", mode="before")
    @classmethod
    def clamp_ctr(cls, v: Any) -> float:
        return clamp01(v)

    @field_validator("click_share", "predicted_clicks", "wasted_spend", "avg_cpc", mode="before")
    @classmethod
    def clamp_non_negative(cls, v: Any) -> float:
        return non_negative(v)


class FieldCompletion(BaseModel):
    model_config = _FROZEN

    field_id: str
    label: str = ""
    completion_rate: float
    dropoff_rate: float


class FormBottleneckAnalysis(BaseModel):
    model_config = _FROZEN

    bottleneck_field: Optional[str] = None
    bottleneck_completion_rate: float = 0.0
    completion_rate: float = 0.0
    form_clicks: float = 0.0
    field_breakdown: List[FieldCompletion] = Field(default_factory=list)
    above_fold_fields: int = 0
    below_fold_fields: int = 0
    recommended_optimizations: List[str] = Field(default_factory=list)


class CpcBreakdown(BaseModel):
    model_config = _FROZEN

    base_cpc: float
    business_type: str
    business_multiplier: float
    traffic_source_multiplier: float
    device_multiplier: float
    competition_level: str
    competition_multiplier: float
    quality_score: str
    quality_multiplier: float
    geo_multiplier: float
    time_multiplier: float
    final_cpc: float


class PredictionMetadata(BaseModel):
    """Diagnostic envelope for a prediction run. Holds no wall-clock values."""
    model_config = _FROZEN

    total_elements: int
    analyzed_elements: int
    interactive_elements: int
    form_fields: int
    total_clicks: float
    bounce_rate: float
    estimated_cpc: float
    cpc_breakdown: Optional[CpcBreakdown] = None
    traffic_modifier: float = 1.0
    device_modifier: float = 1.0
    industry_cta_modifier: float = 1.0
    data_completeness: float = 1.0
    defaulted_elements: int = 0


class ReliabilityAssessment(BaseModel):
    model_config = _FROZEN

    score: float
    level: ConfidenceLevel
    factors: List[str] = Field(default_factory=list)


class ClickPredictionReport(BaseModel):
    model_config = _FROZEN

    predictions: List[ClickPrediction]
    metadata: PredictionMetadata
    reliability: ReliabilityAssessment
    warnings: List[str] = Field(default_factory=list)
    form_analysis: Optional[FormBottleneckAnalysis] = None
    is_fallback: bool = False
    fallback_reason: Optional[str] = None

    def prediction_for(self, element_id: str) -> Optional[ClickPrediction]:
        for prediction in self.predictions:
            if prediction.element_id == element_id:
                return prediction
        return None


# ============================================================================
# Wasted-Attention Models
# ============================================================================

class WastedClickBreakdown(BaseModel):
    model_config = _FROZEN

    distraction_factor: float = 0.0
    visibility_weight: float = 0.0
    attractiveness: float = 0.0
    intent_mismatch: float = 0.0
    path_loop: float = 0.0
    clarity: float = 0.0
    timing: float = 0.0
    fold_weight: float = 1.0
    duplication_factor: float = 1.0
    direct_response_penalty: float = 1.0
    click_distraction_index: float = 0.0
    click_budget_risk: float = 0.0
    loopback: float = 0.0
    competition_signal: float = 0.0
    noise_penalty: float = 0.0
    form_context_multiplier: float = 1.0


class WastedElement(BaseModel):
    model_config = _FROZEN

    element_id: str
    text: str = ""
    type: WastedClickType
    wasted_click_score: float
    recommendation: str
    classification: ElementClassification
    distraction_factors: List[str] = Field(default_factory=list)
    breakdown: WastedClickBreakdown


class FormContext(BaseModel):
    model_config = _FROZEN

    type: CtaContextType
    form_field_count: int = 0
    primary_cta_text: str = ""
    insights: List[str] = Field(default_factory=list)


class ProjectedImprovements(BaseModel):
    model_config = _FROZEN

    ctr_improvement: float = 0.0
    revenue_impact: float = 0.0
    implementation_difficulty: ImplementationDifficulty = ImplementationDifficulty.EASY
    priority_score: int = 0
    projected_ctr: float = 0.0
    baseline_click_share: float = 0.0
    projected_click_share: float = 0.0


class Recommendation(BaseModel):
    model_config = _FROZEN

    title: str
    description: str
    category: RecommendationCategory
    effort: str
    impact: str
    confidence: int
    element_ids: List[str] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> int:
        value = non_negative(v, default=50.0)
        return int(round(max(50.0, min(90.0, value))))


class WastedClickAnalysis(BaseModel):
    model_config = _FROZEN

    total_wasted_elements: int = 0
    elements_analyzed: int = 0
    average_wasted_score: float = 0.0
    high_risk_elements: List[WastedElement] = Field(default_factory=list)
    form_context: Optional[FormContext] = None
    projected_improvements: ProjectedImprovements = Field(default_factory=ProjectedImprovements)
    recommendations: List[Recommendation] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)
    is_fallback: bool = False
    fallback_reason: Optional[str] = None


# ============================================================================
# Post-Click Models
# ============================================================================

class PostClickFactor(BaseModel):
    """A UX-quality signal with its implementation score and maximum lift."""
    model_config = _FROZEN

    factor: str
    score: float = Field(ge=0.0, le=1.0)
    max_lift: float
    note: Optional[str] = None

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> float:
        return clamp01(v)


class PostClickStep(BaseModel):
    model_config = _FROZEN

    step_name: str
    cold_base_rate: float
    audience: AudienceWarmth = AudienceWarmth.COLD
    upper_cap: Optional[float] = None

    @field_validator("cold_base_rate", mode="before")
    @classmethod
    def clamp_base_rate(cls, v: Any) -> float:
        return clamp01(v)


class PostClickConfig(BaseModel):
    model_config = _FROZEN

    mode: PredictionMode = PredictionMode.MULTIPLICATIVE
    apply_cap: bool = True
    audience_multipliers: Dict[AudienceWarmth, float] = Field(
        default_factory=lambda: {
            AudienceWarmth.COLD: 1.0,
            AudienceWarmth.MIXED: 1.5,
            AudienceWarmth.WARM: 2.5,
        }
    )


class PostClickPrediction(BaseModel):
    """Every intermediate quantity of a post-click prediction."""
    model_config = _FROZEN

    step_name: str
    audience: AudienceWarmth
    mode: PredictionMode = PredictionMode.MULTIPLICATIVE
    cold_base_rate: float
    warmth_multiplier_applied: float
    adjusted_base_rate: float
    combined_factor_multiplier: float
    logit_shift: Optional[float] = None
    upper_cap: Optional[float] = None
    raw_predicted_rate: float
    predicted_rate: float
    cap_applied: bool = False
    factors_analyzed: List[PostClickFactor] = Field(default_factory=list)


# ============================================================================
# Capture Snapshot (structural data from the capture layer)
# ============================================================================

class DomButton(BaseModel):
    model_config = _FROZEN

    text: Optional[str] = None
    type: Optional[str] = None
    class_name: str = ""
    id: str = ""
    href: Optional[str] = None
    is_visible: bool = True
    is_above_fold: Optional[bool] = None
    form_action: Optional[str] = None
    distance_from_top: Optional[float] = None
    coordinates: Optional[BoundingBox] = None


class DomLink(BaseModel):
    model_config = _FROZEN

    text: Optional[str] = None
    href: Optional[str] = None
    class_name: str = ""
    id: str = ""
    is_visible: bool = True
    is_above_fold: Optional[bool] = None
    has_button_styling: bool = False
    distance_from_top: Optional[float] = None
    coordinates: Optional[BoundingBox] = None


class DomFormInput(BaseModel):
    model_config = _FROZEN

    type: str = "text"
    name: str = ""
    required: bool = False
    placeholder: Optional[str] = None


class DomForm(BaseModel):
    model_config = _FROZEN

    action: Optional[str] = None
    method: str = "get"
    inputs: List[DomFormInput] = Field(default_factory=list)
    has_submit_button: bool = False
    submit_button_text: Optional[str] = None
    is_above_fold: Optional[bool] = None
    distance_from_top: Optional[float] = None
    coordinates: Optional[BoundingBox] = None


class DomFormField(BaseModel):
    model_config = _FROZEN

    type: Optional[str] = None
    name: str = ""
    value: str = ""
    required: bool = False
    coordinates: Optional[BoundingBox] = None
    attributes: Dict[str, str] = Field(default_factory=dict)


class DomHeading(BaseModel):
    model_config = _FROZEN

    text: str = ""
    level: int = 1
    is_above_fold: Optional[bool] = None
    coordinates: Optional[BoundingBox] = None


class DomImage(BaseModel):
    model_config = _FROZEN

    src: str = ""
    alt: str = ""
    loading: Optional[str] = None
    is_above_fold: Optional[bool] = None
    coordinates: Optional[BoundingBox] = None


class DomMeta(BaseModel):
    model_config = _FROZEN

    name: str = ""
    content: str = ""


class DomSnapshot(BaseModel):
    """Structural DOM data extracted by the capture layer."""
    model_config = _FROZEN

    title: str = ""
    url: str = ""
    buttons: List[DomButton] = Field(default_factory=list)
    links: List[DomLink] = Field(default_factory=list)
    forms: List[DomForm] = Field(default_factory=list)
    form_fields: List[DomFormField] = Field(default_factory=list)
    headings: List[DomHeading] = Field(default_factory=list)
    images: List[DomImage] = Field(default_factory=list)
    scripts: List[str] = Field(default_factory=list)
    meta: List[DomMeta] = Field(default_factory=list)
    styles: List[str] = Field(default_factory=list)
    fold_line: Optional[int] = None

    def is_empty(self) -> bool:
        return not (self.buttons or self.links or self.forms or self.headings)


class PrimaryCtaInsight(BaseModel):
    """The primary CTA as identified by the (external) detection step."""
    model_config = _FROZEN

    text: str = ""
    confidence: float = 0.8
    has_form: bool = False
    is_form_associated: Optional[bool] = None
    is_form_related: bool = False
    reasoning: str = ""
    element_type: CtaElementType = CtaElementType.BUTTON
    alternative_texts: List[str] = Field(default_factory=list)
    href: Optional[str] = None
    element_id: Optional[str] = None
    coordinates: Optional[BoundingBox] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        return clamp01(v, default=0.8)


class CaptureSnapshot(BaseModel):
    """One captured page: DOM structure, detected primary CTA and any predictions."""
    model_config = _FROZEN

    url: str = ""
    dom: DomSnapshot = Field(default_factory=DomSnapshot)
    primary_cta: Optional[PrimaryCtaInsight] = None
    primary_cta_prediction: Optional[ClickPrediction] = None
    click_predictions: List[ClickPrediction] = Field(default_factory=list)
    image_size: Optional[Size] = None
    display_size: Optional[Size] = None
    is_mobile: bool = False


# ============================================================================
# Funnel Models
# ============================================================================

class NavigationTarget(BaseModel):
    model_config = _FROZEN

    next_url: str
    reason: str
    followable: bool = False


class CtaPerformance(BaseModel):
    """Primary CTA performance at the presentation boundary (``ctr_percent`` in %)."""
    model_config = _FROZEN

    ctr_percent: float
    predicted_clicks: float
    wasted_spend: float = 0.0
    wasted_clicks: int = 0
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    text: str = "Unknown CTA"
    is_fallback: bool = False


class FunnelStep(BaseModel):
    """One captured page in a funnel. ``predicted_ctr`` is a percentage (e.g. 20.2)."""
    model_config = _FROZEN

    url: str
    cta_text: str = ""
    cta_type: CtaElementType = CtaElementType.BUTTON
    predicted_ctr: float = 0.0
    predicted_clicks: float = 0.0
    post_click_prediction: Optional[PostClickPrediction] = None

    @field_validator("predicted_ctr", mode="before")
    @classmethod
    def clamp_percent(cls, v: Any) -> float:
        return min(100.0, non_negative(v))


class FunnelMetrics(BaseModel):
    model_config = _FROZEN

    n1: int
    p1: float = 0.0
    n2: int = 0
    p2: float = 0.0
    p_total: float = 0.0
    n_conv: int = 0


class FunnelData(BaseModel):
    """End-to-end funnel estimate. ``p1``, ``p2`` and ``p_total`` are decimals."""
    model_config = _FROZEN

    url: str = ""
    type: FunnelType = FunnelType.NONE
    step1: Optional[FunnelStep] = None
    step2: Optional[FunnelStep] = None
    n1: int = 1000
    p1: float = 0.0
    n2: int = 0
    p2: float = 0.0
    p_total: float = 0.0
    n_conv: int = 0
    error: Optional[str] = None
    is_fallback: bool = False
