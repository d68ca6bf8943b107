"""Conversion Prediction Engine Package

Deterministic, rule-based scoring pipeline:
- Feature Extractor: raw capture records -> PageElement variants
- Click Prediction Engine: per-element CTR, click share and wasted spend
- Wasted-Attention Analyzer: elements competing with the primary CTA
- Post-Click Factor Model: step-2 conversion rate from UX factors
- Funnel Probability Calculator: chained step rates and conversions

Every entry point returns an EngineResult; fallbacks are built by the caller.
"""

from .click_prediction_engine import predict_clicks
from .feature_extractor import build_page_context, derive_fold, extract_page_elements, normalize_element
from .funnel_calculator import (
    analyze_funnel_from_capture,
    calculate_funnel_metrics,
    create_funnel_step,
    create_initial_funnel_data,
    detect_primary_cta_type,
    extract_primary_cta,
    follow_primary_cta,
    get_primary_cta_performance,
    update_funnel_with_step2,
)
from .models import (
    AudienceWarmth,
    BoundingBox,
    ButtonElement,
    CaptureSnapshot,
    ClickPrediction,
    ClickPredictionReport,
    DeviceType,
    FieldElement,
    FormElement,
    FunnelData,
    FunnelStep,
    FunnelType,
    LinkElement,
    PageContext,
    PageElement,
    PostClickConfig,
    PostClickFactor,
    PostClickPrediction,
    PostClickStep,
    PredictionMode,
    WastedClickAnalysis,
)
from .post_click_model import (
    DEFAULT_POST_CLICK_FACTORS,
    analyze_factors_from_capture,
    analyze_message_match,
    calculate_logit_contribution,
    combine_factor_multipliers,
    create_step2_prediction,
    factor_multiplier,
    predict_all_steps,
    predict_step_rate,
)
from .results import (
    EngineError,
    EngineFailure,
    EngineResult,
    FailureKind,
    fallback_click_predictions,
    fallback_funnel_data,
    fallback_wasted_analysis,
)
from .wasted_click_analyzer import analyze_wasted_clicks

__all__ = [
    # Entry points
    "predict_clicks",
    "analyze_wasted_clicks",
    "create_step2_prediction",
    "analyze_funnel_from_capture",
    "update_funnel_with_step2",
    "calculate_funnel_metrics",
    # Extraction
    "extract_page_elements",
    "normalize_element",
    "derive_fold",
    "build_page_context",
    # Post-click math
    "DEFAULT_POST_CLICK_FACTORS",
    "factor_multiplier",
    "calculate_logit_contribution",
    "combine_factor_multipliers",
    "predict_step_rate",
    "predict_all_steps",
    "analyze_factors_from_capture",
    "analyze_message_match",
    # Funnel helpers
    "create_funnel_step",
    "create_initial_funnel_data",
    "detect_primary_cta_type",
    "extract_primary_cta",
    "follow_primary_cta",
    "get_primary_cta_performance",
    # Results
    "EngineResult",
    "EngineFailure",
    "EngineError",
    "FailureKind",
    "fallback_click_predictions",
    "fallback_wasted_analysis",
    "fallback_funnel_data",
    # Models
    "AudienceWarmth",
    "BoundingBox",
    "ButtonElement",
    "CaptureSnapshot",
    "ClickPrediction",
    "ClickPredictionReport",
    "DeviceType",
    "FieldElement",
    "FormElement",
    "FunnelData",
    "FunnelStep",
    "FunnelType",
    "LinkElement",
    "PageContext",
    "PageElement",
    "PostClickConfig",
    "PostClickFactor",
    "PostClickPrediction",
    "PostClickStep",
    "PredictionMode",
    "WastedClickAnalysis",
]
