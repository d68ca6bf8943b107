"""
Result and failure types returned by every engine entry point.

Engine functions never raise for bad input and never return an empty or
zeroed result in place of an error: they return ``EngineResult.fail(...)``
with a typed ``FailureKind``. The calling boundary decides whether to
substitute one of the fallback constructors below, which are pure functions
of the failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from .models import (
    ClickPrediction,
    ClickPredictionReport,
    ConfidenceLevel,
    FunnelData,
    FunnelType,
    PageElement,
    PredictionMetadata,
    ReliabilityAssessment,
    WastedClickAnalysis,
)

T = TypeVar("T")

FALLBACK_CTR = 0.05


class FailureKind(str, Enum):
    INSUFFICIENT_DATA = "insufficient_data"
    INVALID_CONTEXT = "invalid_context"
    UNRESOLVABLE_NAVIGATION = "unresolvable_navigation"


class EngineFailure(BaseModel):
    model_config = {"frozen": True}

    kind: FailureKind
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class EngineError(Exception):
    """Raised by ``EngineResult.unwrap()`` on a failed result."""

    def __init__(self, failure: EngineFailure):
        self.failure = failure
        super().__init__(f"{failure.kind.value}: {failure.message}")


@dataclass(frozen=True)
class EngineResult(Generic[T]):
    """Either a value or a failure, never both.

    Always structured: callers check ``ok`` (or call ``unwrap()``) instead of
    catching exceptions.
    """
    value: Optional[T] = None
    failure: Optional[EngineFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self) -> T:
        if self.failure is not None:
            raise EngineError(self.failure)
        return self.value

    @classmethod
    def success(cls, value: T) -> "EngineResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, kind: FailureKind, message: str, **details: Any) -> "EngineResult[T]":
        return cls(failure=EngineFailure(kind=kind, message=message, details=details))


# ============================================================================
# Fallback Constructors
# ============================================================================

def fallback_click_predictions(
    failure: EngineFailure,
    elements: Optional[List[PageElement]] = None,
    total_impressions: int = 1000,
) -> ClickPredictionReport:
    """Conservative, clearly labelled predictions for a failed prediction run.

    Every supplied element gets the baseline CTR, an even click share, zero
    wasted spend and ``low`` confidence.
    """
    elements = list(elements or [])
    impressions = max(int(total_impressions), 0)
    share = 1.0 / len(elements) if elements else 0.0
    clicks = impressions * FALLBACK_CTR

    predictions = [
        ClickPrediction(
            element_id=element.id,
            text=element.text,
            kind=element.kind,
            tag_name=element.tag_name,
            bounds=element.bounds,
            predicted_clicks=clicks,
            ctr=FALLBACK_CTR,
            click_share=share,
            estimated_clicks=int(round(clicks)),
            wasted_clicks=0,
            wasted_spend=0.0,
            avg_cpc=0.0,
            confidence=ConfidenceLevel.LOW,
            risk_factors=[f"Fallback estimate: {failure.message}"],
        )
        for element in elements
    ]

    return ClickPredictionReport(
        predictions=predictions,
        metadata=PredictionMetadata(
            total_elements=len(elements),
            analyzed_elements=0,
            interactive_elements=0,
            form_fields=0,
            total_clicks=clicks * len(elements),
            bounce_rate=0.0,
            estimated_cpc=0.0,
            data_completeness=0.0,
        ),
        reliability=ReliabilityAssessment(
            score=0.0,
            level=ConfidenceLevel.LOW,
            factors=[failure.message],
        ),
        warnings=[f"Fallback used ({failure.kind.value}): {failure.message}"],
        is_fallback=True,
        fallback_reason=failure.kind.value,
    )


def fallback_wasted_analysis(failure: EngineFailure) -> WastedClickAnalysis:
    """An empty, labelled wasted-attention analysis."""
    return WastedClickAnalysis(
        insights=[f"Wasted-attention analysis unavailable: {failure.message}"],
        is_fallback=True,
        fallback_reason=failure.kind.value,
    )


def fallback_funnel_data(
    failure: EngineFailure,
    url: str = "",
    initial_visitors: int = 1000,
) -> FunnelData:
    """A labelled funnel with no conversions and the failure as its error."""
    return FunnelData(
        url=url,
        type=FunnelType.NONE,
        n1=max(int(initial_visitors), 0),
        error=failure.message,
        is_fallback=True,
    )
