"""
ConversionAnalysisService - calling boundary around the conversion prediction engine.

This service owns everything the pure engine must not:
- Loading capture snapshots (with a bounded retry policy for I/O)
- An explicitly passed result cache keyed by (url, device, primary element id)
- Substituting labelled fallbacks when an engine call returns a failure

Part of the Service Layer - contains orchestration, no scoring logic.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Hashable, List, Optional, Sequence, Tuple, Union

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.config import Config
from .conversion_prediction import (
    AudienceWarmth,
    CaptureSnapshot,
    ClickPredictionReport,
    FunnelData,
    FunnelType,
    PageContext,
    WastedClickAnalysis,
    analyze_funnel_from_capture,
    analyze_wasted_clicks,
    build_page_context,
    create_funnel_step,
    create_step2_prediction,
    fallback_click_predictions,
    fallback_funnel_data,
    fallback_wasted_analysis,
    follow_primary_cta,
    predict_clicks,
    update_funnel_with_step2,
)
from .conversion_prediction.results import EngineFailure

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, Optional[str]]


# ============================================================================
# Cache
# ============================================================================

class AnalysisCache(ABC):
    """Result cache owned by the caller."""

    @abstractmethod
    def get(self, key: Hashable) -> Optional[Any]:
        pass

    @abstractmethod
    def put(self, key: Hashable, value: Any) -> None:
        pass


class InMemoryAnalysisCache(AnalysisCache):
    """Least-recently-used cache bounded to ``max_entries`` (0 disables caching)."""

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = Config.CACHE_MAX_ENTRIES if max_entries is None else max_entries
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()

    def get(self, key: Hashable) -> Optional[Any]:
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: Hashable, value: Any) -> None:
        if self.max_entries <= 0:
            return
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


# ============================================================================
# Retry Policy
# ============================================================================

@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential-backoff retry for I/O callables."""
    max_attempts: int = 3
    multiplier: float = 2
    min_wait: float = 2
    max_wait: float = 8
    retry_on: Tuple[type, ...] = (OSError, TimeoutError)

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(
            max_attempts=Config.RETRY_MAX_ATTEMPTS,
            min_wait=Config.RETRY_MIN_WAIT,
            max_wait=Config.RETRY_MAX_WAIT,
        )

    def call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run ``fn``; retry on ``retry_on`` errors and re-raise the last one."""
        retryer = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.multiplier, min=self.min_wait, max=self.max_wait),
            retry=retry_if_exception_type(self.retry_on),
            reraise=True,
        )
        return retryer(fn, *args, **kwargs)


# ============================================================================
# Results
# ============================================================================

@dataclass
class PageAnalysis:
    """Click predictions and wasted-attention analysis for one captured page."""
    url: str
    context: PageContext
    report: ClickPredictionReport
    wasted: Optional[WastedClickAnalysis] = None
    primary_element_id: Optional[str] = None
    failures: List[EngineFailure] = field(default_factory=list)

    @property
    def is_fallback(self) -> bool:
        return bool(self.failures)


# ============================================================================
# Service
# ============================================================================

def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class ConversionAnalysisService:
    """
    Runs extractor -> click prediction -> wasted-attention analysis, and the
    funnel model, substituting labelled fallbacks for engine failures.

    Example usage:
        service = ConversionAnalysisService(cache=InMemoryAnalysisCache())
        snapshot = service.load_snapshot("capture.json")
        analysis = service.analyze_page(snapshot, device="mobile")
        print(analysis.report.predictions[0].ctr)
    """

    def __init__(
        self,
        cache: Optional[AnalysisCache] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        Config.validate()
        self.cache = cache
        self.retry_policy = retry_policy or RetryPolicy.from_config()

    def load_snapshot(self, source: Union[str, Path, Callable[[], Any]]) -> CaptureSnapshot:
        """Load a capture from a JSON file or a loader callable, retrying I/O errors.

        Raises:
            OSError: If the source is still unreadable after the last attempt.
            pydantic.ValidationError: If the payload is not a capture snapshot.
        """
        if callable(source):
            payload = self.retry_policy.call(source)
        else:
            payload = self.retry_policy.call(_read_json, Path(source))

        if isinstance(payload, CaptureSnapshot):
            return payload
        snapshot = CaptureSnapshot.model_validate(payload)
        logger.info(f"Loaded capture for {snapshot.url or source}")
        return snapshot

    def predict(self, elements: Sequence, context: PageContext) -> Tuple[ClickPredictionReport, Optional[EngineFailure]]:
        """Click predictions, or the labelled fallback with the failure that caused it."""
        result = predict_clicks(elements, context)
        if result.ok:
            return result.value, None

        logger.warning(f"Click prediction failed ({result.failure.kind.value}): {result.failure.message}; using fallback")
        fallback = fallback_click_predictions(result.failure, list(elements), context.total_impressions)
        return fallback, result.failure

    def analyze_page(
        self,
        snapshot: CaptureSnapshot,
        device: Optional[str] = None,
        impressions: Optional[int] = None,
        primary_element_id: Optional[str] = None,
        **context_overrides: Any,
    ) -> PageAnalysis:
        """Full single-page analysis, cached by (url, device, primary element id).

        Runs with explicit ``impressions`` or context overrides bypass the cache,
        since the key does not capture them.
        """
        device = device or ("mobile" if snapshot.is_mobile else Config.DEFAULT_DEVICE)
        requested_primary = primary_element_id or (
            snapshot.primary_cta.element_id if snapshot.primary_cta else None
        )

        key: CacheKey = (snapshot.url, device, requested_primary)
        cacheable = self.cache is not None and impressions is None and not context_overrides
        if cacheable:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for {key}")
                return cached

        context = build_page_context(
            snapshot.dom,
            device=device,
            url=snapshot.url or snapshot.dom.url,
            total_impressions=impressions or Config.DEFAULT_IMPRESSIONS,
            traffic_source=Config.DEFAULT_TRAFFIC_SOURCE,
            monthly_traffic=Config.DEFAULT_MONTHLY_TRAFFIC,
            avg_order_value=Config.DEFAULT_AVG_ORDER_VALUE,
            **context_overrides,
        )

        failures: List[EngineFailure] = []
        report, failure = self.predict(context.elements, context)
        if failure is not None:
            failures.append(failure)

        primary_id = self._resolve_primary(snapshot, report, requested_primary)
        primary = next((e for e in context.elements if e.id == primary_id), None)

        wasted = None
        if failure is None:
            result = analyze_wasted_clicks(context.elements, primary, report.predictions, context)
            if result.ok:
                wasted = result.value
            else:
                logger.warning(f"Wasted-attention analysis failed: {result.failure.message}; using fallback")
                failures.append(result.failure)
                wasted = fallback_wasted_analysis(result.failure)

        analysis = PageAnalysis(
            url=context.url,
            context=context,
            report=report,
            wasted=wasted,
            primary_element_id=primary_id,
            failures=failures,
        )
        if cacheable:
            self.cache.put(key, analysis)
        return analysis

    @staticmethod
    def _resolve_primary(
        snapshot: CaptureSnapshot,
        report: ClickPredictionReport,
        requested: Optional[str],
    ) -> Optional[str]:
        """Requested id, else the prediction matching the detected CTA text, else the top prediction."""
        if requested:
            return requested
        if snapshot.primary_cta is not None and snapshot.primary_cta.text:
            target = snapshot.primary_cta.text.strip().lower()
            for prediction in report.predictions:
                if prediction.text.strip().lower() == target:
                    return prediction.element_id
        if report.predictions:
            return report.predictions[0].element_id
        return None

    def analyze_funnel(
        self,
        step1: CaptureSnapshot,
        step2: Optional[CaptureSnapshot] = None,
        initial_visitors: Optional[int] = None,
        audience: Optional[Union[AudienceWarmth, str]] = None,
    ) -> FunnelData:
        """Funnel estimate for a step-1 capture, chained with step 2 when one is given.

        Form funnels stay single-step: their conversion happens on step 1.
        """
        visitors = initial_visitors or Config.DEFAULT_INITIAL_VISITORS
        audience = AudienceWarmth(audience or Config.DEFAULT_AUDIENCE)

        result = analyze_funnel_from_capture(step1, step1.url, visitors)
        if not result.ok:
            logger.warning(f"Funnel analysis failed: {result.failure.message}; using fallback")
            return fallback_funnel_data(result.failure, step1.url, visitors)

        funnel = result.value
        if step2 is None or funnel.type != FunnelType.NON_FORM:
            if step2 is not None:
                logger.info(f"Ignoring step 2 for {funnel.type.value} funnel on {funnel.url or 'page'}")
            return funnel

        target = follow_primary_cta(step1, funnel.url)
        if not target.followable:
            logger.info(f"Step 2 not followed automatically: {target.reason}")

        prediction = create_step2_prediction(step1, step2, audience)
        if not prediction.ok:
            logger.warning(f"Step 2 prediction failed: {prediction.failure.message}; keeping single-step funnel")
            return funnel.model_copy(update={"error": prediction.failure.message})

        step = create_funnel_step(
            step2,
            url=step2.url or target.next_url,
            visitors=int(funnel.step1.predicted_clicks),
            post_click_prediction=prediction.value,
        )
        updated = update_funnel_with_step2(funnel, step)
        if not updated.ok:
            logger.warning(f"Could not chain step 2: {updated.failure.message}")
            return funnel
        return updated.value
