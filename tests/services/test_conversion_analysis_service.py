"""
Tests for ConversionAnalysisService — snapshot loading, caching, retries and fallbacks.

Tests: LRU cache behaviour, bounded retry of loaders, page analysis with
primary CTA resolution, labelled fallbacks for engine failures, and the
one- and two-step funnel paths.
"""

import json
import pytest
from unittest.mock import MagicMock

from ctatracker.services import (
    ConversionAnalysisService,
    InMemoryAnalysisCache,
    RetryPolicy,
)
from ctatracker.services.conversion_prediction import CaptureSnapshot, FunnelType
from ctatracker.services.conversion_prediction.results import FailureKind


NO_WAIT = RetryPolicy(max_attempts=3, multiplier=0, min_wait=0, max_wait=0)


def _capture(**overrides):
    """Landing page capture with one styled CTA and two links."""
    defaults = {
        "url": "https://example.com/landing",
        "primary_cta": {"text": "Get Started", "href": "/signup"},
        "dom": {
            "buttons": [
                {"text": "Get Started", "type": "button", "href": "/signup",
                 "coordinates": {"x": 400, "y": 300, "width": 200, "height": 56}},
            ],
            "links": [
                {"text": "About", "href": "/about", "coordinates": {"x": 20, "y": 20, "width": 60, "height": 20}},
                {"text": "Twitter", "href": "https://twitter.com/acme",
                 "coordinates": {"x": 900, "y": 20, "width": 30, "height": 30}},
            ],
            "headings": [{"text": "Analytics for growing teams"}],
        },
        "click_predictions": [
            {"element_id": "button-400-300", "text": "Get Started", "ctr": 0.2, "predicted_clicks": 200},
        ],
    }
    defaults.update(overrides)
    return CaptureSnapshot(**defaults)


def _step2():
    return CaptureSnapshot(
        url="https://example.com/signup",
        primary_cta={"text": "Create account", "is_form_related": True},
        dom={
            "buttons": [{"text": "Create account", "coordinates": {"x": 300, "y": 400, "width": 220, "height": 48}}],
            "forms": [{"method": "post", "inputs": [{"type": "email", "name": "email", "required": True}]}],
            "headings": [{"text": "Start your analytics trial"}],
        },
    )


@pytest.fixture
def service():
    return ConversionAnalysisService(cache=InMemoryAnalysisCache(max_entries=8), retry_policy=NO_WAIT)


# ============================================================================
# Cache
# ============================================================================

class TestInMemoryAnalysisCache:
    def test_evicts_least_recently_used(self):
        cache = InMemoryAnalysisCache(max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        assert cache.get("a") == 1
        cache.put("c", 3)

        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert len(cache) == 2

    def test_zero_entries_disables(self):
        cache = InMemoryAnalysisCache(max_entries=0)
        cache.put("a", 1)
        assert cache.get("a") is None
        assert len(cache) == 0


# ============================================================================
# Retry
# ============================================================================

class TestRetryPolicy:
    def test_retries_transient_errors(self):
        loader = MagicMock(side_effect=[OSError("busy"), TimeoutError("slow"), {"url": "https://example.com"}])
        assert NO_WAIT.call(loader) == {"url": "https://example.com"}
        assert loader.call_count == 3

    def test_reraises_after_last_attempt(self):
        loader = MagicMock(side_effect=OSError("gone"))
        with pytest.raises(OSError):
            NO_WAIT.call(loader)
        assert loader.call_count == 3

    def test_does_not_retry_other_errors(self):
        loader = MagicMock(side_effect=ValueError("bad payload"))
        with pytest.raises(ValueError):
            NO_WAIT.call(loader)
        assert loader.call_count == 1

    def test_from_config(self):
        policy = RetryPolicy.from_config()
        assert policy.max_attempts >= 1


# ============================================================================
# Loading
# ============================================================================

class TestLoadSnapshot:
    def test_from_file(self, service, tmp_path):
        path = tmp_path / "capture.json"
        path.write_text(json.dumps(_capture().model_dump(mode="json")), encoding="utf-8")

        snapshot = service.load_snapshot(str(path))
        assert snapshot.url == "https://example.com/landing"
        assert snapshot.primary_cta.text == "Get Started"

    def test_from_flaky_loader(self, service):
        loader = MagicMock(side_effect=[OSError("busy"), {"url": "https://example.com/x"}])
        assert service.load_snapshot(loader).url == "https://example.com/x"
        assert loader.call_count == 2

    def test_missing_file(self, service, tmp_path):
        with pytest.raises(OSError):
            service.load_snapshot(tmp_path / "missing.json")


# ============================================================================
# Page Analysis
# ============================================================================

class TestAnalyzePage:
    def test_full_analysis(self, service):
        analysis = service.analyze_page(_capture(), device="desktop", impressions=5000)

        assert not analysis.is_fallback
        assert analysis.context.total_impressions == 5000
        assert analysis.primary_element_id == "button-400-300"
        assert analysis.wasted is not None
        assert not analysis.wasted.is_fallback
        assert all(0.0 <= p.ctr <= 1.0 for p in analysis.report.predictions)

    def test_cached_by_url_device_and_primary(self, service):
        first = service.analyze_page(_capture(), device="desktop")
        second = service.analyze_page(_capture(), device="desktop")
        mobile = service.analyze_page(_capture(), device="mobile")

        assert first is second
        assert mobile is not first
        assert len(service.cache) == 2

    def test_explicit_impressions_bypass_cache(self, service):
        default = service.analyze_page(_capture(), device="desktop")
        larger = service.analyze_page(_capture(), device="desktop", impressions=5000)
        again = service.analyze_page(_capture(), device="desktop", impressions=5000)

        assert larger is not default
        assert larger.context.total_impressions == 5000
        assert again is not larger
        assert len(service.cache) == 1
        assert service.analyze_page(_capture(), device="desktop") is default

    def test_context_overrides_bypass_cache(self, service):
        service.analyze_page(_capture(), device="desktop")
        slow = service.analyze_page(_capture(), device="desktop", load_time=6.0)
        assert slow.context.load_time == 6.0

    def test_explicit_primary(self, service):
        analysis = service.analyze_page(_capture(), primary_element_id="link-20-20")
        assert analysis.primary_element_id == "link-20-20"
        assert analysis.wasted.form_context.primary_cta_text == "About"

    def test_empty_capture_falls_back(self, service):
        analysis = service.analyze_page(CaptureSnapshot(url="https://example.com/blank"))

        assert analysis.is_fallback
        assert analysis.report.is_fallback
        assert analysis.wasted is None
        assert analysis.failures[0].kind == FailureKind.INSUFFICIENT_DATA

    def test_unknown_primary_falls_back(self, service):
        analysis = service.analyze_page(_capture(), primary_element_id="missing")

        assert analysis.wasted.is_fallback
        assert analysis.failures[0].kind == FailureKind.INSUFFICIENT_DATA
        assert not analysis.report.is_fallback


# ============================================================================
# Funnels
# ============================================================================

class TestAnalyzeFunnel:
    def test_single_step(self, service):
        funnel = service.analyze_funnel(_capture(), initial_visitors=1000)
        assert funnel.type == FunnelType.NON_FORM
        assert funnel.n_conv == 200
        assert funnel.step2 is None

    def test_two_step(self, service):
        funnel = service.analyze_funnel(_capture(), _step2(), initial_visitors=1000, audience="warm")

        assert funnel.type == FunnelType.NON_FORM
        assert funnel.step2 is not None
        assert funnel.step2.post_click_prediction is not None
        assert funnel.n2 == 200
        assert funnel.p2 == pytest.approx(funnel.step2.post_click_prediction.predicted_rate)
        assert funnel.p_total == pytest.approx(funnel.p1 * funnel.p2)
        assert funnel.n_conv <= funnel.n2

    def test_cold_audience_converts_less(self, service):
        warm = service.analyze_funnel(_capture(), _step2(), 1000, "warm")
        cold = service.analyze_funnel(_capture(), _step2(), 1000, "cold")
        assert cold.p2 <= warm.p2

    def test_form_funnel_ignores_step2(self, service):
        capture = _capture(
            primary_cta={"text": "Subscribe", "coordinates": {"x": 150, "y": 400, "width": 100, "height": 40}},
            click_predictions=[],
            image_size={"width": 800, "height": 600},
            dom={"forms": [{"is_above_fold": True, "coordinates": {"x": 100, "y": 100, "width": 300, "height": 400}}]},
        )
        funnel = service.analyze_funnel(capture, _step2())

        assert funnel.type == FunnelType.FORM
        assert funnel.step2 is None

    def test_empty_step2_keeps_single_step(self, service):
        funnel = service.analyze_funnel(_capture(), CaptureSnapshot(url="https://example.com/signup"))
        assert funnel.step2 is None
        assert funnel.error

    def test_invalid_visitors_falls_back(self, service):
        funnel = service.analyze_funnel(_capture(), initial_visitors=-5)
        assert funnel.is_fallback
        assert funnel.type == FunnelType.NONE
        assert funnel.n_conv == 0
