"""
Tests for the funnel probability calculator.

Tests: single- and two-step metrics with half-up rounding, spatial CTA/form
classification, primary CTA navigation, CTA performance lookup and the
funnel entry points.
"""

import pytest

from ctatracker.services.conversion_prediction import (
    BoundingBox,
    CaptureSnapshot,
    FunnelStep,
    FunnelType,
    PostClickStep,
    analyze_funnel_from_capture,
    calculate_funnel_metrics,
    create_funnel_step,
    detect_primary_cta_type,
    extract_primary_cta,
    follow_primary_cta,
    get_primary_cta_performance,
    predict_step_rate,
    update_funnel_with_step2,
)
from ctatracker.services.conversion_prediction.form_boundary import (
    determine_is_form_related,
    is_cta_within_form_boundary,
    scale_box,
)
from ctatracker.services.conversion_prediction.models import Size
from ctatracker.services.conversion_prediction.results import FailureKind


BASE_URL = "https://www.example.com/landing"


def _snapshot(**overrides):
    defaults = {
        "url": BASE_URL,
        "primary_cta": {"text": "Get Started", "href": "/signup"},
        "click_predictions": [
            {"element_id": "button-100-200", "text": "Get Started", "ctr": 0.202, "predicted_clicks": 202},
        ],
    }
    defaults.update(overrides)
    return CaptureSnapshot(**defaults)


def _box(x, y, w, h):
    return BoundingBox(x=x, y=y, width=w, height=h)


# ============================================================================
# Metrics
# ============================================================================

class TestCalculateFunnelMetrics:
    def test_single_step(self):
        metrics = calculate_funnel_metrics(FunnelStep(url=BASE_URL, predicted_ctr=20.2), None, 1000)

        assert metrics.p1 == pytest.approx(0.202)
        assert metrics.n2 == 1000
        assert metrics.p2 == pytest.approx(0.202)
        assert metrics.p_total == pytest.approx(0.202)
        assert metrics.n_conv == 202

    def test_two_step(self):
        step1 = FunnelStep(url=BASE_URL, predicted_ctr=20.2)
        step2 = FunnelStep(url=f"{BASE_URL}/next", predicted_ctr=30.0)

        metrics = calculate_funnel_metrics(step1, step2, 1000)

        assert metrics.n2 == 202
        assert metrics.p2 == pytest.approx(0.30)
        assert metrics.p_total == pytest.approx(0.0606)
        assert metrics.n_conv == 61

    def test_rounds_half_up(self):
        metrics = calculate_funnel_metrics(FunnelStep(url=BASE_URL, predicted_ctr=50.0), None, 121)
        assert metrics.n_conv == 61

    def test_without_step1(self):
        metrics = calculate_funnel_metrics(None, None, 500)
        assert metrics.n1 == 500
        assert metrics.n_conv == 0

    def test_step_ctr_is_clamped_to_percent_range(self):
        assert FunnelStep(url=BASE_URL, predicted_ctr=140).predicted_ctr == 100.0
        assert FunnelStep(url=BASE_URL, predicted_ctr=-3).predicted_ctr == 0.0


# ============================================================================
# Spatial Classification
# ============================================================================

class TestFormBoundary:
    def test_scale_box_to_display_space(self):
        scaled = scale_box(_box(100, 50, 200, 100), Size(width=1600, height=1200), Size(width=800, height=600))
        assert (scaled.x, scaled.y, scaled.width, scaled.height) == (50, 25, 100, 50)

    def test_overlapping_cta_is_form_related(self):
        assert is_cta_within_form_boundary(
            _box(150, 400, 100, 40), [_box(100, 100, 300, 400)], Size(width=800, height=600)
        )

    def test_nearby_cta_is_form_related(self):
        # Just below the form, inside the proximity threshold
        assert is_cta_within_form_boundary(
            _box(150, 520, 100, 40), [_box(100, 100, 300, 400)], Size(width=800, height=600)
        )

    def test_distant_cta_is_not_form_related(self):
        assert not is_cta_within_form_boundary(
            _box(700, 550, 50, 20), [_box(100, 100, 300, 400)], Size(width=800, height=600)
        )

    def test_zero_image_size_is_undecidable(self):
        assert not is_cta_within_form_boundary(
            _box(150, 400, 100, 40), [_box(100, 100, 300, 400)], Size(width=0, height=600)
        )

    def test_no_cta_or_forms(self):
        assert not determine_is_form_related(None, [_box(0, 0, 10, 10)], Size(width=800, height=600))
        assert not determine_is_form_related(_box(0, 0, 10, 10), [], Size(width=800, height=600))


class TestDetectPrimaryCtaType:
    def _with_form(self, cta_box):
        return _snapshot(
            primary_cta={"text": "Submit", "coordinates": cta_box},
            click_predictions=[],
            image_size={"width": 800, "height": 600},
            dom={"forms": [{"is_above_fold": True, "coordinates": {"x": 100, "y": 100, "width": 300, "height": 400}}]},
        )

    def test_cta_inside_form(self):
        snapshot = self._with_form({"x": 150, "y": 400, "width": 100, "height": 40})
        assert detect_primary_cta_type(snapshot) == FunnelType.FORM

    def test_cta_far_from_form(self):
        snapshot = self._with_form({"x": 700, "y": 550, "width": 50, "height": 20})
        assert detect_primary_cta_type(snapshot) == FunnelType.NON_FORM

    def test_below_fold_forms_ignored(self):
        snapshot = _snapshot(
            primary_cta={"text": "Submit", "coordinates": {"x": 150, "y": 400, "width": 100, "height": 40}},
            dom={"forms": [{"is_above_fold": False, "coordinates": {"x": 100, "y": 100, "width": 300, "height": 400}}]},
        )
        assert detect_primary_cta_type(snapshot) == FunnelType.NON_FORM

    def test_no_cta(self):
        assert detect_primary_cta_type(CaptureSnapshot()) == FunnelType.NONE

    def test_unrelated_prediction_box_not_used(self):
        snapshot = _snapshot(
            primary_cta={"text": "Buy now"},
            click_predictions=[
                {"element_id": "button-150-400", "text": "Subscribe", "ctr": 0.1,
                 "bounds": {"x": 150, "y": 400, "width": 100, "height": 40}},
            ],
            image_size={"width": 800, "height": 600},
            dom={"forms": [{"is_above_fold": True, "coordinates": {"x": 100, "y": 100, "width": 300, "height": 400}}]},
        )
        assert detect_primary_cta_type(snapshot) == FunnelType.NON_FORM

    def test_matching_prediction_box_used(self):
        snapshot = _snapshot(
            primary_cta={"text": "Subscribe"},
            click_predictions=[
                {"element_id": "button-700-550", "text": "Pricing", "ctr": 0.2,
                 "bounds": {"x": 700, "y": 550, "width": 50, "height": 20}},
                {"element_id": "button-150-400", "text": "Subscribe", "ctr": 0.1,
                 "bounds": {"x": 150, "y": 400, "width": 100, "height": 40}},
            ],
            image_size={"width": 800, "height": 600},
            dom={"forms": [{"is_above_fold": True, "coordinates": {"x": 100, "y": 100, "width": 300, "height": 400}}]},
        )
        assert detect_primary_cta_type(snapshot) == FunnelType.FORM


# ============================================================================
# Navigation
# ============================================================================

class TestFollowPrimaryCta:
    def test_relative_href_resolves_against_base(self):
        target = follow_primary_cta(_snapshot(), BASE_URL)
        assert target.followable
        assert target.next_url == "https://www.example.com/signup"

    def test_www_prefix_is_same_domain(self):
        snapshot = _snapshot(primary_cta={"text": "Pricing", "href": "https://example.com/pricing"})
        target = follow_primary_cta(snapshot, BASE_URL)
        assert target.followable
        assert target.next_url == "https://example.com/pricing"

    def test_cross_domain_requires_manual_entry(self):
        snapshot = _snapshot(primary_cta={"text": "Book now", "href": "https://booking.other.com/start"})
        target = follow_primary_cta(snapshot, BASE_URL)
        assert not target.followable
        assert target.next_url == "https://booking.other.com/start"
        assert target.reason == "External domain - manual entry required"

    def test_button_without_href_uses_related_link(self):
        snapshot = _snapshot(
            primary_cta={"text": "See pricing"},
            dom={"links": [{"text": "Blog", "href": "/blog"}, {"text": "Pricing plans", "href": "/pricing"}]},
        )
        target = follow_primary_cta(snapshot, BASE_URL)
        assert target.followable
        assert target.next_url == "https://www.example.com/pricing"

    def test_shopping_button_uses_store_link(self):
        snapshot = _snapshot(
            primary_cta={"text": "Buy"},
            dom={"links": [{"text": "Support", "href": "/support"}, {"text": "Shop iPhone", "href": "/store/iphone"}]},
        )
        target = follow_primary_cta(snapshot, BASE_URL)
        assert target.followable
        assert target.next_url.endswith("/store/iphone")

    def test_button_without_href_or_related_link(self):
        snapshot = _snapshot(primary_cta={"text": "Continue"})
        target = follow_primary_cta(snapshot, BASE_URL)
        assert not target.followable
        assert target.next_url == BASE_URL
        assert "manual entry required" in target.reason

    def test_non_http_href_is_unresolvable(self):
        snapshot = _snapshot(primary_cta={"text": "Email us", "href": "mailto:hi@example.com"})
        assert not follow_primary_cta(snapshot, BASE_URL).followable

    def test_no_cta(self):
        target = follow_primary_cta(CaptureSnapshot(), BASE_URL)
        assert not target.followable
        assert target.reason == "No primary CTA detected for step 2"


# ============================================================================
# CTA Performance And Steps
# ============================================================================

class TestPrimaryCtaPerformance:
    def test_matching_prediction_in_percent(self):
        performance = get_primary_cta_performance(_snapshot())
        assert performance.ctr_percent == pytest.approx(20.2)
        assert performance.text == "Get Started"
        assert not performance.is_fallback

    def test_falls_back_to_highest_ctr(self):
        snapshot = _snapshot(click_predictions=[
            {"element_id": "a", "text": "About", "ctr": 0.01},
            {"element_id": "b", "text": "Pricing", "ctr": 0.08},
        ])
        assert get_primary_cta_performance(snapshot).ctr_percent == pytest.approx(8.0)

    def test_primary_prediction_preferred(self):
        snapshot = _snapshot(
            primary_cta_prediction={"element_id": "button-100-200", "text": "Get Started", "ctr": 0.05,
                                    "predicted_clicks": 50},
            click_predictions=[{"element_id": "b", "text": "Pricing", "ctr": 0.2}],
        )
        performance = get_primary_cta_performance(snapshot)

        assert performance.ctr_percent == pytest.approx(5.0)
        assert performance.text == "Get Started"
        assert not performance.is_fallback

    def test_primary_prediction_names_unknown_cta(self):
        snapshot = _snapshot(
            primary_cta=None,
            primary_cta_prediction={"element_id": "x", "text": "Book a demo", "ctr": 0.07},
        )
        assert get_primary_cta_performance(snapshot).text == "Book a demo"

    def test_baseline_without_predictions(self):
        performance = get_primary_cta_performance(_snapshot(click_predictions=[]))
        assert performance.ctr_percent == 5.0
        assert performance.predicted_clicks == 50
        assert performance.is_fallback

    def test_unknown_cta_text(self):
        assert extract_primary_cta(_snapshot(primary_cta={"text": ""})).text == "Unknown CTA"
        assert extract_primary_cta(CaptureSnapshot()) is None


class TestCreateFunnelStep:
    def test_uses_cta_ctr(self):
        step = create_funnel_step(_snapshot(), visitors=1000)
        assert step.predicted_ctr == pytest.approx(20.2)
        assert step.predicted_clicks == 202
        assert step.cta_text == "Get Started"

    def test_post_click_prediction_overrides_ctr(self):
        prediction = predict_step_rate(PostClickStep(step_name="s2", cold_base_rate=0.3), factors=[])
        step = create_funnel_step(_snapshot(), url=f"{BASE_URL}/2", visitors=200, post_click_prediction=prediction)

        assert step.predicted_ctr == pytest.approx(30.0)
        assert step.predicted_clicks == 60
        assert step.post_click_prediction == prediction


# ============================================================================
# Entry Points
# ============================================================================

class TestAnalyzeFunnelFromCapture:
    def test_single_step_non_form(self):
        funnel = analyze_funnel_from_capture(_snapshot(), initial_visitors=1000).unwrap()

        assert funnel.type == FunnelType.NON_FORM
        assert funnel.url == BASE_URL
        assert funnel.n1 == 1000
        assert funnel.p1 == pytest.approx(0.202)
        assert funnel.n_conv == 202
        assert funnel.step2 is None

    def test_no_cta_is_none_funnel(self):
        funnel = analyze_funnel_from_capture(CaptureSnapshot(url=BASE_URL)).unwrap()
        assert funnel.type == FunnelType.NONE
        assert funnel.error == "No primary CTA detected"
        assert funnel.n_conv == 0

    def test_non_positive_visitors(self):
        result = analyze_funnel_from_capture(_snapshot(), initial_visitors=0)
        assert result.failure.kind == FailureKind.INVALID_CONTEXT


class TestUpdateFunnelWithStep2:
    def test_chains_two_steps(self):
        funnel = analyze_funnel_from_capture(_snapshot(), initial_visitors=1000).unwrap()
        step2 = FunnelStep(url=f"{BASE_URL}/signup", predicted_ctr=30.0)

        updated = update_funnel_with_step2(funnel, step2).unwrap()

        assert updated.type == FunnelType.NON_FORM
        assert updated.step2 == step2
        assert updated.n2 == 202
        assert updated.p_total == pytest.approx(0.0606)
        assert updated.n_conv == 61
        # Original funnel is untouched
        assert funnel.step2 is None

    def test_requires_step1(self):
        none_funnel = analyze_funnel_from_capture(CaptureSnapshot()).unwrap()
        result = update_funnel_with_step2(none_funnel, FunnelStep(url=BASE_URL, predicted_ctr=10))
        assert result.failure.kind == FailureKind.INSUFFICIENT_DATA
