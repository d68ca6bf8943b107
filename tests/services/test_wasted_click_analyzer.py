"""
Tests for the wasted-attention analyzer.

Tests: exclusion of the primary CTA and same-destination elements, flagging
threshold and ordering, form context detection, element typing, projected
improvements and typed failures.
"""

import pytest

from ctatracker.services.conversion_prediction import (
    ButtonElement,
    FieldElement,
    LinkElement,
    PageContext,
    analyze_wasted_clicks,
    fallback_wasted_analysis,
    predict_clicks,
)
from ctatracker.services.conversion_prediction.models import CtaContextType, WastedClickType
from ctatracker.services.conversion_prediction.results import FailureKind
from ctatracker.services.conversion_prediction.wasted_click_analyzer import (
    HIGH_RISK_THRESHOLD,
    INTERACTION_BUDGET_CEILING,
    detect_form_context,
)


def _ctx(elements, **overrides):
    defaults = {
        "url": "https://example.com/landing",
        "total_impressions": 1000,
        "elements": elements,
    }
    defaults.update(overrides)
    return PageContext.for_device("desktop", **defaults)


def _element(element_id, text, **overrides):
    defaults = {
        "id": element_id,
        "tag_name": "a",
        "text": text,
        "bounds": {"x": 40, "y": 30, "width": 90, "height": 20},
        "is_above_fold": True,
        "distance_from_top": 30,
    }
    defaults.update(overrides)
    return LinkElement(**defaults)


def _primary(**overrides):
    defaults = {
        "id": "cta",
        "tag_name": "button",
        "text": "Start free trial",
        "href": "/signup",
        "bounds": {"x": 300, "y": 400, "width": 200, "height": 56},
        "is_above_fold": True,
        "distance_from_top": 400,
        "has_button_styling": True,
    }
    defaults.update(overrides)
    return ButtonElement(**defaults)


def _page():
    return [
        _primary(),
        _element("nav-about", "About us", href="/about", class_name="main-nav"),
        _element("social-fb", "Facebook", href="https://facebook.com/acme",
                 bounds={"x": 900, "y": 30, "width": 30, "height": 30}),
        _element("dup-signup", "Sign up free", href="/signup",
                 bounds={"x": 600, "y": 30, "width": 100, "height": 30}),
        _element("learn-more", "Learn more", href="https://docs.partner.io/guide",
                 bounds={"x": 300, "y": 500, "width": 120, "height": 30}, distance_from_top=500),
    ]


def _analyze(elements=None, primary_id="cta", **ctx_overrides):
    elements = elements or _page()
    context = _ctx(elements, **ctx_overrides)
    predictions = predict_clicks(elements, context).unwrap().predictions
    primary = next(e for e in elements if e.id == primary_id)
    return analyze_wasted_clicks(elements, primary, predictions, context), predictions


# ============================================================================
# Analysis
# ============================================================================

class TestAnalyzeWastedClicks:
    def test_excludes_primary_and_same_destination(self):
        analysis = _analyze()[0].unwrap()

        flagged_ids = {w.element_id for w in analysis.high_risk_elements}
        assert "cta" not in flagged_ids
        assert "dup-signup" not in flagged_ids
        assert analysis.elements_analyzed == 3

    def test_flags_above_threshold_sorted(self):
        analysis = _analyze()[0].unwrap()

        scores = [w.wasted_click_score for w in analysis.high_risk_elements]
        assert all(score > HIGH_RISK_THRESHOLD for score in scores)
        assert scores == sorted(scores, reverse=True)
        assert analysis.total_wasted_elements == len(analysis.high_risk_elements)

    def test_average_over_flagged(self):
        analysis = _analyze()[0].unwrap()
        flagged = analysis.high_risk_elements
        if flagged:
            expected = sum(w.wasted_click_score for w in flagged) / len(flagged)
            assert analysis.average_wasted_score == pytest.approx(expected)
        else:
            assert analysis.average_wasted_score == 0.0

    def test_scores_bounded(self):
        analysis = _analyze()[0].unwrap()
        assert all(0.0 <= w.wasted_click_score <= 1.0 for w in analysis.high_risk_elements)

    def test_social_link_typed(self):
        analysis = _analyze()[0].unwrap()
        social = [w for w in analysis.high_risk_elements if w.element_id == "social-fb"]
        if social:
            assert social[0].type == WastedClickType.SOCIAL
            assert social[0].recommendation

    def test_projection_never_below_baseline(self):
        analysis, predictions = _analyze()
        projected = analysis.unwrap().projected_improvements
        baseline = next(p for p in predictions if p.element_id == "cta")

        assert projected.baseline_click_share == pytest.approx(baseline.click_share)
        assert projected.projected_click_share >= projected.baseline_click_share
        assert projected.projected_click_share <= max(INTERACTION_BUDGET_CEILING, baseline.click_share)
        assert projected.projected_ctr >= baseline.ctr
        assert projected.ctr_improvement >= 0.0
        assert 0 <= projected.priority_score <= 100

    def test_recommendations_reference_flagged_elements(self):
        analysis = _analyze()[0].unwrap()
        flagged_ids = {w.element_id for w in analysis.high_risk_elements}
        for recommendation in analysis.recommendations:
            assert set(recommendation.element_ids) <= flagged_ids

    def test_deterministic(self):
        first = _analyze()[0].unwrap()
        second = _analyze()[0].unwrap()
        assert first.model_dump() == second.model_dump()

    def test_primary_without_href_keeps_links(self):
        elements = [_primary(href=None)] + _page()[1:]
        analysis = _analyze(elements)[0].unwrap()
        assert analysis.elements_analyzed == 4


class TestFormContext:
    def _field(self, name, y):
        return FieldElement(
            id=f"field-{name}",
            tag_name="input",
            text=f"{name} field",
            name=name,
            bounds={"x": 300, "y": y, "width": 240, "height": 40},
        )

    def test_form_keyword_cta(self):
        context = detect_form_context(_primary(text="Sign up", href=None), [])
        assert context.type == CtaContextType.FORM_CTA

    def test_many_fields_make_form_cta(self):
        fields = [self._field(n, 200 + 50 * i) for i, n in enumerate(["name", "email", "phone"])]
        context = detect_form_context(_primary(text="Go", href=None), fields)
        assert context.type == CtaContextType.FORM_CTA
        assert context.form_field_count == 3

    def test_purchase_cta(self):
        context = detect_form_context(_primary(text="Buy now", href="/cart"), [])
        assert context.type == CtaContextType.NON_FORM_CTA

    def test_form_context_in_analysis(self):
        analysis = _analyze()[0].unwrap()
        assert analysis.form_context is not None
        assert analysis.form_context.primary_cta_text == "Start free trial"


# ============================================================================
# Failures
# ============================================================================

class TestFailures:
    def test_missing_primary(self):
        elements = _page()
        predictions = predict_clicks(elements, _ctx(elements)).unwrap().predictions
        result = analyze_wasted_clicks(elements, None, predictions)
        assert result.failure.kind == FailureKind.INSUFFICIENT_DATA

    def test_missing_predictions(self):
        elements = _page()
        result = analyze_wasted_clicks(elements, elements[0], [])
        assert result.failure.kind == FailureKind.INSUFFICIENT_DATA

    def test_primary_without_prediction(self):
        elements = _page()
        predictions = predict_clicks(elements, _ctx(elements)).unwrap().predictions
        stranger = _primary(id="not-on-page")
        result = analyze_wasted_clicks(elements, stranger, predictions)
        assert result.failure.kind == FailureKind.INSUFFICIENT_DATA
        assert result.failure.details["primary_element_id"] == "not-on-page"

    def test_fallback_is_labelled(self):
        result = analyze_wasted_clicks([], None, [])
        fallback = fallback_wasted_analysis(result.failure)
        assert fallback.is_fallback
        assert fallback.fallback_reason == "insufficient_data"
        assert fallback.high_risk_elements == []
