"""
Tests for the supporting scorers: CPC estimation, traffic, waste, form
completion and reliability.
"""

import pytest

from ctatracker.services.conversion_prediction import ButtonElement, FieldElement, PageContext
from ctatracker.services.conversion_prediction.constants import AVG_CLICKS_PER_ENGAGED_USER, MIN_REALISTIC_CPC
from ctatracker.services.conversion_prediction.cpc_estimator import (
    detect_industry_from_text,
    detect_industry_from_url,
    enrich_context,
    estimate_cpc,
    estimate_quality_score,
)
from ctatracker.services.conversion_prediction.form_analyzer import analyze_form_bottleneck, field_completion_rate
from ctatracker.services.conversion_prediction.models import BusinessType, Industry
from ctatracker.services.conversion_prediction.risk import assess_reliability, generate_warnings
from ctatracker.services.conversion_prediction.traffic import calculate_bounce_rate, calculate_traffic_modifiers
from ctatracker.services.conversion_prediction.waste import calculate_waste


def _ctx(**overrides):
    device = overrides.pop("device_type", "desktop")
    defaults = {"url": "https://example.com", "total_impressions": 1000}
    defaults.update(overrides)
    return PageContext.for_device(device, **defaults)


def _element(**overrides):
    defaults = {
        "id": "cta",
        "tag_name": "button",
        "text": "Get Started",
        "bounds": {"x": 100, "y": 200, "width": 180, "height": 48},
        "is_above_fold": True,
        "distance_from_top": 200,
    }
    defaults.update(overrides)
    return ButtonElement(**defaults)


def _field(**overrides):
    defaults = {
        "id": "field-email",
        "tag_name": "input",
        "text": "Email Field",
        "input_type": "email",
        "label": "Email Field",
        "bounds": {"x": 100, "y": 300, "width": 250, "height": 40},
        "is_above_fold": True,
    }
    defaults.update(overrides)
    return FieldElement(**defaults)


class TestCpcEstimator:
    def test_industry_from_url(self):
        assert detect_industry_from_url("https://smith-law.com/contact") == Industry.LEGAL
        assert detect_industry_from_url("https://example.org") is None

    def test_industry_from_text_needs_enough_hits(self):
        assert detect_industry_from_text("attorney lawyer legal advice for your lawsuit") == Industry.LEGAL
        assert detect_industry_from_text("welcome") is None

    def test_enrich_fills_only_missing(self):
        enriched = enrich_context(_ctx(url="https://smith-law.com"))
        assert enriched.industry == Industry.LEGAL
        assert enriched.business_type is not None

        preset = enrich_context(_ctx(url="https://smith-law.com", industry="travel"))
        assert preset.industry == Industry.TRAVEL

    def test_never_below_minimum(self):
        breakdown = estimate_cpc(_ctx(traffic_source="organic"))
        assert breakdown.final_cpc == pytest.approx(MIN_REALISTIC_CPC)

    def test_paid_legal_costs_more_than_minimum(self):
        breakdown = estimate_cpc(_ctx(industry="legal", business_type=BusinessType.B2C, traffic_source="paid"))
        assert breakdown.final_cpc > MIN_REALISTIC_CPC
        assert breakdown.competition_level == "high"

    def test_quality_score_tiers(self):
        fast = _ctx(load_time=1.5, has_trust_badges=True, has_testimonials=True, ad_message_match=0.9)
        slow = _ctx(load_time=8, has_ssl=False, brand_recognition=0, ad_message_match=0.1)
        assert estimate_quality_score(fast) == "excellent"
        assert estimate_quality_score(slow) == "poor"


class TestTraffic:
    def test_bounce_rate_bounded(self):
        assert 0.1 <= calculate_bounce_rate(_ctx(load_time=30, traffic_source="social")) <= 0.9
        assert calculate_bounce_rate(_ctx(load_time=30)) >= calculate_bounce_rate(_ctx(load_time=1))

    def test_total_clicks(self):
        context = _ctx(total_impressions=2000)
        modifiers = calculate_traffic_modifiers(context)
        expected = 2000 * (1 - modifiers.bounce_rate) * AVG_CLICKS_PER_ENGAGED_USER
        assert modifiers.total_clicks == pytest.approx(expected)


class TestWaste:
    def test_capped_rate_in_unit_interval(self):
        elements = [_element(), _element(id="nav", tag_name="a", text="About", class_name="nav")]
        for element in elements:
            waste = calculate_waste(element, elements, _ctx())
            assert 0.0 <= waste.capped_waste_rate <= 1.0
            assert waste.element_category


class TestFormAnalyzer:
    def test_below_fold_completes_less(self):
        assert field_completion_rate(_field()) > field_completion_rate(_field(is_above_fold=False))

    def test_bottleneck_is_weakest_field(self):
        fields = [_field(), _field(id="field-pw", input_type="password", required=True, label="", is_above_fold=False)]
        analysis = analyze_form_bottleneck(fields, _ctx(), total_clicks=500)

        assert analysis.bottleneck_field is not None
        assert 0.0 <= analysis.completion_rate <= 1.0
        assert analysis.below_fold_fields == 1
        assert len(analysis.field_breakdown) == 2


class TestReliability:
    def test_volume_raises_reliability(self):
        scored = [(_element(), 0.9), (_element(id="b"), 0.1)]
        high = assess_reliability(scored, _ctx(total_impressions=50000))
        low = assess_reliability(scored, _ctx(total_impressions=50))
        assert high.score > low.score
        assert 0.0 <= low.score <= 1.0

    def test_mobile_small_targets_warned(self):
        tiny = _element(bounds={"x": 0, "y": 0, "width": 20, "height": 20})
        warnings = generate_warnings([tiny], _ctx(device_type="mobile", url="https://example.com"))
        assert any("too small" in w for w in warnings)
