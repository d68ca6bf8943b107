"""
Tests for the post-click factor model — factor math, step prediction and capture scoring.

Tests: multiplier bounds, multiplicative combination and capping, logit mode,
factor scoring from capture structure, message match and the step-2 entry point.
"""

import pytest

from ctatracker.services.conversion_prediction import (
    AudienceWarmth,
    CaptureSnapshot,
    PostClickConfig,
    PostClickFactor,
    PostClickStep,
    PredictionMode,
    analyze_factors_from_capture,
    analyze_message_match,
    calculate_logit_contribution,
    combine_factor_multipliers,
    create_step2_prediction,
    factor_multiplier,
    predict_all_steps,
    predict_step_rate,
)
from ctatracker.services.conversion_prediction.post_click_model import (
    DEFAULT_POST_CLICK_FACTORS,
    DEFAULT_POST_CLICK_STEPS,
    STEP2_UPPER_CAP,
    analyze_cta_clarity,
    analyze_form_friction,
    analyze_page_speed,
)
from ctatracker.services.conversion_prediction.results import FailureKind


def _factor(name, score, max_lift):
    return PostClickFactor(factor=name, score=score, max_lift=max_lift)


def _step(**overrides):
    defaults = {
        "step_name": "Email Form",
        "cold_base_rate": 0.10,
        "audience": AudienceWarmth.WARM,
        "upper_cap": 0.65,
    }
    defaults.update(overrides)
    return PostClickStep(**defaults)


def _capture(**dom):
    return CaptureSnapshot(url="https://example.com/signup", dom=dom)


WORKED_FACTORS = [
    _factor("message_match_scent", 0.80, 0.40),  # 1.32
    _factor("cta_form_friction", 0.60, 0.70),    # 1.42
    _factor("page_speed_ux", 0.90, 0.10),        # 1.09
]


# ============================================================================
# Factor Math
# ============================================================================

class TestFactorMultiplier:
    def test_zero_score_has_no_effect(self):
        assert factor_multiplier(0.0, 0.4) == 1.0

    def test_full_score_gives_full_lift(self):
        assert factor_multiplier(1.0, 0.4) == pytest.approx(1.4)

    def test_score_is_clamped(self):
        assert factor_multiplier(1.7, 0.4) == pytest.approx(1.4)
        assert factor_multiplier(-0.3, 0.4) == 1.0

    def test_factor_score_validator_clamps(self):
        assert _factor("x", 1.5, 0.2).score == 1.0
        assert _factor("x", -1, 0.2).score == 0.0


class TestCombineFactors:
    def test_multiplicative_product(self):
        combined = combine_factor_multipliers(WORKED_FACTORS, PredictionMode.MULTIPLICATIVE)
        assert combined == pytest.approx(1.32 * 1.42 * 1.09)
        assert combined == pytest.approx(2.0431, abs=1e-4)

    def test_empty_factors_is_neutral(self):
        assert combine_factor_multipliers([]) == 1.0

    def test_logit_mode_sums_shifts(self):
        shift = combine_factor_multipliers(WORKED_FACTORS, "logit")
        expected = sum(calculate_logit_contribution(f.score, f.max_lift) for f in WORKED_FACTORS)
        assert shift == pytest.approx(expected)
        assert shift > 0

    def test_logit_contribution_zero_score(self):
        assert calculate_logit_contribution(0.0, 0.5) == 0.0


# ============================================================================
# Step Prediction
# ============================================================================

class TestPredictStepRate:
    def test_warm_step_with_three_factors(self):
        prediction = predict_step_rate(_step(), PostClickConfig(), WORKED_FACTORS)

        assert prediction.warmth_multiplier_applied == 2.5
        assert prediction.adjusted_base_rate == pytest.approx(0.25)
        assert prediction.combined_factor_multiplier == pytest.approx(2.0431, abs=1e-4)
        assert prediction.predicted_rate == pytest.approx(0.5108, abs=1e-4)
        assert prediction.cap_applied is False

    def test_cap_applies_exactly(self):
        strong = [_factor(f.factor, 1.0, f.max_lift) for f in DEFAULT_POST_CLICK_FACTORS]
        prediction = predict_step_rate(_step(), PostClickConfig(), strong)

        assert prediction.raw_predicted_rate > 0.65
        assert prediction.predicted_rate == 0.65
        assert prediction.cap_applied is True

    def test_cap_disabled_still_bounded_to_one(self):
        strong = [_factor(f.factor, 1.0, f.max_lift) for f in DEFAULT_POST_CLICK_FACTORS]
        prediction = predict_step_rate(_step(), PostClickConfig(apply_cap=False), strong)

        assert prediction.cap_applied is False
        assert prediction.predicted_rate == 1.0

    def test_cold_audience_uses_base_rate(self):
        prediction = predict_step_rate(_step(audience=AudienceWarmth.COLD), PostClickConfig(), [])
        assert prediction.predicted_rate == pytest.approx(0.10)
        assert prediction.combined_factor_multiplier == 1.0

    def test_logit_mode_stays_in_unit_interval(self):
        prediction = predict_step_rate(
            _step(upper_cap=None), PostClickConfig(mode=PredictionMode.LOGIT), WORKED_FACTORS
        )

        assert prediction.mode == PredictionMode.LOGIT
        assert prediction.logit_shift is not None and prediction.logit_shift > 0
        assert 0.25 < prediction.predicted_rate < 1.0
        assert prediction.combined_factor_multiplier == pytest.approx(
            prediction.raw_predicted_rate / prediction.adjusted_base_rate
        )

    def test_intermediate_quantities_recorded(self):
        prediction = predict_step_rate(_step(), PostClickConfig(), WORKED_FACTORS)
        assert prediction.step_name == "Email Form"
        assert prediction.upper_cap == 0.65
        assert len(prediction.factors_analyzed) == 3

    def test_predict_all_default_steps(self):
        predictions = predict_all_steps(DEFAULT_POST_CLICK_STEPS)
        assert len(predictions) == 1
        assert 0 < predictions[0].predicted_rate <= STEP2_UPPER_CAP


# ============================================================================
# Factor Scoring From Captures
# ============================================================================

class TestFactorAnalyzers:
    def test_page_speed_penalizes_heavy_pages(self):
        light = _capture(images=[{"src": "a.png", "loading": "lazy"}])
        heavy = _capture(images=[{"src": f"{i}.png"} for i in range(25)], scripts=[f"{i}.js" for i in range(20)])
        assert analyze_page_speed(light) > analyze_page_speed(heavy)
        assert analyze_page_speed(heavy) >= 0.3

    def test_clarity_prefers_few_ctas(self):
        focused = _capture(buttons=[{"text": "Continue"}])
        busy = _capture(links=[{"text": f"Link {i}", "href": f"/{i}"} for i in range(20)])
        assert analyze_cta_clarity(focused) > analyze_cta_clarity(busy)

    def test_form_friction_counts_fields_for_form_ctas(self):
        short_form = CaptureSnapshot(
            primary_cta={"text": "Subscribe", "is_form_related": True},
            dom={"forms": [{"inputs": [{"type": "email", "name": "email"}]}]},
        )
        long_form = CaptureSnapshot(
            primary_cta={"text": "Subscribe", "is_form_related": True},
            dom={"forms": [{"inputs": [{"type": "text", "name": f"f{i}"} for i in range(10)]}]},
        )
        assert analyze_form_friction(short_form) > analyze_form_friction(long_form)

    def test_all_scores_within_unit_interval(self):
        factors = analyze_factors_from_capture(_capture(buttons=[{"text": "Submit"}]))
        assert [f.factor for f in factors] == [f.factor for f in DEFAULT_POST_CLICK_FACTORS]
        assert all(0.0 <= f.score <= 1.0 for f in factors)

    def test_unknown_factor_keeps_score(self):
        custom = [_factor("brand_affinity", 0.33, 0.1)]
        assert analyze_factors_from_capture(_capture(), custom)[0].score == 0.33


class TestMessageMatch:
    def test_overlapping_copy_scores_higher(self):
        step1 = _capture(headings=[{"text": "Free marketing analytics trial"}])
        matching = _capture(headings=[{"text": "Start your free marketing analytics trial"}])
        unrelated = _capture(headings=[{"text": "Company history and careers"}])

        assert analyze_message_match(step1, matching) > analyze_message_match(step1, unrelated)

    def test_no_overlap_is_baseline(self):
        step1 = _capture(headings=[{"text": "Gardening tools"}])
        step2 = _capture(headings=[{"text": "Quarterly finance report"}])
        assert analyze_message_match(step1, step2) == pytest.approx(0.60)

    def test_bounded(self):
        same = _capture(headings=[{"text": "Analytics dashboard pricing"}])
        assert 0.2 <= analyze_message_match(same, same) <= 0.9


class TestCreateStep2Prediction:
    def test_predicts_for_populated_capture(self):
        step1 = CaptureSnapshot(url="https://example.com", primary_cta={"text": "Get my free trial"})
        step2 = _capture(
            buttons=[{"text": "Start free trial", "coordinates": {"x": 10, "y": 10, "width": 200, "height": 48}}],
            headings=[{"text": "Your free trial"}],
        )

        prediction = create_step2_prediction(step1, step2, "warm").unwrap()

        assert prediction.step_name == "Step 2 (Post-Click)"
        assert prediction.audience == AudienceWarmth.WARM
        assert prediction.cold_base_rate == 0.10
        assert 0 < prediction.predicted_rate <= 0.65
        assert len(prediction.factors_analyzed) == len(DEFAULT_POST_CLICK_FACTORS)

    def test_empty_step2_is_insufficient_data(self):
        result = create_step2_prediction(CaptureSnapshot(), CaptureSnapshot())
        assert not result.ok
        assert result.failure.kind == FailureKind.INSUFFICIENT_DATA

    def test_warmer_audience_predicts_higher(self):
        step1 = CaptureSnapshot(primary_cta={"text": "Continue"})
        step2 = _capture(buttons=[{"text": "Continue"}])
        cold = create_step2_prediction(step1, step2, "cold").unwrap()
        warm = create_step2_prediction(step1, step2, "warm").unwrap()
        assert warm.predicted_rate >= cold.predicted_rate
