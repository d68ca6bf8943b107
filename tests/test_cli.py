"""
Tests for the ctatracker CLI — predict, wasted and funnel commands.
"""

import json

import pytest
from click.testing import CliRunner

from ctatracker.cli.main import cli


CAPTURE = {
    "url": "https://example.com/landing",
    "primary_cta": {"text": "Get Started", "href": "/signup"},
    "dom": {
        "buttons": [
            {"text": "Get Started", "href": "/signup",
             "coordinates": {"x": 400, "y": 300, "width": 200, "height": 56}},
        ],
        "links": [
            {"text": "About", "href": "/about", "coordinates": {"x": 20, "y": 20, "width": 60, "height": 20}},
        ],
    },
    "click_predictions": [
        {"element_id": "button-400-300", "text": "Get Started", "ctr": 0.2, "predicted_clicks": 200},
    ],
}

STEP2 = {
    "url": "https://example.com/signup",
    "dom": {
        "buttons": [{"text": "Create account", "coordinates": {"x": 300, "y": 400, "width": 220, "height": 48}}],
        "headings": [{"text": "Create your account"}],
    },
}


@pytest.fixture
def capture_file(tmp_path):
    path = tmp_path / "capture.json"
    path.write_text(json.dumps(CAPTURE), encoding="utf-8")
    return str(path)


@pytest.fixture
def step2_file(tmp_path):
    path = tmp_path / "step2.json"
    path.write_text(json.dumps(STEP2), encoding="utf-8")
    return str(path)


class TestCli:
    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_predict(self, capture_file):
        result = CliRunner().invoke(cli, ["predict", capture_file, "--impressions", "2000"])
        assert result.exit_code == 0, result.output
        assert '"predictions"' in result.output
        assert "button-400-300" in result.output

    def test_predict_rejects_unknown_device(self, capture_file):
        result = CliRunner().invoke(cli, ["predict", capture_file, "--device", "watch"])
        assert result.exit_code != 0

    def test_wasted(self, capture_file):
        result = CliRunner().invoke(cli, ["wasted", capture_file])
        assert result.exit_code == 0, result.output
        assert '"high_risk_elements"' in result.output

    def test_wasted_unknown_primary_uses_fallback(self, capture_file):
        result = CliRunner().invoke(cli, ["wasted", capture_file, "--primary", "missing"])
        assert result.exit_code == 0, result.output
        assert '"is_fallback": true' in result.output

    def test_funnel_single_step(self, capture_file):
        result = CliRunner().invoke(cli, ["funnel", capture_file, "--visitors", "1000"])
        assert result.exit_code == 0, result.output
        assert '"n_conv": 200' in result.output

    def test_funnel_two_step(self, capture_file, step2_file):
        result = CliRunner().invoke(
            cli, ["funnel", capture_file, "--step2", step2_file, "--visitors", "1000", "--audience", "cold"]
        )
        assert result.exit_code == 0, result.output
        assert '"post_click_prediction": {' in result.output

    def test_missing_file(self, tmp_path):
        result = CliRunner().invoke(cli, ["predict", str(tmp_path / "nope.json")])
        assert result.exit_code != 0
