"""
Analyze CLI Commands

Run the conversion prediction engine on capture snapshots saved as JSON.
Results are printed to stdout as JSON; progress goes to stderr.
"""

import logging
from typing import Optional

import click

from ..core.config import Config
from ..services.conversion_analysis_service import ConversionAnalysisService


# Configure logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format="[%(asctime)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

logger = logging.getLogger(__name__)


DEVICES = click.Choice(["desktop", "mobile", "tablet"])
AUDIENCES = click.Choice(["cold", "mixed", "warm"])


def _load(service: ConversionAnalysisService, path: str):
    click.echo(f"📄 Loading capture: {path}", err=True)
    return service.load_snapshot(path)


@click.command(name="predict")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option("--device", type=DEVICES, help="Device profile (default: from capture or config)")
@click.option("--impressions", type=int, help="Page impressions to distribute clicks over")
def predict_command(snapshot: str, device: Optional[str], impressions: Optional[int]):
    """
    Predict clicks for every interactive element on a captured page.

    Example:
        ctatracker predict capture.json --device mobile --impressions 5000
    """
    service = ConversionAnalysisService()
    capture = _load(service, snapshot)

    analysis = service.analyze_page(capture, device=device, impressions=impressions)
    report = analysis.report

    if report.is_fallback:
        click.echo(f"⚠️  Fallback predictions used: {report.fallback_reason}", err=True)
    else:
        top = report.predictions[0]
        click.echo(
            f"✅ {len(report.predictions)} predictions; top element {top.element_id} "
            f"({top.ctr:.2%} CTR)",
            err=True,
        )

    click.echo(report.model_dump_json(indent=2))


@click.command(name="wasted")
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option("--primary", "primary_id", help="Element id of the primary CTA (default: detected CTA)")
@click.option("--device", type=DEVICES, help="Device profile (default: from capture or config)")
@click.option("--impressions", type=int, help="Page impressions to distribute clicks over")
def wasted_command(snapshot: str, primary_id: Optional[str], device: Optional[str], impressions: Optional[int]):
    """
    Find elements that pull clicks away from the primary CTA.

    Example:
        ctatracker wasted capture.json --primary button-480-320
    """
    service = ConversionAnalysisService()
    capture = _load(service, snapshot)

    analysis = service.analyze_page(capture, device=device, impressions=impressions, primary_element_id=primary_id)
    if analysis.wasted is None:
        click.echo("❌ Click prediction failed; no wasted-attention analysis available", err=True)
        for failure in analysis.failures:
            click.echo(f"   {failure.kind.value}: {failure.message}", err=True)
        raise SystemExit(1)

    wasted = analysis.wasted
    if wasted.is_fallback:
        click.echo(f"⚠️  Fallback analysis used: {wasted.fallback_reason}", err=True)
    else:
        click.echo(
            f"🎯 Primary CTA {analysis.primary_element_id}: {wasted.total_wasted_elements} of "
            f"{wasted.elements_analyzed} elements flagged, projected CTR "
            f"+{wasted.projected_improvements.ctr_improvement:.1%}",
            err=True,
        )

    click.echo(wasted.model_dump_json(indent=2))


@click.command(name="funnel")
@click.argument("step1", type=click.Path(exists=True, dir_okay=False))
@click.option("--step2", type=click.Path(exists=True, dir_okay=False), help="Capture of the post-click page")
@click.option("--visitors", type=int, help="Initial visitors entering step 1")
@click.option("--audience", type=AUDIENCES, help="Audience warmth for step 2 (default: config)")
def funnel_command(step1: str, step2: Optional[str], visitors: Optional[int], audience: Optional[str]):
    """
    Estimate end-to-end conversions for a one- or two-step funnel.

    Example:
        ctatracker funnel landing.json --step2 signup.json --visitors 1000 --audience warm
    """
    service = ConversionAnalysisService()
    first = _load(service, step1)
    second = _load(service, step2) if step2 else None

    funnel = service.analyze_funnel(first, second, initial_visitors=visitors, audience=audience)

    if funnel.is_fallback or funnel.error:
        click.echo(f"⚠️  {funnel.error}", err=True)
    click.echo(
        f"📊 {funnel.type.value} funnel: {funnel.n_conv} conversions from {funnel.n1} visitors "
        f"({funnel.p_total:.2%})",
        err=True,
    )

    click.echo(funnel.model_dump_json(indent=2))
