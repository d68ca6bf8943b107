"""
Main CLI entry point for CTATracker
"""

import click
from .analyze import predict_command, wasted_command, funnel_command


@click.group()
@click.version_option(version='0.1.0')
def cli():
    """
    CTATracker - Conversion prediction and funnel modeling

    Predict clicks for a captured landing page, find elements that pull
    attention from the primary CTA, and estimate funnel conversions.
    """
    pass


# Register commands
cli.add_command(predict_command)
cli.add_command(wasted_command)
cli.add_command(funnel_command)


if __name__ == '__main__':
    cli()
