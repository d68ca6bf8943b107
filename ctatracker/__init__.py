"""
CTATracker - Conversion Prediction & Funnel Modeling Engine

Predicts how clicks distribute across the interactive elements of a captured
landing page, flags elements that siphon attention from the primary CTA, and
projects conversions across a two-step funnel.
"""

__version__ = "0.1.0"
__author__ = "CTATracker Team"
