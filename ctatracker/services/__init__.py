"""
Services layer for CTATracker.

Provides the pure conversion prediction engine (conversion_prediction) and
the calling boundary that loads captures, caches results and substitutes
fallbacks (ConversionAnalysisService).
"""

from .conversion_analysis_service import (
    AnalysisCache,
    ConversionAnalysisService,
    InMemoryAnalysisCache,
    PageAnalysis,
    RetryPolicy,
)

__all__ = [
    "AnalysisCache",
    "ConversionAnalysisService",
    "InMemoryAnalysisCache",
    "PageAnalysis",
    "RetryPolicy",
]
