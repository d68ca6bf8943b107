"""
Configuration management for CTATracker
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration"""

    # Prediction defaults
    DEFAULT_IMPRESSIONS: int = int(os.getenv('CTA_DEFAULT_IMPRESSIONS', '1000'))
    DEFAULT_DEVICE: str = os.getenv('CTA_DEFAULT_DEVICE', 'desktop')
    DEFAULT_TRAFFIC_SOURCE: str = os.getenv('CTA_DEFAULT_TRAFFIC_SOURCE', 'unknown')

    # Revenue projection
    DEFAULT_MONTHLY_TRAFFIC: int = int(os.getenv('CTA_DEFAULT_MONTHLY_TRAFFIC', '10000'))
    DEFAULT_AVG_ORDER_VALUE: float = float(os.getenv('CTA_DEFAULT_AVG_ORDER_VALUE', '100'))

    # Funnel defaults
    DEFAULT_INITIAL_VISITORS: int = int(os.getenv('CTA_DEFAULT_INITIAL_VISITORS', '1000'))
    DEFAULT_AUDIENCE: str = os.getenv('CTA_DEFAULT_AUDIENCE', 'warm')

    # Snapshot loading retries
    RETRY_MAX_ATTEMPTS: int = int(os.getenv('CTA_RETRY_MAX_ATTEMPTS', '3'))
    RETRY_MIN_WAIT: float = float(os.getenv('CTA_RETRY_MIN_WAIT', '2'))
    RETRY_MAX_WAIT: float = float(os.getenv('CTA_RETRY_MAX_WAIT', '8'))

    # Result cache
    CACHE_MAX_ENTRIES: int = int(os.getenv('CTA_CACHE_MAX_ENTRIES', '256'))

    LOG_LEVEL: str = os.getenv('CTA_LOG_LEVEL', 'INFO')

    @classmethod
    def validate(cls) -> bool:
        """Validate configuration values"""
        problems = []

        if cls.DEFAULT_IMPRESSIONS <= 0:
            problems.append('CTA_DEFAULT_IMPRESSIONS must be positive')
        if cls.DEFAULT_INITIAL_VISITORS <= 0:
            problems.append('CTA_DEFAULT_INITIAL_VISITORS must be positive')
        if cls.DEFAULT_DEVICE not in ('desktop', 'mobile', 'tablet'):
            problems.append(f'Unknown CTA_DEFAULT_DEVICE: {cls.DEFAULT_DEVICE}')
        if cls.DEFAULT_AUDIENCE not in ('cold', 'mixed', 'warm'):
            problems.append(f'Unknown CTA_DEFAULT_AUDIENCE: {cls.DEFAULT_AUDIENCE}')
        if cls.RETRY_MAX_ATTEMPTS < 1:
            problems.append('CTA_RETRY_MAX_ATTEMPTS must be at least 1')
        if cls.RETRY_MIN_WAIT > cls.RETRY_MAX_WAIT:
            problems.append('CTA_RETRY_MIN_WAIT must not exceed CTA_RETRY_MAX_WAIT')
        if cls.CACHE_MAX_ENTRIES < 0:
            problems.append('CTA_CACHE_MAX_ENTRIES must not be negative')

        if problems:
            raise ValueError(f"Invalid configuration: {'; '.join(problems)}")

        return True

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value"""
        return getattr(cls, key, default)
