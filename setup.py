"""
Setup configuration for ctatracker package.
"""

from setuptools import setup, find_packages

setup(
    name="ctatracker",
    version="0.1.0",
    description="Conversion prediction and funnel modeling for landing pages",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "numpy",
        "click>=8.0",
        "tenacity>=8.0",
        "python-dotenv",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "ctatracker=ctatracker.cli.main:cli",
        ],
    },
)
