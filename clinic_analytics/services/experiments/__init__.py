"""
Message-template experimentation (A/B testing).

This module provides:
- Statistical primitives (normal CDF, z-score tables, confidence intervals)
- Template comparison with a pooled two-proportion z-test
- Sample size planning, conversion funnel analysis and readiness checks
"""

from clinic_analytics.services.experiments.analyzer import (
    ABTestAnalyzer,
    ABTestResult,
    ConversionFunnel,
    ExperimentArm,
    ExperimentConfig,
    ScoreWeights,
)
from clinic_analytics.services.experiments.stats import (
    confidence_interval,
    normal_cdf,
    standard_deviation,
    two_proportion_z_test,
    z_score_for,
)

__all__ = [
    "normal_cdf",
    "z_score_for",
    "standard_deviation",
    "confidence_interval",
    "two_proportion_z_test",
    "ABTestAnalyzer",
    "ABTestResult",
    "ConversionFunnel",
    "ExperimentArm",
    "ExperimentConfig",
    "ScoreWeights",
]
