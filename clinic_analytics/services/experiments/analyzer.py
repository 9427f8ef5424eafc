import math
from dataclasses import dataclass, field
from typing import Optional

import structlog

from clinic_analytics.services.exceptions import InvalidArmData
from clinic_analytics.services.experiments.stats import (
    clamp_rate,
    confidence_interval,
    standard_deviation,
    two_proportion_z_test,
    z_beta_for,
    z_score_for,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ConversionFunnel:
    sent: int = 0
    opened: int = 0
    clicked: int = 0
    confirmed: int = 0


@dataclass(frozen=True)
class ExperimentArm:
    """Aggregated outcome of one message template over a measurement window."""

    confirmations: int
    total_attempts: int
    average_confidence: float = 0.0
    funnel: ConversionFunnel = field(default_factory=ConversionFunnel)
    average_response_time: float = 0.0  # Minutes
    name: str = ""


@dataclass(frozen=True)
class ExperimentConfig:
    confidence_level: float = 0.95
    power: float = 0.80
    min_sample_size: int = 100


@dataclass(frozen=True)
class ScoreWeights:
    confirmation_rate: float = 0.6
    average_confidence: float = 0.3
    response_time: float = 0.1


@dataclass
class ArmStatistics:
    confirmations: int
    total_attempts: int
    confirmation_rate: float
    average_confidence: float
    standard_deviation: float


@dataclass
class ConfidenceInterval:
    lower: float
    upper: float


@dataclass
class ABTestResult:
    template_a: ArmStatistics
    template_b: ArmStatistics
    winner: str  # "A", "B" or "tie"
    z_score: float
    p_value: float
    is_significant: bool
    confidence_level: float
    confidence_interval: ConfidenceInterval
    relative_improvement: Optional[float]  # Percentage, None without a winner
    recommendation: str


@dataclass
class FunnelDropOff:
    after_sent: float
    after_opened: float
    after_clicked: float


@dataclass
class FunnelAnalysis:
    open_rate: float
    click_rate: float
    confirmation_rate: float
    drop_off: FunnelDropOff


@dataclass
class ReadinessCheck:
    ready: bool
    reason: str


def _stage_rate(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return clamp_rate((numerator / denominator) * 100)


def validate_arm(arm: ExperimentArm, label: str) -> None:
    counts = {
        "confirmations": arm.confirmations,
        "total_attempts": arm.total_attempts,
        "funnel.sent": arm.funnel.sent,
        "funnel.opened": arm.funnel.opened,
        "funnel.clicked": arm.funnel.clicked,
        "funnel.confirmed": arm.funnel.confirmed,
    }
    negative = [name for name, value in counts.items() if value < 0]
    if negative:
        raise InvalidArmData(f"Template {label} has negative counts: {', '.join(negative)}")

    if arm.confirmations > arm.total_attempts:
        raise InvalidArmData(
            f"Template {label} has more confirmations ({arm.confirmations}) "
            f"than attempts ({arm.total_attempts})"
        )

    funnel = arm.funnel
    stages = (
        ("opened", funnel.opened, "sent", funnel.sent),
        ("clicked", funnel.clicked, "opened", funnel.opened),
        ("confirmed", funnel.confirmed, "clicked", funnel.clicked),
    )
    for stage, count, previous, previous_count in stages:
        if count > previous_count:
            raise InvalidArmData(
                f"Template {label} funnel has more {stage} ({count}) than {previous} "
                f"({previous_count})"
            )

    if not 0 <= arm.average_confidence <= 100:
        raise InvalidArmData(
            f"Template {label} average_confidence must be between 0 and 100, "
            f"got {arm.average_confidence}"
        )


def confirmation_rate(arm: ExperimentArm) -> float:
    if arm.total_attempts == 0:
        return 0.0
    return clamp_rate((arm.confirmations / arm.total_attempts) * 100)


def relative_improvement(winner_rate: float, loser_rate: float) -> Optional[float]:
    if loser_rate == 0:
        return None
    return ((winner_rate - loser_rate) / loser_rate) * 100


def build_recommendation(
    winner: str,
    rate_a: float,
    rate_b: float,
    is_significant: bool,
    sample_a: int,
    sample_b: int,
) -> str:
    if not is_significant:
        return (
            "Results are not statistically significant. Increase the sample size "
            f"(at least {max(sample_a, sample_b) * 2} attempts per template)."
        )

    if winner == "tie":
        return (
            "Both templates perform equivalently. Choose based on other criteria "
            "(cost, patient satisfaction, tone)."
        )

    winner_rate = rate_a if winner == "A" else rate_b
    loser_rate = rate_b if winner == "A" else rate_a
    improvement = relative_improvement(winner_rate, loser_rate)
    improvement_text = (
        f"{improvement:.1f}% better"
        if improvement is not None
        else "the other template had no confirmations"
    )

    return (
        f"Template {winner} is the winner with a {winner_rate:.1f}% confirmation rate "
        f"({improvement_text}). Use this template for new appointments."
    )


class ABTestAnalyzer:
    """Compares two message templates with a pooled two-proportion z-test."""

    def __init__(self, config: Optional[ExperimentConfig] = None):
        self.config = config or ExperimentConfig()

    def analyze(
        self,
        arm_a: ExperimentArm,
        arm_b: ExperimentArm,
        confidence_level: Optional[float] = None,
    ) -> ABTestResult:
        if confidence_level is None:
            confidence_level = self.config.confidence_level
        z_score_for(confidence_level)  # Rejects unsupported levels before any work
        validate_arm(arm_a, "A")
        validate_arm(arm_b, "B")

        rate_a = confirmation_rate(arm_a)
        rate_b = confirmation_rate(arm_b)

        z_score, p_value = two_proportion_z_test(
            arm_a.confirmations, arm_a.total_attempts, arm_b.confirmations, arm_b.total_attempts
        )
        is_significant = p_value < (1 - confidence_level)

        # Interval on the rate difference, sized by the smaller arm. This is an
        # approximation, not the two-sample interval for a difference of proportions.
        # Bounds are clamped to [0, 100], so when B leads the interval collapses to
        # [0, 0]; that does not mean the arms are equal. Read `winner` and `p_value`.
        lower, upper = confidence_interval(
            rate_a - rate_b,
            min(arm_a.total_attempts, arm_b.total_attempts),
            confidence_level,
        )

        winner = "tie"
        if is_significant:
            winner = "A" if rate_a > rate_b else "B"

        improvement = None
        if winner != "tie":
            improvement = relative_improvement(
                max(rate_a, rate_b), min(rate_a, rate_b)
            )

        result = ABTestResult(
            template_a=ArmStatistics(
                confirmations=arm_a.confirmations,
                total_attempts=arm_a.total_attempts,
                confirmation_rate=rate_a,
                average_confidence=arm_a.average_confidence,
                standard_deviation=standard_deviation(rate_a, arm_a.total_attempts),
            ),
            template_b=ArmStatistics(
                confirmations=arm_b.confirmations,
                total_attempts=arm_b.total_attempts,
                confirmation_rate=rate_b,
                average_confidence=arm_b.average_confidence,
                standard_deviation=standard_deviation(rate_b, arm_b.total_attempts),
            ),
            winner=winner,
            z_score=z_score,
            p_value=p_value,
            is_significant=is_significant,
            confidence_level=confidence_level,
            confidence_interval=ConfidenceInterval(lower=lower, upper=upper),
            relative_improvement=improvement,
            recommendation=build_recommendation(
                winner,
                rate_a,
                rate_b,
                is_significant,
                arm_a.total_attempts,
                arm_b.total_attempts,
            ),
        )

        logger.debug(
            "ab_test_analyzed",
            winner=winner,
            p_value=round(p_value, 6),
            confidence_level=confidence_level,
        )
        return result

    def sample_size_needed(
        self,
        baseline_rate: float,
        min_detectable_effect: float,
        confidence_level: Optional[float] = None,
        power: Optional[float] = None,
    ) -> int:
        """Attempts needed per template to detect `min_detectable_effect`.

        Both rates are in percent; the effect is in percentage points on top
        of the baseline. Returns 0 when there is nothing to detect or the
        target rate falls outside 0-100%.
        """
        z_alpha = z_score_for(
            self.config.confidence_level if confidence_level is None else confidence_level
        )
        z_beta = z_beta_for(self.config.power if power is None else power)

        p1 = baseline_rate / 100
        p2 = (baseline_rate + min_detectable_effect) / 100
        if not (0 <= p1 <= 1 and 0 <= p2 <= 1):
            return 0

        denominator = (p2 - p1) ** 2
        if denominator == 0:
            return 0

        numerator = (z_alpha + z_beta) ** 2 * (p1 * (1 - p1) + p2 * (1 - p2))
        return math.ceil(numerator / denominator)

    def conversion_funnel(self, arm: ExperimentArm) -> FunnelAnalysis:
        validate_arm(arm, arm.name or "arm")
        funnel = arm.funnel

        return FunnelAnalysis(
            open_rate=_stage_rate(funnel.opened, funnel.sent),
            click_rate=_stage_rate(funnel.clicked, funnel.opened),
            confirmation_rate=_stage_rate(funnel.confirmed, funnel.clicked),
            drop_off=FunnelDropOff(
                after_sent=_stage_rate(funnel.sent - funnel.opened, funnel.sent),
                after_opened=_stage_rate(funnel.opened - funnel.clicked, funnel.opened),
                after_clicked=_stage_rate(funnel.clicked - funnel.confirmed, funnel.clicked),
            ),
        )

    def readiness(
        self,
        arm_a: ExperimentArm,
        arm_b: ExperimentArm,
        min_sample_size: Optional[int] = None,
    ) -> ReadinessCheck:
        required = self.config.min_sample_size if min_sample_size is None else min_sample_size

        for label, arm in (("A", arm_a), ("B", arm_b)):
            if arm.total_attempts < required:
                return ReadinessCheck(
                    ready=False,
                    reason=(
                        f"Template {label}: {arm.total_attempts}/{required} samples. "
                        f"Needs {required - arm.total_attempts} more attempts."
                    ),
                )

        return ReadinessCheck(
            ready=True, reason="Both templates have enough samples for analysis."
        )

    def best_template(
        self,
        arm_a: ExperimentArm,
        arm_b: ExperimentArm,
        weights: Optional[ScoreWeights] = None,
    ) -> str:
        """Weighted pick across rate, confidence and response time; ties go to B."""
        weights = weights or ScoreWeights()
        validate_arm(arm_a, "A")
        validate_arm(arm_b, "B")

        # Lower response time is better, so it is inverted against the slower arm
        slowest = max(arm_a.average_response_time, arm_b.average_response_time)

        def score(arm: ExperimentArm) -> float:
            response_score = (
                (slowest - arm.average_response_time) / slowest if slowest > 0 else 0.0
            )
            return (
                (confirmation_rate(arm) / 100) * weights.confirmation_rate
                + (arm.average_confidence / 100) * weights.average_confidence
                + response_score * weights.response_time
            )

        return "A" if score(arm_a) > score(arm_b) else "B"

    @staticmethod
    def summarize(result: ABTestResult) -> str:
        a = result.template_a
        b = result.template_b
        winner = "Tie" if result.winner == "tie" else f"Template {result.winner}"

        return f"""
A/B Test Results:
=================

Template A:
- Confirmations: {a.confirmations}/{a.total_attempts}
- Rate: {a.confirmation_rate:.2f}%
- Average confidence: {a.average_confidence:.2f}%
- Standard deviation: {a.standard_deviation:.2f}%

Template B:
- Confirmations: {b.confirmations}/{b.total_attempts}
- Rate: {b.confirmation_rate:.2f}%
- Average confidence: {b.average_confidence:.2f}%
- Standard deviation: {b.standard_deviation:.2f}%

Statistical analysis:
- P-value: {result.p_value:.4f}
- Significant: {"YES" if result.is_significant else "NO"}
- Confidence interval: [{result.confidence_interval.lower:.2f}%, {result.confidence_interval.upper:.2f}%]

Outcome:
- Winner: {winner}
- Recommendation: {result.recommendation}
"""
