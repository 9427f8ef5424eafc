import pytest

from clinic_analytics.services.exceptions import (
    InvalidArmData,
    InvalidConfidenceLevel,
    InvalidPowerLevel,
)
from clinic_analytics.services.experiments.analyzer import (
    ABTestAnalyzer,
    ABTestResult,
    ConversionFunnel,
    ExperimentArm,
    ExperimentConfig,
    ScoreWeights,
    confirmation_rate,
)


@pytest.fixture
def analyzer():
    return ABTestAnalyzer()


@pytest.fixture
def arm_a():
    return ExperimentArm(confirmations=94, total_attempts=120, average_confidence=82.0)


@pytest.fixture
def arm_b():
    return ExperimentArm(confirmations=65, total_attempts=100, average_confidence=74.5)


class TestConfirmationRate:
    def test_basic_rate(self):
        assert confirmation_rate(ExperimentArm(confirmations=25, total_attempts=100)) == 25.0

    def test_zero_attempts(self):
        assert confirmation_rate(ExperimentArm(confirmations=0, total_attempts=0)) == 0.0

    def test_full_confirmation(self):
        assert confirmation_rate(ExperimentArm(confirmations=40, total_attempts=40)) == 100.0


class TestAnalyze:
    def test_significant_winner(self, analyzer, arm_a, arm_b):
        """94/120 against 65/100 is a significant win for template A at 95%."""
        result = analyzer.analyze(arm_a, arm_b, confidence_level=0.95)

        assert isinstance(result, ABTestResult)
        assert result.template_a.confirmation_rate == pytest.approx(78.333, rel=1e-3)
        assert result.template_b.confirmation_rate == pytest.approx(65.0)
        assert result.p_value < 0.05
        assert result.is_significant
        assert result.winner == "A"
        assert result.relative_improvement == pytest.approx(20.51, rel=1e-3)

    def test_result_carries_arm_inputs(self, analyzer, arm_a, arm_b):
        result = analyzer.analyze(arm_a, arm_b)

        assert result.template_a.confirmations == 94
        assert result.template_a.total_attempts == 120
        assert result.template_a.average_confidence == 82.0
        assert result.template_b.standard_deviation == pytest.approx(4.7697, rel=1e-3)
        assert result.confidence_level == 0.95

    def test_swapping_arms_swaps_winner(self, analyzer, arm_a, arm_b):
        forward = analyzer.analyze(arm_a, arm_b)
        backward = analyzer.analyze(arm_b, arm_a)

        assert forward.winner == "A"
        assert backward.winner == "B"
        assert forward.p_value == pytest.approx(backward.p_value)
        assert abs(
            forward.template_a.confirmation_rate - forward.template_b.confirmation_rate
        ) == pytest.approx(
            abs(backward.template_a.confirmation_rate - backward.template_b.confirmation_rate)
        )

    def test_rates_are_bounded(self, analyzer):
        arms = [
            ExperimentArm(confirmations=0, total_attempts=0),
            ExperimentArm(confirmations=0, total_attempts=10),
            ExperimentArm(confirmations=10, total_attempts=10),
            ExperimentArm(confirmations=3, total_attempts=7),
        ]
        for a in arms:
            for b in arms:
                result = analyzer.analyze(a, b)
                assert 0 <= result.template_a.confirmation_rate <= 100
                assert 0 <= result.template_b.confirmation_rate <= 100
                assert 0 <= result.p_value <= 1
                assert 0 <= result.confidence_interval.lower <= result.confidence_interval.upper <= 100

    def test_difference_interval_uses_smaller_arm(self, analyzer, arm_a, arm_b):
        """The interval is built around rate_a - rate_b with min(nA, nB) samples."""
        result = analyzer.analyze(arm_a, arm_b)

        assert result.confidence_interval.lower == pytest.approx(6.671, rel=1e-3)
        assert result.confidence_interval.upper == pytest.approx(19.996, rel=1e-3)

    def test_not_significant_asks_for_more_samples(self, analyzer):
        a = ExperimentArm(confirmations=22, total_attempts=100)
        b = ExperimentArm(confirmations=25, total_attempts=80)

        result = analyzer.analyze(a, b)

        assert not result.is_significant
        assert result.winner == "tie"
        assert result.relative_improvement is None
        assert "not statistically significant" in result.recommendation
        assert "at least 200 attempts" in result.recommendation

    def test_winner_recommendation(self, analyzer, arm_a, arm_b):
        result = analyzer.analyze(arm_a, arm_b)

        assert result.recommendation.startswith("Template A is the winner")
        assert "78.3%" in result.recommendation
        assert "20.5% better" in result.recommendation

    def test_winner_against_zero_rate(self, analyzer):
        a = ExperimentArm(confirmations=0, total_attempts=200)
        b = ExperimentArm(confirmations=40, total_attempts=200)

        result = analyzer.analyze(a, b)

        assert result.winner == "B"
        assert result.relative_improvement is None
        assert "no confirmations" in result.recommendation

    def test_zero_attempts_is_neutral(self, analyzer):
        empty = ExperimentArm(confirmations=0, total_attempts=0)

        result = analyzer.analyze(empty, empty)

        assert result.p_value == 1.0
        assert result.winner == "tie"
        assert result.template_a.standard_deviation == 0.0

    def test_stricter_level_changes_significance(self, analyzer):
        a = ExperimentArm(confirmations=60, total_attempts=100)
        b = ExperimentArm(confirmations=46, total_attempts=100)

        assert analyzer.analyze(a, b, confidence_level=0.95).is_significant
        assert not analyzer.analyze(a, b, confidence_level=0.99).is_significant

    def test_config_default_level(self):
        analyzer = ABTestAnalyzer(ExperimentConfig(confidence_level=0.99))
        a = ExperimentArm(confirmations=60, total_attempts=100)
        b = ExperimentArm(confirmations=46, total_attempts=100)

        result = analyzer.analyze(a, b)

        assert result.confidence_level == 0.99
        assert not result.is_significant

    def test_invalid_confidence_level(self, analyzer, arm_a, arm_b):
        with pytest.raises(InvalidConfidenceLevel):
            analyzer.analyze(arm_a, arm_b, confidence_level=0.8)

    def test_confirmations_exceeding_attempts(self, analyzer, arm_a):
        broken = ExperimentArm(confirmations=11, total_attempts=10)
        with pytest.raises(InvalidArmData, match="Template B"):
            analyzer.analyze(arm_a, broken)

    def test_negative_counts(self, analyzer, arm_b):
        broken = ExperimentArm(confirmations=-1, total_attempts=10)
        with pytest.raises(InvalidArmData, match="negative"):
            analyzer.analyze(broken, arm_b)

    def test_negative_funnel_counts(self, analyzer, arm_b):
        broken = ExperimentArm(
            confirmations=1, total_attempts=10, funnel=ConversionFunnel(sent=-5)
        )
        with pytest.raises(InvalidArmData, match="funnel.sent"):
            analyzer.analyze(broken, arm_b)

    @pytest.mark.parametrize("average_confidence", [-0.5, 100.5])
    def test_average_confidence_out_of_range(self, analyzer, arm_b, average_confidence):
        broken = ExperimentArm(
            confirmations=5, total_attempts=10, average_confidence=average_confidence
        )
        with pytest.raises(InvalidArmData, match="average_confidence"):
            analyzer.analyze(broken, arm_b)

    def test_difference_interval_is_clamped_when_b_leads(self, analyzer, arm_a, arm_b):
        result = analyzer.analyze(arm_b, arm_a)

        assert result.winner == "B"
        assert result.confidence_interval.lower == 0.0
        assert result.confidence_interval.upper == 0.0


class TestSampleSize:
    def test_basic_sample_size(self, analyzer):
        n = analyzer.sample_size_needed(20.0, 5.0, confidence_level=0.95, power=0.80)
        assert n == 1090
        assert isinstance(n, int)

    def test_smaller_effect_needs_more_samples(self, analyzer):
        assert analyzer.sample_size_needed(20.0, 2.0) > analyzer.sample_size_needed(20.0, 10.0)

    def test_higher_power_needs_more_samples(self, analyzer):
        assert analyzer.sample_size_needed(20.0, 5.0, power=0.90) > analyzer.sample_size_needed(
            20.0, 5.0, power=0.80
        )

    def test_no_effect(self, analyzer):
        assert analyzer.sample_size_needed(20.0, 0.0) == 0

    def test_target_rate_out_of_range(self, analyzer):
        assert analyzer.sample_size_needed(95.0, 10.0) == 0

    def test_invalid_power(self, analyzer):
        with pytest.raises(InvalidPowerLevel):
            analyzer.sample_size_needed(20.0, 5.0, power=0.7)

    def test_invalid_confidence_level(self, analyzer):
        with pytest.raises(InvalidConfidenceLevel):
            analyzer.sample_size_needed(20.0, 5.0, confidence_level=0.9999)


class TestConversionFunnel:
    def test_stage_rates(self, analyzer):
        arm = ExperimentArm(
            confirmations=30,
            total_attempts=100,
            funnel=ConversionFunnel(sent=100, opened=80, clicked=40, confirmed=30),
        )

        funnel = analyzer.conversion_funnel(arm)

        assert funnel.open_rate == pytest.approx(80.0)
        assert funnel.click_rate == pytest.approx(50.0)
        assert funnel.confirmation_rate == pytest.approx(75.0)
        assert funnel.drop_off.after_sent == pytest.approx(20.0)
        assert funnel.drop_off.after_opened == pytest.approx(50.0)
        assert funnel.drop_off.after_clicked == pytest.approx(25.0)

    def test_empty_stages_report_zero(self, analyzer):
        arm = ExperimentArm(
            confirmations=0,
            total_attempts=0,
            funnel=ConversionFunnel(sent=10, opened=0, clicked=0, confirmed=0),
        )

        funnel = analyzer.conversion_funnel(arm)

        assert funnel.open_rate == 0.0
        assert funnel.click_rate == 0.0
        assert funnel.confirmation_rate == 0.0
        assert funnel.drop_off.after_sent == 100.0
        assert funnel.drop_off.after_opened == 0.0
        assert funnel.drop_off.after_clicked == 0.0

    @pytest.mark.parametrize(
        "counts, stage",
        [
            ({"sent": 10, "opened": 50, "clicked": 0, "confirmed": 0}, "opened"),
            ({"sent": 10, "opened": 8, "clicked": 9, "confirmed": 0}, "clicked"),
            ({"sent": 10, "opened": 8, "clicked": 4, "confirmed": 5}, "confirmed"),
        ],
    )
    def test_out_of_order_stages_rejected(self, analyzer, counts, stage):
        arm = ExperimentArm(confirmations=5, total_attempts=10, funnel=ConversionFunnel(**counts))

        with pytest.raises(InvalidArmData, match=f"more {stage}"):
            analyzer.conversion_funnel(arm)

    def test_every_stage_inflated_rejected(self, analyzer):
        arm = ExperimentArm(
            confirmations=5,
            total_attempts=10,
            funnel=ConversionFunnel(sent=10, opened=50, clicked=80, confirmed=90),
        )

        with pytest.raises(InvalidArmData, match="funnel"):
            analyzer.conversion_funnel(arm)


class TestReadiness:
    def test_arm_a_short(self, analyzer):
        a = ExperimentArm(confirmations=10, total_attempts=50)
        b = ExperimentArm(confirmations=10, total_attempts=150)

        check = analyzer.readiness(a, b)

        assert not check.ready
        assert check.reason == "Template A: 50/100 samples. Needs 50 more attempts."

    def test_arm_b_short(self, analyzer):
        a = ExperimentArm(confirmations=10, total_attempts=150)
        b = ExperimentArm(confirmations=10, total_attempts=20)

        check = analyzer.readiness(a, b, min_sample_size=30)

        assert not check.ready
        assert check.reason.startswith("Template B: 20/30")

    def test_ready(self, analyzer, arm_a, arm_b):
        assert analyzer.readiness(arm_a, arm_b).ready


class TestBestTemplate:
    def test_higher_rate_wins(self, analyzer, arm_a, arm_b):
        assert analyzer.best_template(arm_a, arm_b) == "A"

    def test_faster_response_can_decide(self, analyzer):
        a = ExperimentArm(confirmations=50, total_attempts=100, average_response_time=120)
        b = ExperimentArm(confirmations=50, total_attempts=100, average_response_time=30)

        assert analyzer.best_template(a, b) == "B"
        assert analyzer.best_template(b, a) == "A"

    def test_ties_go_to_b(self, analyzer):
        arm = ExperimentArm(confirmations=50, total_attempts=100)
        assert analyzer.best_template(arm, arm) == "B"

    def test_custom_weights(self, analyzer):
        a = ExperimentArm(confirmations=60, total_attempts=100, average_confidence=10)
        b = ExperimentArm(confirmations=50, total_attempts=100, average_confidence=90)
        confidence_only = ScoreWeights(confirmation_rate=0, average_confidence=1, response_time=0)

        assert analyzer.best_template(a, b) == "B"
        assert analyzer.best_template(a, b, ScoreWeights(1, 0, 0)) == "A"
        assert analyzer.best_template(a, b, confidence_only) == "B"


class TestSummarize:
    def test_summary_text(self, analyzer, arm_a, arm_b):
        summary = analyzer.summarize(analyzer.analyze(arm_a, arm_b))

        assert "Confirmations: 94/120" in summary
        assert "Rate: 78.33%" in summary
        assert "Significant: YES" in summary
        assert "Winner: Template A" in summary

    def test_summary_for_tie(self, analyzer):
        arm = ExperimentArm(confirmations=10, total_attempts=20)
        summary = analyzer.summarize(analyzer.analyze(arm, arm))

        assert "Winner: Tie" in summary
        assert "Significant: NO" in summary
