import math
from types import MappingProxyType
from typing import Mapping, Tuple

from clinic_analytics.services.exceptions import InvalidConfidenceLevel, InvalidPowerLevel

# Abramowitz & Stegun 7.1.26
_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429
_P = 0.3275911

CONFIDENCE_Z_SCORES: Mapping[float, float] = MappingProxyType({0.90: 1.645, 0.95: 1.96, 0.99: 2.576})
POWER_Z_SCORES: Mapping[float, float] = MappingProxyType({0.80: 0.84, 0.90: 1.28})


def _lookup(table: Mapping[float, float], key: float):
    for level, z in table.items():
        if math.isclose(level, key, abs_tol=1e-9):
            return z
    return None


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_rate(rate: float) -> float:
    return min(max(rate, 0.0), 100.0)


def normal_cdf(z: float) -> float:
    sign = -1.0 if z < 0 else 1.0
    x = abs(z) / math.sqrt(2)

    t = 1.0 / (1.0 + _P * x)
    poly = ((((_A5 * t + _A4) * t + _A3) * t + _A2) * t + _A1) * t
    y = 1.0 - poly * math.exp(-x * x)

    return min(max(0.5 * (1.0 + sign * y), 0.0), 1.0)


def z_score_for(confidence_level: float) -> float:
    z = _lookup(CONFIDENCE_Z_SCORES, confidence_level)
    if z is None:
        raise InvalidConfidenceLevel(confidence_level, tuple(CONFIDENCE_Z_SCORES))
    return z


def z_beta_for(power: float) -> float:
    z = _lookup(POWER_Z_SCORES, power)
    if z is None:
        raise InvalidPowerLevel(power, tuple(POWER_Z_SCORES))
    return z


def standard_deviation(rate: float, sample_size: int) -> float:
    """Standard error of a rate expressed in percent, also in percent."""
    if sample_size <= 0:
        return 0.0
    p = rate / 100
    return math.sqrt(max(p * (1 - p), 0.0) / sample_size) * 100


def confidence_interval(
    rate: float, sample_size: int, confidence_level: float = 0.95
) -> Tuple[float, float]:
    z = z_score_for(confidence_level)
    if sample_size <= 0:
        return clamp_rate(rate), clamp_rate(rate)

    # abs() keeps the half-width defined when `rate` is a negative difference of rates
    p = abs(rate) / 100
    margin = z * math.sqrt(max(p * (1 - p), 0.0) / sample_size) * 100

    return clamp_rate(rate - margin), clamp_rate(rate + margin)


def two_proportion_z_test(
    confirmations_a: int, total_a: int, confirmations_b: int, total_b: int
) -> Tuple[float, float]:
    if total_a <= 0 or total_b <= 0:
        return 0.0, 1.0

    p_a = confirmations_a / total_a
    p_b = confirmations_b / total_b
    p_pooled = (confirmations_a + confirmations_b) / (total_a + total_b)

    se = math.sqrt(p_pooled * (1 - p_pooled) * (1 / total_a + 1 / total_b))
    if se == 0:
        return 0.0, 1.0

    z_score = (p_a - p_b) / se
    # Two-tailed p-value
    p_value = 2 * (1 - normal_cdf(abs(z_score)))

    return z_score, min(max(p_value, 0.0), 1.0)
