from fastapi import Depends

from clinic_analytics.config import Settings, get_settings
from clinic_analytics.services.experiments.analyzer import ABTestAnalyzer, ExperimentConfig
from clinic_analytics.services.schedule.day_load import DayLoadAnalyzer
from clinic_analytics.services.schedule.models import ScheduleConfig
from clinic_analytics.services.schedule.monthly import MonthlyScheduleAnalyzer
from clinic_analytics.services.schedule.optimizer import ScheduleOptimizer
from clinic_analytics.services.schedule.patterns import SchedulePatternAnalyzer


def get_schedule_config(settings: Settings = Depends(get_settings)) -> ScheduleConfig:
    return ScheduleConfig(
        daily_capacity=settings.DAILY_CAPACITY,
        slots_per_hour=settings.SLOTS_PER_HOUR,
        operating_start_hour=settings.OPERATING_START_HOUR,
        operating_end_hour=settings.OPERATING_END_HOUR,
    )


def get_experiment_config(settings: Settings = Depends(get_settings)) -> ExperimentConfig:
    return ExperimentConfig(
        confidence_level=settings.DEFAULT_CONFIDENCE_LEVEL,
        power=settings.DEFAULT_POWER,
        min_sample_size=settings.MIN_SAMPLE_SIZE,
    )


def get_ab_test_analyzer(
    config: ExperimentConfig = Depends(get_experiment_config),
) -> ABTestAnalyzer:
    return ABTestAnalyzer(config)


def get_day_analyzer(config: ScheduleConfig = Depends(get_schedule_config)) -> DayLoadAnalyzer:
    return DayLoadAnalyzer(config)


def get_month_analyzer(
    config: ScheduleConfig = Depends(get_schedule_config),
) -> MonthlyScheduleAnalyzer:
    return MonthlyScheduleAnalyzer(config)


def get_pattern_analyzer(
    config: ScheduleConfig = Depends(get_schedule_config),
) -> SchedulePatternAnalyzer:
    return SchedulePatternAnalyzer(config)


def get_optimizer(config: ScheduleConfig = Depends(get_schedule_config)) -> ScheduleOptimizer:
    return ScheduleOptimizer(config)
