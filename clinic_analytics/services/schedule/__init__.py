"""
Schedule load analysis and optimization.

This module provides:
- Per-day utilization and load classification
- Monthly aggregation with peak/low days and rule-based recommendations
- Hourly demand patterns and open-slot search
- Slot scoring, chair load balancing and chair allocation per specialty
"""

from clinic_analytics.services.schedule.day_load import DayLoadAnalyzer
from clinic_analytics.services.schedule.models import (
    AppointmentRecord,
    AppointmentStatus,
    ScheduleConfig,
)
from clinic_analytics.services.schedule.monthly import MonthlyScheduleAnalyzer
from clinic_analytics.services.schedule.optimizer import ScheduleOptimizer
from clinic_analytics.services.schedule.patterns import SchedulePatternAnalyzer

__all__ = [
    "AppointmentRecord",
    "AppointmentStatus",
    "ScheduleConfig",
    "DayLoadAnalyzer",
    "MonthlyScheduleAnalyzer",
    "SchedulePatternAnalyzer",
    "ScheduleOptimizer",
]
