from datetime import date
from typing import Iterable, Optional

import structlog

from clinic_analytics.services.experiments.stats import clamp_rate, round_half_up
from clinic_analytics.services.schedule.models import (
    WEEKDAY_NAMES,
    AppointmentRecord,
    AppointmentStatus,
    DayLoadAnalysis,
    LoadLevel,
    ScheduleConfig,
    filter_by_date,
    resolve_capacity,
    sorted_counts,
)

logger = structlog.get_logger(__name__)


def classify_load(utilization_rate: float) -> LoadLevel:
    if utilization_rate >= 90:
        return LoadLevel.CRITICAL
    if utilization_rate >= 70:
        return LoadLevel.HIGH
    if utilization_rate >= 50:
        return LoadLevel.MEDIUM
    return LoadLevel.LOW


class DayLoadAnalyzer:
    def __init__(self, config: Optional[ScheduleConfig] = None):
        self.config = config or ScheduleConfig()

    def analyze_day(
        self,
        day: date,
        appointments: Iterable[AppointmentRecord],
        capacity: Optional[int] = None,
    ) -> DayLoadAnalysis:
        capacity = resolve_capacity(self.config, capacity)
        day_appointments = filter_by_date(appointments, day)
        total = len(day_appointments)

        statuses = [a.status for a in day_appointments]
        utilization_rate = (total / capacity) * 100

        load_level = classify_load(utilization_rate)
        if total > capacity:
            # Overbooked: slots are clamped to zero and the day always reads as critical
            load_level = LoadLevel.CRITICAL

        return DayLoadAnalysis(
            date=day,
            day_of_week=WEEKDAY_NAMES[day.weekday()],
            total_appointments=total,
            confirmed_appointments=statuses.count(AppointmentStatus.CONFIRMED),
            pending_appointments=statuses.count(AppointmentStatus.PENDING),
            no_show_appointments=statuses.count(AppointmentStatus.NO_SHOW),
            available_slots=max(0, capacity - total),
            utilization_rate=round_half_up(clamp_rate(utilization_rate)),
            load_level=load_level,
            chair_distribution=sorted_counts(a.chair for a in day_appointments),
            specialty_distribution=sorted_counts(a.specialty for a in day_appointments),
        )
