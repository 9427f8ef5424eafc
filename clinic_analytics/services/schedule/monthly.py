import calendar
from datetime import date
from typing import Dict, Iterable, List, Optional

import structlog

from clinic_analytics.services.experiments.stats import round_half_up
from clinic_analytics.services.exceptions import InvalidScheduleInput
from clinic_analytics.services.schedule.day_load import DayLoadAnalyzer
from clinic_analytics.services.schedule.models import (
    MONTH_NAMES,
    AppointmentRecord,
    DayLoadAnalysis,
    LoadLevel,
    MonthAnalysis,
    ScheduleConfig,
    ScheduleReport,
    filter_by_month,
    resolve_capacity,
    sorted_counts,
)
from clinic_analytics.services.schedule.patterns import SchedulePatternAnalyzer

logger = structlog.get_logger(__name__)


class MonthlyScheduleAnalyzer:
    """Runs the day analysis over a calendar month and derives rule-based advice."""

    def __init__(self, config: Optional[ScheduleConfig] = None):
        self.config = config or ScheduleConfig()
        self.day_analyzer = DayLoadAnalyzer(self.config)
        self.pattern_analyzer = SchedulePatternAnalyzer(self.config)

    def analyze_month(
        self,
        month: int,
        year: int,
        appointments: Iterable[AppointmentRecord],
        capacity: Optional[int] = None,
    ) -> MonthAnalysis:
        if not 1 <= month <= 12:
            raise InvalidScheduleInput(f"month must be between 1 and 12, got {month}")
        capacity = resolve_capacity(self.config, capacity)

        month_appointments = filter_by_month(appointments, month, year)
        days_in_month = calendar.monthrange(year, month)[1]

        days = [
            self.day_analyzer.analyze_day(date(year, month, day), month_appointments, capacity)
            for day in range(1, days_in_month + 1)
        ]

        # sorted() is stable, so equal utilization keeps calendar order
        top = self.config.top_days
        peak_days = sorted(
            (d for d in days if d.load_level in (LoadLevel.HIGH, LoadLevel.CRITICAL)),
            key=lambda d: -d.utilization_rate,
        )[:top]
        low_days = sorted(
            (d for d in days if d.load_level == LoadLevel.LOW),
            key=lambda d: d.utilization_rate,
        )[:top]

        average_utilization = round_half_up(sum(d.utilization_rate for d in days) / len(days))
        chair_utilization = sorted_counts(a.chair for a in month_appointments)

        analysis = MonthAnalysis(
            month=MONTH_NAMES[month - 1],
            month_number=month,
            year=year,
            total_appointments=len(month_appointments),
            average_daily_appointments=round_half_up(len(month_appointments) / days_in_month),
            days=days,
            peak_days=peak_days,
            low_days=low_days,
            utilization_rate=average_utilization,
            chair_utilization=chair_utilization,
            specialty_demand=sorted_counts(a.specialty for a in month_appointments),
            recommendations=self.recommendations(peak_days, average_utilization, chair_utilization),
        )

        logger.debug(
            "month_analyzed",
            month=month,
            year=year,
            appointments=analysis.total_appointments,
            utilization_rate=average_utilization,
            peak_days=len(peak_days),
        )
        return analysis

    def recommendations(
        self,
        peak_days: List[DayLoadAnalysis],
        average_utilization: float,
        chair_utilization: Dict[str, int],
    ) -> List[str]:
        recommendations = []

        if peak_days:
            dates = ", ".join(d.date.isoformat() for d in peak_days)
            recommendations.append(
                f"Peak days identified: {dates}. "
                "Consider moving bookings to days with lower demand."
            )

        if average_utilization > self.config.high_utilization_threshold:
            recommendations.append(
                f"High utilization ({average_utilization}%). "
                "Consider opening more slots or adding professionals."
            )

        if average_utilization < self.config.low_utilization_threshold:
            recommendations.append(
                f"Low utilization ({average_utilization}%). "
                "There is room to schedule more patients."
            )

        if chair_utilization:
            spread = max(chair_utilization.values()) - min(chair_utilization.values())
            if spread > self.config.chair_imbalance_threshold:
                recommendations.append(
                    "Uneven distribution across chairs. "
                    "Consider rebalancing appointments to make better use of resources."
                )

        return recommendations

    def schedule_report(
        self, month: int, year: int, appointments: Iterable[AppointmentRecord]
    ) -> ScheduleReport:
        appointments = list(appointments)
        return ScheduleReport(
            month_analysis=self.analyze_month(month, year, appointments),
            hourly_patterns=self.pattern_analyzer.hourly_patterns(appointments),
            optimal_times=self.pattern_analyzer.find_open_slots(appointments),
        )
