"""Hourly demand patterns, open-slot search and secretary-facing recommendations."""

from collections import Counter
from typing import Iterable, List, Optional

from clinic_analytics.services.experiments.stats import clamp_rate, round_half_up
from clinic_analytics.services.schedule.models import (
    WEEKDAY_NAMES,
    AppointmentRecord,
    AppointmentStatus,
    DemandLevel,
    HourlyPattern,
    OpenSlot,
    ScheduleConfig,
)

_DEMAND_ORDER = {DemandLevel.LOW: 0, DemandLevel.MEDIUM: 1, DemandLevel.HIGH: 2}


def demand_for_free_slots(available_slots: int) -> DemandLevel:
    if available_slots >= 3:
        return DemandLevel.LOW
    if available_slots >= 2:
        return DemandLevel.MEDIUM
    return DemandLevel.HIGH


class SchedulePatternAnalyzer:
    def __init__(self, config: Optional[ScheduleConfig] = None):
        self.config = config or ScheduleConfig()

    def hourly_patterns(self, appointments: Iterable[AppointmentRecord]) -> List[HourlyPattern]:
        slots = self.config.slots_per_hour
        per_hour = Counter(a.hour for a in appointments)

        patterns = []
        for hour in range(self.config.operating_start_hour, self.config.operating_end_hour):
            count = per_hour.get(hour, 0)
            utilization_rate = clamp_rate((count / slots) * 100)

            if utilization_rate >= 75:
                demand_level = DemandLevel.HIGH
            elif utilization_rate >= 50:
                demand_level = DemandLevel.MEDIUM
            else:
                demand_level = DemandLevel.LOW

            patterns.append(
                HourlyPattern(
                    hour=f"{hour:02d}:00",
                    total_appointments=count,
                    available_slots=max(0, slots - count),
                    utilization_rate=round_half_up(utilization_rate),
                    demand_level=demand_level,
                )
            )

        return patterns

    def find_open_slots(
        self, appointments: Iterable[AppointmentRecord], min_available_slots: int = 2
    ) -> List[OpenSlot]:
        """Booked date/time slots that still have room, least contended first."""
        booked = Counter((a.date, a.time) for a in appointments)

        open_slots = []
        for (day, time), count in booked.items():
            available = self.config.slots_per_hour - count
            if available >= min_available_slots and available > 0:
                open_slots.append(
                    OpenSlot(
                        date=day,
                        time=time,
                        available_slots=available,
                        demand_level=demand_for_free_slots(available),
                    )
                )

        return sorted(
            open_slots,
            key=lambda s: (_DEMAND_ORDER[s.demand_level], -s.available_slots, s.date, s.time),
        )

    def scheduling_recommendations(self, appointments: Iterable[AppointmentRecord]) -> List[str]:
        appointments = list(appointments)
        if not appointments:
            return []

        recommendations = []

        by_weekday = Counter(WEEKDAY_NAMES[a.date.weekday()] for a in appointments)
        weekdays = sorted(by_weekday.items(), key=lambda item: (-item[1], item[0]))
        busiest_day, quietest_day = weekdays[0], weekdays[-1]
        if busiest_day[1] > quietest_day[1] * 1.5:
            recommendations.append(
                f"{busiest_day[0]} has {busiest_day[1]} appointments while {quietest_day[0]} "
                f"has only {quietest_day[1]}. Consider spreading bookings more evenly."
            )

        by_hour = Counter(a.hour for a in appointments)
        hours = sorted(by_hour.items(), key=lambda item: (-item[1], item[0]))
        busiest_hour, quietest_hour = hours[0], hours[-1]
        if busiest_hour[1] > quietest_hour[1] * 2:
            recommendations.append(
                f"{busiest_hour[0]:02d}:00 has {busiest_hour[1]} appointments. "
                "Consider moving bookings to quieter hours."
            )

        confirmed = sum(1 for a in appointments if a.status == AppointmentStatus.CONFIRMED)
        confirmation_rate = (confirmed / len(appointments)) * 100
        if confirmation_rate < 50:
            recommendations.append(
                f"Low confirmation rate ({round_half_up(confirmation_rate)}%). "
                "Step up appointment reminders."
            )

        return recommendations
