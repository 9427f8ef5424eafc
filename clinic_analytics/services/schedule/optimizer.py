import math
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from clinic_analytics.services.experiments.stats import round_half_up
from clinic_analytics.services.schedule.models import (
    AppointmentRecord,
    ChairAllocationOptimization,
    DemandLevel,
    LoadBalancingResult,
    Reallocation,
    ScheduleConfig,
    SchedulingSuggestion,
    parse_hour,
)

logger = structlog.get_logger(__name__)

_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def imbalance(load: Mapping[str, int]) -> float:
    """Population standard deviation of per-chair loads."""
    values = list(load.values())
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return math.sqrt(variance)


def scheduling_reason(available_slots: int, is_peak_hour: bool) -> str:
    if available_slots >= 3:
        reason = "Good availability"
    elif available_slots == 2:
        reason = "Moderate availability"
    else:
        reason = "Limited availability"

    if is_peak_hour:
        reason += " - preferred peak hour"
    return reason


class ScheduleOptimizer:
    def __init__(self, config: Optional[ScheduleConfig] = None):
        self.config = config or ScheduleConfig()

    def suggest_optimal_times(
        self,
        appointments: Iterable[AppointmentRecord],
        specialty: str,
        chair: str,
        n: int = 5,
    ) -> List[SchedulingSuggestion]:
        slots_per_hour = self.config.slots_per_hour

        # date/time slots seen in the agenda, and how many of them the target chair holds
        booked: Dict[tuple, int] = {}
        for a in appointments:
            key = (a.date, a.time)
            booked.setdefault(key, 0)
            if a.chair == chair:
                booked[key] += 1

        suggestions = []
        for (day, time), count in sorted(booked.items()):
            available = slots_per_hour - count
            if available <= 0:
                continue

            if available == 1:
                demand_level = DemandLevel.HIGH
            elif available <= 2:
                demand_level = DemandLevel.MEDIUM
            else:
                demand_level = DemandLevel.LOW

            score = available * 10
            if demand_level == DemandLevel.HIGH:
                score -= 5

            is_peak = self.config.is_peak_hour(parse_hour(time))
            if is_peak:
                score += 3

            suggestions.append(
                SchedulingSuggestion(
                    date=day,
                    time=time,
                    chair=chair,
                    specialty=specialty,
                    available_slots=available,
                    demand_level=demand_level,
                    score=score,
                    reason=scheduling_reason(available, is_peak),
                )
            )

        # Stable sort over date/time order keeps ties deterministic
        suggestions.sort(key=lambda s: -s.score)
        return suggestions[: max(n, 0)]

    def analyze_load_balancing(
        self, appointments: Iterable[AppointmentRecord]
    ) -> LoadBalancingResult:
        current_load: Dict[str, int] = dict(Counter(a.chair for a in appointments))
        total = sum(current_load.values())
        chairs = len(current_load)
        ideal = round_half_up(total / chairs) if chairs else 0

        overloaded = [[chair, load - ideal] for chair, load in current_load.items() if load > ideal]
        underloaded = [[chair, ideal - load] for chair, load in current_load.items() if load < ideal]

        reallocations = []
        for source in overloaded:
            for target in underloaded:
                if source[1] <= 0 or target[1] <= 0:
                    continue
                moved = min(source[1], target[1])
                reallocations.append(
                    Reallocation(
                        from_chair=source[0],
                        to_chair=target[0],
                        appointment_count=moved,
                        reason=(
                            f"Move {moved} appointment(s) from {source[0]} to {target[0]} "
                            "for a more even distribution"
                        ),
                    )
                )
                source[1] -= moved
                target[1] -= moved

        balanced_load = dict(current_load)
        for move in reallocations:
            balanced_load[move.from_chair] -= move.appointment_count
            balanced_load[move.to_chair] += move.appointment_count

        before = imbalance(current_load)
        after = imbalance(balanced_load)
        improvement = round_half_up(((before - after) / before) * 100) if before > 0 else 0

        logger.debug(
            "load_balancing_analyzed",
            chairs=chairs,
            ideal_load=ideal,
            reallocations=len(reallocations),
            improvement_percentage=improvement,
        )

        return LoadBalancingResult(
            current_load=current_load,
            suggested_reallocation=reallocations,
            balanced_load=balanced_load,
            current_imbalance=before,
            balanced_imbalance=after,
            improvement_percentage=improvement,
        )

    def optimize_chair_allocation(
        self,
        appointments: Iterable[AppointmentRecord],
        capacity_per_specialty: Mapping[str, int],
    ) -> List[ChairAllocationOptimization]:
        specialty_chairs: Dict[str, Counter] = defaultdict(Counter)
        for a in appointments:
            specialty_chairs[a.specialty][a.chair] += 1

        optimizations = []
        for specialty in sorted(specialty_chairs):
            chairs = specialty_chairs[specialty]
            total = sum(chairs.values())
            chair_count = capacity_per_specialty.get(specialty) or 0
            if chair_count <= 0:
                chair_count = len(chairs)

            recommended = total / chair_count
            recommended_rounded = round_half_up(recommended)

            for chair in sorted(chairs):
                count = chairs[chair]
                load_index = (count / recommended) * 100

                if load_index > 120:
                    priority = "high"
                elif load_index > 110:
                    priority = "medium"
                else:
                    priority = "low"

                optimizations.append(
                    ChairAllocationOptimization(
                        specialty=specialty,
                        chair=chair,
                        current_appointments=count,
                        recommended_appointments=recommended_rounded,
                        suggested_appointments=recommended_rounded - count,
                        load_index=round(load_index, 2),
                        reallocation_priority=priority,
                    )
                )

        return sorted(optimizations, key=lambda o: _PRIORITY_ORDER[o.reallocation_priority])
