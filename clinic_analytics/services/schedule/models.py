import enum
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from clinic_analytics.services.exceptions import InvalidScheduleInput

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class LoadLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DemandLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class AppointmentRecord:
    date: date
    time: str  # "HH:MM"
    status: AppointmentStatus
    chair: str
    specialty: str

    @property
    def hour(self) -> int:
        return parse_hour(self.time)


@dataclass(frozen=True)
class ScheduleConfig:
    """
    Fixed thresholds and capacities used by the schedule analyzers.

    Attributes:
        daily_capacity: Bookable slots per day across the clinic
        slots_per_hour: Bookable slots per chair per hour (15 minute slots)
        operating_start_hour: First bookable hour (inclusive)
        operating_end_hour: Closing hour (exclusive)
        peak_hour_windows: Preferred hour ranges (inclusive) for new bookings
        top_days: How many peak/low days a month report keeps
        high_utilization_threshold: Average utilization that triggers a capacity warning
        low_utilization_threshold: Average utilization that triggers an under-use note
        chair_imbalance_threshold: Max-min appointment spread across chairs before warning
    """

    daily_capacity: int = 40
    slots_per_hour: int = 4
    operating_start_hour: int = 8
    operating_end_hour: int = 18
    peak_hour_windows: Tuple[Tuple[int, int], ...] = ((9, 11), (14, 16))
    top_days: int = 5
    high_utilization_threshold: float = 80
    low_utilization_threshold: float = 50
    chair_imbalance_threshold: int = 5

    def __post_init__(self):
        if self.daily_capacity <= 0:
            raise InvalidScheduleInput("daily_capacity must be positive")
        if self.slots_per_hour <= 0:
            raise InvalidScheduleInput("slots_per_hour must be positive")
        if not 0 <= self.operating_start_hour < self.operating_end_hour <= 24:
            raise InvalidScheduleInput("operating hours must satisfy 0 <= start < end <= 24")

    def is_peak_hour(self, hour: int) -> bool:
        return any(start <= hour <= end for start, end in self.peak_hour_windows)


@dataclass
class DayLoadAnalysis:
    date: date
    day_of_week: str
    total_appointments: int
    confirmed_appointments: int
    pending_appointments: int
    no_show_appointments: int
    available_slots: int
    utilization_rate: int
    load_level: LoadLevel
    chair_distribution: Dict[str, int] = field(default_factory=dict)
    specialty_distribution: Dict[str, int] = field(default_factory=dict)


@dataclass
class MonthAnalysis:
    month: str
    month_number: int
    year: int
    total_appointments: int
    average_daily_appointments: int
    days: List[DayLoadAnalysis]
    peak_days: List[DayLoadAnalysis]
    low_days: List[DayLoadAnalysis]
    utilization_rate: int
    chair_utilization: Dict[str, int]
    specialty_demand: Dict[str, int]
    recommendations: List[str]


@dataclass
class HourlyPattern:
    hour: str
    total_appointments: int
    available_slots: int
    utilization_rate: int
    demand_level: DemandLevel


@dataclass
class OpenSlot:
    date: date
    time: str
    available_slots: int
    demand_level: DemandLevel


@dataclass
class ScheduleReport:
    month_analysis: MonthAnalysis
    hourly_patterns: List[HourlyPattern]
    optimal_times: List[OpenSlot]


@dataclass
class SchedulingSuggestion:
    date: date
    time: str
    chair: str
    specialty: str
    available_slots: int
    demand_level: DemandLevel
    score: int
    reason: str


@dataclass
class Reallocation:
    from_chair: str
    to_chair: str
    appointment_count: int
    reason: str


@dataclass
class LoadBalancingResult:
    current_load: Dict[str, int]
    suggested_reallocation: List[Reallocation]
    balanced_load: Dict[str, int]
    current_imbalance: float
    balanced_imbalance: float
    improvement_percentage: int


@dataclass
class ChairAllocationOptimization:
    specialty: str
    chair: str
    current_appointments: int
    recommended_appointments: int
    suggested_appointments: int
    load_index: float  # Percent of the recommended per-chair load, not capped
    reallocation_priority: str


def parse_hour(time: str) -> int:
    try:
        hour_text, minute_text = time.split(":")[:2]
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError):
        raise InvalidScheduleInput(f"Invalid appointment time {time!r}, expected HH:MM") from None

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidScheduleInput(f"Invalid appointment time {time!r}, expected HH:MM")
    return hour


def sorted_counts(values: Iterable[str]) -> Dict[str, int]:
    return dict(sorted(Counter(values).items()))


def filter_by_date(
    appointments: Iterable[AppointmentRecord], day: date
) -> List[AppointmentRecord]:
    return [a for a in appointments if a.date == day]


def filter_by_month(
    appointments: Iterable[AppointmentRecord], month: int, year: int
) -> List[AppointmentRecord]:
    return [a for a in appointments if a.date.month == month and a.date.year == year]


def resolve_capacity(config: ScheduleConfig, capacity: Optional[int]) -> int:
    if capacity is None:
        return config.daily_capacity
    if capacity <= 0:
        raise InvalidScheduleInput("capacity must be positive")
    return capacity
