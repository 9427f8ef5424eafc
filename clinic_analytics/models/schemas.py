from datetime import date
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from clinic_analytics.services.experiments.analyzer import (
    ConversionFunnel,
    ExperimentArm,
    ScoreWeights,
)
from clinic_analytics.services.schedule.models import (
    AppointmentRecord,
    AppointmentStatus,
    DemandLevel,
    LoadLevel,
)


class WinnerEnum(str, Enum):
    A = "A"
    B = "B"
    TIE = "tie"


# Experiments


class FunnelCounts(BaseModel):
    sent: int = Field(0, ge=0)
    opened: int = Field(0, ge=0)
    clicked: int = Field(0, ge=0)
    confirmed: int = Field(0, ge=0)


class ExperimentArmRequest(BaseModel):
    name: str = Field("", max_length=200, description="Template label")
    confirmations: int = Field(..., ge=0, description="Appointments confirmed after the message")
    total_attempts: int = Field(..., ge=0, description="Messages sent with this template")
    average_confidence: float = Field(0.0, ge=0, le=100)
    average_response_time: float = Field(0.0, ge=0, description="Minutes until the patient replied")
    conversion_funnel: FunnelCounts = Field(default_factory=FunnelCounts)

    def to_domain(self) -> ExperimentArm:
        return ExperimentArm(
            confirmations=self.confirmations,
            total_attempts=self.total_attempts,
            average_confidence=self.average_confidence,
            funnel=ConversionFunnel(**self.conversion_funnel.model_dump()),
            average_response_time=self.average_response_time,
            name=self.name,
        )


class ABTestRequest(BaseModel):
    template_a: ExperimentArmRequest
    template_b: ExperimentArmRequest
    confidence_level: Optional[float] = Field(
        None, description="One of 0.90, 0.95 or 0.99; defaults to the configured level"
    )


class SampleSizeRequest(BaseModel):
    baseline_rate: float = Field(..., ge=0, le=100, description="Current confirmation rate (%)")
    min_detectable_effect: float = Field(..., description="Smallest lift worth detecting (pp)")
    confidence_level: Optional[float] = None
    power: Optional[float] = Field(None, description="One of 0.80 or 0.90")


class SampleSizeResponse(BaseModel):
    sample_size_per_template: int


class ReadinessRequest(BaseModel):
    template_a: ExperimentArmRequest
    template_b: ExperimentArmRequest
    min_sample_size: Optional[int] = Field(None, ge=0)


class ScoreWeightsRequest(BaseModel):
    confirmation_rate: float = Field(0.6, ge=0)
    average_confidence: float = Field(0.3, ge=0)
    response_time: float = Field(0.1, ge=0)

    def to_domain(self) -> ScoreWeights:
        return ScoreWeights(**self.model_dump())


class BestTemplateRequest(BaseModel):
    template_a: ExperimentArmRequest
    template_b: ExperimentArmRequest
    weights: ScoreWeightsRequest = Field(default_factory=ScoreWeightsRequest)


class BestTemplateResponse(BaseModel):
    best_template: WinnerEnum


class ArmStatisticsResponse(BaseModel):
    confirmations: int
    total_attempts: int
    confirmation_rate: float
    average_confidence: float
    standard_deviation: float


class ConfidenceIntervalResponse(BaseModel):
    lower: float
    upper: float


class ABTestResponse(BaseModel):
    template_a: ArmStatisticsResponse
    template_b: ArmStatisticsResponse
    winner: WinnerEnum
    z_score: float
    p_value: float
    is_significant: bool
    confidence_level: float
    confidence_interval: ConfidenceIntervalResponse
    relative_improvement: Optional[float] = None
    recommendation: str
    summary: str


class FunnelDropOffResponse(BaseModel):
    after_sent: float
    after_opened: float
    after_clicked: float


class FunnelAnalysisResponse(BaseModel):
    open_rate: float
    click_rate: float
    confirmation_rate: float
    drop_off: FunnelDropOffResponse


class ReadinessResponse(BaseModel):
    ready: bool
    reason: str


# Schedule


class AppointmentIn(BaseModel):
    date: date
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$", examples=["09:30"])
    status: AppointmentStatus
    chair: str = Field(..., min_length=1)
    specialty: str = Field(..., min_length=1)

    def to_domain(self) -> AppointmentRecord:
        return AppointmentRecord(
            date=self.date,
            time=self.time,
            status=self.status,
            chair=self.chair,
            specialty=self.specialty,
        )


class AppointmentsRequest(BaseModel):
    appointments: List[AppointmentIn] = Field(default_factory=list)

    def records(self) -> List[AppointmentRecord]:
        return [a.to_domain() for a in self.appointments]


class DayLoadRequest(AppointmentsRequest):
    date: date
    capacity: Optional[int] = Field(None, ge=1)


class MonthRequest(AppointmentsRequest):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1900, le=9999)
    capacity: Optional[int] = Field(None, ge=1)


class OpenSlotsRequest(AppointmentsRequest):
    min_available_slots: int = Field(2, ge=1)


class SuggestionsRequest(AppointmentsRequest):
    specialty: str = Field(..., min_length=1)
    chair: str = Field(..., min_length=1)
    limit: int = Field(5, ge=1, le=100)


class ChairAllocationRequest(AppointmentsRequest):
    capacity_per_specialty: Dict[str, int] = Field(
        default_factory=dict, description="Chairs available to each specialty"
    )


class DayLoadResponse(BaseModel):
    date: date
    day_of_week: str
    total_appointments: int
    confirmed_appointments: int
    pending_appointments: int
    no_show_appointments: int
    available_slots: int
    utilization_rate: int
    load_level: LoadLevel
    chair_distribution: Dict[str, int]
    specialty_distribution: Dict[str, int]


class MonthAnalysisResponse(BaseModel):
    month: str
    month_number: int
    year: int
    total_appointments: int
    average_daily_appointments: int
    days: List[DayLoadResponse]
    peak_days: List[DayLoadResponse]
    low_days: List[DayLoadResponse]
    utilization_rate: int
    chair_utilization: Dict[str, int]
    specialty_demand: Dict[str, int]
    recommendations: List[str]


class HourlyPatternResponse(BaseModel):
    hour: str
    total_appointments: int
    available_slots: int
    utilization_rate: int
    demand_level: DemandLevel


class OpenSlotResponse(BaseModel):
    date: date
    time: str
    available_slots: int
    demand_level: DemandLevel


class ScheduleReportResponse(BaseModel):
    month_analysis: MonthAnalysisResponse
    hourly_patterns: List[HourlyPatternResponse]
    optimal_times: List[OpenSlotResponse]


class RecommendationsResponse(BaseModel):
    recommendations: List[str]


class SchedulingSuggestionResponse(BaseModel):
    date: date
    time: str
    chair: str
    specialty: str
    available_slots: int
    demand_level: DemandLevel
    score: int
    reason: str


class ReallocationResponse(BaseModel):
    from_chair: str
    to_chair: str
    appointment_count: int
    reason: str


class LoadBalancingResponse(BaseModel):
    current_load: Dict[str, int]
    suggested_reallocation: List[ReallocationResponse]
    balanced_load: Dict[str, int]
    current_imbalance: float
    balanced_imbalance: float
    improvement_percentage: int


class ChairAllocationResponse(BaseModel):
    specialty: str
    chair: str
    current_appointments: int
    recommended_appointments: int
    suggested_appointments: int
    load_index: float
    reallocation_priority: str
