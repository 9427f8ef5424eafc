from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException

from clinic_analytics.api.deps import (
    get_day_analyzer,
    get_month_analyzer,
    get_optimizer,
    get_pattern_analyzer,
)
from clinic_analytics.models.schemas import (
    AppointmentsRequest,
    ChairAllocationRequest,
    ChairAllocationResponse,
    DayLoadRequest,
    DayLoadResponse,
    HourlyPatternResponse,
    LoadBalancingResponse,
    MonthAnalysisResponse,
    MonthRequest,
    OpenSlotResponse,
    OpenSlotsRequest,
    RecommendationsResponse,
    ScheduleReportResponse,
    SchedulingSuggestionResponse,
    SuggestionsRequest,
)
from clinic_analytics.services.exceptions import AnalysisError
from clinic_analytics.services.schedule.day_load import DayLoadAnalyzer
from clinic_analytics.services.schedule.monthly import MonthlyScheduleAnalyzer
from clinic_analytics.services.schedule.optimizer import ScheduleOptimizer
from clinic_analytics.services.schedule.patterns import SchedulePatternAnalyzer

router = APIRouter()
logger = structlog.get_logger(__name__)


def _reject(error: AnalysisError) -> HTTPException:
    logger.warning("analysis_rejected", error_type=type(error).__name__, error=str(error))
    return HTTPException(status_code=422, detail=str(error))


@router.post("/day", response_model=DayLoadResponse)
async def analyze_day(request: DayLoadRequest, analyzer: DayLoadAnalyzer = Depends(get_day_analyzer)):
    try:
        return analyzer.analyze_day(request.date, request.records(), request.capacity)
    except AnalysisError as e:
        raise _reject(e)


@router.post("/month", response_model=MonthAnalysisResponse)
async def analyze_month(
    request: MonthRequest, analyzer: MonthlyScheduleAnalyzer = Depends(get_month_analyzer)
):
    try:
        return analyzer.analyze_month(
            request.month, request.year, request.records(), request.capacity
        )
    except AnalysisError as e:
        raise _reject(e)


@router.post("/report", response_model=ScheduleReportResponse)
async def schedule_report(
    request: MonthRequest, analyzer: MonthlyScheduleAnalyzer = Depends(get_month_analyzer)
):
    try:
        return analyzer.schedule_report(request.month, request.year, request.records())
    except AnalysisError as e:
        raise _reject(e)


@router.post("/hourly", response_model=List[HourlyPatternResponse])
async def hourly_patterns(
    request: AppointmentsRequest, analyzer: SchedulePatternAnalyzer = Depends(get_pattern_analyzer)
):
    try:
        return analyzer.hourly_patterns(request.records())
    except AnalysisError as e:
        raise _reject(e)


@router.post("/open-slots", response_model=List[OpenSlotResponse])
async def open_slots(
    request: OpenSlotsRequest, analyzer: SchedulePatternAnalyzer = Depends(get_pattern_analyzer)
):
    return analyzer.find_open_slots(request.records(), request.min_available_slots)


@router.post("/recommendations", response_model=RecommendationsResponse)
async def scheduling_recommendations(
    request: AppointmentsRequest, analyzer: SchedulePatternAnalyzer = Depends(get_pattern_analyzer)
):
    try:
        recommendations = analyzer.scheduling_recommendations(request.records())
    except AnalysisError as e:
        raise _reject(e)

    return RecommendationsResponse(recommendations=recommendations)


@router.post("/suggestions", response_model=List[SchedulingSuggestionResponse])
async def suggest_optimal_times(
    request: SuggestionsRequest, optimizer: ScheduleOptimizer = Depends(get_optimizer)
):
    try:
        return optimizer.suggest_optimal_times(
            request.records(), request.specialty, request.chair, request.limit
        )
    except AnalysisError as e:
        raise _reject(e)


@router.post("/load-balancing", response_model=LoadBalancingResponse)
async def analyze_load_balancing(
    request: AppointmentsRequest, optimizer: ScheduleOptimizer = Depends(get_optimizer)
):
    return optimizer.analyze_load_balancing(request.records())


@router.post("/chair-allocation", response_model=List[ChairAllocationResponse])
async def optimize_chair_allocation(
    request: ChairAllocationRequest, optimizer: ScheduleOptimizer = Depends(get_optimizer)
):
    return optimizer.optimize_chair_allocation(request.records(), request.capacity_per_specialty)
