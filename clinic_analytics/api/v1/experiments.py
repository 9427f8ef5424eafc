from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends, HTTPException

from clinic_analytics.api.deps import get_ab_test_analyzer
from clinic_analytics.models.schemas import (
    ABTestRequest,
    ABTestResponse,
    BestTemplateRequest,
    BestTemplateResponse,
    ExperimentArmRequest,
    FunnelAnalysisResponse,
    ReadinessRequest,
    ReadinessResponse,
    SampleSizeRequest,
    SampleSizeResponse,
)
from clinic_analytics.services.exceptions import AnalysisError
from clinic_analytics.services.experiments.analyzer import ABTestAnalyzer

router = APIRouter()
logger = structlog.get_logger(__name__)


def _reject(error: AnalysisError) -> HTTPException:
    logger.warning("analysis_rejected", error_type=type(error).__name__, error=str(error))
    return HTTPException(status_code=422, detail=str(error))


@router.post("/analyze", response_model=ABTestResponse)
async def analyze_ab_test(
    request: ABTestRequest, analyzer: ABTestAnalyzer = Depends(get_ab_test_analyzer)
):
    try:
        result = analyzer.analyze(
            request.template_a.to_domain(),
            request.template_b.to_domain(),
            request.confidence_level,
        )
    except AnalysisError as e:
        raise _reject(e)

    return ABTestResponse(**asdict(result), summary=analyzer.summarize(result))


@router.post("/sample-size", response_model=SampleSizeResponse)
async def sample_size(
    request: SampleSizeRequest, analyzer: ABTestAnalyzer = Depends(get_ab_test_analyzer)
):
    try:
        n = analyzer.sample_size_needed(
            request.baseline_rate,
            request.min_detectable_effect,
            request.confidence_level,
            request.power,
        )
    except AnalysisError as e:
        raise _reject(e)

    return SampleSizeResponse(sample_size_per_template=n)


@router.post("/funnel", response_model=FunnelAnalysisResponse)
async def conversion_funnel(
    request: ExperimentArmRequest, analyzer: ABTestAnalyzer = Depends(get_ab_test_analyzer)
):
    try:
        return analyzer.conversion_funnel(request.to_domain())
    except AnalysisError as e:
        raise _reject(e)


@router.post("/readiness", response_model=ReadinessResponse)
async def readiness(
    request: ReadinessRequest, analyzer: ABTestAnalyzer = Depends(get_ab_test_analyzer)
):
    return analyzer.readiness(
        request.template_a.to_domain(), request.template_b.to_domain(), request.min_sample_size
    )


@router.post("/best-template", response_model=BestTemplateResponse)
async def best_template(
    request: BestTemplateRequest, analyzer: ABTestAnalyzer = Depends(get_ab_test_analyzer)
):
    try:
        best = analyzer.best_template(
            request.template_a.to_domain(),
            request.template_b.to_domain(),
            request.weights.to_domain(),
        )
    except AnalysisError as e:
        raise _reject(e)

    return BestTemplateResponse(best_template=best)
