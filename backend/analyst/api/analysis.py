from fastapi import APIRouter, Depends, HTTPException, Request
from typing import Dict

from analyst.exceptions import (
    AnalystError,
    ConfigurationError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from analyst.schemas import (
    BatchScoreRequest,
    BatchScoringResult,
    QueryGenerationRequest,
    QueryGenerationResult,
    ScoreRequest,
    ScoringResult,
    ScoringWeights,
    WeightsUpdate,
)
from analyst.services.analyst import AnalystService

router = APIRouter()

ERROR_STATUS = {
    ValidationError: 422,
    NotFoundError: 404,
    ConfigurationError: 503,
    UpstreamServiceError: 502,
}


def get_analyst_service(request: Request) -> AnalystService:
    service = getattr(request.app.state, "analyst", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Analyst service is not available")
    return service


def to_http_exception(error: AnalystError) -> HTTPException:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(error, error_type)),
        500,
    )
    return HTTPException(status_code=status_code, detail=error.to_dict())


@router.post("/queries", response_model=QueryGenerationResult)
async def generate_queries(
    body: QueryGenerationRequest,
    service: AnalystService = Depends(get_analyst_service),
):
    try:
        return await service.generate_queries_with_metadata(body)
    except AnalystError as e:
        raise to_http_exception(e) from e


@router.post("/score", response_model=ScoringResult)
async def score_opportunity(
    body: ScoreRequest,
    service: AnalystService = Depends(get_analyst_service),
):
    try:
        return await service.score_opportunity(body.profile, body.opportunity)
    except AnalystError as e:
        raise to_http_exception(e) from e


@router.post("/score/batch", response_model=BatchScoringResult)
async def score_opportunities(
    body: BatchScoreRequest,
    service: AnalystService = Depends(get_analyst_service),
):
    try:
        return await service.score_opportunities(body.profile, body.opportunities)
    except AnalystError as e:
        raise to_http_exception(e) from e


@router.get("/weights", response_model=ScoringWeights)
async def get_weights(service: AnalystService = Depends(get_analyst_service)):
    return service.weights


@router.patch("/weights", response_model=ScoringWeights)
async def update_weights(
    body: WeightsUpdate,
    service: AnalystService = Depends(get_analyst_service),
):
    try:
        return await service.update_weights(body)
    except AnalystError as e:
        raise to_http_exception(e) from e


@router.get("/health")
async def analysis_health(
    service: AnalystService = Depends(get_analyst_service),
) -> Dict[str, Dict[str, bool]]:
    return await service.health()
