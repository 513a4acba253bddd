"""
Scripture endpoints.

This module exposes the scripture service operations over HTTP:
- Scripture text lookup with provider fallback
- Key takeaway generation and validation
- Contextual scoring of a user's explanation
- Verse search by description
- Provider listing

All endpoints are rate limited (configured via settings.RATE_LIMIT) and
return the ApiResponse envelope. Operation failures become GatewayException
instances whose status code follows the failure kind.

Usage:
    POST /scripture
    {
        "reference": "John 3:16",
        "translation": "ESV"
    }
"""
from typing import TypeVar

from fastapi import APIRouter, Depends, Request, status

from scripture_gateway.config import get_logger, settings
from scripture_gateway.dependencies import limiter
from scripture_gateway.exceptions import (
    GatewayException,
    MalformedResponseError,
    NotConfiguredError,
    RateLimitedError,
    ValidationError,
)
from scripture_gateway.models import (
    ApiResponse,
    ProviderInfo,
    ProvidersData,
    ScoreData,
    ScoreRequest,
    ScriptureData,
    ScriptureRequest,
    TakeawayData,
    TakeawayRequest,
    ValidateTakeawayRequest,
    ValidationData,
    VerseModel,
    VerseReferenceModel,
    VerseSearchData,
    VerseSearchRequest,
)
from scripture_gateway.result import Failure, OperationResult
from scripture_gateway.state import AppState, get_app_state

logger = get_logger("routes.scripture")

router = APIRouter(tags=["Scripture"])

T = TypeVar("T")

FAILURE_RESPONSES = {
    400: {"description": "Invalid request"},
    429: {"description": "Rate limit exceeded"},
    502: {"description": "Provider returned an unusable response"},
    503: {"description": "No provider configured or every provider failed"},
}


# =============================================================================
# Failure Mapping
# =============================================================================

def status_for_failure(failure: Failure) -> int:
    """Map a Failure onto an HTTP status code by its error kind."""
    cause = failure.cause
    if isinstance(cause, NotConfiguredError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(cause, RateLimitedError):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(cause, MalformedResponseError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(cause, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_503_SERVICE_UNAVAILABLE


def unwrap(result: OperationResult[T]) -> T:
    """
    Return the value of a Success or raise for a Failure.

    Raises:
        GatewayException: Carrying the failure message and mapped status
    """
    if isinstance(result, Failure):
        raise GatewayException(
            result.message,
            status_code=status_for_failure(result),
            error_code=result.error_type,
        )
    return result.value


# =============================================================================
# Scripture Operations
# =============================================================================

@router.post(
    "/scripture",
    response_model=ApiResponse[ScriptureData],
    summary="Fetch scripture text",
    description="Looks the passage up with the ESV API when possible, otherwise asks a generative provider.",
    responses=FAILURE_RESPONSES,
)
@limiter.limit(settings.RATE_LIMIT)
async def fetch_scripture(
    request: Request,
    body: ScriptureRequest,
    state: AppState = Depends(get_app_state),
) -> ApiResponse[ScriptureData]:
    ref = body.to_reference()
    verses = unwrap(await state.service.fetch_scripture(ref, body.translation))
    return ApiResponse[ScriptureData](
        success=True,
        data=ScriptureData(
            reference=str(ref),
            translation=body.translation,
            verses=[VerseModel.from_domain(v) for v in verses],
        ),
    )


@router.post(
    "/takeaway",
    response_model=ApiResponse[TakeawayData],
    summary="Get the key takeaway of a verse",
    responses=FAILURE_RESPONSES,
)
@limiter.limit(settings.RATE_LIMIT)
async def get_key_takeaway(
    request: Request,
    body: TakeawayRequest,
    state: AppState = Depends(get_app_state),
) -> ApiResponse[TakeawayData]:
    takeaway = unwrap(await state.service.get_key_takeaway(body.verse_ref))
    return ApiResponse[TakeawayData](
        success=True,
        data=TakeawayData(verse_ref=body.verse_ref, takeaway=takeaway),
    )


@router.post(
    "/takeaway/validate",
    response_model=ApiResponse[ValidationData],
    summary="Check whether a takeaway represents the verse",
    responses=FAILURE_RESPONSES,
)
@limiter.limit(settings.RATE_LIMIT)
async def validate_takeaway(
    request: Request,
    body: ValidateTakeawayRequest,
    state: AppState = Depends(get_app_state),
) -> ApiResponse[ValidationData]:
    is_valid = unwrap(await state.service.validate_takeaway(body.verse_ref, body.takeaway))
    return ApiResponse[ValidationData](
        success=True,
        data=ValidationData(verse_ref=body.verse_ref, is_valid=is_valid),
    )


@router.post(
    "/score",
    response_model=ApiResponse[ScoreData],
    summary="Score a user's understanding of a verse",
    description="Returns a 0-100 contextual accuracy score with an explanation and application feedback.",
    responses=FAILURE_RESPONSES,
)
@limiter.limit(settings.RATE_LIMIT)
async def get_ai_score(
    request: Request,
    body: ScoreRequest,
    state: AppState = Depends(get_app_state),
) -> ApiResponse[ScoreData]:
    score = unwrap(await state.service.get_ai_score(body.verse_ref, body.user_comment))
    return ApiResponse[ScoreData](
        success=True,
        data=ScoreData.from_domain(body.verse_ref, score),
    )


@router.post(
    "/verses/search",
    response_model=ApiResponse[VerseSearchData],
    summary="Suggest verses matching a description",
    responses=FAILURE_RESPONSES,
)
@limiter.limit(settings.RATE_LIMIT)
async def find_verses_by_description(
    request: Request,
    body: VerseSearchRequest,
    state: AppState = Depends(get_app_state),
) -> ApiResponse[VerseSearchData]:
    references = unwrap(await state.service.find_verses_by_description(body.description))
    return ApiResponse[VerseSearchData](
        success=True,
        data=VerseSearchData(
            description=body.description,
            verses=[VerseReferenceModel.from_domain(r) for r in references],
        ),
        meta={"count": len(references)},
    )


# =============================================================================
# Provider Listing
# =============================================================================

@router.get(
    "/providers",
    response_model=ApiResponse[ProvidersData],
    summary="List registered providers",
    description="Providers in fallback order with their availability.",
)
async def list_providers(state: AppState = Depends(get_app_state)) -> ApiResponse[ProvidersData]:
    providers = [
        ProviderInfo(
            provider_id=p.provider_id,
            display_name=p.display_name,
            service_kind=p.descriptor.service_kind.value,
            priority=p.priority,
            default_model=p.default_model,
            available=p.is_available(),
            initialization_error=p.initialization_error,
        )
        for p in state.registry.ordered_providers()
    ]
    stats = state.registry.statistics()
    return ApiResponse[ProvidersData](
        success=True,
        data=ProvidersData(
            state=state.service.state.value,
            providers=providers,
            statistics={
                "total": stats.total,
                "available": stats.available,
                "scripture_total": stats.scripture_total,
                "scripture_available": stats.scripture_available,
                "generative_total": stats.generative_total,
                "generative_available": stats.generative_available,
            },
        ),
    )
