"""HTTP controller layer for allocation plan generation and draft lifecycle."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, model_validator

from plan_generator.controllers.dependencies import get_plan_service
from plan_generator.domain.models import (
    GeneratedEvent,
    PlanRequest,
    PlanSummary,
    UnassignedCity,
)
from plan_generator.services.plan_service import (
    NoActiveCitiesError,
    NoActiveNodesError,
    NotAuthorizedError,
    PersistenceFailureError,
    PlanGenerationService,
    PlanNotFoundError,
    PlanStateError,
    PlanValidationError,
)
from plan_generator.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/plans", tags=["plans"])


class GeneratePlanRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    account_id: int = Field(gt=0)
    carrier_id: int = Field(gt=0)
    product_id: int = Field(gt=0)
    start_date: date
    end_date: date
    annual_target: int = Field(gt=0)
    max_events_per_week: int = Field(gt=0)
    merge_strategy: Literal["add", "replace"] = "add"
    requested_by: int = Field(gt=0)

    @model_validator(mode="after")
    def validate_period(self) -> "GeneratePlanRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class UnassignedCityResponse(BaseModel):
    city_id: int
    city_name: str
    unassigned_events: int = Field(ge=0)
    by_origin_tier: dict[str, int]


class GeneratedEventResponse(BaseModel):
    origin_node: str
    destination_node: str
    scheduled_date: date
    origin_city_id: int
    destination_city_id: int


class PlanSummaryResponse(BaseModel):
    plan_id: int
    account_id: int
    carrier_id: int
    product_id: int
    start_date: date
    end_date: date
    annual_target: int = Field(gt=0)
    calculated_events: int = Field(ge=0)
    generated_events: int = Field(ge=0)
    max_events_per_week: int = Field(gt=0)
    unassigned_events: int = Field(ge=0)
    unassigned_breakdown: list[UnassignedCityResponse]
    merge_strategy: str
    status: str
    generation_params: dict[str, Any]


class PlanDetailResponse(PlanSummaryResponse):
    events: list[GeneratedEventResponse]


class MergePlanResponse(BaseModel):
    plan_id: int
    merge_strategy: str
    inserted_events: int = Field(ge=0)
    replaced_events: int = Field(ge=0)
    status: str = "merged"


def _unassigned_response(city: UnassignedCity) -> UnassignedCityResponse:
    return UnassignedCityResponse(**city.to_dict())


def _event_response(event: GeneratedEvent) -> GeneratedEventResponse:
    return GeneratedEventResponse(
        origin_node=event.origin_node_code,
        destination_node=event.destination_node_code,
        scheduled_date=event.scheduled_date,
        origin_city_id=event.origin_city_id,
        destination_city_id=event.destination_city_id,
    )


def _summary_response(plan: PlanSummary) -> PlanSummaryResponse:
    return PlanSummaryResponse(
        plan_id=plan.plan_id,
        account_id=plan.account_id,
        carrier_id=plan.carrier_id,
        product_id=plan.product_id,
        start_date=plan.start_date,
        end_date=plan.end_date,
        annual_target=plan.annual_target,
        calculated_events=plan.calculated_events,
        generated_events=plan.event_count,
        max_events_per_week=plan.max_events_per_week,
        unassigned_events=plan.unassigned_events,
        unassigned_breakdown=[_unassigned_response(city) for city in plan.unassigned_breakdown],
        merge_strategy=plan.merge_strategy,
        status=plan.status,
        generation_params=plan.generation_params,
    )


@router.post(
    "/generate",
    response_model=PlanSummaryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_plan(
    payload: GeneratePlanRequest,
    service: PlanGenerationService = Depends(get_plan_service),
) -> PlanSummaryResponse:
    """Generate and persist a draft allocation plan."""
    try:
        plan = service.generate(
            PlanRequest(
                account_id=payload.account_id,
                carrier_id=payload.carrier_id,
                product_id=payload.product_id,
                start_date=payload.start_date,
                end_date=payload.end_date,
                annual_target=payload.annual_target,
                max_events_per_week=payload.max_events_per_week,
                merge_strategy=payload.merge_strategy,
                requested_by=payload.requested_by,
            )
        )
        return PlanSummaryResponse(
            plan_id=plan.plan_id,
            account_id=plan.request.account_id,
            carrier_id=plan.request.carrier_id,
            product_id=plan.request.product_id,
            start_date=plan.request.start_date,
            end_date=plan.request.end_date,
            annual_target=plan.request.annual_target,
            calculated_events=plan.calculated_events,
            generated_events=len(plan.events),
            max_events_per_week=plan.request.max_events_per_week,
            unassigned_events=plan.total_unassigned,
            unassigned_breakdown=[_unassigned_response(city) for city in plan.unassigned],
            merge_strategy=plan.request.merge_strategy,
            status=plan.status,
            generation_params=plan.generation_params,
        )
    except PlanValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except NotAuthorizedError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(exc),
        ) from exc
    except (NoActiveCitiesError, NoActiveNodesError) as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except PersistenceFailureError as exc:
        logger.error("Plan generation could not be saved | error=%s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected plan generation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate plan",
        ) from exc


@router.get("", response_model=list[PlanSummaryResponse], status_code=status.HTTP_200_OK)
async def list_plans(
    account_id: Optional[int] = Query(default=None, gt=0),
    plan_status: Optional[str] = Query(default=None, alias="status"),
    service: PlanGenerationService = Depends(get_plan_service),
) -> list[PlanSummaryResponse]:
    plans = service.list_plans(account_id=account_id, status=plan_status)
    return [_summary_response(plan) for plan in plans]


@router.get("/{plan_id}", response_model=PlanDetailResponse, status_code=status.HTTP_200_OK)
async def get_plan(
    plan_id: int,
    service: PlanGenerationService = Depends(get_plan_service),
) -> PlanDetailResponse:
    try:
        plan = service.get_plan(plan_id)
        events = service.get_plan_events(plan_id)
    except PlanNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return PlanDetailResponse(
        **_summary_response(plan).model_dump(),
        events=[_event_response(event) for event in events],
    )


@router.post("/{plan_id}/merge", response_model=MergePlanResponse, status_code=status.HTTP_200_OK)
async def merge_plan(
    plan_id: int,
    service: PlanGenerationService = Depends(get_plan_service),
) -> MergePlanResponse:
    try:
        result = service.merge_plan(plan_id)
        return MergePlanResponse(
            plan_id=result.plan_id,
            merge_strategy=result.merge_strategy,
            inserted_events=result.inserted_events,
            replaced_events=result.replaced_events,
        )
    except PlanNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except PlanStateError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except PersistenceFailureError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: int,
    service: PlanGenerationService = Depends(get_plan_service),
) -> Response:
    try:
        service.delete_draft(plan_id)
    except PlanNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except PlanStateError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
