"""Allocation plan generation and draft lifecycle orchestration."""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

from plan_generator.domain.constraints import (
    PlannerConfig,
    validate_plan_request,
    validate_planner_config,
)
from plan_generator.domain.models import (
    PLAN_STATUS_DRAFT,
    TIERS,
    City,
    ClassificationMatrix,
    DraftPlan,
    GeneratedEvent,
    MergeResult,
    Node,
    PlanRequest,
    PlanSummary,
    SeasonalityProfile,
    UnassignedCity,
)
from plan_generator.repository.data_repository import (
    DataRepository,
    PersistenceError,
    PlanNotDraftError,
)
from plan_generator.services.distribution_service import (
    compute_period_total,
    distribute_by_classification,
    distribute_by_month,
)
from plan_generator.services.placement_service import (
    OriginSelector,
    PlacementState,
    clamp_window,
    place_city,
)
from plan_generator.utils.config import Settings, get_settings
from plan_generator.utils.logger import get_logger


logger = get_logger(__name__)


class PlanGenerationError(Exception):
    """Base failure for a plan generation run."""


class PlanValidationError(PlanGenerationError):
    """Raised when the plan request itself is invalid."""


class NotAuthorizedError(PlanGenerationError):
    """Raised when the carrier is not linked to the product."""


class NoActiveCitiesError(PlanGenerationError):
    """Raised when the account has no active city."""


class NoActiveNodesError(PlanGenerationError):
    """Raised when the account has no active node with an available operator."""


class PersistenceFailureError(PlanGenerationError):
    """Raised when the draft plan could not be written."""


class PlanNotFoundError(Exception):
    """Raised when a plan id does not exist."""


class PlanStateError(Exception):
    """Raised when a lifecycle action does not apply to the plan's status."""


@dataclass(frozen=True)
class PlanningInputs:
    matrix: ClassificationMatrix
    cities: list[City]
    seasonality: SeasonalityProfile
    topology: list[Node]


class _UnassignedTally:
    """Per-city unassigned counts summed across months."""

    def __init__(self) -> None:
        self._names: dict[int, str] = {}
        self._by_tier: dict[int, dict[str, int]] = {}

    def add(self, city: City, unassigned_by_tier: dict[str, int]) -> None:
        if sum(unassigned_by_tier.values()) <= 0:
            return
        self._names[city.city_id] = city.name
        tally = self._by_tier.setdefault(city.city_id, {tier: 0 for tier in TIERS})
        for tier, count in unassigned_by_tier.items():
            tally[tier] += count

    def breakdown(self) -> list[UnassignedCity]:
        return [
            UnassignedCity(
                city_id=city_id,
                city_name=self._names[city_id],
                unassigned_events=sum(by_tier.values()),
                by_origin_tier=dict(by_tier),
            )
            for city_id, by_tier in self._by_tier.items()
        ]


class PlanGenerationService:
    """Turns a plan request into a persisted draft of scheduled events."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._config = PlannerConfig(
            days_per_year=self._settings.planner_days_per_year,
            default_seasonality_percentage=self._settings.planner_default_seasonality_percentage,
            pass1_max_idle_rounds=self._settings.planner_pass1_max_idle_rounds,
            pass2_stall_rounds=self._settings.planner_pass2_stall_rounds,
            algorithm_version=self._settings.planner_algorithm_version,
            random_seed=self._settings.planner_random_seed,
        )
        validate_planner_config(self._config)
        self._rng = rng or random.Random(self._config.random_seed)

    def generate(self, request: PlanRequest) -> DraftPlan:
        try:
            validate_plan_request(request)
        except ValueError as exc:
            raise PlanValidationError(str(exc)) from exc

        if not self._repository.is_carrier_product_linked(request.carrier_id, request.product_id):
            raise NotAuthorizedError(
                f"Carrier {request.carrier_id} is not assigned to product {request.product_id}"
            )

        inputs = self._load_inputs(request)
        calculated_events = compute_period_total(
            request.annual_target,
            request.days_in_period,
            self._config.days_per_year,
        )
        events, unassigned = self._build_events(request, inputs, calculated_events)

        plan = DraftPlan(
            request=request,
            calculated_events=calculated_events,
            events=events,
            unassigned=unassigned,
            status=PLAN_STATUS_DRAFT,
            generation_params={
                "algorithm_version": self._config.algorithm_version,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
        try:
            plan_id = self._repository.save_draft_plan(plan)
        except PersistenceError as exc:
            logger.error("Draft plan persistence failed | error=%s", exc)
            raise PersistenceFailureError(str(exc)) from exc

        logger.info(
            (
                "Plan generated | plan_id=%s | account_id=%s | calculated_events=%s | "
                "generated_events=%s | unassigned_events=%s"
            ),
            plan_id,
            request.account_id,
            calculated_events,
            len(events),
            plan.total_unassigned,
        )
        return replace(plan, plan_id=plan_id)

    def _load_inputs(self, request: PlanRequest) -> PlanningInputs:
        matrix = ClassificationMatrix.from_rows(
            self._repository.list_classification_rows(request.account_id)
        )
        cities = [city for city in self._repository.list_active_cities(request.account_id) if city.active]
        seasonality = self._repository.get_seasonality(
            request.account_id,
            request.product_id,
            request.start_date.year,
        )
        if seasonality is None:
            logger.info(
                "No seasonality configured; using flat profile | product_id=%s | year=%s",
                request.product_id,
                request.start_date.year,
            )
            seasonality = SeasonalityProfile.flat(self._config.default_seasonality_percentage)
        topology = [
            node
            for node in self._repository.list_active_topology(request.account_id)
            if node.active and node.has_active_operator
        ]

        if not cities:
            raise NoActiveCitiesError(f"Account {request.account_id} has no active cities")
        if not topology:
            raise NoActiveNodesError(f"Account {request.account_id} has no active nodes")
        return PlanningInputs(
            matrix=matrix,
            cities=cities,
            seasonality=seasonality,
            topology=topology,
        )

    def _build_events(
        self,
        request: PlanRequest,
        inputs: PlanningInputs,
        calculated_events: int,
    ) -> tuple[list[GeneratedEvent], list[UnassignedCity]]:
        events_by_month = distribute_by_month(
            calculated_events,
            inputs.seasonality,
            request.start_date,
            request.end_date,
        )
        nodes_by_city: dict[int, list[Node]] = {}
        for node in inputs.topology:
            nodes_by_city.setdefault(node.city_id, []).append(node)
        origins = OriginSelector(inputs.topology, self._rng)
        states: dict[int, PlacementState] = {}

        events: list[GeneratedEvent] = []
        tally = _UnassignedTally()
        for month, month_events in events_by_month.items():
            window = clamp_window(month, request.start_date, request.end_date)
            for allocation in distribute_by_classification(month_events, inputs.matrix, inputs.cities):
                result = place_city(
                    allocation=allocation,
                    destination_nodes=nodes_by_city.get(allocation.city.city_id, []),
                    origins=origins,
                    max_events_per_week=request.max_events_per_week,
                    window=window,
                    rng=self._rng,
                    pass1_max_idle_rounds=self._config.pass1_max_idle_rounds,
                    pass2_stall_rounds=self._config.pass2_stall_rounds,
                    state=states.setdefault(allocation.city.city_id, PlacementState()),
                )
                events.extend(result.events)
                tally.add(allocation.city, result.unassigned_by_tier)
                if result.unassigned:
                    logger.warning(
                        "Events left unassigned | month=%s | city_id=%s | unassigned=%s",
                        month.strftime("%Y-%m"),
                        allocation.city.city_id,
                        result.unassigned,
                    )
        return events, tally.breakdown()

    def list_plans(
        self,
        account_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[PlanSummary]:
        return self._repository.list_plans(account_id=account_id, status=status)

    def get_plan(self, plan_id: int) -> PlanSummary:
        plan = self._repository.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(f"Plan {plan_id} not found")
        return plan

    def get_plan_events(self, plan_id: int) -> list[GeneratedEvent]:
        self.get_plan(plan_id)
        return self._repository.list_plan_events(plan_id)

    def delete_draft(self, plan_id: int) -> None:
        plan = self.get_plan(plan_id)
        if plan.status != PLAN_STATUS_DRAFT:
            raise PlanStateError(f"Plan {plan_id} is {plan.status}; only drafts can be deleted")
        self._repository.delete_plan(plan_id)
        logger.info("Draft plan deleted | plan_id=%s", plan_id)

    def merge_plan(self, plan_id: int) -> MergeResult:
        """Publish a draft's rows as pending live events."""
        plan = self.get_plan(plan_id)
        if plan.status != PLAN_STATUS_DRAFT:
            raise PlanStateError(f"Plan {plan_id} is {plan.status}; only drafts can be merged")
        try:
            result = self._repository.merge_plan(plan)
        except PlanNotDraftError as exc:
            raise PlanStateError(str(exc)) from exc
        except PersistenceError as exc:
            raise PersistenceFailureError(str(exc)) from exc
        logger.info(
            "Plan merged | plan_id=%s | strategy=%s | inserted=%s | replaced=%s",
            plan_id,
            result.merge_strategy,
            result.inserted_events,
            result.replaced_events,
        )
        return result
