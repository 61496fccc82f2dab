"""Adaptive planning orchestrator.

Loads a user's recent daily logs, asks the adherence analyzer whether the
active plans are working, and on request regenerates a meal or training
plan with an adjustment brief, replacing the active plan. A plan can also
be generated from the profile alone, for a user's first plan.

State machine::

    idle -> analyzing -> needs_adjustment | satisfied -> adjusting -> idle

Failure anywhere leaves the previously active plan untouched: the store
write only happens after the generator returns a plan.
"""

import asyncio
import datetime as dt
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from enum import StrEnum, auto

from healthplan.core.adherence import analyze_adherence, build_adjustment_brief
from healthplan.core.adherence.enums import PlanType
from healthplan.core.adherence.models import AdherenceAnalysis
from healthplan.core.errors import PlanGenerationTimeoutError, PreconditionError
from healthplan.logging_config import StructuredLogger, get_logger
from healthplan.schemas.plan import MealPlan, TrainingPlan
from healthplan.schemas.plan_generation import AdjustmentContext, PlanGenerationRequest
from healthplan.schemas.user_profile import UserProfile
from healthplan.services.locks import KeyedLocks, LockBusyError
from healthplan.services.log_store import LogStore
from healthplan.services.plan_generation import PlanGenerationClient
from healthplan.services.plan_store import PlanStore

logger = get_logger(__name__)


class PlanningState(StrEnum):
    idle = auto()
    analyzing = auto()
    needs_adjustment = auto()
    satisfied = auto()
    adjusting = auto()


class AdaptivePlanner:
    """Per-user adaptive planning session.

    Built per request by the API layer with explicit collaborators; the
    ``locks`` registry is the only state shared between instances.
    """

    def __init__(
        self,
        profile: UserProfile,
        log_store: LogStore,
        plan_store: PlanStore,
        plan_generator: PlanGenerationClient,
        *,
        locks: KeyedLocks,
        window_days: int = 7,
        meal_plan_days: int = 7,
        training_plan_weeks: int = 4,
        generation_timeout_seconds: float = 60.0,
        clock: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.profile = profile
        self._log_store = log_store
        self._plan_store = plan_store
        self._plan_generator = plan_generator
        self._locks = locks
        self._window_days = window_days
        self._durations = {
            PlanType.meal: meal_plan_days,
            PlanType.training: training_plan_weeks * 7,
        }
        self._timeout = generation_timeout_seconds
        self._clock = clock
        self._log = logger.bind(user_id=str(profile.id))

        self.state = PlanningState.idle
        self._analysis: AdherenceAnalysis | None = None
        self._in_flight: tuple[PlanType, ...] = ()

    @property
    def analysis(self) -> AdherenceAnalysis | None:
        return self._analysis

    @property
    def needs_adjustment(self) -> bool:
        return self._analysis is not None and self._analysis.triggers_adjustment

    @property
    def adjusting(self) -> bool:
        """Whether a plan is being regenerated.

        Covers this planner and, as of the last ``load``, any other request
        or worker holding one of the user's plan locks.
        """
        return self.state == PlanningState.adjusting or bool(self._in_flight)

    @property
    def adjusting_plan_types(self) -> list[PlanType]:
        return list(self._in_flight)

    async def load(self) -> AdherenceAnalysis:
        """Analyze the trailing log window and decide whether to adjust."""
        today = self._clock()
        start = today - dt.timedelta(days=self._window_days)

        self.state = PlanningState.analyzing
        try:
            logs = await self._log_store.get_by_date_range(self.profile.id, start, today)
            analysis = analyze_adherence(logs, today=today)
            in_flight = [
                plan_type
                for plan_type in PlanType
                if await self._locks.is_held((self.profile.id, plan_type))
            ]
        except Exception:
            self.state = PlanningState.idle
            raise

        self._analysis = analysis
        self._in_flight = tuple(in_flight)
        self.state = (
            PlanningState.needs_adjustment
            if analysis.triggers_adjustment
            else PlanningState.satisfied
        )
        self._log.info(
            "Adherence analyzed",
            logs=len(logs),
            overall_adherence=analysis.overall_adherence,
            patterns=len(analysis.patterns),
            triggers_adjustment=analysis.triggers_adjustment,
            adjusting=[t.value for t in in_flight],
        )
        return analysis

    async def adjust_meal_plan(self) -> MealPlan | TrainingPlan:
        return await self.adjust(PlanType.meal)

    async def adjust_training_plan(self) -> MealPlan | TrainingPlan:
        return await self.adjust(PlanType.training)

    async def adjust(self, plan_type: PlanType) -> MealPlan | TrainingPlan:
        """Regenerate the active plan of ``plan_type`` from the analysis.

        Raises:
            PreconditionError: No analysis is loaded, no active plan of the
                type exists, or an adjustment of it is already running.
            PlanGenerationTimeoutError: The generator did not answer in time.
            ProviderError: Raised by the generator, propagated as is.
            PersistenceError: The plan store failed.
        """
        analysis = self._analysis
        if analysis is None:
            raise PreconditionError(
                "No adherence analysis loaded; load the planner first",
                missing="analysis",
            )

        log = self._log.bind(plan_type=plan_type.value)
        async with self._exclusive(plan_type, log):
            previous = await self._plan_store.get_active(self.profile.id, plan_type)
            if previous is None:
                raise PreconditionError(
                    f"No active {plan_type.value} plan to adjust",
                    missing=f"active_{plan_type.value}_plan",
                )
            request = self._request(
                plan_type,
                AdjustmentContext(
                    analysis=analysis,
                    brief=build_adjustment_brief(analysis, plan_type),
                    previous_plan_id=previous.id,
                ),
            )
            return await self._generate(request, previous, log)

    async def generate_plan(self, plan_type: PlanType) -> MealPlan | TrainingPlan:
        """Generate a fresh plan of ``plan_type`` from the profile alone.

        Used for a user's first plan or to start over. An existing active
        plan of the type is archived once the new plan is generated.

        Raises:
            PreconditionError: A generation of this plan type is running.
            PlanGenerationTimeoutError: The generator did not answer in time.
            ProviderError: Raised by the generator, propagated as is.
            PersistenceError: The plan store failed.
        """
        log = self._log.bind(plan_type=plan_type.value)
        async with self._exclusive(plan_type, log):
            previous = await self._plan_store.get_active(self.profile.id, plan_type)
            return await self._generate(self._request(plan_type, None), previous, log)

    @asynccontextmanager
    async def _exclusive(
        self, plan_type: PlanType, log: StructuredLogger
    ) -> AsyncIterator[None]:
        try:
            async with self._locks.hold((self.profile.id, plan_type), wait=False):
                yield
        except LockBusyError:
            log.warning("Plan generation rejected, another is in progress")
            raise PreconditionError(
                f"A {plan_type.value} plan is already being generated",
                missing="idle_planner",
            ) from None

    def _request(
        self, plan_type: PlanType, context: AdjustmentContext | None
    ) -> PlanGenerationRequest:
        return PlanGenerationRequest(
            user_profile=self.profile,
            plan_type=plan_type,
            start_date=self._clock(),
            duration_days=self._durations[plan_type],
            adjustment_context=context,
        )

    async def _generate(
        self,
        request: PlanGenerationRequest,
        previous: MealPlan | TrainingPlan | None,
        log: StructuredLogger,
    ) -> MealPlan | TrainingPlan:
        previous_id = str(previous.id) if previous else None

        self.state = PlanningState.adjusting
        log.info("Plan generation started", previous_plan_id=previous_id)
        try:
            try:
                response = await asyncio.wait_for(
                    self._plan_generator.generate(request), timeout=self._timeout
                )
            except TimeoutError:
                log.error("Plan generation timed out", timeout_seconds=self._timeout)
                raise PlanGenerationTimeoutError(self._timeout) from None
            except Exception as e:
                log.error(
                    "Plan generation failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            new_plan = response.plan
            if previous is None:
                await self._plan_store.create(new_plan)
            else:
                await self._plan_store.replace_active(previous, new_plan)
        finally:
            self.state = PlanningState.idle

        log.info(
            "Plan adjusted" if request.adjustment_context else "Plan generated",
            previous_plan_id=previous_id,
            plan_id=str(new_plan.id),
        )
        return new_plan

    def dismiss_suggestion(self) -> None:
        """Forget the current analysis until the next ``load``."""
        self._analysis = None
        self.state = PlanningState.idle
        self._log.info("Adjustment suggestion dismissed")
