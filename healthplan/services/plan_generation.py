"""Plan generation client.

``PlanGenerationClient`` is the seam the adaptive planner calls to obtain
a new plan. ``AIPlanGenerationClient`` renders a prompt from the user
profile and optional adjustment context, asks the configured AI provider
for a JSON plan and validates the reply into a ``MealPlan`` or
``TrainingPlan``.
"""

import abc
import datetime as dt
import json
import uuid
from typing import Any

import anthropic
import openai
import pydantic

from healthplan.core.adherence.enums import PlanStatus, PlanType
from healthplan.core.errors import ProviderError
from healthplan.logging_config import StructuredLogger, get_logger
from healthplan.schemas.ai_response import AIMessage
from healthplan.schemas.plan import GenerationContext, MealPlan, TrainingPlan, plan_adapter
from healthplan.schemas.plan_generation import (
    AdjustmentContext,
    PlanGenerationRequest,
    PlanGenerationResponse,
)
from healthplan.schemas.user_profile import UserProfile
from healthplan.services.ai_client import BaseAIClient

logger = get_logger(__name__)

MEAL_SYSTEM_PROMPT = """\
You are an expert nutritionist and meal planner. Create personalized, \
balanced meal plans that are practical, delicious, and aligned with the \
user's goals and preferences.

Your meal plans should:
- Meet daily caloric and macronutrient targets based on user goals
- Respect dietary restrictions, allergies and dislikes
- Include variety and avoid meal fatigue
- Be practical to prepare with clear instructions
- Include nutrition information for every recipe

Respond with a single JSON object and nothing else.\
"""

TRAINING_SYSTEM_PROMPT = """\
You are an expert fitness trainer and exercise programmer. Create \
personalized training plans that are safe, progressive, and aligned with \
the user's goals and capabilities.

Your training plans should:
- Match the user's fitness level and goals
- Use only the equipment the user has available
- Include progression across the weeks
- Have appropriate volume, intensity, and frequency
- Be varied to prevent boredom and overuse

Respond with a single JSON object and nothing else.\
"""

MEAL_PLAN_SHAPE = """\
{
  "name": "Descriptive plan name",
  "daily_plans": [
    {
      "date": "YYYY-MM-DD",
      "meals": [
        {
          "type": "breakfast",
          "scheduled_time": "07:00",
          "recipe": {
            "name": "Recipe name",
            "description": "Short description",
            "ingredients": [{"name": "oats", "amount": 60, "unit": "g"}],
            "instructions": ["Step 1", "Step 2"],
            "prep_time": 5,
            "cook_time": 10,
            "servings": 1,
            "nutrition": {"calories": 450, "protein": 25, "carbohydrates": 55, "fat": 12}
          }
        }
      ]
    }
  ]
}\
"""

TRAINING_PLAN_SHAPE = """\
{
  "name": "Descriptive plan name",
  "focus_areas": ["strength"],
  "sessions": [
    {
      "date": "YYYY-MM-DD",
      "name": "Upper Body",
      "type": "strength",
      "duration": 45,
      "scheduled_time": "18:00",
      "target_intensity": "moderate",
      "exercises": [
        {"name": "Push-up", "type": "strength", "sets": 3, "reps": 10,
         "muscle_groups": ["chest"], "equipment": []}
      ]
    }
  ]
}\
"""

# SDK errors that will fail the same way on retry
_PERMANENT_SDK_ERRORS = (
    anthropic.AuthenticationError,
    anthropic.PermissionDeniedError,
    anthropic.BadRequestError,
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
)


class PlanGenerationClient(abc.ABC):
    """Produces a new meal or training plan for a user."""

    @abc.abstractmethod
    async def generate(self, request: PlanGenerationRequest) -> PlanGenerationResponse:
        """Generate a plan.

        Raises:
            ProviderError: The provider failed or returned an unusable plan.
        """


def _joined(values: list[str], empty: str) -> str:
    return ", ".join(values) if values else empty


def _profile_lines(profile: UserProfile) -> list[str]:
    lines = ["USER PROFILE:", f"- Name: {profile.name}"]
    if profile.body:
        body = profile.body
        lines += [
            f"- Age: {body.age}, Gender: {body.gender}",
            f"- Height: {body.height:g} cm, Weight: {body.weight:g} kg",
            f"- Fitness level: {body.fitness_level}",
            f"- Activity level: {body.activity_level}",
        ]
    lines.append(f"- Goals: {_joined(profile.goals, 'General health')}")
    return lines


def _meal_preference_lines(profile: UserProfile) -> list[str]:
    prefs = profile.preferences
    lines = [
        "DIETARY PREFERENCES:",
        f"- Restrictions: {_joined(prefs.dietary_restrictions, 'None')}",
        f"- Allergies: {_joined(prefs.allergies, 'None')}",
        f"- Dislikes: {_joined(prefs.food_dislikes, 'None')}",
        f"- Cuisine preferences: {_joined(prefs.cuisine_preferences, 'Various')}",
    ]
    if prefs.max_prep_time is not None:
        lines.append(f"- Maximum prep time: {prefs.max_prep_time} minutes")
    if prefs.max_cook_time is not None:
        lines.append(f"- Maximum cook time: {prefs.max_cook_time} minutes")
    return lines


def _training_preference_lines(profile: UserProfile) -> list[str]:
    prefs = profile.preferences
    return [
        "EQUIPMENT & LOCATION:",
        "- Available equipment: "
        f"{_joined(prefs.equipment_available, 'None (bodyweight only)')}",
        f"- Workout location: {prefs.workout_location}",
    ]


def _adjustment_lines(context: AdjustmentContext, plan_type: PlanType) -> list[str]:
    analysis = context.analysis
    type_score = (
        analysis.meal_adherence
        if plan_type == PlanType.meal
        else analysis.training_adherence
    )
    lines = [
        "ADJUSTMENT CONTEXT:",
        "The previous plan had adherence issues:",
        f"- Overall adherence: {analysis.overall_adherence}%",
        f"- {plan_type.value.capitalize()} adherence: {type_score}%",
    ]
    for pattern in analysis.patterns_for(plan_type):
        reasons = _joined([r.value for r in pattern.common_reasons], "none given")
        lines.append(
            f"- {pattern.item_name}: {pattern.consecutive_misses} consecutive misses, "
            f"{pattern.miss_rate * 100:.1f}% miss rate, reasons: {reasons}"
        )
    lines += ["", "Please adjust the plan to address these issues:", context.brief]
    return lines


def build_prompt(request: PlanGenerationRequest) -> tuple[str, str]:
    """Render the system and user prompts for a generation request.

    Returns:
        ``(system_prompt, user_prompt)``.
    """
    end_date = request.start_date + dt.timedelta(days=request.duration_days - 1)
    profile = request.user_profile

    if request.plan_type == PlanType.meal:
        system_prompt = MEAL_SYSTEM_PROMPT
        lines = [
            f"Create a {request.duration_days}-day meal plan from "
            f"{request.start_date.isoformat()} to {end_date.isoformat()}.",
            "",
            *_profile_lines(profile),
            "",
            *_meal_preference_lines(profile),
        ]
        shape = MEAL_PLAN_SHAPE
    else:
        system_prompt = TRAINING_SYSTEM_PROMPT
        lines = [
            f"Create a {request.duration_days}-day training plan from "
            f"{request.start_date.isoformat()} to {end_date.isoformat()}.",
            "",
            *_profile_lines(profile),
            "",
            *_training_preference_lines(profile),
        ]
        shape = TRAINING_PLAN_SHAPE

    if request.adjustment_context:
        lines += ["", *_adjustment_lines(request.adjustment_context, request.plan_type)]

    lines += ["", "Return JSON with exactly this structure:", shape]
    return system_prompt, "\n".join(lines)


def extract_json_object(content: str) -> dict[str, Any]:
    """Pull the outermost JSON object out of a model reply.

    Tolerates markdown code fences and prose around the object.

    Raises:
        ValueError: No JSON object could be decoded.
    """
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("Reply contains no JSON object")

    parsed = json.loads(content[start : end + 1])
    if not isinstance(parsed, dict):
        raise ValueError("Reply JSON is not an object")
    return parsed


class AIPlanGenerationClient(PlanGenerationClient):
    """Generates plans through a BaseAIClient."""

    def __init__(self, ai_client: BaseAIClient, *, max_tokens: int = 8192) -> None:
        self._ai_client = ai_client
        self._max_tokens = max_tokens

    async def generate(self, request: PlanGenerationRequest) -> PlanGenerationResponse:
        system_prompt, user_prompt = build_prompt(request)
        log = logger.bind(
            user_id=str(request.user_profile.id),
            plan_type=request.plan_type.value,
            model=self._ai_client.model,
        )

        log.info("Requesting plan from AI provider", duration_days=request.duration_days)
        try:
            response = await self._ai_client.generate(
                messages=[AIMessage(role="user", content=user_prompt)],
                system_prompt=system_prompt,
                max_tokens=self._max_tokens,
            )
        except _PERMANENT_SDK_ERRORS as e:
            log.error("AI provider rejected plan request", error=str(e))
            raise ProviderError(
                f"AI provider rejected the request: {e}", retryable=False
            ) from e
        except (anthropic.APIError, openai.APIError) as e:
            log.error("AI provider call failed", error=str(e))
            raise ProviderError(f"AI provider call failed: {e}") from e

        plan = self._parse_plan(response.content, request, log)
        log.info(
            "Plan generated",
            plan_id=str(plan.id),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return PlanGenerationResponse(
            plan=plan,
            generation_notes=f"Generated by {response.provider.value} ({response.model})",
        )

    def _parse_plan(
        self, content: str, request: PlanGenerationRequest, log: StructuredLogger
    ) -> MealPlan | TrainingPlan:
        try:
            payload = extract_json_object(content)
        except ValueError as e:
            log.error("AI reply was not a JSON plan", error=str(e))
            raise ProviderError(f"AI provider returned an unparseable plan: {e}") from e

        context = request.adjustment_context
        # Identity, ownership and lifecycle are assigned here, never by the model
        payload.update(
            id=str(uuid.uuid4()),
            user_id=str(request.user_profile.id),
            plan_type=request.plan_type.value,
            status=PlanStatus.active.value,
            start_date=request.start_date.isoformat(),
            end_date=(
                request.start_date + dt.timedelta(days=request.duration_days - 1)
            ).isoformat(),
            generation_context=(
                GenerationContext(
                    adjustments=context.brief,
                    previous_plan_id=context.previous_plan_id,
                ).model_dump(mode="json")
                if context
                else None
            ),
        )
        payload.pop("created_at", None)
        payload.setdefault("name", f"{request.plan_type.value.capitalize()} plan")

        try:
            return plan_adapter.validate_python(payload)
        except pydantic.ValidationError as e:
            log.error("AI plan failed validation", errors=e.error_count())
            raise ProviderError(
                f"AI provider returned an invalid {request.plan_type.value} plan"
            ) from e
