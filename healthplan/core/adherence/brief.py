"""Adjustment brief synthesis.

Turns an adherence analysis into plain-language instructions telling the
plan generator how a regenerated plan should differ from its predecessor.
"""

from healthplan.core.adherence.enums import DeviationReason, PlanType
from healthplan.core.adherence.models import AdherenceAnalysis, AdherencePattern
from healthplan.core.adherence.scoring import round_half_up

MAINTAIN_BRIEF = (
    "Maintain current plan structure but ensure variety and sustainability."
)
MINOR_ADJUSTMENT_BRIEF = (
    "Make minor adjustments to improve adherence while maintaining progress "
    "toward goals."
)

# Every reason a pattern reports that appears here contributes its
# directive, in table order.
MEAL_DIRECTIVES: dict[DeviationReason, str] = {
    DeviationReason.time_constraint: (
        "For {item}: Use quicker recipes with prep time under 15 minutes "
        "and cook time under 20 minutes."
    ),
    DeviationReason.not_hungry: (
        "For {item}: Reduce portion sizes by 20-30% or shift timing."
    ),
    DeviationReason.didnt_like: (
        "For {item}: Provide more variety and alternative flavor profiles."
    ),
}

TRAINING_DIRECTIVES: dict[DeviationReason, str] = {
    DeviationReason.too_tired: (
        "For {item}: Reduce intensity by 20-30% and/or reduce session "
        "duration by 15 minutes."
    ),
    DeviationReason.schedule_conflict: (
        "For {item}: Schedule on different days or different times to "
        "avoid conflicts."
    ),
    DeviationReason.lack_of_motivation: (
        "For {item}: Add variety with different exercises targeting the "
        "same muscle groups."
    ),
    DeviationReason.equipment_unavailable: (
        "For {item}: Use alternative bodyweight or available equipment "
        "exercises."
    ),
}

_DIRECTIVES = {
    PlanType.meal: MEAL_DIRECTIVES,
    PlanType.training: TRAINING_DIRECTIVES,
}


def _timing_directive(pattern: AdherencePattern) -> str:
    delay = pattern.timing_deviations.average_delay
    direction = "later" if delay > 0 else "earlier"
    hours = round_half_up(abs(delay) / 60)
    return (
        f"For {pattern.item_name}: Schedule {hours} hour(s) {direction} "
        "than previously planned."
    )


def pattern_directives(pattern: AdherencePattern) -> list[str]:
    """Directive sentences for a single pattern (possibly none)."""
    directives = [
        template.format(item=pattern.item_name)
        for reason, template in _DIRECTIVES[pattern.type].items()
        if reason in pattern.common_reasons
    ]
    if pattern.type == PlanType.meal and pattern.timing_deviations.consistent:
        directives.append(_timing_directive(pattern))
    return directives


def build_adjustment_brief(analysis: AdherenceAnalysis, plan_type: PlanType) -> str:
    """Synthesize the adjustment instructions for one plan type.

    Args:
        analysis: The adherence analysis that prompted the adjustment.
        plan_type: Which plan is being regenerated.

    Returns:
        Space-joined directive sentences, or a generic maintenance /
        minor-adjustment sentence when the patterns give nothing specific.
    """
    patterns = analysis.patterns_for(PlanType(plan_type))
    if not patterns:
        return MAINTAIN_BRIEF

    directives = [d for pattern in patterns for d in pattern_directives(pattern)]
    if not directives:
        return MINOR_ADJUSTMENT_BRIEF

    return " ".join(directives)
