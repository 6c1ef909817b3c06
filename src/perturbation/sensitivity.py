"""Action Plan Sensitivity.

Checks that the 30-day plan changes in proportion to the evidence change:
task count moves within a tolerance and new skill areas appear only when
the variant added evidence for them.
"""

from typing import Optional

from src.models.comparison import PlanChangesProportion, SensitivityCheck
from src.models.config import ComparisonThresholds
from src.models.perturbation import ProfileVariant
from src.models.pipeline import ActionPlan


def _normalize(skill: str) -> str:
    return skill.strip().lower().replace(" ", "_")


def _plan_skills(plan: ActionPlan) -> set[str]:
    return {_normalize(skill) for skill in plan.related_skills() if skill.strip()}


def _is_related(skill: str, evidence_skills: set[str]) -> bool:
    return any(skill in related or related in skill for related in evidence_skills)


def check_action_plan_sensitivity(
    variant: ProfileVariant,
    baseline_plan: Optional[ActionPlan],
    variant_plan: Optional[ActionPlan],
    thresholds: Optional[ComparisonThresholds] = None,
) -> SensitivityCheck:
    """Check whether the plan changed appropriately for the variant type.

    Args:
        variant: Profile variant with its change record
        baseline_plan: Action plan for the original profile
        variant_plan: Action plan for the variant profile
        thresholds: Comparison thresholds (default: ComparisonThresholds())

    Returns:
        SensitivityCheck. Missing plans are neutral (appropriate, unchanged).
    """
    if baseline_plan is None or variant_plan is None:
        return SensitivityCheck(
            is_appropriate=True,
            plan_changes_proportion="unchanged",
            reasoning="Missing action plan data for comparison",
        )

    thresholds = thresholds or ComparisonThresholds()

    task_delta = variant_plan.task_count() - baseline_plan.task_count()
    new_skills = sorted(_plan_skills(variant_plan) - _plan_skills(baseline_plan))

    is_appropriate = True
    proportion: PlanChangesProportion = "unchanged"
    unrelated: list[str] = []
    reasons: list[str] = []

    if variant.variant_type == "rephrased":
        if abs(task_delta) > thresholds.plan_task_delta:
            is_appropriate = False
            proportion = "disproportional"
            reasons.append(
                f"Task count changed by {task_delta} despite only rephrasing"
            )
        elif task_delta != 0:
            proportion = "proportional"
        if new_skills:
            is_appropriate = False
            unrelated = [f"New skill area: {skill}" for skill in new_skills]
            reasons.append(
                f"New skill areas appeared despite only rephrasing: {', '.join(new_skills)}"
            )

    elif variant.variant_type == "injection":
        added_skills = {_normalize(s) for s in variant.changed_skills()}
        if task_delta > 0:
            proportion = "proportional"
        elif task_delta < -thresholds.plan_task_delta:
            is_appropriate = False
            proportion = "disproportional"
            reasons.append(
                f"Task count decreased by {-task_delta} despite adding evidence"
            )
        unrelated_skills = [s for s in new_skills if not _is_related(s, added_skills)]
        if unrelated_skills:
            is_appropriate = False
            unrelated = [f"New skill area: {skill}" for skill in unrelated_skills]
            reasons.append(
                "New skill areas not related to injected evidence: "
                + ", ".join(unrelated_skills)
            )

    elif variant.variant_type == "removal":
        if task_delta < 0:
            proportion = "proportional"
        elif task_delta > thresholds.plan_task_delta:
            is_appropriate = False
            proportion = "disproportional"
            reasons.append(
                f"Task count increased by {task_delta} despite removing evidence"
            )
        if new_skills:
            is_appropriate = False
            unrelated = [f"New skill area: {skill}" for skill in new_skills]
            reasons.append(
                f"New skill areas appeared despite removing evidence: {', '.join(new_skills)}"
            )

    return SensitivityCheck(
        is_appropriate=is_appropriate,
        plan_changes_proportion=proportion,
        unrelated_steps_added=unrelated,
        reasoning=(
            "; ".join(reasons)
            if reasons
            else f"Action plan changes are appropriate for {variant.variant_type} perturbation"
        ),
    )
