"""Skill Attribution Consistency.

Checks that skill changes between baseline and variant are explained by the
evidence the variant actually added or removed:
- rephrasing must not move scores materially
- injection may raise only skills tied to injected evidence
- removal may lower only skills tied to removed evidence
"""

from typing import Optional

from src.models.comparison import AttributionCheck
from src.models.config import ComparisonThresholds
from src.models.perturbation import ProfileVariant
from src.models.pipeline import CORE_SKILLS, IntakeAnalysis

MISSING_DATA_REASONING = "Missing data for comparison: skill signals unavailable"


def _normalize_skill(skill: str) -> str:
    return skill.strip().lower().replace(" ", "_")


def check_skill_attribution_consistency(
    variant: ProfileVariant,
    baseline: Optional[IntakeAnalysis],
    variant_signals: Optional[IntakeAnalysis],
    thresholds: Optional[ComparisonThresholds] = None,
) -> AttributionCheck:
    """Check whether skill changes match the variant's evidence changes.

    Args:
        variant: Profile variant with its change record
        baseline: Intake analysis of the original profile
        variant_signals: Intake analysis of the variant profile
        thresholds: Comparison thresholds (default: ComparisonThresholds())

    Returns:
        AttributionCheck. Missing signals on either side are inconsistent.
    """
    if baseline is None or variant_signals is None:
        return AttributionCheck(is_consistent=False, reasoning=MISSING_DATA_REASONING)

    thresholds = thresholds or ComparisonThresholds()
    related = {_normalize_skill(s) for s in variant.changed_skills()}

    skills_changed: list[str] = []
    unexpected: list[str] = []
    reasons: list[str] = []

    for skill in CORE_SKILLS:
        before = baseline.signal(skill)
        after = variant_signals.signal(skill)

        signed_delta = after.confidence - before.confidence
        confidence_delta = abs(signed_delta)
        evidence_delta = abs(len(after.evidence_phrases) - len(before.evidence_phrases))
        confidence_moved = confidence_delta > thresholds.confidence_delta

        if not confidence_moved and evidence_delta < thresholds.evidence_count_delta:
            continue
        skills_changed.append(skill)

        if variant.variant_type == "rephrased":
            if confidence_moved:
                reasons.append(
                    f"{skill}: confidence changed by {confidence_delta:.2f} "
                    "despite only rephrasing"
                )
            if evidence_delta >= thresholds.rephrase_evidence_count_delta:
                reasons.append(
                    f"{skill}: evidence count changed by {evidence_delta} "
                    "despite only rephrasing"
                )
            if confidence_moved or evidence_delta >= thresholds.rephrase_evidence_count_delta:
                unexpected.append(skill)

        elif variant.variant_type == "injection":
            if signed_delta > thresholds.confidence_delta and skill not in related:
                unexpected.append(skill)
                reasons.append(
                    f"{skill}: increased by {signed_delta:.2f} despite not being "
                    "related to injected evidence"
                )

        elif variant.variant_type == "removal":
            if -signed_delta > thresholds.confidence_delta and skill not in related:
                unexpected.append(skill)
                reasons.append(
                    f"{skill}: decreased by {-signed_delta:.2f} despite not being "
                    "related to removed evidence"
                )

    if variant.variant_type == "rephrased":
        is_consistent = (
            not unexpected
            and len(skills_changed) <= thresholds.rephrase_max_changed_skills
        )
        if not unexpected and not is_consistent:
            reasons.append(
                f"{len(skills_changed)} skills changed despite only rephrasing: "
                f"{', '.join(skills_changed)}"
            )
    else:
        is_consistent = not unexpected

    return AttributionCheck(
        is_consistent=is_consistent,
        skills_changed=skills_changed,
        unexpected_changes=unexpected,
        reasoning=(
            "; ".join(reasons)
            if reasons
            else f"Skill changes are consistent with {variant.variant_type} perturbation"
        ),
    )
