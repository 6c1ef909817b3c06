"""Variant Comparator.

Runs every check for one (profile, variant) run and assembles the
comparison row consumed by metrics and reporting.
"""

from typing import Optional

from src.models.comparison import VariantComparisonResult
from src.models.config import ComparisonThresholds
from src.models.perturbation import ProfileVariant
from src.models.pipeline import PipelineResults
from src.perturbation.attribution import check_skill_attribution_consistency
from src.perturbation.consistency import compute_skill_consistency, unscored_consistency
from src.perturbation.hallucination import detect_hallucinations
from src.perturbation.sensitivity import check_action_plan_sensitivity
from src.perturbation.stability import check_recommendation_stability

BASELINE_UNAVAILABLE = "baseline unavailable: original run produced no intake analysis"


def compare_variant_to_original(
    variant: ProfileVariant,
    baseline_results: Optional[PipelineResults],
    variant_results: PipelineResults,
    thresholds: Optional[ComparisonThresholds] = None,
    errors: Optional[list[str]] = None,
) -> VariantComparisonResult:
    """Compare a variant's pipeline output against its profile's baseline.

    The original variant is its own baseline: skill consistency is 100% by
    definition and the verdict checks compare the run against itself. A
    perturbed variant whose baseline has no intake analysis is not scored:
    the row gets 0%, baseline_available=False and a "baseline unavailable"
    error.

    Args:
        variant: Profile variant that produced variant_results
        baseline_results: Results for the original profile (None if the
            baseline run failed or was not executed)
        variant_results: Results for this variant
        thresholds: Comparison thresholds (default: ComparisonThresholds())
        errors: Extra error annotations for this run

    Returns:
        VariantComparisonResult row
    """
    thresholds = thresholds or ComparisonThresholds()
    notes = list(errors or [])

    if variant.variant_type == "original":
        reference = variant_results
        baseline_available = True
        skill_consistency = compute_skill_consistency(None, variant_results.intake_analysis)
    else:
        reference = baseline_results or PipelineResults()
        baseline_available = reference.intake_analysis is not None
        if baseline_available:
            skill_consistency = compute_skill_consistency(
                reference.intake_analysis, variant_results.intake_analysis
            )
        else:
            skill_consistency = unscored_consistency(variant_results.intake_analysis)
            notes.insert(0, BASELINE_UNAVAILABLE)

    attribution = check_skill_attribution_consistency(
        variant,
        reference.intake_analysis,
        variant_results.intake_analysis,
        thresholds,
    )
    hallucinations = detect_hallucinations(variant.profile, variant_results, thresholds)
    stability = check_recommendation_stability(
        reference.recommendations,
        variant_results.recommendations,
        variant.variant_type,
        thresholds,
    )
    sensitivity = check_action_plan_sensitivity(
        variant, reference.action_plan, variant_results.action_plan, thresholds
    )

    return VariantComparisonResult(
        profile_id=variant.profile_id,
        profile_name=variant.profile_name,
        variant_id=variant.id,
        variant=variant.variant_type,
        skill_consistency=skill_consistency,
        skill_attribution_consistency=(
            "consistent" if attribution.is_consistent else "inconsistent"
        ),
        skill_attribution_details=attribution,
        hallucinations_detected=hallucinations.has_hallucinations,
        hallucination_details=hallucinations,
        recommendation_stability="stable" if stability.is_stable else "unstable",
        recommendation_stability_details=stability,
        action_plan_sensitivity=(
            "appropriate" if sensitivity.is_appropriate else "inappropriate"
        ),
        action_plan_sensitivity_details=sensitivity,
        baseline_available=baseline_available,
        errors=variant_results.error_messages() + notes,
    )
