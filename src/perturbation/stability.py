"""Recommendation Stability.

Compares the "theme set" of two recommendation bundles: every aligned
skill plus each recommendation's category (course/project/competition).
"""

from typing import Optional

from src.models.comparison import StabilityCheck
from src.models.config import ComparisonThresholds
from src.models.perturbation import PerturbationType
from src.models.pipeline import RecommendationsResult


def extract_themes(recommendations: RecommendationsResult) -> set[str]:
    """Collect aligned skills and categories across all recommendations."""
    themes: set[str] = set()
    for category, rec in recommendations.categorized():
        for alignment in rec.skill_alignment:
            themes.add(alignment.skill.lower())
        themes.add(category)
    return themes


def check_recommendation_stability(
    baseline: Optional[RecommendationsResult],
    variant: Optional[RecommendationsResult],
    variant_type: PerturbationType,
    thresholds: Optional[ComparisonThresholds] = None,
) -> StabilityCheck:
    """Check that recommendation themes shift only as far as the variant allows.

    Policy by variant type:
    - rephrased: at most one theme change and no significant count change
    - injection: a few added themes, none removed
    - removal: no added themes, a few removed

    Missing data on either side is neutral (stable) with an explicit reason.
    """
    if baseline is None or variant is None:
        return StabilityCheck(
            is_stable=True,
            reasoning="Missing data for comparison: recommendation results unavailable",
        )

    thresholds = thresholds or ComparisonThresholds()

    baseline_themes = extract_themes(baseline)
    variant_themes = extract_themes(variant)
    added = sorted(variant_themes - baseline_themes)
    removed = sorted(baseline_themes - variant_themes)

    categories_changed = [f"+{t}" for t in added] + [f"-{t}" for t in removed]
    reasons: list[str] = []
    if added:
        reasons.append(f"New themes added: {', '.join(added)}")
    if removed:
        reasons.append(f"Themes removed: {', '.join(removed)}")

    baseline_count = baseline.count()
    variant_count = variant.count()
    significant = abs(variant_count - baseline_count) >= thresholds.significant_count_delta
    if significant:
        reasons.append(
            f"Recommendation count changed significantly: {baseline_count} -> {variant_count}"
        )

    if variant_type == "rephrased":
        is_stable = (
            len(categories_changed) <= thresholds.rephrase_max_theme_changes
            and not significant
        )
    elif variant_type == "injection":
        is_stable = len(added) <= thresholds.injection_max_added_themes and not removed
    elif variant_type == "removal":
        is_stable = not added and len(removed) <= thresholds.removal_max_removed_themes
    else:
        is_stable = True

    return StabilityCheck(
        is_stable=is_stable,
        categories_changed=categories_changed,
        significant_ranking_changes=significant,
        reasoning="; ".join(reasons) if reasons else "Recommendations are stable across variants",
    )
