"""Metrics Aggregation.

Pure reduction over the full list of comparison rows. Nothing is
accumulated incrementally; call calculate_metrics() again whenever the row
list changes.
"""

from src.models.comparison import (
    MetricsReport,
    PerturbationMetrics,
    PerturbationSummary,
    SkillConsistencySummaryRow,
    SummaryConsistencyByVariant,
    VariantComparisonResult,
    VariantConsistency,
)
from src.perturbation.consistency import round_half_up

# (variant type, table label, description), in reporting order
SKILL_CONSISTENCY_ROWS: tuple[tuple[str, str, str], ...] = (
    ("original", "Original", "Baseline input (100% by definition)"),
    ("rephrased", "Rephrased Input", "Same meaning, different wording"),
    ("removal", "Removed Detail", "Key but non-critical info removed"),
    ("injection", "Added Irrelevant Text", "Noise injection with unrelated content"),
)

METRIC_DEFINITIONS: dict[str, str] = {
    "skill_attribution_consistency_rate": (
        "Percentage of runs where skill changes are explained by the evidence "
        "actually added or removed"
    ),
    "hallucination_rate": (
        "Percentage of runs with output not traceable to the student's input"
    ),
    "recommendation_stability_rate": (
        "Percentage of runs whose recommendation themes shifted only as far as "
        "the variant allows"
    ),
    "action_plan_appropriateness_rate": (
        "Percentage of runs whose action plan changed in proportion to the "
        "evidence change"
    ),
    "average_skill_consistency": (
        "Mean skill-consistency percentage across non-original variants whose "
        "baseline run produced an intake analysis"
    ),
}


def _percent(count: int, total: int) -> int:
    return int(round_half_up(count / total * 100)) if total else 0


def _average_consistency(rows: list[VariantComparisonResult]) -> int:
    rows = [row for row in rows if row.baseline_available]
    if not rows:
        return 0
    total = sum(row.skill_consistency.consistency_percentage for row in rows)
    return int(round_half_up(total / len(rows)))


def calculate_metrics(results: list[VariantComparisonResult]) -> MetricsReport:
    """Aggregate comparison rows into summary counts, rates, and the table.

    Args:
        results: Every comparison row of the batch, in any order

    Returns:
        MetricsReport. Empty input yields zero rates, original=100, and an
        empty table.
    """
    if not results:
        return MetricsReport(
            summary=PerturbationSummary(),
            metrics=PerturbationMetrics(),
            skill_consistency_table=[],
        )

    total = len(results)
    consistent = sum(1 for r in results if r.skill_attribution_consistency == "consistent")
    hallucinated = sum(1 for r in results if r.hallucinations_detected)
    stable = sum(1 for r in results if r.recommendation_stability == "stable")
    appropriate = sum(1 for r in results if r.action_plan_sensitivity == "appropriate")

    by_type = {
        variant_type: [r for r in results if r.variant == variant_type]
        for variant_type, _label, _description in SKILL_CONSISTENCY_ROWS
    }
    by_variant = VariantConsistency(
        original=_average_consistency(by_type["original"]) or 100,
        rephrased=_average_consistency(by_type["rephrased"]),
        removal=_average_consistency(by_type["removal"]),
        injection=_average_consistency(by_type["injection"]),
    )

    perturbed = [r for r in results if r.variant != "original"]
    average = _average_consistency(perturbed) if perturbed else 100

    summary = PerturbationSummary(
        consistent_attribution_count=consistent,
        hallucination_count=hallucinated,
        stable_recommendations_count=stable,
        appropriate_action_plans_count=appropriate,
        average_skill_consistency=average,
        skill_consistency_by_variant=SummaryConsistencyByVariant(
            rephrased=by_variant.rephrased,
            removed_detail=by_variant.removal,
            added_irrelevant=by_variant.injection,
        ),
    )

    metrics = PerturbationMetrics(
        skill_attribution_consistency_rate=_percent(consistent, total),
        hallucination_rate=_percent(hallucinated, total),
        recommendation_stability_rate=_percent(stable, total),
        action_plan_appropriateness_rate=_percent(appropriate, total),
        average_skill_consistency=average,
        skill_consistency_by_variant=by_variant,
    )

    table = [
        SkillConsistencySummaryRow(
            input_variant=label,
            skill_consistency=100 if variant_type == "original" else getattr(by_variant, variant_type),
            description=description,
        )
        for variant_type, label, description in SKILL_CONSISTENCY_ROWS
    ]

    return MetricsReport(summary=summary, metrics=metrics, skill_consistency_table=table)
