"""Skill Consistency Calculation.

Percentage similarity between baseline and variant skill scores:
per-skill absolute confidence difference on the 0-100 scale, averaged over
the six core skills, reported as 100 - average (floored at 0).
"""

from typing import Optional

from src.models.comparison import SkillConsistencyResult
from src.models.pipeline import CORE_SKILLS, IntakeAnalysis, round_half_up


def _zero_scores() -> dict[str, int]:
    return {skill: 0 for skill in CORE_SKILLS}


def compute_skill_consistency(
    baseline: Optional[IntakeAnalysis], variant: Optional[IntakeAnalysis]
) -> SkillConsistencyResult:
    """Compare confidence scores of two intake analyses.

    Args:
        baseline: Intake analysis of the original profile, or None when the
            variant is its own baseline
        variant: Intake analysis of the variant, or None if the run failed

    Returns:
        SkillConsistencyResult. No baseline gives 100% by definition; no
        variant gives 0% with every difference at 100.
    """
    if baseline is None:
        scores = variant.scores() if variant is not None else _zero_scores()
        return SkillConsistencyResult(
            consistency_percentage=100,
            skill_differences={skill: 0.0 for skill in CORE_SKILLS},
            average_difference=0.0,
            baseline_scores=scores,
            variant_scores=scores,
        )

    if variant is None:
        return SkillConsistencyResult(
            consistency_percentage=0,
            skill_differences={skill: 100.0 for skill in CORE_SKILLS},
            average_difference=100.0,
            baseline_scores=baseline.scores(),
            variant_scores=_zero_scores(),
        )

    differences: dict[str, float] = {}
    total = 0.0
    for skill in CORE_SKILLS:
        difference = abs(
            variant.signal(skill).confidence * 100 - baseline.signal(skill).confidence * 100
        )
        differences[skill] = round_half_up(difference, 1)
        total += difference

    average = round_half_up(total / len(CORE_SKILLS), 1)

    return SkillConsistencyResult(
        consistency_percentage=int(max(0, round_half_up(100 - average))),
        skill_differences=differences,
        average_difference=average,
        baseline_scores=baseline.scores(),
        variant_scores=variant.scores(),
    )


def unscored_consistency(variant: Optional[IntakeAnalysis]) -> SkillConsistencyResult:
    """Placeholder for a perturbed run whose baseline produced no intake analysis.

    Reports 0% with no per-skill differences; metrics leave such rows out of
    the consistency averages.
    """
    return SkillConsistencyResult(
        consistency_percentage=0,
        skill_differences={},
        average_difference=100.0,
        baseline_scores={},
        variant_scores=variant.scores() if variant is not None else _zero_scores(),
    )
