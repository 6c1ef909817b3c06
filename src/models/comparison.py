"""
Comparison and Metrics Data Models

One VariantComparisonResult is produced per (profile, variant) run. Summary
and metrics models are pure aggregates over a list of those rows and are
always recomputed from the full list.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.models.perturbation import PerturbationType, ProfileVariant
from src.models.pipeline import PipelineResults

PlanChangesProportion = Literal["proportional", "disproportional", "unchanged"]


class SkillConsistencyResult(BaseModel):
    """Similarity of two skill-signal bundles on the 0-100 scale.

    Attributes:
        consistency_percentage: 100 - average_difference, floored at 0
        skill_differences: Per-skill absolute confidence difference (0-100)
        average_difference: Mean of the per-skill differences
        baseline_scores: Per-skill baseline confidence (0-100)
        variant_scores: Per-skill variant confidence (0-100)
    """

    model_config = ConfigDict(frozen=True)

    consistency_percentage: int = Field(ge=0, le=100)
    skill_differences: dict[str, float]
    average_difference: float = Field(ge=0.0, le=100.0)
    baseline_scores: dict[str, int]
    variant_scores: dict[str, int]


class AttributionCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_consistent: bool
    skills_changed: list[str] = Field(default_factory=list)
    unexpected_changes: list[str] = Field(default_factory=list)
    reasoning: str


class HallucinationCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_hallucinations: bool
    untraced_skills: list[str] = Field(default_factory=list)
    untraced_recommendations: list[str] = Field(default_factory=list)
    untraced_plan_steps: list[str] = Field(default_factory=list)
    reasoning: str


class StabilityCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_stable: bool
    categories_changed: list[str] = Field(default_factory=list)
    significant_ranking_changes: bool = False
    reasoning: str


class SensitivityCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_appropriate: bool
    plan_changes_proportion: PlanChangesProportion = "unchanged"
    unrelated_steps_added: list[str] = Field(default_factory=list)
    reasoning: str


class VariantComparisonResult(BaseModel):
    """Comparison of one variant run against its profile's baseline run."""

    model_config = ConfigDict(frozen=True)

    profile_id: str
    profile_name: str = ""
    variant_id: str = ""
    variant: PerturbationType
    skill_consistency: SkillConsistencyResult
    skill_attribution_consistency: Literal["consistent", "inconsistent"]
    skill_attribution_details: AttributionCheck
    hallucinations_detected: bool
    hallucination_details: HallucinationCheck
    recommendation_stability: Literal["stable", "unstable"]
    recommendation_stability_details: StabilityCheck
    action_plan_sensitivity: Literal["appropriate", "inappropriate"]
    action_plan_sensitivity_details: SensitivityCheck
    # False when the profile's original run produced no intake analysis;
    # such rows are left out of the skill-consistency averages
    baseline_available: bool = True
    errors: list[str] = Field(default_factory=list)


class SummaryConsistencyByVariant(BaseModel):
    rephrased: int = 0
    removed_detail: int = 0
    added_irrelevant: int = 0


class PerturbationSummary(BaseModel):
    """Raw pass counts across all comparison rows."""

    consistent_attribution_count: int = 0
    hallucination_count: int = 0
    stable_recommendations_count: int = 0
    appropriate_action_plans_count: int = 0
    average_skill_consistency: int = 0
    skill_consistency_by_variant: SummaryConsistencyByVariant = Field(
        default_factory=SummaryConsistencyByVariant
    )


class VariantConsistency(BaseModel):
    original: int = 100
    rephrased: int = 0
    removal: int = 0
    injection: int = 0


class PerturbationMetrics(BaseModel):
    """Percentage rates (0-100) across all comparison rows."""

    skill_attribution_consistency_rate: int = 0
    hallucination_rate: int = 0
    recommendation_stability_rate: int = 0
    action_plan_appropriateness_rate: int = 0
    average_skill_consistency: int = 0
    skill_consistency_by_variant: VariantConsistency = Field(
        default_factory=VariantConsistency
    )


class SkillConsistencySummaryRow(BaseModel):
    input_variant: str
    skill_consistency: int
    description: str


class MetricsReport(BaseModel):
    summary: PerturbationSummary
    metrics: PerturbationMetrics
    skill_consistency_table: list[SkillConsistencySummaryRow] = Field(
        default_factory=list
    )


class PerturbationRun(BaseModel):
    """Full record of one (profile, variant) run."""

    id: str
    timestamp: datetime
    variant: ProfileVariant
    baseline_results: Optional[PipelineResults] = None
    variant_results: PipelineResults
    comparison: VariantComparisonResult
    execution_time_ms: int = 0


class PerturbationTestResult(BaseModel):
    """Self-describing JSON envelope for a whole batch."""

    profiles_tested: int
    total_runs: int
    results: list[VariantComparisonResult]
    summary: PerturbationSummary
    metrics: PerturbationMetrics
    timestamp: str
    execution_time_total_ms: int
    skill_consistency_table: list[SkillConsistencySummaryRow]
    cancelled: bool = False
    skipped_runs: int = 0
    run_errors: list[str] = Field(default_factory=list)
