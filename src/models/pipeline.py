"""
Analysis Pipeline Data Models

Contracts for the four LLM-backed pipeline stages (intake analysis,
skill-gap analysis, recommendations, 30-day action plan). Stage payloads are
validated against these models at the invoker boundary before any
comparator sees them.
"""

import math
from typing import Iterator, Literal, Optional

from pydantic import BaseModel, Field

# The six skills scored by the intake analysis, in reporting order
CORE_SKILLS: tuple[str, ...] = (
    "problem_solving",
    "communication",
    "technical_skills",
    "creativity",
    "leadership",
    "self_management",
)

PipelineStage = Literal["intake", "skill_gap", "recommendations", "action_plan", "invoker"]
PipelineErrorKind = Literal["http", "transport", "validation", "dependency", "exception"]
RecommendationCategory = Literal["course", "project", "competition"]


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero for non-negative values (2.5 -> 3, 0.25 -> 0.3)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


class SkillSignal(BaseModel):
    """Intake judgment about one core skill."""

    evidence_found: bool = False
    evidence_phrases: list[str] = Field(default_factory=list)
    evidence_sources: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""


class IntakeAnalysis(BaseModel):
    """Skill signals for all six core skills."""

    problem_solving: SkillSignal
    communication: SkillSignal
    technical_skills: SkillSignal
    creativity: SkillSignal
    leadership: SkillSignal
    self_management: SkillSignal

    def signal(self, skill: str) -> SkillSignal:
        """Return the signal for a core skill name."""
        if skill not in CORE_SKILLS:
            raise KeyError(f"Unknown skill: {skill}")
        return getattr(self, skill)

    def scores(self) -> dict[str, int]:
        """Confidence per skill on the 0-100 scale."""
        return {
            skill: int(round_half_up(self.signal(skill).confidence * 100))
            for skill in CORE_SKILLS
        }


class ActionableStep(BaseModel):
    step: str
    time_required: str = ""
    expected_impact: str = ""
    priority: str = "medium"
    why: str = ""


class SkillGap(BaseModel):
    """Gap between current and goal level for one skill."""

    skill: str
    current_level: float = 0
    goal_level: float = 0
    gap: float = 0
    expected_level_after: float = 0
    timeline: str = ""
    why_it_matters: str = ""
    actionable_steps: list[ActionableStep] = Field(default_factory=list)
    reasoning: str = ""


class SkillGapAnalysis(BaseModel):
    skill_gaps: list[SkillGap] = Field(default_factory=list)
    overall_summary: str = ""
    priority_skills: list[str] = Field(default_factory=list)
    total_weekly_time_recommended: str = ""


class SkillAlignment(BaseModel):
    skill: str
    expected_improvement: float = 0


class Recommendation(BaseModel):
    """Course, project, or competition recommendation."""

    title: str
    platform_or_provider: str = ""
    match_score: float = 0
    skill_alignment: list[SkillAlignment] = Field(default_factory=list)
    duration_weeks: float = 0
    level: str = "Beginner"
    reasoning: str = ""


class RecommendationsResult(BaseModel):
    courses: list[Recommendation] = Field(default_factory=list)
    projects: list[Recommendation] = Field(default_factory=list)
    competitions: list[Recommendation] = Field(default_factory=list)
    summary: str = ""

    def categorized(self) -> Iterator[tuple[RecommendationCategory, Recommendation]]:
        """Yield (category, recommendation) pairs in course/project/competition order."""
        for rec in self.courses:
            yield "course", rec
        for rec in self.projects:
            yield "project", rec
        for rec in self.competitions:
            yield "competition", rec

    def count(self) -> int:
        return len(self.courses) + len(self.projects) + len(self.competitions)


class ActionPlanTask(BaseModel):
    task_id: str = ""
    title: str
    description: str = ""
    related_skill: str = ""
    skill_gap_addressed: float = 0
    expected_skill_gain: float = 0
    estimated_time_hours: float = 0
    difficulty: str = "medium"
    evidence_source: str = ""
    reasoning: str = ""


class ActionPlanWeek(BaseModel):
    week_number: int = Field(ge=1, le=4)
    theme: str = ""
    tasks: list[ActionPlanTask] = Field(default_factory=list)


class ActionPlanOverview(BaseModel):
    primary_focus_skill: str = ""
    total_tasks: int = 0
    estimated_total_hours: float = 0
    reasoning_summary: str = ""


class ActionPlan(BaseModel):
    """30-day plan split into four weekly themes."""

    overview: ActionPlanOverview = Field(default_factory=ActionPlanOverview)
    weeks: list[ActionPlanWeek] = Field(default_factory=list)
    confidence_note: str = ""

    def task_count(self) -> int:
        return sum(len(week.tasks) for week in self.weeks)

    def related_skills(self) -> set[str]:
        """Lowercased related_skill values across all tasks."""
        return {
            task.related_skill.lower() for week in self.weeks for task in week.tasks
        }


class PipelineError(BaseModel):
    """Failure of one pipeline stage for one run."""

    stage: PipelineStage
    kind: PipelineErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.stage} [{self.kind}]: {self.message}"


class PipelineResults(BaseModel):
    """Four-stage result bundle for one (profile, variant) run.

    Any stage may be None if it failed, was skipped, or its prerequisite
    stage failed; the reason is recorded in errors.
    """

    intake_analysis: Optional[IntakeAnalysis] = None
    skill_gap_analysis: Optional[SkillGapAnalysis] = None
    recommendations: Optional[RecommendationsResult] = None
    action_plan: Optional[ActionPlan] = None
    raw_responses: dict[str, str] = Field(default_factory=dict)
    errors: list[PipelineError] = Field(default_factory=list)

    def error_messages(self) -> list[str]:
        return [str(error) for error in self.errors]

    @property
    def succeeded(self) -> bool:
        """A run counts as successful when the intake analysis is available."""
        return self.intake_analysis is not None
