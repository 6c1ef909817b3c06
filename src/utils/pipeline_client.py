"""Pipeline invoker for the external analysis service.

Runs the four pipeline stages in order against the HTTP API:
intake -> skill gap -> recommendations -> 30-day action plan.

Failures never escape invoke(): each failed or skipped stage is recorded as
a PipelineError in the returned PipelineResults and its dependents are
skipped.

Example Usage:
    from src.models.config import PipelineSettings
    from src.utils.pipeline_client import HttpPipelineInvoker

    async with HttpPipelineInvoker(PipelineSettings()) as invoker:
        results = await invoker.invoke(profile, skip_action_plan=True)
"""

from typing import Any, Optional, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from src.models.config import PipelineSettings
from src.models.pipeline import (
    ActionPlan,
    IntakeAnalysis,
    PipelineError,
    PipelineErrorKind,
    PipelineResults,
    PipelineStage,
    RecommendationsResult,
    SkillGapAnalysis,
)
from src.models.profile import StudentProfile
from src.utils.logger import get_logger
from src.utils.rate_limiter import EndpointRateLimiter

ModelT = TypeVar("ModelT", bound=BaseModel)

RAW_PREVIEW_CHARS = 500


class PipelineStageError(Exception):
    """Raised when one pipeline stage fails."""

    def __init__(self, stage: PipelineStage, message: str, kind: PipelineErrorKind = "http"):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.kind = kind
        self.message = message

    def to_error(self) -> PipelineError:
        return PipelineError(stage=self.stage, kind=self.kind, message=self.message)


class PipelineValidationError(PipelineStageError):
    """Raised when a stage payload doesn't match its schema."""

    def __init__(self, stage: PipelineStage, message: str):
        super().__init__(stage, message, kind="validation")


class PipelineInvoker(Protocol):
    """Anything that can run the full pipeline for one profile."""

    async def invoke(
        self, profile: StudentProfile, skip_action_plan: bool = False
    ) -> PipelineResults: ...


def _unwrap(data: Any, key: Optional[str] = None) -> Any:
    """Unwrap {success, data: {...}} envelopes, then an optional inner key."""
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    if key and isinstance(data, dict) and isinstance(data.get(key), dict):
        data = data[key]
    return data


def build_skill_gap_request(
    intake: IntakeAnalysis, profile: StudentProfile
) -> dict[str, Any]:
    """Request body for the skill-gap stage."""
    return {
        "skill_snapshot": intake.model_dump(mode="json"),
        "student_context": {
            "grade": profile.grade,
            "interests_free_text": profile.interests_free_text,
            "interests_categories": profile.interests_by_category.selected(),
            "goals_selected": profile.goals_selected,
            "goals_free_text": profile.goals_free_text,
            "time_availability_hours_per_week": profile.time_availability_hours_per_week,
            "learning_preferences": profile.learning_preferences,
        },
    }


def build_recommendations_request(
    profile: StudentProfile,
    intake: IntakeAnalysis,
    skill_gap: Optional[SkillGapAnalysis],
) -> dict[str, Any]:
    """Request body for the recommendations stage.

    The skill-gap summary is optional; recommendations only need the intake.
    """
    body: dict[str, Any] = {
        "student_profile": {
            "grade": profile.grade,
            "interests": profile.interests_free_text,
            "interest_categories": profile.interests_by_category.selected(),
            "goals": profile.goals_selected,
            "goals_free_text": profile.goals_free_text,
            "time_availability_hours_per_week": profile.time_availability_hours_per_week,
            "learning_preferences": profile.learning_preferences,
        },
        "skill_snapshot": intake.model_dump(mode="json"),
    }
    if skill_gap is not None:
        body["skill_gap_analysis"] = {
            "skill_gaps": [
                {
                    "skill": gap.skill,
                    "current_level": gap.current_level,
                    "goal_level": gap.goal_level,
                    "gap": gap.gap,
                }
                for gap in skill_gap.skill_gaps
            ],
            "priority_skills": skill_gap.priority_skills,
            "overall_summary": skill_gap.overall_summary,
        }
    return body


def build_action_plan_request(
    intake: IntakeAnalysis,
    skill_gap: SkillGapAnalysis,
    recommendations: RecommendationsResult,
    time_availability: float,
) -> dict[str, Any]:
    """Request body for the action-plan stage.

    Skill snapshot is sent as 0-100 integers; recommendations are flattened
    into one typed list with ids like "course-0".
    """
    counters: dict[str, int] = {}
    flattened = []
    for category, rec in recommendations.categorized():
        index = counters.get(category, 0)
        counters[category] = index + 1
        flattened.append(
            {
                "id": f"{category}-{index}",
                "type": category,
                "title": rec.title,
                "matched_skills": [a.skill for a in rec.skill_alignment],
                "expected_skill_gain": {
                    a.skill: a.expected_improvement for a in rec.skill_alignment
                },
                "match_score": rec.match_score,
            }
        )

    return {
        "skill_snapshot": intake.scores(),
        "skill_gaps": [
            {
                "skill": gap.skill,
                "current_score": gap.current_level,
                "target_score": gap.goal_level,
                "gap_percentage": gap.gap,
                "evidence_summary": gap.reasoning or f"Gap analysis for {gap.skill}",
            }
            for gap in skill_gap.skill_gaps
        ],
        "recommendations": flattened,
        "time_availability_hours_per_week": time_availability,
    }


class HttpPipelineInvoker:
    """Pipeline invoker backed by httpx.AsyncClient."""

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        rate_limiter: Optional[EndpointRateLimiter] = None,
        client: Optional[httpx.AsyncClient] = None,
        correlation_id: Optional[str] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        """Initialize the invoker.

        Args:
            settings: Base URL, endpoint paths, timeout, retry count
            rate_limiter: Per-endpoint limiter (default: 2 req/sec per endpoint)
            client: Pre-built client (e.g., with a mock transport); not closed
                by aclose() when supplied
            correlation_id: Correlation ID for log tracing
            retry_wait: tenacity wait strategy between transport retries
        """
        self.settings = settings or PipelineSettings()
        self.rate_limiter = rate_limiter or EndpointRateLimiter()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.settings.request_timeout)
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)
        self.logger: Any = get_logger(
            correlation_id=correlation_id,
            phase="pipeline",
            component="pipeline_client",
        )

    async def __aenter__(self) -> "HttpPipelineInvoker":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _post(
        self,
        stage: PipelineStage,
        path: str,
        payload: dict[str, Any],
        results: PipelineResults,
    ) -> Any:
        """POST a payload to one stage endpoint and return the decoded JSON.

        Transport errors are retried with exponential backoff; each attempt
        goes through the endpoint's rate limiter.

        Raises:
            PipelineStageError: Transport failure after retries or non-2xx status
            PipelineValidationError: Response body is not valid UTF-8 JSON
        """
        url = f"{self.settings.base_url}{path}"
        self.logger.debug("Calling pipeline stage", stage=stage, url=url)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.settings.max_retries),
                wait=self.retry_wait,
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    # Every attempt, retries included, takes a rate-limit token
                    await self.rate_limiter.acquire(url)
                    response = await self.client.post(url, json=payload)
        except httpx.TransportError as e:
            raise PipelineStageError(
                stage, f"{type(e).__name__}: {e}", kind="transport"
            ) from e

        results.raw_responses[stage] = response.text
        self.logger.debug(
            "Pipeline stage responded",
            stage=stage,
            status_code=response.status_code,
            content_length=len(response.text),
        )

        if response.is_error:
            raise PipelineStageError(
                stage, f"HTTP {response.status_code}: {response.text[:RAW_PREVIEW_CHARS]}"
            )

        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        try:
            return response.json()
        except ValueError as e:
            raise PipelineValidationError(
                stage, f"Response is not valid JSON: {type(e).__name__}: {e}"
            ) from e

    async def _run_stage(
        self,
        stage: PipelineStage,
        path: str,
        payload: dict[str, Any],
        model: type[ModelT],
        results: PipelineResults,
        unwrap_key: Optional[str] = None,
    ) -> Optional[ModelT]:
        """Run one stage, recording any failure in results.errors."""
        try:
            data = await self._post(stage, path, payload, results)
            try:
                return model.model_validate(_unwrap(data, unwrap_key))
            except ValidationError as e:
                raise PipelineValidationError(
                    stage,
                    f"Response failed schema validation ({e.error_count()} errors): "
                    f"{e.errors()[0]['loc']} {e.errors()[0]['msg']}",
                ) from e
        except PipelineStageError as e:
            self.logger.error(
                "Pipeline stage failed", stage=stage, kind=e.kind, error=e.message
            )
            results.errors.append(e.to_error())
            return None

    @staticmethod
    def _skip(results: PipelineResults, stage: PipelineStage, reason: str) -> None:
        results.errors.append(
            PipelineError(stage=stage, kind="dependency", message=f"Skipped: {reason}")
        )

    async def invoke(
        self, profile: StudentProfile, skip_action_plan: bool = False
    ) -> PipelineResults:
        """Run all pipeline stages for one profile.

        Args:
            profile: Profile (or variant profile) to analyze
            skip_action_plan: Don't call the action-plan stage

        Returns:
            PipelineResults with every stage that succeeded
        """
        results = PipelineResults()
        settings = self.settings

        results.intake_analysis = await self._run_stage(
            "intake",
            settings.intake_path,
            profile.model_dump(mode="json"),
            IntakeAnalysis,
            results,
            unwrap_key="skill_signals",
        )
        intake = results.intake_analysis
        if intake is None:
            self._skip(results, "skill_gap", "intake analysis unavailable")
            self._skip(results, "recommendations", "intake analysis unavailable")
            if not skip_action_plan:
                self._skip(results, "action_plan", "intake analysis unavailable")
            return results

        results.skill_gap_analysis = await self._run_stage(
            "skill_gap",
            settings.skill_gap_path,
            build_skill_gap_request(intake, profile),
            SkillGapAnalysis,
            results,
        )

        results.recommendations = await self._run_stage(
            "recommendations",
            settings.recommendations_path,
            build_recommendations_request(profile, intake, results.skill_gap_analysis),
            RecommendationsResult,
            results,
        )

        if skip_action_plan:
            return results

        if results.skill_gap_analysis is None or results.recommendations is None:
            self._skip(
                results, "action_plan", "skill gap analysis or recommendations unavailable"
            )
            return results

        results.action_plan = await self._run_stage(
            "action_plan",
            settings.action_plan_path,
            build_action_plan_request(
                intake,
                results.skill_gap_analysis,
                results.recommendations,
                profile.time_availability_hours_per_week,
            ),
            ActionPlan,
            results,
        )

        self.logger.info(
            "Pipeline run complete",
            stages_failed=len(results.errors),
        )
        return results
