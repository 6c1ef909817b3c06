"""Integration tests against a running analysis pipeline.

NOTE: These tests call the real LLM-backed endpoints. Set PIPELINE_BASE_URL
(e.g., http://localhost:3000) to run them.
"""

from random import Random

import pytest

from src.coordinator import PerturbationCoordinator
from src.models.config import RateLimiting, SystemParams
from src.models.perturbation import PerturbationBatch, PerturbationConfig
from src.models.profile import ProfileEntry, StudentProfile
from src.utils.pipeline_client import HttpPipelineInvoker

STEM_PROFILE = StudentProfile(
    grade=11,
    interests_free_text="I love coding, building robots, and participating in hackathons.",
    goals_selected=["coding", "stem", "college"],
    goals_free_text="I want to become a software engineer.",
    time_availability_hours_per_week=10,
    learning_preferences=["handson", "video"],
    past_activities=(
        "I built a weather app using Python and APIs. "
        "I also led my school's robotics club."
    ),
    past_achievements="Won 2nd place at regional hackathon.",
)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_intake_stage_returns_all_skills(pipeline_settings):
    """Test that the intake stage returns parseable signals for every skill."""
    async with HttpPipelineInvoker(pipeline_settings) as invoker:
        results = await invoker.invoke(STEM_PROFILE, skip_action_plan=True)

    assert results.succeeded, results.error_messages()
    assert 0 <= results.intake_analysis.technical_skills.confidence <= 1


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.slow
async def test_single_profile_batch(pipeline_settings):
    """Test a full four-variant batch for one profile."""
    params = SystemParams(
        pipeline=pipeline_settings, rate_limiting=RateLimiting(max_concurrent_runs=2)
    )
    batch = PerturbationBatch(
        profiles=[ProfileEntry(id="profile-0", name="STEM Student", profile=STEM_PROFILE)],
        config=PerturbationConfig(skip_action_plan=True),
    )

    async with HttpPipelineInvoker(params.pipeline) as invoker:
        result = await PerturbationCoordinator(invoker, params=params, rng=Random(42)).run(batch)

    assert result.total_runs == 4
    assert result.metrics.skill_consistency_by_variant.original == 100
    assert 0 <= result.metrics.average_skill_consistency <= 100
