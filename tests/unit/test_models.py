"""
Unit tests for data models.
"""

import json

import pytest
from pydantic import ValidationError

from src.models.config import ComparisonThresholds, PipelineSettings, SystemParams
from src.models.perturbation import (
    EvidenceItem,
    PerturbationBatch,
    PerturbationConfig,
    ProfileVariant,
)
from src.models.pipeline import (
    ActionPlan,
    IntakeAnalysis,
    PipelineError,
    PipelineResults,
    RecommendationsResult,
)
from src.models.profile import InterestCategories, ProfileEntry, StudentProfile


class TestStudentProfile:
    """Test cases for StudentProfile."""

    def test_defaults(self):
        """Test that an empty profile is valid with neutral defaults."""
        profile = StudentProfile()

        assert profile.grade == 9
        assert profile.time_availability_hours_per_week == 5
        assert profile.skills.leadership == 50
        assert profile.interests_by_category.selected() == []

    def test_profile_is_immutable(self):
        """Test that profiles cannot be edited in place."""
        profile = StudentProfile(past_activities="I built an app.")

        with pytest.raises(ValidationError):
            profile.past_activities = "changed"

    def test_skill_rating_bounds(self):
        """Test that self-ratings must be 0-100."""
        with pytest.raises(ValidationError):
            StudentProfile(skills={"creativity": 101})

    def test_selected_categories_in_form_order(self):
        """Test that selected() lists checked categories in field order."""
        categories = InterestCategories(technical=True, academic=True, other=True)

        assert categories.selected() == ["academic", "technical", "other"]


class TestPipelineModels:
    """Test cases for pipeline stage models."""

    def test_intake_scores(self):
        """Test that confidences convert to 0-100 integer scores."""
        # Arrange
        signals = {
            skill: {"confidence": 0.5}
            for skill in (
                "problem_solving",
                "communication",
                "technical_skills",
                "creativity",
                "leadership",
                "self_management",
            )
        }
        signals["creativity"] = {"confidence": 0.87, "evidence_phrases": ["drew comics"]}

        # Act
        intake = IntakeAnalysis.model_validate(signals)

        # Assert
        assert intake.scores()["creativity"] == 87
        assert intake.signal("creativity").evidence_phrases == ["drew comics"]
        with pytest.raises(KeyError):
            intake.signal("juggling")

    def test_intake_scores_round_half_up(self):
        """Test that half-point confidences round up like every other percentage."""
        # Arrange
        signals = {
            skill: {"confidence": 0.125}
            for skill in (
                "problem_solving",
                "communication",
                "technical_skills",
                "creativity",
                "leadership",
                "self_management",
            )
        }
        signals["leadership"] = {"confidence": 0.625}

        # Act
        scores = IntakeAnalysis.model_validate(signals).scores()

        # Assert
        assert scores["creativity"] == 13
        assert scores["leadership"] == 63

    def test_intake_requires_all_skills(self):
        """Test that a partial intake payload is rejected."""
        with pytest.raises(ValidationError):
            IntakeAnalysis.model_validate({"leadership": {"confidence": 0.5}})

    def test_recommendations_categorized_order(self):
        """Test that categorized() yields courses, then projects, then competitions."""
        recs = RecommendationsResult.model_validate(
            {
                "competitions": [{"title": "Science Olympiad"}],
                "courses": [{"title": "CS50"}],
                "projects": [{"title": "Robot arm"}],
            }
        )

        assert [(c, r.title) for c, r in recs.categorized()] == [
            ("course", "CS50"),
            ("project", "Robot arm"),
            ("competition", "Science Olympiad"),
        ]
        assert recs.count() == 3

    def test_action_plan_week_bounds(self):
        """Test that week numbers are 1-4."""
        with pytest.raises(ValidationError):
            ActionPlan.model_validate({"weeks": [{"week_number": 5}]})

    def test_action_plan_related_skills_lowercased(self):
        """Test that related skills are collected lowercased across weeks."""
        plan = ActionPlan.model_validate(
            {
                "weeks": [
                    {"week_number": 1, "tasks": [{"title": "a", "related_skill": "Leadership"}]},
                    {"week_number": 2, "tasks": [{"title": "b", "related_skill": "creativity"}]},
                ]
            }
        )

        assert plan.related_skills() == {"leadership", "creativity"}
        assert plan.task_count() == 2

    def test_results_error_messages(self):
        """Test error formatting and the success flag."""
        results = PipelineResults(
            errors=[PipelineError(stage="skill_gap", kind="dependency", message="Skipped")]
        )

        assert results.error_messages() == ["skill_gap [dependency]: Skipped"]
        assert not results.succeeded


class TestPerturbationModels:
    """Test cases for variant and batch models."""

    def test_variant_change_record_must_match_type(self, stem_profile):
        """Test that a removal variant cannot carry added evidence."""
        with pytest.raises(ValidationError, match="inconsistent change record"):
            ProfileVariant(
                id="p-removal",
                profile_id="p",
                profile_name="P",
                variant_type="removal",
                profile=stem_profile,
                perturbation_description="bad",
                added_evidence=[],
            )

    def test_changed_skills(self, stem_profile):
        """Test that changed skills come from the evidence items."""
        variant = ProfileVariant(
            id="p-injection",
            profile_id="p",
            profile_name="P",
            variant_type="injection",
            profile=stem_profile,
            perturbation_description="added",
            added_evidence=[
                EvidenceItem(type="experience", content="x", related_skills=["Leadership"]),
                EvidenceItem(type="goal", content="y", related_skills=["communication"]),
            ],
        )

        assert variant.changed_skills() == {"leadership", "communication"}

    def test_variant_count(self):
        """Test that the original is always counted."""
        assert PerturbationConfig().variant_count() == 4
        assert PerturbationConfig(
            run_injection=False, run_removal=False, run_rephrasing=False
        ).variant_count() == 1

    def test_selected_profiles_keep_batch_order(self, stem_profile):
        """Test that selection filters without reordering."""
        batch = PerturbationBatch(
            profiles=[
                ProfileEntry(id=f"profile-{i}", name=f"P{i}", profile=stem_profile)
                for i in range(3)
            ],
            config=PerturbationConfig(selected_profile_ids=["profile-2", "profile-0"]),
        )

        assert [e.id for e in batch.selected_profiles()] == ["profile-0", "profile-2"]


class TestSystemParams:
    """Test cases for configuration models."""

    def test_defaults(self):
        """Test default pipeline settings and thresholds."""
        params = SystemParams()

        assert params.pipeline.base_url == "http://localhost:3000"
        assert params.rate_limiting.max_concurrent_runs == 3
        assert params.thresholds.confidence_delta == 0.15
        assert params.log_level == "INFO"

    def test_base_url_normalized(self):
        """Test that a trailing slash is stripped and scheme is required."""
        assert PipelineSettings(base_url="https://x.test/").base_url == "https://x.test"
        with pytest.raises(ValidationError):
            PipelineSettings(base_url="x.test")

    def test_log_level_uppercased(self):
        """Test that log levels are case-insensitive."""
        assert SystemParams(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            SystemParams(log_level="loud")

    def test_rephrase_delta_not_below_base(self):
        """Test that the rephrase tolerance can't be stricter than the base delta."""
        with pytest.raises(ValidationError):
            ComparisonThresholds(evidence_count_delta=3, rephrase_evidence_count_delta=2)

    def test_load_from_file(self, tmp_path):
        """Test loading parameters from JSON."""
        # Arrange
        path = tmp_path / "system_params.json"
        path.write_text(json.dumps({"rate_limiting": {"max_concurrent_runs": 5}}))

        # Act
        params = SystemParams.load(path)

        # Assert
        assert params.rate_limiting.max_concurrent_runs == 5

    def test_load_missing_file(self, tmp_path):
        """Test that a missing file points at the example config."""
        with pytest.raises(FileNotFoundError, match="system_params.example.json"):
            SystemParams.load(tmp_path / "system_params.json")
