"""
Unit tests for Configuration Validator Module
"""

import json
from pathlib import Path

import pytest

from src.utils.validator import (
    ConfigurationError,
    ConfigValidator,
    check_batch_semantics,
)

BATCH_SCHEMA = "perturbation_batch_schema.json"
PARAMS_SCHEMA = "system_params_schema.json"


@pytest.fixture
def validator():
    """Create a ConfigValidator instance for testing."""
    return ConfigValidator()


@pytest.fixture
def valid_batch():
    """Return a valid perturbation batch."""
    return {
        "profiles": [
            {
                "id": "profile-0",
                "name": "STEM Student",
                "profile": {
                    "grade": 11,
                    "interests_free_text": "I love coding and robots.",
                    "interests_by_category": {"technical": True},
                    "goals_selected": ["coding"],
                    "time_availability_hours_per_week": 10,
                    "past_activities": "I built a weather app.",
                    "skills": {"technical_skills": 70},
                },
            }
        ],
        "config": {"run_injection": False, "selected_profile_ids": ["profile-0"]},
    }


def write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestBatchValidation:
    """Test cases for the perturbation batch schema."""

    def test_valid_batch_passes(self, validator, valid_batch):
        """Test that a valid batch raises nothing."""
        validator.validate(valid_batch, BATCH_SCHEMA)

    def test_empty_profiles_rejected(self, validator):
        """Test that a batch needs at least one profile."""
        with pytest.raises(ConfigurationError, match="Value too short"):
            validator.validate({"profiles": []}, BATCH_SCHEMA)

    def test_missing_profile_name(self, validator, valid_batch):
        """Test that a profile entry without a name is reported by path."""
        # Arrange
        del valid_batch["profiles"][0]["name"]

        # Act & Assert
        with pytest.raises(ConfigurationError) as exc_info:
            validator.validate(valid_batch, BATCH_SCHEMA)
        assert "Missing required field: 'name' at profiles -> 0" in str(exc_info.value)

    def test_unknown_config_key(self, validator, valid_batch):
        """Test that a typo in the batch config is caught."""
        # Arrange
        valid_batch["config"]["run_rephrase"] = True

        # Act & Assert
        with pytest.raises(ConfigurationError, match="Unknown field at 'config'"):
            validator.validate(valid_batch, BATCH_SCHEMA)

    def test_skill_rating_out_of_range(self, validator, valid_batch):
        """Test that self-rated skills above 100 are rejected."""
        # Arrange
        valid_batch["profiles"][0]["profile"]["skills"]["leadership"] = 150

        # Act & Assert
        with pytest.raises(ConfigurationError, match="Value too large"):
            validator.validate(valid_batch, BATCH_SCHEMA)

    def test_wrong_type(self, validator, valid_batch):
        """Test that a non-boolean flag is a type mismatch."""
        # Arrange
        valid_batch["config"]["run_removal"] = "yes"

        # Act & Assert
        with pytest.raises(ConfigurationError, match="Type mismatch"):
            validator.validate(valid_batch, BATCH_SCHEMA)


class TestSystemParamsValidation:
    """Test cases for the system parameters schema."""

    def test_empty_params_valid(self, validator):
        """Test that every system parameter is optional."""
        validator.validate({}, PARAMS_SCHEMA)

    def test_invalid_log_level(self, validator):
        """Test that log_level must be a known level."""
        with pytest.raises(ConfigurationError, match="Invalid value"):
            validator.validate({"log_level": "VERBOSE"}, PARAMS_SCHEMA)

    def test_concurrency_limit(self, validator):
        """Test that max_concurrent_runs is bounded."""
        with pytest.raises(ConfigurationError, match="Value too small"):
            validator.validate({"rate_limiting": {"max_concurrent_runs": 0}}, PARAMS_SCHEMA)


class TestValidateFile:
    """Test cases for file loading."""

    def test_file_not_found(self, validator, tmp_path):
        """Test that a missing file raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Configuration file not found"):
            validator.validate_file(tmp_path / "missing.json", BATCH_SCHEMA)

    def test_invalid_json(self, validator, tmp_path):
        """Test that malformed JSON is reported with the file name."""
        # Arrange
        path = tmp_path / "batch.json"
        path.write_text('{"profiles": [,]}', encoding="utf-8")

        # Act & Assert
        with pytest.raises(ConfigurationError, match="Invalid JSON in batch.json"):
            validator.validate_file(path, BATCH_SCHEMA)

    def test_schema_not_found(self, tmp_path):
        """Test that a missing schema raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Schema file not found"):
            ConfigValidator(schema_dir=tmp_path).load_schema(BATCH_SCHEMA)

    def test_schema_is_cached(self, validator):
        """Test that a schema is read from disk once."""
        first = validator.load_schema(BATCH_SCHEMA)
        second = validator.load_schema(BATCH_SCHEMA)

        assert first is second


class TestValidateAllConfigs:
    """Test cases for validate_all_configs."""

    def test_batch_with_params(self, validator, valid_batch, tmp_path):
        """Test that both files are validated and returned."""
        # Arrange
        batch_path = write_json(tmp_path / "batch.json", valid_batch)
        params_path = write_json(tmp_path / "params.json", {"log_level": "DEBUG"})

        # Act
        configs = validator.validate_all_configs(batch_path, params_path)

        # Assert
        assert configs["batch"] == valid_batch
        assert configs["system_params"] == {"log_level": "DEBUG"}

    def test_params_default_when_absent(self, validator, valid_batch, tmp_path):
        """Test that missing system params fall back to an empty dict."""
        # Arrange
        batch_path = write_json(tmp_path / "batch.json", valid_batch)

        # Act
        configs = validator.validate_all_configs(batch_path, tmp_path / "absent.json")

        # Assert
        assert configs["system_params"] == {}

    def test_example_configs_are_valid(self, validator):
        """Test that the shipped example configs pass validation."""
        root = Path(__file__).resolve().parents[2] / "config"

        configs = validator.validate_all_configs(
            root / "perturbation_batch.example.json",
            root / "system_params.example.json",
        )

        assert len(configs["batch"]["profiles"]) == 4


class TestBatchSemantics:
    """Test cases for checks beyond the batch schema."""

    def test_duplicate_profile_ids(self, validator, valid_batch, tmp_path):
        """Test that two profiles sharing an id are rejected."""
        # Arrange
        valid_batch["profiles"].append(dict(valid_batch["profiles"][0]))
        batch_path = write_json(tmp_path / "batch.json", valid_batch)

        # Act & Assert
        with pytest.raises(ConfigurationError, match="Duplicate profile id: 'profile-0'"):
            validator.validate_batch_file(batch_path)

    def test_unknown_selected_profile(self, valid_batch):
        """Test that a selection naming a missing profile is reported."""
        # Arrange
        valid_batch["config"]["selected_profile_ids"] = ["profile-0", "profile-9"]

        # Act
        problems = check_batch_semantics(valid_batch)

        # Assert
        assert problems == ["selected_profile_ids references unknown profiles: ['profile-9']"]

    def test_consistent_batch(self, valid_batch):
        """Test that a consistent batch has no problems."""
        assert check_batch_semantics(valid_batch) == []
