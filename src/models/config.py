"""
Configuration Models

Pydantic models for system configuration validation.
"""

import json
from pathlib import Path
from pydantic import BaseModel, Field, ValidationInfo, field_validator


class PipelineSettings(BaseModel):
    """Connection settings for the external analysis pipeline."""

    base_url: str = Field(default="http://localhost:3000")
    intake_path: str = Field(default="/api/analyze-student-intake")
    skill_gap_path: str = Field(default="/api/skill-gap-analysis")
    recommendations_path: str = Field(default="/api/personalized-recommendations")
    action_plan_path: str = Field(default="/api/generate-30-day-plan")
    request_timeout: float = Field(default=120.0, gt=0)
    max_retries: int = Field(default=3, gt=0, le=10)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base URL uses http(s) and strip trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")


class RateLimiting(BaseModel):
    """Concurrency and request-rate limits for pipeline runs."""

    max_concurrent_runs: int = Field(
        default=3,
        gt=0,
        le=20,
        description="Maximum (profile, variant) runs executing at once",
    )
    requests_per_second: float = Field(
        default=2.0,
        gt=0,
        description="Maximum requests per second to each pipeline endpoint",
    )


class ComparisonThresholds(BaseModel):
    """Numeric thresholds used by the comparators.

    Defaults are uncalibrated heuristics; keep them configurable.
    """

    # Attribution
    confidence_delta: float = Field(default=0.15, ge=0.0, le=1.0)
    evidence_count_delta: int = Field(default=1, ge=1)
    rephrase_evidence_count_delta: int = Field(default=2, ge=1)
    rephrase_max_changed_skills: int = Field(default=1, ge=0)

    # Hallucination
    significant_word_length: int = Field(default=3, ge=0)
    traceable_word_ratio: float = Field(default=0.5, ge=0.0, le=1.0)
    claim_word_overlap: float = Field(default=0.3, ge=0.0, le=1.0)
    claim_min_words: int = Field(default=3, ge=1)
    tolerated_untraced_recommendations: int = Field(default=1, ge=0)

    # Recommendation stability
    significant_count_delta: int = Field(default=3, ge=1)
    rephrase_max_theme_changes: int = Field(default=1, ge=0)
    injection_max_added_themes: int = Field(default=2, ge=0)
    removal_max_removed_themes: int = Field(default=2, ge=0)

    # Action plan sensitivity
    plan_task_delta: int = Field(default=2, ge=0)

    @field_validator("rephrase_evidence_count_delta")
    @classmethod
    def validate_rephrase_delta(cls, v: int, info: ValidationInfo) -> int:
        """Rephrase tolerance must not be stricter than the change threshold."""
        base = info.data.get("evidence_count_delta", 1)
        if v < base:
            raise ValueError(
                f"rephrase_evidence_count_delta ({v}) must be >= "
                f"evidence_count_delta ({base})"
            )
        return v


class SystemParams(BaseModel):
    """System parameters configuration model."""

    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    rate_limiting: RateLimiting = Field(default_factory=RateLimiting)
    thresholds: ComparisonThresholds = Field(default_factory=ComparisonThresholds)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @classmethod
    def load(cls, config_path: Path | str | None = None) -> "SystemParams":
        """Load system parameters from config file.

        Args:
            config_path: Path to system_params.json (defaults to config/system_params.json)

        Returns:
            SystemParams: Validated configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config validation fails
        """
        if config_path is None:
            config_path = Path("config/system_params.json")
        else:
            config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}. "
                f"Copy {config_path.stem}.example.json to {config_path.name}"
            )

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = json.load(f)

        return cls(**config_data)
