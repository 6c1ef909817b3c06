"""
Integration Test Configuration

Integration tests call a running analysis pipeline. They are skipped unless
PIPELINE_BASE_URL points at one, and slow tests are skipped in CI (CI=true).
"""

import os

import pytest

from src.models.config import PipelineSettings


@pytest.fixture
def is_ci_environment() -> bool:
    """
    Detect if tests are running in CI environment.

    Returns:
        True if CI environment variable is set to 'true'
    """
    return os.getenv("CI", "").lower() == "true"


@pytest.fixture(autouse=True)
def skip_slow_tests_in_ci(request, is_ci_environment):
    """Skip tests marked @pytest.mark.slow when running in CI."""
    if is_ci_environment and request.node.get_closest_marker("slow"):
        pytest.skip("Skipping slow test in CI environment")


@pytest.fixture
def pipeline_settings() -> PipelineSettings:
    """Settings for the live pipeline, or skip when none is configured."""
    base_url = os.getenv("PIPELINE_BASE_URL")
    if not base_url:
        pytest.skip("PIPELINE_BASE_URL not set")
    return PipelineSettings(base_url=base_url)
