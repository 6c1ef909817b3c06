"""
Unit tests for the per-endpoint rate limiter.
"""

import pytest

from src.utils.rate_limiter import EndpointRateLimiter


class TestEndpointRateLimiter:
    """Test cases for EndpointRateLimiter."""

    def test_endpoint_key_ignores_scheme_and_query(self):
        """Test that the key is host plus path."""
        key = EndpointRateLimiter.endpoint_key(
            "https://pipeline.test:3000/api/skill-gap-analysis?debug=1"
        )

        assert key == "pipeline.test:3000/api/skill-gap-analysis"

    @pytest.mark.asyncio
    async def test_one_limiter_per_endpoint(self):
        """Test that limiters are created lazily and shared per endpoint."""
        # Arrange
        limiter = EndpointRateLimiter(default_rate=50)

        # Act
        await limiter.acquire("http://pipeline.test/api/analyze-student-intake")
        await limiter.acquire("http://pipeline.test/api/analyze-student-intake?x=1")
        await limiter.acquire("http://pipeline.test/api/generate-30-day-plan")

        # Assert
        assert set(limiter.limiters) == {
            "pipeline.test/api/analyze-student-intake",
            "pipeline.test/api/generate-30-day-plan",
        }

    @pytest.mark.asyncio
    async def test_limiter_uses_configured_rate(self):
        """Test that new limiters take the configured rate and period."""
        # Arrange
        limiter = EndpointRateLimiter(default_rate=5, time_period=2.0)

        # Act
        await limiter.acquire("http://pipeline.test/api/personalized-recommendations")

        # Assert
        created = limiter.limiters["pipeline.test/api/personalized-recommendations"]
        assert created.max_rate == 5
        assert created.time_period == 2.0
