"""Per-endpoint rate limiting for pipeline requests."""

from urllib.parse import urlparse

from aiolimiter import AsyncLimiter


class EndpointRateLimiter:
    """Per-endpoint rate limiting so concurrent runs don't flood the pipeline.

    Uses aiolimiter AsyncLimiter keyed by host + path. Each pipeline stage
    endpoint gets its own limiter, so a slow stage doesn't starve the others.
    """

    def __init__(self, default_rate: float = 2.0, time_period: float = 1.0):
        """Initialize the endpoint rate limiter.

        Args:
            default_rate: Maximum requests per time_period (default: 2 req/sec)
            time_period: Time period in seconds (default: 1 second)
        """
        self.limiters: dict[str, AsyncLimiter] = {}
        self.default_rate = default_rate
        self.time_period = time_period

    @staticmethod
    def endpoint_key(url: str) -> str:
        """Reduce a URL to host + path (query string ignored)."""
        parsed = urlparse(url)
        return f"{parsed.netloc}{parsed.path}"

    async def acquire(self, url: str) -> None:
        """Acquire rate limit token for the URL's endpoint.

        Creates a new limiter for previously unseen endpoints.

        Args:
            url: Full request URL
        """
        key = self.endpoint_key(url)

        if key not in self.limiters:
            self.limiters[key] = AsyncLimiter(
                max_rate=self.default_rate, time_period=self.time_period
            )

        await self.limiters[key].acquire()
