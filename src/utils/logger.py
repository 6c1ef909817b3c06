"""
Structured Logger Module

Configures structlog for JSON-formatted structured logging with correlation IDs.
Every batch gets one correlation ID; each pipeline run inside it is further
tagged with profile_id and variant so a single (profile, variant) run can be
filtered out of the log.

Example Usage:
    from src.utils.logger import bind_batch_context, get_logger

    logger = get_logger(
        correlation_id="a1b2c3d4-e5f6-7890-abcd-ef1234567890",
        phase="perturbation",
        component="perturbation_coordinator"
    )

    with bind_batch_context(batch_id="a1b2c3d4", profiles=4):
        logger.info("Starting batch", total_runs=16)
        logger.warning("Removal variant left profile unchanged", profile_id="profile-3")

Log Levels:
    - DEBUG: Per-stage HTTP requests and responses (verbose)
    - INFO: Batch progress, run completion, results saved
    - WARNING: Degraded variants, failed runs, cancellation
    - ERROR: Pipeline stage failures, unexpected profile exceptions
    - CRITICAL: Unrecoverable failures requiring user intervention
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import structlog
from structlog.types import BindableLogger, EventDict, WrappedLogger

MASK = "***MASKED***"

# Matched as a whole key or as an underscore/hyphen separated key segment
SENSITIVE_FIELDS = frozenset(
    {"password", "api_key", "token", "secret", "credential", "auth", "authorization", "cookie"}
)


def _is_sensitive(key: str) -> bool:
    key_lower = key.lower()
    for sensitive in SENSITIVE_FIELDS:
        if (
            key_lower == sensitive
            or key_lower.endswith((f"_{sensitive}", f"-{sensitive}"))
            or key_lower.startswith((f"{sensitive}_", f"{sensitive}-"))
        ):
            return True
    return False


def mask_credentials(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Processor to mask sensitive values in log output.

    Top-level keys and the keys of dict values one level down (e.g., a
    logged ``headers`` dict) are checked, so an Authorization header on a
    pipeline request never reaches the log file.

    Args:
        logger: Logger instance
        method_name: Logging method name
        event_dict: Event dictionary to process

    Returns:
        Event dictionary with masked credentials
    """
    for key, value in list(event_dict.items()):
        if _is_sensitive(key):
            event_dict[key] = MASK
        elif isinstance(value, dict):
            event_dict[key] = {
                k: MASK if isinstance(k, str) and _is_sensitive(k) else v
                for k, v in value.items()
            }

    return event_dict


def configure_logging(
    log_file: Optional[str] = "logs/perturbation-lab.log",
    log_level: str = "INFO",
    console: bool = True,
) -> None:
    """
    Configure structlog with JSON output to a log file and/or stderr.

    Args:
        log_file: Path to log file, or None for no file output
        log_level: Logging level (default: "INFO")
        console: Also write log lines to stderr (stdout is left to the
            progress bar and summary tables)

    Log Format (JSON):
        {
            "timestamp": "2024-10-06T10:30:45Z",
            "level": "info",
            "correlation_id": "a1b2c3d4-...",
            "phase": "perturbation",
            "component": "perturbation_coordinator",
            "event": "Run complete",
            "profile_id": "profile-0",
            "variant": "removal"
        }
    """
    handlers: list[logging.Handler] = []
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    if console:
        handlers.append(logging.StreamHandler(sys.stderr))
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            mask_credentials,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(
    correlation_id: Optional[str] = None,
    phase: Optional[str] = None,
    component: Optional[str] = None,
) -> BindableLogger:
    """
    Get structured logger with bound context.

    Args:
        correlation_id: Correlation ID for batch tracing (generates UUID if not provided)
        phase: Processing phase (e.g., "perturbation", "pipeline")
        component: Component name (e.g., "variant_generator", "pipeline_client")

    Returns:
        BoundLogger with correlation_id, phase, and component bound to context
    """
    logger = structlog.get_logger().bind(correlation_id=correlation_id or str(uuid.uuid4()))
    if phase:
        logger = logger.bind(phase=phase)
    if component:
        logger = logger.bind(component=component)
    return logger


@contextmanager
def bind_batch_context(**context: Any) -> Iterator[None]:
    """Attach context to every log line emitted inside the block, on any logger."""
    with structlog.contextvars.bound_contextvars(**context):
        yield


# Initialize logging on module import with default settings
configure_logging()
