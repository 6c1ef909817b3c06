"""
Command-line entry point.

Usage:
    python -m src.cli run --batch config/perturbation_batch.json [--seed 42]
    python -m src.cli describe
"""

import argparse
import asyncio
import os
import random
import sys
import uuid
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from src.coordinator import PerturbationBatchError, PerturbationCoordinator
from src.models.config import SystemParams
from src.models.perturbation import PerturbationBatch
from src.perturbation.metrics import METRIC_DEFINITIONS, SKILL_CONSISTENCY_ROWS
from src.perturbation.reporting import render_summary, save_test_result
from src.perturbation.rules import PerturbationRules
from src.utils.logger import configure_logging
from src.utils.pipeline_client import HttpPipelineInvoker
from src.utils.progress_tracker import ProgressTracker
from src.utils.rate_limiter import EndpointRateLimiter
from src.utils.validator import ConfigurationError, ConfigValidator

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perturbation-lab",
        description="Perturbation testing for the student self-assessment pipeline",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run a perturbation batch")
    run.add_argument("--batch", required=True, help="Batch input JSON (profiles + config)")
    run.add_argument(
        "--config",
        default="config/system_params.json",
        help="System parameters JSON (defaults apply if missing)",
    )
    run.add_argument("--rules", help="Perturbation rules JSON (default: built-in rules)")
    run.add_argument("--output", default="output", help="Output directory")
    run.add_argument("--max-concurrent", type=int, help="Override max concurrent runs")
    run.add_argument(
        "--skip-action-plan", action="store_true", help="Don't call the action-plan stage"
    )
    run.add_argument(
        "--profile",
        action="append",
        dest="profile_ids",
        help="Only run this profile id (repeatable)",
    )
    run.add_argument("--seed", type=int, help="Seed for replayable variant generation")
    run.add_argument("--no-progress", action="store_true", help="Hide the progress bar")

    subparsers.add_parser("describe", help="Describe the reported metrics")
    return parser


def load_params(
    raw: dict[str, Any],
    base_url: Optional[str] = None,
    max_concurrent: Optional[int] = None,
) -> SystemParams:
    """Build SystemParams from validated JSON plus environment/CLI overrides."""
    data = dict(raw)
    if base_url:
        data["pipeline"] = {**data.get("pipeline", {}), "base_url": base_url}
    if max_concurrent is not None:
        data["rate_limiting"] = {
            **data.get("rate_limiting", {}),
            "max_concurrent_runs": max_concurrent,
        }
    return SystemParams(**data)


def describe(output: Console) -> None:
    """Print metric and variant definitions."""
    metrics = Table(title="Metrics")
    metrics.add_column("Metric")
    metrics.add_column("Definition")
    for name, definition in METRIC_DEFINITIONS.items():
        metrics.add_row(name, definition)
    output.print(metrics)

    variants = Table(title="Input Variants")
    variants.add_column("Variant")
    variants.add_column("Label")
    variants.add_column("Description")
    for variant_type, label, description in SKILL_CONSISTENCY_ROWS:
        variants.add_row(variant_type, label, description)
    output.print(variants)


async def run_batch(args: argparse.Namespace) -> int:
    config_path = Path(args.config)
    configs = ConfigValidator().validate_all_configs(
        Path(args.batch), config_path if config_path.exists() else None
    )

    params = load_params(
        configs["system_params"],
        base_url=os.getenv("PIPELINE_BASE_URL"),
        max_concurrent=args.max_concurrent,
    )
    configure_logging(log_file="logs/perturbation-lab.log", log_level=params.log_level)

    batch = PerturbationBatch.model_validate(configs["batch"])
    config_updates: dict[str, Any] = {}
    if args.skip_action_plan:
        config_updates["skip_action_plan"] = True
    if args.profile_ids:
        config_updates["selected_profile_ids"] = args.profile_ids
    if config_updates:
        batch = batch.model_copy(update={"config": batch.config.model_copy(update=config_updates)})

    rules = PerturbationRules.load(args.rules) if args.rules else None
    rng = random.Random(args.seed) if args.seed is not None else None
    correlation_id = str(uuid.uuid4())

    async with HttpPipelineInvoker(
        params.pipeline,
        rate_limiter=EndpointRateLimiter(params.rate_limiting.requests_per_second),
        correlation_id=correlation_id,
    ) as invoker:
        coordinator = PerturbationCoordinator(
            invoker,
            params=params,
            rules=rules,
            rng=rng,
            progress_tracker=ProgressTracker(show=not args.no_progress, console=console),
            correlation_id=correlation_id,
        )
        result = await coordinator.run(batch)
        paths = save_test_result(result, args.output, coordinator.runs_snapshot())

    render_summary(result, console)
    console.print(f"\n[+] Results saved to {paths['results']}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    if args.command == "describe":
        describe(console)
        return 0

    try:
        return asyncio.run(run_batch(args))
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
    except PerturbationBatchError as e:
        console.print(f"[red][X] {e}[/red]")
        for error in e.run_errors:
            console.print(f"  * {error}")
    except (OSError, ValueError) as e:
        console.print(f"[red][X] {e}[/red]")
    return 1


if __name__ == "__main__":
    sys.exit(main())
