"""
Result Reporting

Persists a batch result and renders a terminal summary.

Files written to the output directory:
- perturbation-results.json: the full PerturbationTestResult envelope
- perturbation-comparisons.jsonl: one comparison row per line
- perturbation-runs.jsonl: full run records incl. raw pipeline responses
  (only when runs are passed)
"""

from pathlib import Path
from typing import Optional, Sequence

import jsonlines
from rich.console import Console
from rich.table import Table

from src.models.comparison import (
    PerturbationRun,
    PerturbationTestResult,
    VariantComparisonResult,
)

RESULTS_FILE = "perturbation-results.json"
COMPARISONS_FILE = "perturbation-comparisons.jsonl"
RUNS_FILE = "perturbation-runs.jsonl"


def save_test_result(
    result: PerturbationTestResult,
    output_dir: Path | str = "output",
    runs: Optional[Sequence[PerturbationRun]] = None,
) -> dict[str, Path]:
    """
    Write the result envelope and per-row JSONL files.

    Args:
        result: Batch result envelope
        output_dir: Directory to write into (created if missing)
        runs: Optional full run records to persist alongside

    Returns:
        Mapping of file kind ("results", "comparisons", "runs") to path

    Raises:
        IOError: If a file cannot be written
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        "results": output_dir / RESULTS_FILE,
        "comparisons": output_dir / COMPARISONS_FILE,
    }

    try:
        paths["results"].write_text(result.model_dump_json(indent=2), encoding="utf-8")

        with jsonlines.open(paths["comparisons"], mode="w") as writer:
            for row in result.results:
                writer.write(row.model_dump(mode="json"))

        if runs is not None:
            paths["runs"] = output_dir / RUNS_FILE
            with jsonlines.open(paths["runs"], mode="w") as writer:
                for run in runs:
                    writer.write(run.model_dump(mode="json"))
    except OSError as e:
        raise IOError(f"Failed to save perturbation results to {output_dir}: {e}") from e

    return paths


def load_comparisons(path: Path | str) -> list[VariantComparisonResult]:
    """Read comparison rows back from a JSONL file."""
    with jsonlines.open(Path(path)) as reader:
        return [VariantComparisonResult.model_validate(record) for record in reader]


def _verdict(passed: bool, label_pass: str, label_fail: str) -> str:
    return f"[green]{label_pass}[/green]" if passed else f"[red]{label_fail}[/red]"


def render_summary(result: PerturbationTestResult, console: Optional[Console] = None) -> None:
    """Print rates, the skill-consistency table, and per-run verdicts."""
    console = console or Console()
    metrics = result.metrics

    rates = Table(title="Perturbation Metrics")
    rates.add_column("Metric")
    rates.add_column("Rate", justify="right")
    rates.add_row("Skill attribution consistency", f"{metrics.skill_attribution_consistency_rate}%")
    rates.add_row("Hallucination rate", f"{metrics.hallucination_rate}%")
    rates.add_row("Recommendation stability", f"{metrics.recommendation_stability_rate}%")
    rates.add_row("Action plan appropriateness", f"{metrics.action_plan_appropriateness_rate}%")
    rates.add_row("Average skill consistency", f"{metrics.average_skill_consistency}%")
    console.print(rates)

    if result.skill_consistency_table:
        table = Table(title="Skill Consistency by Input Variant")
        table.add_column("Input Variant")
        table.add_column("Skill Consistency", justify="right")
        table.add_column("Description")
        for row in result.skill_consistency_table:
            table.add_row(row.input_variant, f"{row.skill_consistency}%", row.description)
        console.print(table)

    runs = Table(title="Runs")
    runs.add_column("Profile")
    runs.add_column("Variant")
    runs.add_column("Consistency", justify="right")
    runs.add_column("Attribution")
    runs.add_column("Hallucinations")
    runs.add_column("Recommendations")
    runs.add_column("Action Plan")
    runs.add_column("Errors", justify="right")
    for row in result.results:
        runs.add_row(
            row.profile_name or row.profile_id,
            row.variant,
            f"{row.skill_consistency.consistency_percentage}%",
            _verdict(row.skill_attribution_consistency == "consistent", "consistent", "inconsistent"),
            _verdict(not row.hallucinations_detected, "none", "detected"),
            _verdict(row.recommendation_stability == "stable", "stable", "unstable"),
            _verdict(row.action_plan_sensitivity == "appropriate", "appropriate", "inappropriate"),
            str(len(row.errors)),
        )
    console.print(runs)

    status = (
        f"{result.profiles_tested} profiles, {result.total_runs} runs "
        f"in {result.execution_time_total_ms / 1000:.1f}s"
    )
    if result.cancelled:
        status += f" [yellow](cancelled, {result.skipped_runs} runs skipped)[/yellow]"
    console.print(status)
