"""
Perturbation Coordinator Module

Orchestrates a perturbation batch: generates variants per profile, runs the
pipeline for each (profile, variant) pair with bounded concurrency, compares
every variant against its profile's baseline, and aggregates metrics.

Each run is independent. A failed run is recorded with its errors and the
batch continues; only a batch with zero successful runs is an error.
"""

import asyncio
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from src.models.comparison import (
    PerturbationRun,
    PerturbationTestResult,
    VariantComparisonResult,
)
from src.models.config import SystemParams
from src.models.perturbation import (
    VARIANT_ORDER,
    PerturbationBatch,
    PerturbationConfig,
    ProfileVariant,
)
from src.models.pipeline import PipelineError, PipelineResults
from src.models.profile import ProfileEntry
from src.perturbation.comparator import compare_variant_to_original
from src.perturbation.generators import RandomSource, VariantGenerator
from src.perturbation.metrics import calculate_metrics
from src.perturbation.rules import PerturbationRules
from src.utils.logger import bind_batch_context, get_logger
from src.utils.pipeline_client import PipelineInvoker
from src.utils.progress_tracker import ProgressTracker


class PerturbationBatchError(Exception):
    """Raised when a batch finishes without a single successful run."""

    def __init__(self, message: str, run_errors: list[str]):
        super().__init__(message)
        self.run_errors = run_errors


class PerturbationCoordinator:
    """
    Runs perturbation batches against a pipeline invoker.

    Runs across all profiles share one semaphore sized by
    rate_limiting.max_concurrent_runs. Within a profile the original variant
    runs first since every other variant is compared against it.
    """

    def __init__(
        self,
        invoker: PipelineInvoker,
        params: Optional[SystemParams] = None,
        rules: Optional[PerturbationRules] = None,
        rng: Optional[RandomSource] = None,
        progress_tracker: Optional[ProgressTracker] = None,
        correlation_id: Optional[str] = None,
    ):
        """
        Initialize PerturbationCoordinator.

        Args:
            invoker: Pipeline invoker used for every run
            params: System parameters (default: SystemParams())
            rules: Variant generation rules (default: default_rules())
            rng: Random source for variant generation
            progress_tracker: Progress tracker (default: headless tracker)
            correlation_id: Correlation ID for logging (auto-generated if None)
        """
        self.invoker = invoker
        self.params = params or SystemParams()
        self.generator = VariantGenerator(rules=rules, rng=rng)
        self.progress_tracker = progress_tracker or ProgressTracker(show=False)
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.logger: Any = get_logger(
            correlation_id=self.correlation_id,
            phase="perturbation",
            component="perturbation_coordinator",
        )

        self._runs: list[PerturbationRun] = []
        self._cancel_event = asyncio.Event()
        self.skipped_runs = 0

    # ------------------------------------------------------------------
    # Cancellation and snapshots
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Stop starting new runs; in-flight runs finish normally."""
        if not self._cancel_event.is_set():
            self.logger.warning("Cancellation requested", runs_completed=len(self._runs))
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def runs_snapshot(self) -> tuple[PerturbationRun, ...]:
        """Read-only view of the runs recorded so far (completion order)."""
        return tuple(self._runs)

    def results_snapshot(self) -> tuple[VariantComparisonResult, ...]:
        """Read-only view of the comparison rows recorded so far."""
        return tuple(run.comparison for run in self._runs)

    # ------------------------------------------------------------------
    # Run execution
    # ------------------------------------------------------------------

    async def _invoke(self, variant: ProfileVariant, skip_action_plan: bool) -> PipelineResults:
        """Invoke the pipeline, converting any escaped exception into an error record."""
        try:
            return await self.invoker.invoke(variant.profile, skip_action_plan=skip_action_plan)
        except Exception as e:
            self.logger.warning(
                "Pipeline invoker raised",
                profile_id=variant.profile_id,
                variant=variant.variant_type,
                error=str(e),
            )
            return PipelineResults(
                errors=[
                    PipelineError(
                        stage="invoker",
                        kind="exception",
                        message=f"{type(e).__name__}: {e}",
                    )
                ]
            )

    async def _run_variant(
        self,
        variant: ProfileVariant,
        baseline_results: Optional[PipelineResults],
        semaphore: asyncio.Semaphore,
        skip_action_plan: bool,
    ) -> Optional[PerturbationRun]:
        """Run one (profile, variant) pair. Returns None if cancelled before start."""
        async with semaphore:
            if self.cancelled:
                self.skipped_runs += 1
                return None

            started = time.monotonic()
            timestamp = datetime.now(timezone.utc)
            run_logger = self.logger.bind(
                profile_id=variant.profile_id, variant=variant.variant_type
            )
            run_logger.info("Run started")

            # Pipeline client log lines for this run carry the same tags
            with bind_batch_context(
                profile_id=variant.profile_id, variant=variant.variant_type
            ):
                variant_results = await self._invoke(variant, skip_action_plan)
            comparison = compare_variant_to_original(
                variant,
                baseline_results,
                variant_results,
                thresholds=self.params.thresholds,
            )
            run = PerturbationRun(
                id=variant.id,
                timestamp=timestamp,
                variant=variant,
                baseline_results=baseline_results,
                variant_results=variant_results,
                comparison=comparison,
                execution_time_ms=int((time.monotonic() - started) * 1000),
            )
            self._runs.append(run)

            if comparison.errors:
                run_logger.warning("Run completed with errors", errors=comparison.errors)
            else:
                run_logger.info(
                    "Run complete",
                    skill_consistency=comparison.skill_consistency.consistency_percentage,
                    execution_time_ms=run.execution_time_ms,
                )

            self.progress_tracker.increment(
                message=f"{variant.profile_name}: {variant.variant_type}"
            )
            return run

    async def _run_profile(
        self,
        entry: ProfileEntry,
        config: PerturbationConfig,
        semaphore: asyncio.Semaphore,
    ) -> None:
        """Run the baseline, then every perturbed variant of one profile."""
        variants = self.generator.generate_all(entry.id, entry.name, entry.profile, config)
        original, perturbed = variants[0], variants[1:]

        baseline_run = await self._run_variant(
            original, None, semaphore, config.skip_action_plan
        )
        if baseline_run is None:
            self.skipped_runs += len(perturbed)
            return

        await asyncio.gather(
            *(
                self._run_variant(
                    variant,
                    baseline_run.variant_results,
                    semaphore,
                    config.skip_action_plan,
                )
                for variant in perturbed
            )
        )

    def _ordered_runs(self, profiles: list[ProfileEntry]) -> list[PerturbationRun]:
        """Sort runs by (profile order, variant order)."""
        profile_index = {entry.id: i for i, entry in enumerate(profiles)}
        return sorted(
            self._runs,
            key=lambda run: (
                profile_index.get(run.variant.profile_id, len(profiles)),
                VARIANT_ORDER.index(run.variant.variant_type),
            ),
        )

    async def run(self, batch: PerturbationBatch) -> PerturbationTestResult:
        """
        Run a full perturbation batch.

        Args:
            batch: Profiles and batch configuration

        Returns:
            PerturbationTestResult envelope (partial and flagged when cancelled)

        Raises:
            ValueError: If no profiles are selected
            PerturbationBatchError: If no run produced an intake analysis
        """
        profiles = batch.selected_profiles()
        if not profiles:
            raise ValueError("No profiles selected for perturbation testing")

        config = batch.config
        total_runs = len(profiles) * config.variant_count()
        max_concurrent = self.params.rate_limiting.max_concurrent_runs

        self._runs = []
        self.skipped_runs = 0
        started = time.monotonic()

        self.logger.info(
            "Starting perturbation batch",
            profiles=len(profiles),
            total_runs=total_runs,
            max_concurrent=max_concurrent,
            config=config.model_dump(),
        )
        self.progress_tracker.start_phase("Perturbation testing", total_items=total_runs)

        semaphore = asyncio.Semaphore(max_concurrent)
        outcomes = await asyncio.gather(
            *(self._run_profile(entry, config, semaphore) for entry in profiles),
            return_exceptions=True,
        )

        run_errors: list[str] = []
        for entry, outcome in zip(profiles, outcomes):
            if isinstance(outcome, Exception):
                self.logger.error(
                    "Unexpected exception in profile processing",
                    profile_id=entry.id,
                    error=str(outcome),
                )
                run_errors.append(f"{entry.id}: {type(outcome).__name__}: {outcome}")

        runs = self._ordered_runs(profiles)
        for run in runs:
            run_errors.extend(f"{run.id}: {error}" for error in run.comparison.errors)

        execution_time_ms = int((time.monotonic() - started) * 1000)
        successful = sum(1 for run in runs if run.variant_results.succeeded)

        self.progress_tracker.complete_phase(
            "Perturbation testing cancelled" if self.cancelled else None
        )
        self.logger.info(
            "Perturbation batch finished",
            runs_completed=len(runs),
            successful_runs=successful,
            skipped_runs=self.skipped_runs,
            cancelled=self.cancelled,
            execution_time_ms=execution_time_ms,
        )

        if successful == 0 and not self.cancelled:
            raise PerturbationBatchError(
                f"All {len(runs)} perturbation runs failed", run_errors
            )

        results = [run.comparison for run in runs]
        report = calculate_metrics(results)

        return PerturbationTestResult(
            profiles_tested=len(profiles),
            total_runs=len(runs),
            results=results,
            summary=report.summary,
            metrics=report.metrics,
            timestamp=datetime.now(timezone.utc).isoformat(),
            execution_time_total_ms=execution_time_ms,
            skill_consistency_table=report.skill_consistency_table,
            cancelled=self.cancelled,
            skipped_runs=self.skipped_runs,
            run_errors=run_errors,
        )
