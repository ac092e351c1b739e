"""Trust service exposing analyses and metric management.

Delegates parsing and statistics to core components, evaluates status per
reading, and records (metric, sample) pairs through the ledger. Callers are
expected to have checked access and quotas already.
"""
from typing import Dict, List, Optional, Sequence, Tuple
import logging

from .core.config import Settings, settings as default_settings
from .core.dataset import Dataset, parse_dataset
from .core.drift import compute_drift, drift_readings
from .core.exceptions import MetricConflictError, NotFoundError
from .core.fairness import compute_fairness, compute_segment_stats, fairness_readings
from .core.ledger import MetricLedger
from .core.providers import DatasetProvider
from .core.robustness import compute_robustness, robustness_readings
from .core.schema import (
    DatasetArtifact,
    DriftAnalysis,
    DriftTargets,
    FairnessAnalysis,
    FairnessColumns,
    Metric,
    MetricDefinition,
    MetricOverview,
    MetricReading,
    Reading,
    RobustnessAnalysis,
    RobustnessColumns,
    Sample,
    Segment,
    SegmentReport,
)
from .core.thresholds import bounds_are_sane, evaluate_status

logger = logging.getLogger("trust_engine.service")


class TrustService:
    """Runs analyses against datasets from `provider` and records them in `ledger`."""

    def __init__(self, ledger: MetricLedger, provider: DatasetProvider, settings: Optional[Settings] = None):
        self.ledger = ledger
        self.provider = provider
        self.settings = settings or default_settings

    # -------------------------------------------------------------------
    # Datasets
    # -------------------------------------------------------------------

    def _fetch(self, project_id: str, artifact_id: str, label: str) -> DatasetArtifact:
        try:
            artifact = self.provider.fetch(artifact_id)
        except NotFoundError as e:
            raise NotFoundError(f"{label} artifact not found") from e
        if artifact.project_id is not None and artifact.project_id != project_id:
            raise NotFoundError(f"{label} artifact not found")
        return artifact

    def _load(self, project_id: str, artifact_id: str, label: str = "Dataset") -> Tuple[DatasetArtifact, Dataset]:
        artifact = self._fetch(project_id, artifact_id, label)
        return artifact, parse_dataset(artifact.content)

    # -------------------------------------------------------------------
    # Ledger helpers
    # -------------------------------------------------------------------

    def _get_or_create(self, project_id: str, definition: MetricDefinition) -> Metric:
        metric = self.ledger.find_metric(project_id, definition.code)
        if metric is not None:
            return metric
        try:
            return self._create(project_id, definition)
        except MetricConflictError:
            # another writer created it first
            logger.warning("Metric %r created concurrently; re-reading", definition.name)
            metric = self.ledger.find_metric(project_id, definition.code)
            if metric is None:
                raise
            return metric

    def _create(self, project_id: str, definition: MetricDefinition) -> Metric:
        if not bounds_are_sane(definition.target_min, definition.target_max):
            logger.warning(
                "Metric %r has target_min %s above target_max %s; values will evaluate as ALERT first",
                definition.name, definition.target_min, definition.target_max,
            )
        metric = self.ledger.create_metric(project_id, definition)
        logger.info("Created metric %r (%s) for project %s", metric.name, metric.pillar.value, project_id)
        return metric

    def _append(self, metric: Metric, value: float, note: Optional[str], artifact_id: Optional[str]) -> Sample:
        status = evaluate_status(value, metric.target_min, metric.target_max)
        return self.ledger.append_sample(metric.id, value, status, note, artifact_id)

    def _record(
        self,
        project_id: str,
        readings: Sequence[Reading],
        artifact_id: Optional[str],
        overrides: Optional[Dict[str, Metric]] = None,
    ) -> Dict[str, MetricReading]:
        """Write every reading in one ledger transaction."""
        recorded: Dict[str, MetricReading] = {}
        with self.ledger.transaction():
            for reading in readings:
                metric = (overrides or {}).get(reading.key) or self._get_or_create(project_id, reading.definition)
                sample = self._append(metric, reading.value, reading.note, artifact_id)
                recorded[reading.key] = MetricReading(metric=metric, sample=sample)
        return recorded

    # -------------------------------------------------------------------
    # Analyses
    # -------------------------------------------------------------------

    def analyze_fairness(
        self,
        project_id: str,
        dataset_artifact_id: str,
        columns: Optional[FairnessColumns] = None,
        model_artifact_id: Optional[str] = None,
        metric_id: Optional[str] = None,
    ) -> FairnessAnalysis:
        artifact, dataset = self._load(project_id, dataset_artifact_id)
        model_name = None
        if model_artifact_id:
            model_name = self._fetch(project_id, model_artifact_id, "Model").name

        stats = compute_fairness(dataset, columns, self.settings)
        overrides: Dict[str, Metric] = {}
        if metric_id:
            metric = self.ledger.get_metric(metric_id)
            # metrics of other projects are invisible here
            if metric is not None and metric.project_id == project_id:
                overrides["fairness_gap"] = metric

        readings = fairness_readings(stats, artifact.name, model_name, self.settings)
        recorded = self._record(project_id, readings, artifact.id, overrides)
        logger.info(
            "Fairness analysis on %s: gap=%.4f over %d groups",
            artifact.name, stats.fairness_gap, len(stats.group_rates),
        )
        return FairnessAnalysis(**recorded)

    def analyze_fairness_segments(
        self,
        project_id: str,
        dataset_artifact_id: str,
        segments: Sequence[Segment],
        columns: Optional[FairnessColumns] = None,
    ) -> SegmentReport:
        """Per-segment fairness statistics; nothing is written to the ledger."""
        artifact, dataset = self._load(project_id, dataset_artifact_id)
        results = compute_segment_stats(dataset, segments, columns, self.settings)
        return SegmentReport(dataset=artifact.name, results=results)

    def analyze_robustness(
        self,
        project_id: str,
        dataset_artifact_id: str,
        columns: Optional[RobustnessColumns] = None,
    ) -> RobustnessAnalysis:
        artifact, dataset = self._load(project_id, dataset_artifact_id)
        stats = compute_robustness(dataset, columns, self.settings)
        readings = robustness_readings(stats, artifact.name, self.settings)
        recorded = self._record(project_id, readings, artifact.id)
        logger.info(
            "Robustness analysis on %s: flip_rate=%.4f boundary=%.4f",
            artifact.name, stats.flip_rate, stats.boundary_vulnerability_rate,
        )
        return RobustnessAnalysis(**recorded)

    def analyze_drift(
        self,
        project_id: str,
        baseline_artifact_id: str,
        current_artifact_id: str,
        columns: Optional[Sequence[str]] = None,
        targets: Optional[DriftTargets] = None,
    ) -> DriftAnalysis:
        baseline, baseline_rows = self._load(project_id, baseline_artifact_id, "Baseline")
        current, current_rows = self._load(project_id, current_artifact_id, "Current")
        stats = compute_drift(baseline_rows, current_rows, columns, targets, self.settings)
        readings = drift_readings(stats, baseline.name, current.name, self.settings)
        recorded = self._record(project_id, readings, current.id)
        logger.info(
            "Drift analysis %s -> %s: psi=%.4f kl=%.4f over %d columns",
            baseline.name, current.name, stats.psi_avg, stats.kl_avg, len(stats.numeric_columns),
        )
        return DriftAnalysis(**recorded, column_psi=stats.column_psi, column_kl=stats.column_kl)

    # -------------------------------------------------------------------
    # Metric management
    # -------------------------------------------------------------------

    def list_metrics(self, project_id: str, limit: Optional[int] = None) -> List[MetricOverview]:
        """Metrics of a project with their most recent samples, newest first."""
        take = self.settings.RECENT_SAMPLES_LIMIT if limit is None else limit
        return [
            MetricOverview(metric=m, samples=self.ledger.list_samples(m.id, limit=take))
            for m in self.ledger.list_metrics(project_id)
        ]

    def create_metric(self, project_id: str, definition: MetricDefinition) -> Metric:
        return self._create(project_id, definition)

    def add_sample(
        self,
        metric_id: str,
        value: float,
        note: Optional[str] = None,
        artifact_id: Optional[str] = None,
    ) -> Sample:
        metric = self.ledger.get_metric(metric_id)
        if metric is None:
            raise NotFoundError("Metric not found")
        return self._append(metric, value, note, artifact_id)

    def remove_metric(self, metric_id: str) -> None:
        if self.ledger.get_metric(metric_id) is None:
            raise NotFoundError("Metric not found")
        self.ledger.delete_metric_cascade(metric_id)
        logger.info("Removed metric %s and its samples", metric_id)

    def remove_sample(self, sample_id: str) -> None:
        if self.ledger.get_sample(sample_id) is None:
            raise NotFoundError("Sample not found")
        self.ledger.delete_sample(sample_id)
