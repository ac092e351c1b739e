"""Metric ledger capability and an in-memory reference implementation.

The engine never owns persistence: it talks to a MetricLedger. Metrics are
unique per (project, code); samples are append-only and deleted only with
their metric or individually by id.

Usage:
    ledger = InMemoryMetricLedger()
    with ledger.transaction():
        metric = ledger.create_metric(project_id, definition)
        ledger.append_sample(metric.id, 0.03, Status.OK, "note", artifact_id)
"""
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol, Tuple
import logging
import threading

from .exceptions import MetricConflictError, NotFoundError
from .schema import Metric, MetricDefinition, Sample, Status, metric_code

logger = logging.getLogger("trust_engine.ledger")


class MetricLedger(Protocol):
    """Durable store of named metrics and their time-ordered samples."""

    def find_metric(self, project_id: str, name: str) -> Optional[Metric]: ...

    def get_metric(self, metric_id: str) -> Optional[Metric]: ...

    def create_metric(self, project_id: str, definition: MetricDefinition) -> Metric: ...

    def append_sample(
        self,
        metric_id: str,
        value: float,
        status: Status,
        note: Optional[str] = None,
        artifact_id: Optional[str] = None,
    ) -> Sample: ...

    def list_metrics(self, project_id: str) -> List[Metric]: ...

    def list_samples(self, metric_id: str, limit: Optional[int] = None, newest_first: bool = True) -> List[Sample]: ...

    def get_sample(self, sample_id: str) -> Optional[Sample]: ...

    def delete_metric_cascade(self, metric_id: str) -> None: ...

    def delete_sample(self, sample_id: str) -> None: ...

    def transaction(self): ...


class InMemoryMetricLedger:
    """Thread-safe dict-backed ledger.

    Transactions hold the lock for their whole body and restore a snapshot
    when the body raises, so a batch of writes lands completely or not at all.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._metrics: Dict[str, Metric] = {}
        self._keys: Dict[Tuple[str, str], str] = {}
        self._samples: Dict[str, List[Sample]] = {}

    # -------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["InMemoryMetricLedger"]:
        with self._lock:
            snapshot = (dict(self._metrics), dict(self._keys), {k: list(v) for k, v in self._samples.items()})
            try:
                yield self
            except Exception:
                self._metrics, self._keys, self._samples = snapshot
                logger.warning("Ledger transaction rolled back")
                raise

    # -------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------

    def find_metric(self, project_id: str, name: str) -> Optional[Metric]:
        with self._lock:
            metric_id = self._keys.get((project_id, metric_code(name)))
            return self._metrics.get(metric_id) if metric_id else None

    def get_metric(self, metric_id: str) -> Optional[Metric]:
        with self._lock:
            return self._metrics.get(metric_id)

    def create_metric(self, project_id: str, definition: MetricDefinition) -> Metric:
        key = (project_id, definition.code)
        with self._lock:
            if key in self._keys:
                raise MetricConflictError(f"Metric already exists: {definition.name}")
            metric = Metric(project_id=project_id, code=definition.code, **definition.model_dump())
            self._metrics[metric.id] = metric
            self._keys[key] = metric.id
            self._samples[metric.id] = []
            return metric

    def list_metrics(self, project_id: str) -> List[Metric]:
        with self._lock:
            return [m for m in self._metrics.values() if m.project_id == project_id]

    def delete_metric_cascade(self, metric_id: str) -> None:
        with self._lock:
            metric = self._metrics.pop(metric_id, None)
            if metric is None:
                raise NotFoundError("Metric not found")
            self._keys.pop((metric.project_id, metric.code), None)
            self._samples.pop(metric_id, None)

    # -------------------------------------------------------------------
    # Samples
    # -------------------------------------------------------------------

    def append_sample(
        self,
        metric_id: str,
        value: float,
        status: Status,
        note: Optional[str] = None,
        artifact_id: Optional[str] = None,
    ) -> Sample:
        with self._lock:
            if metric_id not in self._metrics:
                raise NotFoundError("Metric not found")
            sample = Sample(metric_id=metric_id, value=value, status=status, note=note, artifact_id=artifact_id)
            self._samples[metric_id].append(sample)
            return sample

    def list_samples(self, metric_id: str, limit: Optional[int] = None, newest_first: bool = True) -> List[Sample]:
        with self._lock:
            history = sorted(self._samples.get(metric_id, []), key=lambda s: s.timestamp)
        if newest_first:
            history.reverse()
        return history[:limit] if limit is not None else history

    def get_sample(self, sample_id: str) -> Optional[Sample]:
        with self._lock:
            for history in self._samples.values():
                for sample in history:
                    if sample.id == sample_id:
                        return sample
        return None

    def delete_sample(self, sample_id: str) -> None:
        with self._lock:
            for history in self._samples.values():
                for i, sample in enumerate(history):
                    if sample.id == sample_id:
                        del history[i]
                        return
        raise NotFoundError("Sample not found")
