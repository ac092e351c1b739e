"""Pydantic models shared by the analyzers, ledger, and service.

Defines ledger records (metrics and samples), analysis inputs (column
overrides, segments), and the result structures returned to callers.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union
import re
import uuid

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


def metric_code(name: str) -> str:
    """Canonical idempotency key for a metric name ("PSI (avg)" -> "psi_avg")."""
    return re.sub(r"[^a-z0-9]+", "_", name.strip().lower()).strip("_")


class Status(str, Enum):
    OK = "OK"
    WARN = "WARN"
    ALERT = "ALERT"


class Pillar(str, Enum):
    FAIRNESS = "Fairness"
    ROBUSTNESS = "Robustness"
    DRIFT = "Drift"


# ---------------------------------------------------------------------------
# Ledger records
# ---------------------------------------------------------------------------

class MetricDefinition(BaseModel):
    name: str
    pillar: Pillar
    unit: str
    target_min: Optional[float] = None
    target_max: Optional[float] = None
    dataset_name: Optional[str] = None
    model_name: Optional[str] = None
    section_id: Optional[str] = None

    @property
    def code(self) -> str:
        return metric_code(self.name)


class Metric(BaseModel):
    id: str = Field(default_factory=_new_id)
    project_id: str
    code: str
    name: str
    pillar: Pillar
    unit: str
    target_min: Optional[float] = None
    target_max: Optional[float] = None
    dataset_name: Optional[str] = None
    model_name: Optional[str] = None
    section_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class Sample(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    metric_id: str
    value: float
    status: Status
    note: Optional[str] = None
    artifact_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=_now)


class MetricOverview(BaseModel):
    metric: Metric
    samples: List[Sample]


class DatasetArtifact(BaseModel):
    id: str
    name: str
    content: str
    project_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Analysis inputs
# ---------------------------------------------------------------------------

class FairnessColumns(BaseModel):
    sensitive_attribute: Optional[str] = None
    y_true: Optional[str] = None
    y_pred: Optional[str] = None


class RobustnessColumns(BaseModel):
    y_pred_baseline: Optional[str] = None
    y_pred_perturbed: Optional[str] = None
    y_score: Optional[str] = None


class DriftTargets(BaseModel):
    y_true: Optional[str] = None
    y_score: Optional[str] = None


class SegmentFilter(BaseModel):
    column: str
    values: List[Union[float, str]]


class Segment(BaseModel):
    name: str
    filter: SegmentFilter


# ---------------------------------------------------------------------------
# Analysis results
# ---------------------------------------------------------------------------

class MetricReading(BaseModel):
    """A persisted (metric, sample) pair produced by an analysis."""
    metric: Metric
    sample: Sample


class FairnessAnalysis(BaseModel):
    fairness_gap: MetricReading
    disparate_impact: Optional[MetricReading] = None
    equal_opportunity_gap: Optional[MetricReading] = None
    equalized_odds_gap: Optional[MetricReading] = None


class SegmentResult(BaseModel):
    segment: str
    counts: int
    fairness_gap: float
    disparate_impact: Optional[float] = None
    equal_opportunity_gap: Optional[float] = None
    equalized_odds_gap: Optional[float] = None


class SegmentReport(BaseModel):
    dataset: str
    results: List[SegmentResult]


class RobustnessAnalysis(BaseModel):
    flip_rate: MetricReading
    boundary_vulnerability: MetricReading


class DriftAnalysis(BaseModel):
    psi: MetricReading
    kl_divergence: MetricReading
    calibration_error: MetricReading
    column_psi: Dict[str, float] = Field(default_factory=dict)
    column_kl: Dict[str, float] = Field(default_factory=dict)


class Reading(BaseModel):
    """An analyzer output waiting to be evaluated and persisted."""
    key: str
    definition: MetricDefinition
    value: float
    note: str
