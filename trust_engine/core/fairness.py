"""Fairness metrics over a sensitive attribute.

Builds per-group aggregates in a single pass and derives the positive-rate
gap, disparate impact, equal opportunity gap, and equalized odds gap. Also
provides the read-only segment variant.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .config import Settings, settings
from .dataset import Dataset
from .exceptions import NotFoundError
from .schema import FairnessColumns, MetricDefinition, Pillar, Reading, Segment, SegmentResult
from .utils import cell_label, coerce_cell, numeric_series

_COUNT_COLUMNS = ["total", "positive", "tp", "fp", "fn", "tn"]


@dataclass(frozen=True)
class ResolvedColumns:
    sensitive: str
    y_true: str
    target: str
    y_pred: Optional[str]


@dataclass
class FairnessStats:
    columns: ResolvedColumns
    row_count: int
    group_rates: Dict[str, float] = field(default_factory=dict)
    fairness_gap: float = 0.0
    disparate_impact: Optional[float] = None
    tpr_gap: Optional[float] = None
    fpr_gap: Optional[float] = None

    @property
    def equal_opportunity_gap(self) -> Optional[float]:
        return self.tpr_gap

    @property
    def equalized_odds_gap(self) -> Optional[float]:
        if self.tpr_gap is None or self.fpr_gap is None:
            return None
        return max(self.tpr_gap, self.fpr_gap)


# --- Helpers ---

def _is_populated(dataset: Dataset, column: str) -> bool:
    return any(v != "" for v in dataset.column(column))


def resolve_columns(
    dataset: Dataset,
    columns: Optional[FairnessColumns] = None,
    config: Optional[Settings] = None,
) -> ResolvedColumns:
    """Apply default column names and check the required ones exist.

    The prediction column becomes the positive-rate target when it is present
    and holds at least one value; otherwise ground truth is used.
    """
    config = config or settings
    cols = columns or FairnessColumns()
    sensitive = cols.sensitive_attribute or config.SENSITIVE_COLUMN
    y_true = cols.y_true or config.Y_TRUE_COLUMN
    y_pred = cols.y_pred or config.Y_PRED_COLUMN

    if not len(dataset):
        raise NotFoundError("Dataset has no rows")
    if not dataset.has_column(sensitive):
        raise NotFoundError(f"CSV missing sensitive attribute column: {sensitive}")
    pred_present = dataset.has_column(y_pred)
    target = y_pred if pred_present and _is_populated(dataset, y_pred) else y_true
    if not dataset.has_column(target):
        raise NotFoundError(f"CSV missing target column: {target}")
    return ResolvedColumns(
        sensitive=sensitive,
        y_true=y_true,
        target=target,
        y_pred=y_pred if pred_present else None,
    )


def _group_aggregates(frame: pd.DataFrame, cols: ResolvedColumns) -> pd.DataFrame:
    """Per-group counts of rows, positives and (with predictions) confusion cells."""
    nan = pd.Series(float("nan"), index=frame.index)
    truth = numeric_series(frame[cols.y_true]) if cols.y_true in frame.columns else nan
    target = numeric_series(frame[cols.target])

    counts = pd.DataFrame(
        {
            "group": frame[cols.sensitive].map(cell_label),
            "total": 1,
            "positive": (target == 1).astype(int),
        },
        index=frame.index,
    )
    if cols.y_pred is not None:
        pred = numeric_series(frame[cols.y_pred])
        valid = truth.isin([0, 1]) & pred.isin([0, 1])
        counts["tp"] = (valid & (truth == 1) & (pred == 1)).astype(int)
        counts["fp"] = (valid & (truth == 0) & (pred == 1)).astype(int)
        counts["fn"] = (valid & (truth == 1) & (pred == 0)).astype(int)
        counts["tn"] = (valid & (truth == 0) & (pred == 0)).astype(int)
    else:
        for name in ("tp", "fp", "fn", "tn"):
            counts[name] = 0
    return counts.groupby("group", sort=False)[_COUNT_COLUMNS].sum()


def _safe_rate(num: pd.Series, den: pd.Series) -> pd.Series:
    return (num / den.where(den > 0, 1)).where(den > 0, 0.0).astype(float)


def _spread(values: pd.Series) -> float:
    return float(values.max() - values.min())


def _stats_from_frame(frame: pd.DataFrame, cols: ResolvedColumns) -> FairnessStats:
    groups = _group_aggregates(frame, cols)
    rates = _safe_rate(groups["positive"], groups["total"])
    stats = FairnessStats(
        columns=cols,
        row_count=len(frame),
        group_rates={str(g): float(r) for g, r in rates.items()},
    )
    if rates.empty:
        return stats
    stats.fairness_gap = abs(_spread(rates))
    if len(rates) >= 2:
        max_rate = float(rates.max())
        stats.disparate_impact = float(rates.min()) / max_rate if max_rate > 0 else 0.0
    if cols.y_pred is not None and len(groups) >= 2:
        tpr = _safe_rate(groups["tp"], groups["tp"] + groups["fn"])
        fpr = _safe_rate(groups["fp"], groups["fp"] + groups["tn"])
        stats.tpr_gap = _spread(tpr)
        stats.fpr_gap = _spread(fpr)
    return stats


# --- Analysis ---

def compute_fairness(
    dataset: Dataset,
    columns: Optional[FairnessColumns] = None,
    config: Optional[Settings] = None,
) -> FairnessStats:
    """Compute group fairness statistics for a whole dataset."""
    cols = resolve_columns(dataset, columns, config)
    return _stats_from_frame(dataset.to_frame(), cols)


def _segment_mask(frame: pd.DataFrame, segment: Segment) -> pd.Series:
    column = segment.filter.column
    if column not in frame.columns:
        return pd.Series(False, index=frame.index)
    allowed = {cell_label(coerce_cell(v)) for v in segment.filter.values}
    labels = frame[column].map(cell_label)
    return (labels != "") & labels.isin(allowed)


def compute_segment_stats(
    dataset: Dataset,
    segments: Sequence[Segment],
    columns: Optional[FairnessColumns] = None,
    config: Optional[Settings] = None,
) -> List[SegmentResult]:
    """Run the fairness computation independently on each named segment."""
    cols = resolve_columns(dataset, columns, config)
    frame = dataset.to_frame()
    results: List[SegmentResult] = []
    for segment in segments:
        subset = frame[_segment_mask(frame, segment)]
        if subset.empty:
            results.append(SegmentResult(segment=segment.name, counts=0, fairness_gap=0.0))
            continue
        stats = _stats_from_frame(subset, cols)
        results.append(
            SegmentResult(
                segment=segment.name,
                counts=stats.row_count,
                fairness_gap=stats.fairness_gap,
                disparate_impact=stats.disparate_impact,
                equal_opportunity_gap=stats.equal_opportunity_gap,
                equalized_odds_gap=stats.equalized_odds_gap,
            )
        )
    return results


# --- Readings ---

def _definition(name: str, unit: str, dataset_name: str, model_name: Optional[str], **targets) -> MetricDefinition:
    return MetricDefinition(
        name=name,
        pillar=Pillar.FAIRNESS,
        unit=unit,
        dataset_name=dataset_name,
        model_name=model_name,
        **targets,
    )


def fairness_readings(
    stats: FairnessStats,
    dataset_name: str,
    model_name: Optional[str] = None,
    config: Optional[Settings] = None,
) -> List[Reading]:
    """Turn fairness statistics into metric readings with provenance notes."""
    config = config or settings
    cols = stats.columns
    with_model = f" with model {model_name}" if model_name else ""
    readings = [
        Reading(
            key="fairness_gap",
            definition=_definition("Fairness gap", "gap", dataset_name, model_name,
                                   target_max=config.FAIRNESS_GAP_MAX),
            value=stats.fairness_gap,
            note=f"Auto-computed fairness gap on {dataset_name}{with_model} using {cols.target} by {cols.sensitive}.",
        )
    ]
    if stats.disparate_impact is not None:
        readings.append(Reading(
            key="disparate_impact",
            definition=_definition("Disparate impact", "ratio", dataset_name, model_name,
                                   target_min=config.DISPARATE_IMPACT_MIN),
            value=stats.disparate_impact,
            note=f"Disparate impact computed from positive rates across groups using {cols.target}.",
        ))
    if stats.equal_opportunity_gap is not None:
        readings.append(Reading(
            key="equal_opportunity_gap",
            definition=_definition("Equal opportunity gap", "gap", dataset_name, model_name,
                                   target_max=config.EQUAL_OPPORTUNITY_GAP_MAX),
            value=stats.equal_opportunity_gap,
            note=(f"Equal opportunity gap (TPR disparity) using {cols.y_true} and {cols.y_pred} "
                  f"by {cols.sensitive}."),
        ))
    eodds = stats.equalized_odds_gap
    if eodds is not None:
        readings.append(Reading(
            key="equalized_odds_gap",
            definition=_definition("Equalized odds gap", "gap", dataset_name, model_name,
                                   target_max=config.EQUALIZED_ODDS_GAP_MAX),
            value=eodds,
            note=(f"Equalized odds gap (max of TPR and FPR disparities). "
                  f"TPR gap={stats.tpr_gap:.3f}, FPR gap={stats.fpr_gap:.3f}."),
        ))
    return readings
