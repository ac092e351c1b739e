"""Distribution drift and calibration metrics.

Compares a baseline and a current dataset column by column with a shared
fixed-bin histogram (Population Stability Index and KL divergence), and
measures expected calibration error on the current dataset.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np
import pandas as pd

from .config import Settings, settings
from .dataset import Dataset
from .exceptions import NotFoundError
from .schema import DriftTargets, MetricDefinition, Pillar, Reading
from .utils import detect_numeric_columns, numeric_series

logger = logging.getLogger("trust_engine.drift")

BINS = 10
CALIBRATION_BUCKETS = 10
EPSILON = 1e-6
PROBE_ROWS = 50
MIN_NUMERIC = 10


@dataclass
class CalibrationStats:
    truth_column: str
    score_column: str
    columns_found: bool
    scored: int = 0
    ece: float = 0.0


@dataclass
class DriftStats:
    numeric_columns: List[str]
    column_psi: Dict[str, float] = field(default_factory=dict)
    column_kl: Dict[str, float] = field(default_factory=dict)
    calibration: Optional[CalibrationStats] = None

    @property
    def psi_avg(self) -> float:
        return float(np.mean(list(self.column_psi.values()))) if self.column_psi else 0.0

    @property
    def kl_avg(self) -> float:
        return float(np.mean(list(self.column_kl.values()))) if self.column_kl else 0.0


# --- Divergences ---

def histogram(values: np.ndarray, lo: float, hi: float, bins: int = BINS) -> np.ndarray:
    """Proportions per bin over [lo, hi]; width falls back to 1 when lo == hi."""
    width = (hi - lo) or 1.0
    idx = np.floor((values - lo) / width * bins).astype(int)
    idx = np.clip(idx, 0, bins - 1)
    counts = np.bincount(idx, minlength=bins).astype(float)
    return counts / max(values.size, 1)


def population_stability_index(expected: np.ndarray, actual: np.ndarray) -> float:
    e = np.maximum(expected, EPSILON)
    a = np.maximum(actual, EPSILON)
    return float(np.sum((a - e) * np.log(a / e)))


def kl_divergence(p: np.ndarray, q: np.ndarray) -> float:
    p = np.maximum(p, EPSILON)
    q = np.maximum(q, EPSILON)
    return float(np.sum(p * np.log(p / q)))


def expected_calibration_error(truth: np.ndarray, scores: np.ndarray, buckets: int = CALIBRATION_BUCKETS) -> float:
    """Bucket-size weighted |accuracy - confidence| over equal-width score buckets."""
    if scores.size == 0:
        return 0.0
    idx = np.clip(np.floor(scores * buckets).astype(int), 0, buckets - 1)
    frame = pd.DataFrame({"bucket": idx, "acc": truth, "conf": scores})
    per_bucket = frame.groupby("bucket").agg(n=("acc", "size"), acc=("acc", "mean"), conf=("conf", "mean"))
    weights = per_bucket["n"] / scores.size
    return float((weights * (per_bucket["acc"] - per_bucket["conf"]).abs()).sum())


# --- Analysis ---

def _calibration(current: pd.DataFrame, targets: Optional[DriftTargets], config: Settings) -> CalibrationStats:
    truth_col = (targets.y_true if targets else None) or config.Y_TRUE_COLUMN
    score_col = (targets.y_score if targets else None) or config.Y_SCORE_COLUMN
    stats = CalibrationStats(
        truth_column=truth_col,
        score_column=score_col,
        columns_found=truth_col in current.columns and score_col in current.columns,
    )
    if not stats.columns_found:
        return stats
    truth = numeric_series(current[truth_col])
    scores = numeric_series(current[score_col])
    mask = truth.isin([0, 1]) & scores.notna()
    stats.scored = int(mask.sum())
    stats.ece = expected_calibration_error(truth[mask].to_numpy(float), scores[mask].to_numpy(float))
    return stats


def compute_drift(
    baseline: Dataset,
    current: Dataset,
    columns: Optional[Sequence[str]] = None,
    targets: Optional[DriftTargets] = None,
    config: Optional[Settings] = None,
) -> DriftStats:
    """Compare numeric columns of two datasets and measure calibration of `current`."""
    if not len(baseline) or not len(current):
        raise NotFoundError("Artifacts have no rows")
    base_frame = baseline.to_frame()
    cur_frame = current.to_frame()

    candidates = [c for c in (columns or current.columns) if baseline.has_column(c)]
    numeric_cols = detect_numeric_columns(cur_frame, candidates, PROBE_ROWS, MIN_NUMERIC)
    stats = DriftStats(numeric_columns=numeric_cols)

    for col in numeric_cols:
        b = numeric_series(base_frame[col]).dropna().to_numpy(float)
        c = numeric_series(cur_frame[col]).dropna().to_numpy(float)
        if not b.size or not c.size:
            continue
        lo = float(min(b.min(), c.min()))
        hi = float(max(b.max(), c.max()))
        b_hist = histogram(b, lo, hi)
        c_hist = histogram(c, lo, hi)
        stats.column_psi[col] = population_stability_index(b_hist, c_hist)
        stats.column_kl[col] = kl_divergence(b_hist, c_hist)
        logger.debug("Drift on %s: psi=%.6f kl=%.6f", col, stats.column_psi[col], stats.column_kl[col])

    stats.calibration = _calibration(cur_frame, targets, config or settings)
    return stats


def drift_readings(
    stats: DriftStats,
    baseline_name: str,
    current_name: str,
    config: Optional[Settings] = None,
) -> List[Reading]:
    config = config or settings
    n_cols = len(stats.numeric_columns)
    cal = stats.calibration
    if cal is not None and cal.scored:
        ece_note = f"ECE over {cal.scored} scored rows using {cal.score_column}/{cal.truth_column}."
    elif cal is not None and cal.columns_found:
        ece_note = (f"No rows with binary {cal.truth_column} and numeric {cal.score_column}; "
                    f"ECE not computed.")
    else:
        names = f"{cal.score_column}/{cal.truth_column}" if cal is not None else "score/truth"
        ece_note = f"Columns {names} not found; ECE not computed."

    return [
        Reading(
            key="psi",
            definition=MetricDefinition(name="PSI (avg)", pillar=Pillar.DRIFT, unit="psi",
                                        target_max=config.PSI_MAX, dataset_name=current_name),
            value=stats.psi_avg,
            note=f"Average PSI across {n_cols} columns comparing {baseline_name} → {current_name}.",
        ),
        Reading(
            key="kl_divergence",
            definition=MetricDefinition(name="KL divergence (avg)", pillar=Pillar.DRIFT, unit="kl",
                                        target_max=config.KL_MAX, dataset_name=current_name),
            value=stats.kl_avg,
            note=f"Average KL divergence across {n_cols} columns comparing {baseline_name} → {current_name}.",
        ),
        Reading(
            key="calibration_error",
            definition=MetricDefinition(name="Calibration error (ECE)", pillar=Pillar.ROBUSTNESS, unit="ece",
                                        target_max=config.ECE_MAX, dataset_name=current_name),
            value=cal.ece if cal is not None else 0.0,
            note=ece_note,
        ),
    ]
