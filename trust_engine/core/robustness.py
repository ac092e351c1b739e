"""Robustness metrics from paired and scored predictions.

Flip rate compares baseline and perturbed binary predictions; boundary
vulnerability is the share of confidence scores near the decision boundary.
"""
from dataclasses import dataclass
from typing import List, Optional

from .config import Settings, settings
from .dataset import Dataset
from .exceptions import NotFoundError
from .schema import MetricDefinition, Pillar, Reading, RobustnessColumns
from .utils import numeric_series

BOUNDARY_LOW = 0.4
BOUNDARY_HIGH = 0.6


@dataclass
class RobustnessStats:
    baseline_column: str
    perturbed_column: str
    score_column: str
    paired_columns_found: bool
    score_column_found: bool
    paired: int = 0
    flips: int = 0
    scored: int = 0
    vulnerable: int = 0

    @property
    def flip_rate(self) -> float:
        return self.flips / self.paired if self.paired > 0 else 0.0

    @property
    def boundary_vulnerability_rate(self) -> float:
        return self.vulnerable / self.scored if self.scored > 0 else 0.0


def compute_robustness(
    dataset: Dataset,
    columns: Optional[RobustnessColumns] = None,
    config: Optional[Settings] = None,
) -> RobustnessStats:
    """Count prediction flips and near-boundary scores.

    Absent columns leave the matching statistic at 0; only an empty dataset
    is an error.
    """
    config = config or settings
    cols = columns or RobustnessColumns()
    baseline = cols.y_pred_baseline or config.Y_PRED_COLUMN
    perturbed = cols.y_pred_perturbed or config.Y_PRED_PERTURBED_COLUMN
    score = cols.y_score or config.Y_SCORE_COLUMN
    if not len(dataset):
        raise NotFoundError("Dataset is empty")

    stats = RobustnessStats(
        baseline_column=baseline,
        perturbed_column=perturbed,
        score_column=score,
        paired_columns_found=dataset.has_column(baseline) and dataset.has_column(perturbed),
        score_column_found=dataset.has_column(score),
    )
    frame = dataset.to_frame()

    if stats.paired_columns_found:
        a = numeric_series(frame[baseline])
        b = numeric_series(frame[perturbed])
        paired = a.isin([0, 1]) & b.isin([0, 1])
        stats.paired = int(paired.sum())
        stats.flips = int((paired & (a != b)).sum())

    if stats.score_column_found:
        s = numeric_series(frame[score]).dropna()
        stats.scored = int(s.size)
        stats.vulnerable = int(s.between(BOUNDARY_LOW, BOUNDARY_HIGH, inclusive="both").sum())

    return stats


def robustness_readings(
    stats: RobustnessStats,
    dataset_name: str,
    config: Optional[Settings] = None,
) -> List[Reading]:
    config = config or settings
    if stats.paired:
        flip_note = (f"Flip rate using {stats.baseline_column} vs {stats.perturbed_column} "
                     f"across {stats.paired} pairs.")
    elif not stats.paired_columns_found:
        flip_note = (f"Columns {stats.baseline_column}/{stats.perturbed_column} not found; "
                     f"flip rate not computed.")
    else:
        flip_note = "No paired predictions found to compute flip rate."

    if stats.scored:
        vuln_note = (f"Fraction of {stats.score_column} within [{BOUNDARY_LOW},{BOUNDARY_HIGH}] "
                     f"across {stats.scored} scored rows.")
    elif not stats.score_column_found:
        vuln_note = f"Column {stats.score_column} not found; boundary vulnerability not computed."
    else:
        vuln_note = f"No numeric values in {stats.score_column}; boundary vulnerability not computed."

    return [
        Reading(
            key="flip_rate",
            definition=MetricDefinition(
                name="Robustness flip rate",
                pillar=Pillar.ROBUSTNESS,
                unit="rate",
                target_max=config.FLIP_RATE_MAX,
                dataset_name=dataset_name,
            ),
            value=stats.flip_rate,
            note=flip_note,
        ),
        Reading(
            key="boundary_vulnerability",
            definition=MetricDefinition(
                name="Boundary vulnerability rate",
                pillar=Pillar.ROBUSTNESS,
                unit="rate",
                target_max=config.BOUNDARY_VULNERABILITY_MAX,
                dataset_name=dataset_name,
            ),
            value=stats.boundary_vulnerability_rate,
            note=vuln_note,
        ),
    ]
