import pytest

from trust_engine.core.dataset import parse_dataset
from trust_engine.core.exceptions import NotFoundError
from trust_engine.core.fairness import compute_fairness, compute_segment_stats, fairness_readings
from trust_engine.core.schema import FairnessColumns, Pillar, Segment, SegmentFilter

PRED_CSV = """group,label,pred,region
A,1,1,north
A,1,1,north
A,1,0,south
A,0,0,south
A,0,1,north
B,1,1,north
B,1,0,south
B,0,0,south
B,0,0,north
"""
PRED_COLUMNS = FairnessColumns(sensitive_attribute="group", y_true="label", y_pred="pred")


def test_gap_and_disparate_impact_on_ground_truth(gender_csv):
    stats = compute_fairness(parse_dataset(gender_csv))
    assert stats.columns.target == "y_true"
    assert stats.group_rates == pytest.approx({"M": 0.6, "F": 0.3})
    assert stats.fairness_gap == pytest.approx(0.3)
    assert stats.disparate_impact == pytest.approx(0.5)
    assert stats.equal_opportunity_gap is None
    assert stats.equalized_odds_gap is None


def test_prediction_column_drives_rates_and_confusion_metrics():
    stats = compute_fairness(parse_dataset(PRED_CSV), PRED_COLUMNS)
    assert stats.columns.target == "pred"
    # A: preds 3/5, B: preds 1/4
    assert stats.fairness_gap == pytest.approx(0.35)
    assert stats.disparate_impact == pytest.approx(0.25 / 0.6)
    # TPR A=2/3, B=1/2; FPR A=1/2, B=0
    assert stats.equal_opportunity_gap == pytest.approx(1 / 6)
    assert stats.fpr_gap == pytest.approx(0.5)
    assert stats.equalized_odds_gap == pytest.approx(0.5)


def test_empty_prediction_column_falls_back_to_truth():
    text = "sensitive_attribute,y_true,y_pred\nM,1,\nF,0,\n"
    stats = compute_fairness(parse_dataset(text))
    assert stats.columns.target == "y_true"
    assert stats.fairness_gap == pytest.approx(1.0)
    # no binary pairs, so every TPR/FPR is 0
    assert stats.equal_opportunity_gap == 0.0
    assert stats.equalized_odds_gap == 0.0


def test_single_group_has_zero_gap_and_no_ratio():
    stats = compute_fairness(parse_dataset("sensitive_attribute,y_true\nM,1\nM,0\n"))
    assert stats.fairness_gap == 0.0
    assert stats.disparate_impact is None


def test_disparate_impact_bounds():
    equal = compute_fairness(parse_dataset("sensitive_attribute,y_true\nM,1\nM,0\nF,0\nF,1\n"))
    assert equal.disparate_impact == 1.0
    zero = compute_fairness(parse_dataset("sensitive_attribute,y_true\nM,0\nF,0\n"))
    assert zero.disparate_impact == 0.0
    skewed = compute_fairness(parse_dataset(PRED_CSV), PRED_COLUMNS)
    assert 0.0 <= skewed.disparate_impact <= 1.0


def test_numeric_group_labels_are_rendered_without_decimals():
    stats = compute_fairness(parse_dataset("sensitive_attribute,y_true\n1,1\n2,0\n"))
    assert set(stats.group_rates) == {"1", "2"}


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "no rows"),
        ("y_true\n1\n", "sensitive attribute"),
        ("sensitive_attribute,other\nM,1\n", "target column"),
    ],
)
def test_missing_inputs_raise_not_found(text, message):
    with pytest.raises(NotFoundError, match=message):
        compute_fairness(parse_dataset(text))


def test_readings_carry_definitions_and_notes():
    stats = compute_fairness(parse_dataset(PRED_CSV), PRED_COLUMNS)
    readings = fairness_readings(stats, "eval.csv", model_name="model.pkl")
    by_key = {r.key: r for r in readings}
    assert list(by_key) == ["fairness_gap", "disparate_impact", "equal_opportunity_gap", "equalized_odds_gap"]
    assert by_key["fairness_gap"].definition.target_max == 0.05
    assert by_key["disparate_impact"].definition.target_min == 0.8
    assert by_key["equalized_odds_gap"].definition.target_max == 0.10
    assert all(r.definition.pillar == Pillar.FAIRNESS for r in readings)
    assert "with model model.pkl using pred by group" in by_key["fairness_gap"].note
    assert "TPR gap=0.167, FPR gap=0.500" in by_key["equalized_odds_gap"].note


def test_segments_are_computed_independently():
    segments = [
        Segment(name="north", filter=SegmentFilter(column="region", values=["north"])),
        Segment(name="south", filter=SegmentFilter(column="region", values=["south"])),
        Segment(name="nowhere", filter=SegmentFilter(column="region", values=["east"])),
        Segment(name="bad column", filter=SegmentFilter(column="missing", values=["x"])),
    ]
    results = compute_segment_stats(parse_dataset(PRED_CSV), segments, PRED_COLUMNS)
    by_name = {r.segment: r for r in results}

    north = by_name["north"]
    # A north: preds 1,1,1 -> 1.0; B north: preds 1,0 -> 0.5
    assert north.counts == 5
    assert north.fairness_gap == pytest.approx(0.5)
    assert north.disparate_impact == pytest.approx(0.5)
    assert north.equal_opportunity_gap is not None

    assert by_name["south"].counts == 4
    assert by_name["nowhere"].counts == 0
    assert by_name["nowhere"].fairness_gap == 0.0
    assert by_name["nowhere"].disparate_impact is None
    assert by_name["bad column"].counts == 0


def test_segment_filter_matches_numeric_values():
    text = "sensitive_attribute,y_true,bucket\nM,1,1\nF,0,1\nM,1,2\n"
    segments = [Segment(name="one", filter=SegmentFilter(column="bucket", values=[1]))]
    [result] = compute_segment_stats(parse_dataset(text), segments)
    assert result.counts == 2
    assert result.fairness_gap == pytest.approx(1.0)
