import pytest
from pydantic import ValidationError

from trust_engine.core.exceptions import LedgerError, MetricConflictError, NotFoundError, TrustEngineError
from trust_engine.core.schema import MetricDefinition, Pillar, Status, metric_code


def _definition(name="Fairness gap", **kwargs):
    return MetricDefinition(name=name, pillar=Pillar.FAIRNESS, unit="gap", **kwargs)


def test_metric_code_is_canonical():
    assert metric_code("PSI (avg)") == "psi_avg"
    assert metric_code("  Fairness gap ") == "fairness_gap"
    assert metric_code("Calibration error (ECE)") == "calibration_error_ece"


def test_find_by_name_or_code_is_project_scoped(ledger):
    metric = ledger.create_metric("p1", _definition(target_max=0.05))
    assert metric.code == "fairness_gap"
    assert ledger.find_metric("p1", "Fairness gap").id == metric.id
    assert ledger.find_metric("p1", "fairness_gap").id == metric.id
    assert ledger.find_metric("p2", "Fairness gap") is None


def test_duplicate_create_conflicts(ledger):
    ledger.create_metric("p1", _definition())
    with pytest.raises(MetricConflictError):
        ledger.create_metric("p1", _definition(name="fairness GAP"))
    # other projects are independent
    ledger.create_metric("p2", _definition())


def test_samples_are_appended_and_listed_newest_first(ledger):
    metric = ledger.create_metric("p1", _definition())
    first = ledger.append_sample(metric.id, 0.01, Status.OK, "one", "a1")
    second = ledger.append_sample(metric.id, 0.2, Status.WARN, "two")
    history = ledger.list_samples(metric.id, newest_first=False)
    assert [s.id for s in history] == [first.id, second.id]
    assert ledger.list_samples(metric.id)[0].id == second.id
    assert len(ledger.list_samples(metric.id, limit=1)) == 1
    assert ledger.get_sample(first.id).artifact_id == "a1"


def test_samples_are_immutable(ledger):
    metric = ledger.create_metric("p1", _definition())
    sample = ledger.append_sample(metric.id, 0.01, Status.OK)
    with pytest.raises(ValidationError):
        sample.value = 3.0


def test_append_to_unknown_metric(ledger):
    with pytest.raises(NotFoundError):
        ledger.append_sample("missing", 1.0, Status.OK)


def test_delete_cascades_to_samples(ledger):
    metric = ledger.create_metric("p1", _definition())
    sample = ledger.append_sample(metric.id, 0.01, Status.OK)
    ledger.delete_metric_cascade(metric.id)
    assert ledger.get_metric(metric.id) is None
    assert ledger.get_sample(sample.id) is None
    assert ledger.list_samples(metric.id) == []
    # name is free again
    ledger.create_metric("p1", _definition())
    with pytest.raises(NotFoundError):
        ledger.delete_metric_cascade(metric.id)


def test_delete_sample(ledger):
    metric = ledger.create_metric("p1", _definition())
    keep = ledger.append_sample(metric.id, 0.01, Status.OK)
    drop = ledger.append_sample(metric.id, 0.02, Status.OK)
    ledger.delete_sample(drop.id)
    assert [s.id for s in ledger.list_samples(metric.id)] == [keep.id]
    with pytest.raises(NotFoundError):
        ledger.delete_sample(drop.id)


def test_transaction_rolls_back_every_write(ledger):
    existing = ledger.create_metric("p1", _definition())
    with pytest.raises(RuntimeError):
        with ledger.transaction():
            created = ledger.create_metric("p1", _definition(name="Disparate impact"))
            ledger.append_sample(created.id, 0.5, Status.ALERT)
            ledger.append_sample(existing.id, 0.5, Status.WARN)
            raise RuntimeError("ledger unavailable")
    assert ledger.find_metric("p1", "Disparate impact") is None
    assert ledger.list_samples(existing.id) == []


def test_transaction_commits(ledger):
    with ledger.transaction():
        metric = ledger.create_metric("p1", _definition())
        ledger.append_sample(metric.id, 0.5, Status.WARN)
    assert len(ledger.list_samples(metric.id)) == 1


def test_exception_hierarchy():
    assert issubclass(NotFoundError, TrustEngineError)
    assert issubclass(LedgerError, TrustEngineError)
    assert issubclass(MetricConflictError, LedgerError)
