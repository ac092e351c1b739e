import logging

from trust_engine.core.config import Settings, configure_logging, settings


def test_default_targets():
    assert isinstance(settings, Settings)
    assert settings.FAIRNESS_GAP_MAX == 0.05
    assert settings.DISPARATE_IMPACT_MIN == 0.8
    assert settings.EQUALIZED_ODDS_GAP_MAX == 0.10
    assert settings.BOUNDARY_VULNERABILITY_MAX == 0.20
    assert settings.ECE_MAX == 0.05
    assert settings.RECENT_SAMPLES_LIMIT == 6


def test_default_columns():
    assert settings.SENSITIVE_COLUMN == "sensitive_attribute"
    assert settings.Y_TRUE_COLUMN == "y_true"
    assert settings.Y_PRED_COLUMN == "y_pred"
    assert settings.Y_SCORE_COLUMN == "y_score"


def test_configure_logging_accepts_level_names(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))
    configure_logging("debug")
    assert calls["level"] == logging.DEBUG
    configure_logging("not-a-level")
    assert calls["level"] == logging.INFO
