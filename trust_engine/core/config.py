"""Configuration for the trust engine.

Centralizes environment variables for default column names, metric targets,
artifact storage, and logging.
"""
from typing import Optional
import logging
import os

from dotenv import load_dotenv

_ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
_ENV_PATH = os.path.join(_ROOT_DIR, ".env")
if os.path.exists(_ENV_PATH):
    load_dotenv(_ENV_PATH)
else:
    load_dotenv()


def _env_float(name: str, default: str) -> float:
    return float(os.environ.get(name, default))


class Settings:
    """Simple settings container using environment variables.

    - *_COLUMN: default dataset column names used when a caller gives no override
    - *_MAX / *_MIN: target bounds for metrics created on first use
    - RECENT_SAMPLES_LIMIT: samples returned per metric by the overview listing
    - ARTIFACT_STORAGE_ROOT: directory read by the file dataset provider
    """

    # --- Default column names ---
    SENSITIVE_COLUMN: str = os.environ.get("SENSITIVE_COLUMN", "sensitive_attribute")
    Y_TRUE_COLUMN: str = os.environ.get("Y_TRUE_COLUMN", "y_true")
    Y_PRED_COLUMN: str = os.environ.get("Y_PRED_COLUMN", "y_pred")
    Y_PRED_PERTURBED_COLUMN: str = os.environ.get("Y_PRED_PERTURBED_COLUMN", "y_pred_perturbed")
    Y_SCORE_COLUMN: str = os.environ.get("Y_SCORE_COLUMN", "y_score")

    # --- Default metric targets (applied when a metric is created) ---
    FAIRNESS_GAP_MAX: float = _env_float("FAIRNESS_GAP_MAX", "0.05")
    DISPARATE_IMPACT_MIN: float = _env_float("DISPARATE_IMPACT_MIN", "0.8")
    EQUAL_OPPORTUNITY_GAP_MAX: float = _env_float("EQUAL_OPPORTUNITY_GAP_MAX", "0.05")
    EQUALIZED_ODDS_GAP_MAX: float = _env_float("EQUALIZED_ODDS_GAP_MAX", "0.10")
    FLIP_RATE_MAX: float = _env_float("FLIP_RATE_MAX", "0.05")
    BOUNDARY_VULNERABILITY_MAX: float = _env_float("BOUNDARY_VULNERABILITY_MAX", "0.20")
    PSI_MAX: float = _env_float("PSI_MAX", "0.1")
    KL_MAX: float = _env_float("KL_MAX", "0.1")
    ECE_MAX: float = _env_float("ECE_MAX", "0.05")

    # --- Ledger views and storage ---
    RECENT_SAMPLES_LIMIT: int = int(os.environ.get("RECENT_SAMPLES_LIMIT", "6"))
    ARTIFACT_STORAGE_ROOT: str = os.environ.get(
        "ARTIFACT_STORAGE_ROOT", os.path.join(_ROOT_DIR, "storage", "artifacts")
    )

    TRUST_LOG_LEVEL: str = os.environ.get("TRUST_LOG_LEVEL", "INFO")

settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for processes embedding the engine."""
    name = (level or settings.TRUST_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
