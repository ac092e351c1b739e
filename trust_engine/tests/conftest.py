"""Shared fixtures: a fresh ledger, an in-memory provider, and the service."""
import pytest

from trust_engine.core.ledger import InMemoryMetricLedger
from trust_engine.core.providers import InMemoryDatasetProvider
from trust_engine.core.schema import DatasetArtifact
from trust_engine.service import TrustService

PROJECT = "proj-1"


@pytest.fixture
def gender_csv():
    """Two groups: M has 6/10 positives, F has 3/10."""
    lines = ["sensitive_attribute,y_true"]
    lines += [f"M,{1 if i < 6 else 0}" for i in range(10)]
    lines += [f"F,{1 if i < 3 else 0}" for i in range(10)]
    return "\n".join(lines) + "\n"


@pytest.fixture
def project_id():
    return PROJECT


@pytest.fixture
def ledger():
    return InMemoryMetricLedger()


@pytest.fixture
def provider():
    return InMemoryDatasetProvider()


@pytest.fixture
def service(ledger, provider):
    return TrustService(ledger, provider)


@pytest.fixture
def add_dataset(provider):
    def _add(artifact_id: str, content: str, name: str = None, project_id: str = PROJECT):
        return provider.add(DatasetArtifact(id=artifact_id, name=name or f"{artifact_id}.csv",
                                            content=content, project_id=project_id))
    return _add
