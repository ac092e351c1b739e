"""Dataset content providers.

A provider turns an opaque artifact reference into raw delimited text plus a
display name. Access checks happen before the engine is called; providers only
report whether the artifact exists.
"""
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Tuple, Union
import logging

from .config import settings
from .exceptions import NotFoundError
from .schema import DatasetArtifact

logger = logging.getLogger("trust_engine.providers")


class DatasetProvider(Protocol):
    def fetch(self, artifact_id: str) -> DatasetArtifact: ...


class InMemoryDatasetProvider:
    """Dict-backed provider, mainly for embedding and tests."""

    def __init__(self, artifacts: Optional[Mapping[str, DatasetArtifact]] = None):
        self._artifacts: Dict[str, DatasetArtifact] = dict(artifacts or {})

    def add(self, artifact: DatasetArtifact) -> DatasetArtifact:
        self._artifacts[artifact.id] = artifact
        return artifact

    def fetch(self, artifact_id: str) -> DatasetArtifact:
        artifact = self._artifacts.get(artifact_id)
        if artifact is None:
            raise NotFoundError(f"Dataset artifact not found: {artifact_id}")
        return artifact


class FileDatasetProvider:
    """Reads artifacts stored as files under a storage root.

    `index` maps artifact id -> (stored file name, original name[, project id]).
    The file is read in one call and closed before any computation starts.
    """

    def __init__(
        self,
        index: Mapping[str, Tuple[str, ...]],
        root: Optional[Union[str, Path]] = None,
        encoding: str = "utf-8",
    ):
        self.root = Path(root or settings.ARTIFACT_STORAGE_ROOT)
        self.encoding = encoding
        self._index = dict(index)

    def fetch(self, artifact_id: str) -> DatasetArtifact:
        entry = self._index.get(artifact_id)
        if entry is None:
            raise NotFoundError(f"Dataset artifact not found: {artifact_id}")
        stored_name, original_name = entry[0], entry[1]
        project_id = entry[2] if len(entry) > 2 else None
        path = self.root / stored_name
        try:
            content = path.read_text(encoding=self.encoding)
        except FileNotFoundError as e:
            raise NotFoundError(f"Dataset file missing for artifact {artifact_id}") from e
        logger.debug("Read %d characters from %s", len(content), path)
        return DatasetArtifact(id=artifact_id, name=original_name, content=content, project_id=project_id)
