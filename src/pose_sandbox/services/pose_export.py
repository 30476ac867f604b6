from __future__ import annotations

import json
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any, Optional

from loguru import logger

from pose_sandbox.config import AppSettings, get_settings
from pose_sandbox.models import StoredArtifact
from pose_sandbox.posing.pose_codec import PoseValidationError
from pose_sandbox.posing.types import PoseDocument
from pose_sandbox.services.storage import ArtifactStore


POSE_CONTENT_TYPE = "application/json"


class PoseExportService:
    """Write pose documents to the work directory or S3 and read them back."""

    def __init__(self, settings: Optional[AppSettings] = None, store: Optional[ArtifactStore] = None) -> None:
        self.settings = settings or get_settings()
        self.store = store or ArtifactStore(self.settings)

    def export(
        self,
        document: PoseDocument,
        output_uri: Optional[str] = None,
        filename: str = "pose.json",
    ) -> StoredArtifact:
        with TemporaryDirectory(prefix="pose-sandbox-export-") as temp_dir:
            path = Path(temp_dir) / filename
            path.write_text(json.dumps(document.to_dict(), indent=2), encoding="utf-8")
            artifact = self.store.put(path, output_uri, POSE_CONTENT_TYPE, subdir="poses")

        logger.info("Exported pose with {} joint(s) to {}", len(document.joints), artifact.uri)
        return artifact

    def load(self, source_uri: str) -> dict[str, Any]:
        """
        Read a pose document.

        Raises:
            FileNotFoundError: if a local path does not exist
            PoseValidationError: if the file is not a JSON object
        """
        with TemporaryDirectory(prefix="pose-sandbox-load-") as temp_dir:
            path = self.store.fetch(source_uri, Path(temp_dir))
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                raise PoseValidationError(f"Pose file is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise PoseValidationError("Pose file must contain a JSON object")
        logger.debug("Loaded pose document from {}", source_uri)
        return data


__all__ = ["PoseExportService"]
