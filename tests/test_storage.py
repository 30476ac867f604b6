from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from pose_sandbox.config import AppSettings
from pose_sandbox.services.storage import ArtifactStore, StorageError, parse_s3_uri


@pytest.fixture
def artifact(tmp_path: Path) -> Path:
    path = tmp_path / "pose.json"
    path.write_text("{}", encoding="utf-8")
    return path


def test_parse_s3_uri():
    assert parse_s3_uri("s3://bucket/poses/a.json") == ("bucket", "poses/a.json")
    assert parse_s3_uri("/tmp/a.json") is None
    with pytest.raises(ValueError):
        parse_s3_uri("s3:///missing-bucket")


def test_put_defaults_to_output_bucket(settings: AppSettings, artifact: Path):
    client = MagicMock()
    store = ArtifactStore(settings.model_copy(update={"output_bucket": "pose-out"}))

    with patch("pose_sandbox.services.storage.boto3.client", return_value=client):
        stored = store.put(artifact, None, "application/json", subdir="poses")

    client.upload_file.assert_called_once_with(str(artifact), "pose-out", "poses/pose.json")
    assert stored.uri == "s3://pose-out/poses/pose.json"


def test_put_local_directory(settings: AppSettings, artifact: Path, tmp_path: Path):
    stored = ArtifactStore(settings).put(artifact, str(tmp_path / "out"), "application/json", subdir="poses")

    assert Path(stored.uri) == tmp_path / "out" / "pose.json"
    assert Path(stored.uri).read_text(encoding="utf-8") == "{}"


def test_fetch_wraps_s3_failures(settings: AppSettings, tmp_path: Path):
    client = MagicMock()
    client.download_file.side_effect = ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")

    with patch("pose_sandbox.services.storage.boto3.client", return_value=client):
        with pytest.raises(StorageError):
            ArtifactStore(settings).fetch("s3://pose-in/missing.glb", tmp_path)


def test_fetch_rejects_directories(settings: AppSettings, tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        ArtifactStore(settings).fetch(str(tmp_path), tmp_path)
