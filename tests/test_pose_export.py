from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from pose_sandbox.config import AppSettings
from pose_sandbox.posing.pose_codec import PoseValidationError
from pose_sandbox.posing.session import PoseSession
from pose_sandbox.services.pose_export import PoseExportService


def test_export_to_default_work_dir(settings: AppSettings, session: PoseSession):
    session.add_prop("cone")
    session.apply_preset("a_pose")
    service = PoseExportService(settings=settings)

    artifact = service.export(session.serialize())

    path = Path(artifact.uri)
    assert path == settings.work_dir / "poses" / "pose.json"
    assert artifact.content_type == "application/json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["version"] == 1
    assert data["props"][0]["type"] == "cone"
    assert data["joints"]["l_shoulder"] == session.rig.joint("l_shoulder").transform.rotation.tolist()


def test_export_then_load_round_trip(settings: AppSettings, session: PoseSession, tmp_path: Path):
    session.random_pose()
    service = PoseExportService(settings=settings)
    artifact = service.export(session.serialize(), output_uri=str(tmp_path / "out"), filename="mine.json")
    expected = {joint.name: joint.transform.rotation.tolist() for joint in session.rig.joints}

    session.reset_pose()
    session.apply_full(service.load(artifact.uri))

    assert Path(artifact.uri).name == "mine.json"
    for joint in session.rig.joints:
        np.testing.assert_allclose(joint.transform.rotation, expected[joint.name], atol=1e-12)


def test_export_to_s3(settings: AppSettings, session: PoseSession):
    client = MagicMock()
    service = PoseExportService(settings=settings)

    with patch("pose_sandbox.services.storage.boto3.client", return_value=client) as factory:
        artifact = service.export(session.serialize(), output_uri="s3://pose-bucket/exports")

    factory.assert_called_once_with("s3", region_name=settings.aws_region)
    _, bucket, key = client.upload_file.call_args.args
    assert (bucket, key) == ("pose-bucket", "exports/pose.json")
    assert artifact.uri == "s3://pose-bucket/exports/pose.json"


@pytest.mark.parametrize("content", ["{broken", "[1, 2, 3]"])
def test_load_rejects_non_object_files(settings: AppSettings, tmp_path: Path, content: str):
    path = tmp_path / "pose.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(PoseValidationError):
        PoseExportService(settings=settings).load(str(path))


def test_load_missing_file(settings: AppSettings, tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        PoseExportService(settings=settings).load(str(tmp_path / "absent.json"))
