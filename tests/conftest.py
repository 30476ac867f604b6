from __future__ import annotations

from pathlib import Path

import pytest

from pose_sandbox.config import AppSettings
from pose_sandbox.posing.session import PoseSession


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(work_dir=tmp_path / "work", random_seed=1234, output_bucket=None)


@pytest.fixture
def session(settings: AppSettings) -> PoseSession:
    return PoseSession(settings=settings)
