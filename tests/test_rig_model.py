from __future__ import annotations

import numpy as np
import pytest

from pose_sandbox.posing.entity_registry import EntityRegistry
from pose_sandbox.posing.rig_model import RigModel
from pose_sandbox.posing.types import EntityKind


@pytest.fixture
def rig() -> RigModel:
    rig = RigModel(EntityRegistry())
    rig.build()
    return rig


def test_build_creates_named_hierarchy(rig: RigModel):
    assert rig.names[0] == "char_root"
    assert len(rig.names) == len(set(rig.names)) == len(RigModel.SKELETON)

    chest = rig.joint("chest")
    shoulder = rig.joint("l_shoulder")
    assert shoulder.parent == chest.handle
    assert shoulder.handle in chest.children
    assert rig.root.parent is None


def test_part_index_points_at_visible_part(rig: RigModel):
    part = rig.part_of(rig.joint("l_shoulder"))
    assert part is not None
    assert part.kind == EntityKind.PART
    assert part.name == "l_upperarm_mesh"
    assert part.parent == rig.joint("l_shoulder").handle

    assert rig.part_of(rig.joint("chest")) is None


def test_rebuild_discards_previous_tree(rig: RigModel):
    old_handles = [joint.handle for joint in rig.joints]
    old_part = rig.joint("neck").part
    names = rig.names

    rig.build()

    assert rig.names == names
    assert all(handle not in rig.registry for handle in old_handles)
    assert old_part not in rig.registry
    assert len(rig.registry) == len(rig.joints) + sum(1 for j in rig.joints if j.part is not None)


def test_reset_rotations_keeps_position_and_scale(rig: RigModel):
    elbow = rig.joint("r_elbow")
    elbow.transform.rotation[:] = [0.0, 0.0, 0.38268343, 0.92387953]
    elbow.transform.position[:] = [0.1, -0.9, 0.0]
    elbow.transform.scale[:] = [1.0, 2.0, 1.0]

    rig.reset_rotations()

    np.testing.assert_allclose(elbow.transform.rotation, [0.0, 0.0, 0.0, 1.0])
    np.testing.assert_allclose(elbow.transform.position, [0.1, -0.9, 0.0])
    np.testing.assert_allclose(elbow.transform.scale, [1.0, 2.0, 1.0])
