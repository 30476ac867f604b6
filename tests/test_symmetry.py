from __future__ import annotations

import numpy as np
import pytest
from scipy.spatial.transform import Rotation as R

from pose_sandbox.posing.entity_registry import EntityRegistry
from pose_sandbox.posing.rig_model import RigModel
from pose_sandbox.posing.symmetry import SymmetryEngine, counterpart_name, mirror_quaternion
from pose_sandbox.posing.types import EditMode, EntityKind, Selection


def assert_same_rotation(actual, expected, atol: float = 1e-9) -> None:
    """Quaternions q and -q are the same rotation."""
    assert abs(float(np.dot(actual, expected))) == pytest.approx(1.0, abs=atol)


@pytest.fixture
def rig() -> RigModel:
    rig = RigModel(EntityRegistry())
    rig.build()
    return rig


def test_counterpart_is_an_involution(rig: RigModel):
    for name in rig.names:
        other = counterpart_name(name)
        if name.startswith(("l_", "r_")):
            assert other is not None
            assert other in rig
            assert counterpart_name(other) == name
        else:
            assert other is None


def test_counterpart_long_prefixes():
    assert counterpart_name("left_toe") == "right_toe"
    assert counterpart_name("right_toe") == "left_toe"
    assert counterpart_name("spine") is None


def test_mirror_flips_y_and_z_components():
    quaternion = np.array([0.1, 0.2, 0.3, 0.9])
    quaternion /= np.linalg.norm(quaternion)

    mirrored = mirror_quaternion(quaternion)

    assert np.linalg.norm(mirrored) == pytest.approx(1.0)
    assert_same_rotation(mirrored, quaternion * [1.0, -1.0, -1.0, 1.0])


def test_mirror_is_an_involution():
    for quaternion in R.random(25, 11).as_quat():
        assert_same_rotation(mirror_quaternion(mirror_quaternion(quaternion)), quaternion)


def test_mirror_of_side_raise_matches_opposite_side():
    left_raise = R.from_euler("z", -90, degrees=True).as_quat()
    right_raise = R.from_euler("z", 90, degrees=True).as_quat()
    assert_same_rotation(mirror_quaternion(left_raise), right_raise)


def test_rotation_mirrored_onto_counterpart(rig: RigModel):
    engine = SymmetryEngine(rig, enabled=True)
    left = rig.joint("l_shoulder")
    right = rig.joint("r_shoulder")
    quaternion = R.from_euler("xyz", [20, 35, -50], degrees=True).as_quat()
    left.transform.rotation[:] = quaternion

    written = engine.on_handle_change(EditMode.ROTATE, Selection(EntityKind.JOINT, left.handle))

    assert written is right
    assert_same_rotation(right.transform.rotation, mirror_quaternion(quaternion))
    np.testing.assert_allclose(left.transform.rotation, quaternion)


def test_disabled_engine_does_nothing(rig: RigModel):
    engine = SymmetryEngine(rig)
    left = rig.joint("l_hip")
    left.transform.rotation[:] = R.from_euler("x", 40, degrees=True).as_quat()

    assert engine.on_handle_change(EditMode.ROTATE, Selection(EntityKind.JOINT, left.handle)) is None
    np.testing.assert_allclose(rig.joint("r_hip").transform.rotation, [0.0, 0.0, 0.0, 1.0])


def test_scale_copies_part_scale_verbatim(rig: RigModel):
    engine = SymmetryEngine(rig, enabled=True)
    left = rig.joint("l_knee")
    rig.part_of(left).transform.scale[:] = [1.2, 0.8, 1.5]

    engine.on_handle_change(EditMode.SCALE, Selection(EntityKind.JOINT, left.handle))

    np.testing.assert_allclose(rig.part_of(rig.joint("r_knee")).transform.scale, [1.2, 0.8, 1.5])
    np.testing.assert_allclose(rig.joint("r_knee").transform.scale, [1.0, 1.0, 1.0])


def test_centre_joints_and_props_are_not_mirrored(rig: RigModel):
    engine = SymmetryEngine(rig, enabled=True)
    neck = rig.joint("neck")
    prop = rig.registry.add_prop("cube")

    assert engine.on_handle_change(EditMode.ROTATE, Selection(EntityKind.JOINT, neck.handle)) is None
    assert engine.on_handle_change(EditMode.ROTATE, Selection(EntityKind.PROP, prop.handle)) is None
    assert engine.on_handle_change(EditMode.MOVE, Selection(EntityKind.JOINT, rig.joint("l_wrist").handle)) is None


def test_toggle(rig: RigModel):
    engine = SymmetryEngine(rig)
    assert engine.toggle() is True
    assert engine.toggle() is False


def test_notification_during_mirror_write_is_ignored(rig: RigModel):
    engine = SymmetryEngine(rig, enabled=True)
    left = rig.joint("l_elbow")
    written = []
    renotified = []

    def listener(counterpart):
        written.append(counterpart.name)
        renotified.append(engine.on_handle_change(EditMode.ROTATE, Selection(EntityKind.JOINT, counterpart.handle)))

    engine.on_mirrored = listener
    left.transform.rotation[:] = R.from_euler("x", -40, degrees=True).as_quat()

    result = engine.on_handle_change(EditMode.ROTATE, Selection(EntityKind.JOINT, left.handle))

    assert result is rig.joint("r_elbow")
    assert written == ["r_elbow"]
    assert renotified == [None]
    assert_same_rotation(rig.joint("r_elbow").transform.rotation, mirror_quaternion(left.transform.rotation))

    renotified.clear()
    engine.on_handle_change(EditMode.ROTATE, Selection(EntityKind.JOINT, rig.joint("r_elbow").handle))
    assert written == ["r_elbow", "l_elbow"]
    assert renotified == [None]
