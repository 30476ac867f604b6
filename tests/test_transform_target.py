from __future__ import annotations

import pytest

from pose_sandbox.posing.entity_registry import EntityRegistry
from pose_sandbox.posing.rig_model import RigModel
from pose_sandbox.posing.transform_target import TransformHandle, resolve_transform_target
from pose_sandbox.posing.types import EditMode, EntityKind, ModelNode, Selection


@pytest.fixture
def rig() -> RigModel:
    rig = RigModel(EntityRegistry())
    rig.build()
    return rig


@pytest.fixture
def selections(rig: RigModel) -> dict[str, Selection]:
    prop = rig.registry.add_prop("cube")
    model = rig.registry.register_imported_model(ModelNode(name="crate", children=[ModelNode(name="lid")]))
    return {
        "joint": Selection(EntityKind.JOINT, rig.joint("l_knee").handle),
        "prop": Selection(EntityKind.PROP, prop.handle),
        "model": Selection(EntityKind.IMPORTED_MODEL, model.handle),
    }


def test_orbit_mode_never_has_a_target(rig: RigModel, selections: dict[str, Selection]):
    for selection in selections.values():
        assert resolve_transform_target(EditMode.ORBIT, selection, rig.registry) is None


@pytest.mark.parametrize("mode", [EditMode.ROTATE, EditMode.MOVE])
def test_rotate_and_move_target_the_entity(rig: RigModel, selections: dict[str, Selection], mode: EditMode):
    for selection in selections.values():
        target = resolve_transform_target(mode, selection, rig.registry)
        assert target.handle == selection.handle


def test_scale_mode_targets_joint_part(rig: RigModel, selections: dict[str, Selection]):
    target = resolve_transform_target(EditMode.SCALE, selections["joint"], rig.registry)

    assert target.kind == EntityKind.PART
    assert target.handle == rig.joint("l_knee").part


def test_scale_mode_falls_back_to_joint_without_part(rig: RigModel):
    chest = rig.joint("chest")
    target = resolve_transform_target(EditMode.SCALE, Selection(EntityKind.JOINT, chest.handle), rig.registry)
    assert target is chest


def test_scale_mode_targets_prop_and_model_root(rig: RigModel, selections: dict[str, Selection]):
    assert resolve_transform_target(EditMode.SCALE, selections["prop"], rig.registry).kind == EntityKind.PROP
    assert (
        resolve_transform_target(EditMode.SCALE, selections["model"], rig.registry).kind
        == EntityKind.IMPORTED_MODEL
    )


def test_no_selection_or_stale_handle_has_no_target(rig: RigModel, selections: dict[str, Selection]):
    assert resolve_transform_target(EditMode.ROTATE, None, rig.registry) is None

    rig.registry.remove_prop(selections["prop"].handle)
    assert resolve_transform_target(EditMode.ROTATE, selections["prop"], rig.registry) is None


def test_detaching_handle_drops_pending_outline(rig: RigModel):
    handle = TransformHandle()
    handle.attach(rig.joint("neck"))
    handle.mark_edited()
    assert handle.outline_dirty

    handle.attach(None)

    assert not handle.attached
    assert not handle.outline_visible
    assert not handle.outline_dirty
    handle.mark_edited()
    assert handle.consume_outline() is False
