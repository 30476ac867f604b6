from __future__ import annotations

import pytest

from pose_sandbox.posing.entity_registry import EntityRegistry
from pose_sandbox.posing.rig_model import RigModel
from pose_sandbox.posing.selection import Hit, SelectionResolver
from pose_sandbox.posing.types import EntityKind, ModelNode, Part, Selection


@pytest.fixture
def rig() -> RigModel:
    rig = RigModel(EntityRegistry())
    rig.build()
    return rig


@pytest.fixture
def resolver(rig: RigModel) -> SelectionResolver:
    return SelectionResolver(rig.registry)


def test_hit_on_joint_part_selects_joint(rig: RigModel, resolver: SelectionResolver):
    forearm = rig.part_of(rig.joint("r_elbow"))

    selection = resolver.resolve(Hit(handle=forearm.handle, distance=3.2))

    assert selection == Selection(EntityKind.JOINT, rig.joint("r_elbow").handle)


def test_hit_on_prop_mesh_selects_prop(rig: RigModel, resolver: SelectionResolver):
    prop = rig.registry.add_prop("cylinder")

    selection = resolver.resolve(Hit(handle=prop.parts[0]))

    assert selection == Selection(EntityKind.PROP, prop.handle)


def test_hit_deep_inside_imported_model_selects_root(rig: RigModel, resolver: SelectionResolver):
    tree = ModelNode(name="chair", children=[ModelNode(name="frame", children=[ModelNode(name="leg")])])
    model = rig.registry.register_imported_model(tree)
    leg = next(rig.registry.get(h) for h in model.parts if rig.registry.get(h).name == "leg")

    selection = resolver.resolve(Hit(handle=leg.handle))

    assert selection == Selection(EntityKind.IMPORTED_MODEL, model.handle)


def test_unclaimed_node_falls_back_to_itself(rig: RigModel, resolver: SelectionResolver):
    helper = Part(handle=-1, name="gizmo_anchor")
    decal = rig.registry.attach_part(helper, "decal")

    selection = resolver.resolve(Hit(handle=decal.handle))

    assert selection == Selection(EntityKind.PART, decal.handle)


def test_root_joint_without_joint_parent_selects_itself(rig: RigModel, resolver: SelectionResolver):
    selection = resolver.resolve(Hit(handle=rig.root.handle))
    assert selection == Selection(EntityKind.JOINT, rig.root.handle)


def test_unknown_handle_resolves_to_nothing(resolver: SelectionResolver):
    assert resolver.resolve(Hit(handle=424242)) is None


def test_direct_selection_promotes_model_part(rig: RigModel, resolver: SelectionResolver):
    model = rig.registry.register_imported_model(ModelNode(name="lamp", children=[ModelNode(name="shade")]))

    selection = resolver.select(model.parts[0])

    assert selection == Selection(EntityKind.IMPORTED_MODEL, model.handle)
    assert resolver.promote(None) is None
