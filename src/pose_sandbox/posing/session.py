"""
Pose Session

Coordinates the posing modules for a single scene. The session is the
explicit context object that carries the current edit mode and selection;
every input event and UI action goes through one of its methods.

Workflow:
1. Build the rig and capture its rest pose
2. Resolve hits to a selection
3. Attach the transform handle according to mode and selection
4. Apply handle edits and mirror them when symmetry is on
5. Serialize, apply or reset poses
"""

import random
from typing import Any, List, Mapping, Optional, Union

import numpy as np
from loguru import logger
from scipy.spatial.transform import Rotation as R

from pose_sandbox.config import AppSettings, get_settings
from pose_sandbox.posing.entity_registry import EntityRef, EntityRegistry
from pose_sandbox.posing.pose_codec import ApplySummary, PoseCodec, unit_quaternion
from pose_sandbox.posing.presets import get_preset
from pose_sandbox.posing.rest_state import RestState
from pose_sandbox.posing.rig_model import RigModel
from pose_sandbox.posing.selection import Hit, SelectionResolver
from pose_sandbox.posing.symmetry import SymmetryEngine
from pose_sandbox.posing.transform_target import TransformHandle, resolve_transform_target
from pose_sandbox.posing.types import (
    EditMode,
    Entity,
    EntityKind,
    PoseDocument,
    Prop,
    PropType,
    Selection,
)


def _finite_vector(values: Optional[Any], size: int, label: str) -> Optional[np.ndarray]:
    if values is None:
        return None
    vector = np.asarray(values, dtype=np.float64).reshape(-1)
    if vector.shape != (size,):
        raise ValueError(f"{label} must have {size} components, got {vector.size}")
    if not np.all(np.isfinite(vector)):
        raise ValueError(f"{label} must be finite")
    return vector


class PoseSession:
    """
    Owns the rig, the entity registry and the interaction state for one scene.
    """

    RANDOM_POSE_JOINTS = ("l_shoulder", "r_shoulder", "l_elbow", "r_elbow", "neck", "chest")
    RANDOM_POSE_RANGE = 0.45  # radians either side of rest, per axis

    def __init__(self, settings: Optional[AppSettings] = None, rng: Optional[random.Random] = None):
        """
        Build the rig and capture its rest pose.

        Args:
            settings: Application settings (defaults to the cached environment settings)
            rng: Random source for prop placement and random poses
        """
        self.settings = settings or get_settings()
        self.rng = rng or random.Random(self.settings.random_seed)

        self.registry = EntityRegistry(
            spawn_extent=self.settings.prop_spawn_extent,
            spawn_height=self.settings.prop_spawn_height,
            rng=self.rng,
        )
        self.rig = RigModel(self.registry)
        self.resolver = SelectionResolver(self.registry)
        self.handle = TransformHandle()
        self.symmetry = SymmetryEngine(self.rig, enabled=self.settings.symmetry_enabled)
        self.rest = RestState(self.rig)
        self.codec = PoseCodec(self.rig, self.registry)

        self.mode = EditMode(self.settings.default_mode)
        self.selection: Optional[Selection] = None

        self.rebuild_rig()

    # Rig ------------------------------------------------------------------

    def rebuild_rig(self) -> None:
        """Discard the current rig, build a fresh one and capture its rest pose."""
        if self.selection is not None and self.selection.kind in (EntityKind.JOINT, EntityKind.PART):
            self.clear_selection()
        self.rig.build()
        self.rest.snapshot()

    # Selection and targeting ----------------------------------------------

    def pick(self, hit: Hit) -> Optional[Selection]:
        """
        Select whatever the hit resolves to.

        Picking is ignored in orbit mode, and a hit that resolves to nothing
        keeps the current selection.
        """
        if self.mode == EditMode.ORBIT:
            return self.selection

        selection = self.resolver.resolve(hit)
        if selection is not None:
            self._set_selection(selection)
        return self.selection

    def select(self, handle: int) -> Optional[Selection]:
        selection = self.resolver.select(handle)
        if selection is None:
            logger.debug("Cannot select unknown handle {}", handle)
            return self.selection
        self._set_selection(selection)
        return self.selection

    def clear_selection(self) -> None:
        self.selection = None
        self.handle.detach()

    def set_mode(self, mode: Union[str, EditMode]) -> EditMode:
        self.mode = EditMode(mode)
        self.refresh_target()
        return self.mode

    def refresh_target(self) -> Optional[Entity]:
        """Re-attach the transform handle for the current mode and selection."""
        if self.selection is not None and self.selection.handle not in self.registry:
            self.selection = None

        target = resolve_transform_target(self.mode, self.selection, self.registry)
        if target is None:
            self.handle.detach()
        else:
            self.handle.attach(target)
        return target

    def _set_selection(self, selection: Selection) -> None:
        self.selection = selection
        entity = self.registry.get(selection.handle)
        logger.debug("Selected {} {}", selection.kind.value, getattr(entity, "name", selection.handle))
        self.refresh_target()

    # Editing --------------------------------------------------------------

    def apply_edit(
        self,
        position: Optional[Any] = None,
        rotation: Optional[Any] = None,
        scale: Optional[Any] = None,
    ) -> Optional[Entity]:
        """
        Write an edit onto the handle's target, as a drag of the handle would.

        Every component is checked before anything is written.

        Returns:
            The edited node, or None when no handle is attached

        Raises:
            ValueError: if a component has the wrong length, is not finite,
                or the rotation is a zero quaternion
        """
        target = self.handle.target
        if target is None:
            return None

        position = _finite_vector(position, 3, "position")
        scale = _finite_vector(scale, 3, "scale")
        quaternion = _finite_vector(rotation, 4, "rotation")
        if quaternion is not None:
            norm = np.linalg.norm(quaternion)
            if norm < 1e-12:
                raise ValueError("rotation must be a non-zero quaternion")
            quaternion = unit_quaternion(quaternion, norm)

        if position is not None:
            target.transform.position[:] = position
        if quaternion is not None:
            target.transform.rotation[:] = quaternion
        if scale is not None:
            target.transform.scale[:] = scale

        self.on_handle_change()
        return target

    def on_handle_change(self) -> None:
        """Notification that the node under the handle was edited."""
        self.handle.mark_edited()
        self.symmetry.on_handle_change(self.mode, self.selection)

    # Props ----------------------------------------------------------------

    def add_prop(self, kind: Union[str, PropType]) -> Prop:
        return self.registry.add_prop(kind)

    def scatter_props(self, count: int = 5) -> List[Prop]:
        kinds = list(PropType)
        return [self.registry.add_prop(self.rng.choice(kinds)) for _ in range(count)]

    def remove_prop(self, ref: EntityRef) -> bool:
        removed = self.registry.remove_prop(ref)
        if removed:
            self.refresh_target()
        return removed

    def delete_selected_prop(self) -> bool:
        if self.selection is None or self.selection.kind != EntityKind.PROP:
            return False
        return self.remove_prop(self.selection.handle)

    # Poses ----------------------------------------------------------------

    def reset_pose(self) -> None:
        self.rig.reset_rotations()
        self.handle.mark_edited()

    def restore_rest_pose(self) -> int:
        restored = self.rest.restore()
        self.handle.mark_edited()
        return restored

    def random_pose(self) -> None:
        for name in self.RANDOM_POSE_JOINTS:
            joint = self.rig.joint(name)
            if joint is None:
                continue
            angles = [self.rng.uniform(-self.RANDOM_POSE_RANGE, self.RANDOM_POSE_RANGE) for _ in range(3)]
            joint.transform.rotation[:] = R.from_euler("xyz", angles).as_quat()
        self.handle.mark_edited()

    def serialize(self) -> PoseDocument:
        return self.codec.serialize()

    def apply_full(self, document: Union[PoseDocument, Mapping[str, Any]]) -> ApplySummary:
        summary = self.codec.apply_full(document)
        self.refresh_target()
        return summary

    def apply_joints_only(self, document: Union[PoseDocument, Mapping[str, Any]]) -> ApplySummary:
        summary = self.codec.apply_joints_only(document)
        self.handle.mark_edited()
        return summary

    def apply_preset(self, name: str) -> ApplySummary:
        return self.apply_joints_only(get_preset(name))

    def describe(self) -> dict:
        target = self.handle.target
        return {
            "mode": self.mode.value,
            "symmetry": self.symmetry.enabled,
            "selection": self.selection.to_dict() if self.selection else None,
            "target": target.to_dict() if target is not None else None,
            "notes": self.codec.notes,
        }
