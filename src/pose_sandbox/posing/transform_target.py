"""
Transform Target Policy Module

Decides which node the transform handle attaches to for the current edit
mode and selection.

In scale mode a selected joint hands the handle to its visible part. Joint
transforms are inherited by every descendant joint, so scaling the joint
itself would compound down the chain and distort the rig's proportions.
"""

from typing import Optional

from pose_sandbox.posing.entity_registry import EntityRegistry
from pose_sandbox.posing.types import EditMode, Entity, EntityKind, Selection


def resolve_transform_target(
    mode: EditMode,
    selection: Optional[Selection],
    registry: EntityRegistry,
) -> Optional[Entity]:
    """
    Return the node that should receive the transform handle, or None.

    Args:
        mode: Current edit mode
        selection: Current selection (None when nothing is selected)
        registry: Registry the selection's handle belongs to

    Returns:
        Target entity, or None for orbit mode, an empty selection or a
        stale handle
    """
    if selection is None or mode == EditMode.ORBIT:
        return None

    entity = registry.get(selection.handle)
    if entity is None:
        return None

    if entity.kind == EntityKind.JOINT:
        if mode == EditMode.SCALE and entity.part is not None:
            part = registry.get(entity.part)
            return part if part is not None else entity
        return entity

    if entity.kind in (EntityKind.PROP, EntityKind.IMPORTED_MODEL, EntityKind.PART):
        return entity

    raise ValueError(f"Unhandled entity kind: {entity.kind}")


class TransformHandle:
    """
    On-screen manipulator state: the attached node plus the edit outline.

    The renderer polls ``outline_dirty`` once per frame and clears it with
    ``consume_outline``.
    """

    def __init__(self):
        self.target: Optional[Entity] = None
        self.outline_visible = False
        self.outline_dirty = False

    @property
    def attached(self) -> bool:
        return self.target is not None

    def attach(self, target: Optional[Entity]) -> None:
        if target is None:
            self.detach()
            return
        self.target = target
        self.outline_visible = True
        self.outline_dirty = True

    def detach(self) -> None:
        self.target = None
        self.outline_visible = False
        self.outline_dirty = False

    def mark_edited(self) -> None:
        if self.target is not None:
            self.outline_dirty = True

    def consume_outline(self) -> bool:
        dirty = self.outline_dirty
        self.outline_dirty = False
        return dirty
