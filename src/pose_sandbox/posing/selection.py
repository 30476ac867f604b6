"""
Selection Resolver Module

Maps a raw ray-cast hit onto the logical entity the user wants to
manipulate. Picking itself happens outside this package; the resolver only
sees the handle of the nearest intersected node.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from pose_sandbox.posing.entity_registry import EntityRegistry
from pose_sandbox.posing.types import Entity, EntityKind, Selection


@dataclass(frozen=True)
class Hit:
    """Nearest intersection reported by the picking collaborator."""

    handle: int
    distance: float = 0.0


class SelectionResolver:
    """
    Resolves hits to joints, props or imported-model roots.

    Walking up from the hit node, the first rule that matches wins:

    1. the node belongs to an imported model -> the model root
    2. the node's parent is a joint -> that joint
    3. the node is a registered prop -> the prop

    When nothing matches the hit node itself is selected.
    """

    def __init__(self, registry: EntityRegistry):
        self.registry = registry

    def resolve(self, hit: Hit) -> Optional[Selection]:
        """
        Resolve a hit to a selection.

        Args:
            hit: Ray-cast result from the picking collaborator

        Returns:
            The selection, or None if the hit handle is not registered
        """
        node = self.registry.get(hit.handle)
        if node is None:
            logger.debug("Hit on unknown handle {}", hit.handle)
            return None

        current: Optional[Entity] = node
        while current is not None:
            root = self._import_root(current)
            if root is not None:
                return Selection(EntityKind.IMPORTED_MODEL, root)

            parent = self.registry.parent_of(current)
            if parent is not None and parent.kind == EntityKind.JOINT:
                return Selection(EntityKind.JOINT, parent.handle)

            if current.kind == EntityKind.PROP and self.registry.is_prop(current):
                return Selection(EntityKind.PROP, current.handle)

            current = parent

        return Selection(node.kind, node.handle)

    def select(self, handle: int) -> Optional[Selection]:
        """Select an entity directly by handle, promoting imported-model parts to their root."""
        entity = self.registry.get(handle)
        if entity is None:
            return None
        return self.promote(Selection(entity.kind, entity.handle))

    def promote(self, selection: Optional[Selection]) -> Optional[Selection]:
        """Replace a selection on an imported model's internals with the model root."""
        if selection is None or selection.kind != EntityKind.PART:
            return selection

        part = self.registry.get(selection.handle)
        root = self._import_root(part) if part is not None else None
        if root is None:
            return selection
        return Selection(EntityKind.IMPORTED_MODEL, root)

    def _import_root(self, entity: Entity) -> Optional[int]:
        if entity.kind == EntityKind.IMPORTED_MODEL and self.registry.is_imported_model(entity):
            return entity.handle
        if entity.kind == EntityKind.PART and entity.import_root is not None:
            if self.registry.is_imported_model(entity.import_root):
                return entity.import_root
        return None
