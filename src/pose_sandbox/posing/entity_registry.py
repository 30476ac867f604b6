"""
Entity Registry Module

Owns the arena of scene entities. Joints are created here on behalf of the
rig model; props and imported models are added and removed through the
explicit operations below.
"""

import itertools
import random
from typing import Dict, Iterator, List, Optional, Union

from loguru import logger

from pose_sandbox.posing.types import (
    Entity,
    EntityKind,
    ImportedModel,
    Joint,
    ModelNode,
    Part,
    Prop,
    PropType,
    Transform,
)


EntityRef = Union[int, Entity]


def _handle_of(ref: EntityRef) -> int:
    return ref if isinstance(ref, int) else ref.handle


class EntityRegistry:
    """
    Arena of joints, parts, props and imported models keyed by integer handle.

    Handles are never reused within a registry, so a stale handle held by a
    caller resolves to nothing instead of to a different entity.
    """

    def __init__(
        self,
        spawn_extent: float = 1.0,
        spawn_height: float = 0.28,
        rng: Optional[random.Random] = None,
    ):
        self.spawn_extent = spawn_extent
        self.spawn_height = spawn_height
        self._rng = rng or random.Random()
        self._entities: Dict[int, Entity] = {}
        self._handles = itertools.count(1)
        self._props: List[int] = []
        self._imported: List[int] = []
        self._prop_serial = 0

    # Lookup ---------------------------------------------------------------

    def get(self, ref: EntityRef) -> Optional[Entity]:
        return self._entities.get(_handle_of(ref))

    def __contains__(self, ref: EntityRef) -> bool:
        return _handle_of(ref) in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(list(self._entities.values()))

    def parent_of(self, ref: EntityRef) -> Optional[Entity]:
        entity = self.get(ref)
        if entity is None:
            return None
        if entity.kind in (EntityKind.JOINT, EntityKind.PART):
            return self.get(entity.parent) if entity.parent is not None else None
        return None

    @property
    def props(self) -> List[Prop]:
        return [self._entities[h] for h in self._props]

    @property
    def imported_models(self) -> List[ImportedModel]:
        return [self._entities[h] for h in self._imported]

    def is_prop(self, ref: EntityRef) -> bool:
        return _handle_of(ref) in self._props

    def is_imported_model(self, ref: EntityRef) -> bool:
        return _handle_of(ref) in self._imported

    # Rig support ----------------------------------------------------------

    def create_joint(
        self,
        name: str,
        transform: Optional[Transform] = None,
        parent: Optional[Joint] = None,
    ) -> Joint:
        joint = Joint(
            handle=next(self._handles),
            name=name,
            transform=transform or Transform(),
            parent=parent.handle if parent is not None else None,
        )
        self._entities[joint.handle] = joint
        if parent is not None:
            parent.children.append(joint.handle)
        return joint

    def attach_part(
        self,
        owner: Entity,
        name: str,
        transform: Optional[Transform] = None,
        import_root: Optional[int] = None,
    ) -> Part:
        """
        Create a part parented under ``owner`` (a joint, prop, model or part).

        Parts that end up beneath a prop or imported model, directly or under
        another part, are recorded in that entity's ``parts`` so removing it
        releases them too.
        """
        part = Part(
            handle=next(self._handles),
            name=name,
            transform=transform or Transform(),
            parent=owner.handle,
            import_root=import_root,
        )
        self._entities[part.handle] = part

        container = self._container_of(owner)
        if container is not None:
            container.parts.append(part.handle)
        return part

    def _container_of(self, entity: Entity) -> Optional[Union[Prop, ImportedModel]]:
        while entity is not None and entity.kind == EntityKind.PART:
            entity = self._entities.get(entity.parent) if entity.parent is not None else None
        if entity is not None and entity.kind in (EntityKind.PROP, EntityKind.IMPORTED_MODEL):
            return entity
        return None

    def discard_joint_tree(self, root: Joint) -> int:
        """Remove a joint, all descendant joints and their parts. Returns the count removed."""
        removed = 0
        stack = [root.handle]
        while stack:
            joint = self._entities.pop(stack.pop(), None)
            if joint is None:
                continue
            removed += 1
            stack.extend(joint.children)
            if joint.part is not None and self._entities.pop(joint.part, None) is not None:
                removed += 1
        return removed

    # Props ----------------------------------------------------------------

    def add_prop(
        self,
        kind: Union[str, PropType],
        name: Optional[str] = None,
        transform: Optional[Transform] = None,
    ) -> Prop:
        """
        Instantiate a prop of the given type.

        Without an explicit transform the prop is dropped at a random planar
        position within ``spawn_extent`` of the origin.

        Raises:
            ValueError: if ``kind`` is not a known prop type
        """
        prop_type = PropType(str(kind).lower()) if not isinstance(kind, PropType) else kind
        self._prop_serial += 1

        if transform is None:
            transform = Transform(
                position=(
                    self._rng.uniform(-self.spawn_extent, self.spawn_extent),
                    self.spawn_height,
                    self._rng.uniform(-self.spawn_extent, self.spawn_extent),
                )
            )

        prop = Prop(
            handle=next(self._handles),
            name=name or f"prop_{prop_type.value}_{self._prop_serial}",
            prop_type=prop_type,
            transform=transform,
        )
        self._entities[prop.handle] = prop
        self._props.append(prop.handle)

        self.attach_part(prop, f"{prop.name}_mesh")

        logger.debug("Added prop {} ({})", prop.name, prop.handle)
        return prop

    def remove_prop(self, ref: EntityRef) -> bool:
        """Detach and release a prop. Unknown references are ignored."""
        handle = _handle_of(ref)
        if handle not in self._props:
            logger.debug("remove_prop ignored unknown handle {}", handle)
            return False

        self._props.remove(handle)
        prop = self._entities.pop(handle)
        for part in prop.parts:
            self._entities.pop(part, None)
        logger.debug("Removed prop {} ({})", prop.name, handle)
        return True

    def clear_props(self) -> int:
        count = 0
        for handle in list(self._props):
            count += self.remove_prop(handle)
        return count

    # Imported models ------------------------------------------------------

    def register_imported_model(self, root: ModelNode, source: Optional[str] = None) -> ImportedModel:
        """
        Add an externally constructed node tree.

        Every node beneath the root becomes a part tagged with the root's
        handle so hit resolution can walk back to it.
        """
        model = ImportedModel(
            handle=next(self._handles),
            name=root.name,
            transform=root.transform.copy(),
            source=source,
        )
        self._entities[model.handle] = model
        self._imported.append(model.handle)

        stack = [(model, child) for child in reversed(root.children)]
        while stack:
            owner, node = stack.pop()
            part = self.attach_part(owner, node.name, node.transform.copy(), import_root=model.handle)
            stack.extend((part, child) for child in reversed(node.children))

        logger.info("Registered imported model {} with {} part(s)", model.name, len(model.parts))
        return model

    def remove_imported_model(self, ref: EntityRef) -> bool:
        handle = _handle_of(ref)
        if handle not in self._imported:
            return False

        self._imported.remove(handle)
        model = self._entities.pop(handle)
        for part in model.parts:
            self._entities.pop(part, None)
        logger.debug("Removed imported model {} ({})", model.name, handle)
        return True
