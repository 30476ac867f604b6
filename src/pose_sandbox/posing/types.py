"""
Data models and types for the pose engine.

Every scene entity lives in a single arena and is addressed by an integer
handle. Entity kinds form a closed set; callers dispatch on ``kind`` rather
than probing attributes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

import numpy as np


IDENTITY_QUATERNION = (0.0, 0.0, 0.0, 1.0)


class EntityKind(str, Enum):
    """Kinds of entity tracked by the registry."""

    JOINT = "joint"
    PART = "part"
    PROP = "prop"
    IMPORTED_MODEL = "imported_model"


class EditMode(str, Enum):
    """Transform handle modes."""

    ORBIT = "orbit"
    ROTATE = "rotate"
    MOVE = "move"
    SCALE = "scale"


class PropType(str, Enum):
    """Primitive prop shapes that can be spawned."""

    CUBE = "cube"
    SPHERE = "sphere"
    CYLINDER = "cylinder"
    CONE = "cone"
    PYRAMID = "pyramid"
    TORUS = "torus"
    RING = "ring"
    DISC = "disc"
    PLANE = "plane"


def _vec3(values=(0.0, 0.0, 0.0)) -> np.ndarray:
    return np.asarray(values, dtype=np.float64).reshape(3).copy()


def _quat(values=IDENTITY_QUATERNION) -> np.ndarray:
    return np.asarray(values, dtype=np.float64).reshape(4).copy()


@dataclass
class Transform:
    """Local transform. Rotation is a unit quaternion in ``[x, y, z, w]`` order."""

    position: np.ndarray = field(default_factory=_vec3)
    rotation: np.ndarray = field(default_factory=_quat)
    scale: np.ndarray = field(default_factory=lambda: _vec3((1.0, 1.0, 1.0)))

    def __post_init__(self) -> None:
        self.position = _vec3(self.position)
        self.rotation = _quat(self.rotation)
        self.scale = _vec3(self.scale)

    def copy(self) -> "Transform":
        return Transform(self.position, self.rotation, self.scale)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "position": self.position.tolist(),
            "rotation": self.rotation.tolist(),
            "scale": self.scale.tolist(),
        }


@dataclass
class Joint:
    """A pose-bearing node of the rig."""

    handle: int
    name: str
    transform: Transform = field(default_factory=Transform)
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)
    part: Optional[int] = None
    kind: EntityKind = field(default=EntityKind.JOINT, init=False)

    def to_dict(self) -> dict:
        return {
            "handle": self.handle,
            "kind": self.kind.value,
            "name": self.name,
            "parent": self.parent,
            "children": list(self.children),
            "part": self.part,
            **self.transform.to_dict(),
        }


@dataclass
class Part:
    """Visible geometry attached under a joint, prop or imported model."""

    handle: int
    name: str
    transform: Transform = field(default_factory=Transform)
    parent: Optional[int] = None
    import_root: Optional[int] = None
    kind: EntityKind = field(default=EntityKind.PART, init=False)

    def to_dict(self) -> dict:
        return {
            "handle": self.handle,
            "kind": self.kind.value,
            "name": self.name,
            "parent": self.parent,
            "import_root": self.import_root,
            **self.transform.to_dict(),
        }


@dataclass
class Prop:
    """A freestanding scene object, never parented into the rig."""

    handle: int
    name: str
    prop_type: PropType
    transform: Transform = field(default_factory=Transform)
    parts: List[int] = field(default_factory=list)
    kind: EntityKind = field(default=EntityKind.PROP, init=False)

    def to_dict(self) -> dict:
        return {
            "handle": self.handle,
            "kind": self.kind.value,
            "name": self.name,
            "type": self.prop_type.value,
            "parts": list(self.parts),
            **self.transform.to_dict(),
        }


@dataclass
class ImportedModel:
    """Root of an externally loaded node tree; its internal parts are opaque."""

    handle: int
    name: str
    transform: Transform = field(default_factory=Transform)
    parts: List[int] = field(default_factory=list)
    source: Optional[str] = None
    kind: EntityKind = field(default=EntityKind.IMPORTED_MODEL, init=False)

    def to_dict(self) -> dict:
        return {
            "handle": self.handle,
            "kind": self.kind.value,
            "name": self.name,
            "parts": list(self.parts),
            "source": self.source,
            **self.transform.to_dict(),
        }


Entity = Union[Joint, Part, Prop, ImportedModel]


@dataclass
class ModelNode:
    """Externally constructed node tree handed over by a model loader."""

    name: str
    transform: Transform = field(default_factory=Transform)
    children: List["ModelNode"] = field(default_factory=list)

    def walk(self):
        """Yield every node below this one, depth first."""
        for child in self.children:
            yield child
            yield from child.walk()


@dataclass(frozen=True)
class Selection:
    """The logical entity the user is manipulating."""

    kind: EntityKind
    handle: int

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "handle": self.handle}


@dataclass
class RestEntry:
    """Authored transform of a single joint and its part."""

    position: np.ndarray
    rotation: np.ndarray
    scale: np.ndarray
    part_scale: Optional[np.ndarray] = None


@dataclass
class PoseDocument:
    """Serialized pose: joint rotations, prop transforms and notes."""

    version: int = 1
    notes: str = ""
    joints: Dict[str, List[float]] = field(default_factory=dict)
    props: Optional[List[dict]] = None
    saved_at: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to the JSON document shape."""
        data = {
            "version": self.version,
            "notes": self.notes,
            "joints": {name: list(rotation) for name, rotation in self.joints.items()},
        }
        if self.props is not None:
            data["props"] = [dict(prop) for prop in self.props]
        if self.saved_at is not None:
            data["savedAt"] = self.saved_at
        return data
