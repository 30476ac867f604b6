"""
Posing engine.

Rig model, entity registry, selection resolution, transform targeting,
symmetry, rest state and the pose document codec.
"""

from pose_sandbox.posing.pose_codec import PoseCodec, PoseValidationError
from pose_sandbox.posing.session import PoseSession
from pose_sandbox.posing.types import EditMode, EntityKind, PoseDocument, PropType, Selection

__all__ = [
    "PoseCodec",
    "PoseValidationError",
    "PoseSession",
    "EditMode",
    "EntityKind",
    "PoseDocument",
    "PropType",
    "Selection",
]
