"""
Pose Sandbox

Pose/transform resolution engine for posing an articulated mannequin and
scene props: joint hierarchy, selection, transform targeting, symmetry,
rest pose and pose documents.
"""

from pose_sandbox.posing.session import PoseSession
from pose_sandbox.posing.types import EditMode, PoseDocument

__all__ = [
    "PoseSession",
    "EditMode",
    "PoseDocument",
]
