"""
Rig Model Module

Builds the mannequin joint hierarchy and exposes it as an ordered,
name-indexed list of joints.

The hierarchy is fixed. Rebuilding throws the previous tree away and
constructs a fresh one; joints are never mutated structurally in place.
"""

from typing import Dict, List, Optional, Tuple

from loguru import logger

from pose_sandbox.posing.entity_registry import EntityRegistry
from pose_sandbox.posing.types import Joint, Part, Transform, IDENTITY_QUATERNION


Vec3 = Tuple[float, float, float]


class RigModel:
    """
    Box mannequin rig: a root, hips, chest and neck on the centre line and
    left/right chains for the arms and legs.

    Left-side joints sit at negative X. Each joint owns at most one visible
    part; the joint -> part index is recorded on the joint at build time.
    """

    # (joint, parent, local position, visible part or None)
    # Part entries are (part name, local offset from the joint).
    SKELETON: List[Tuple[str, Optional[str], Vec3, Optional[Tuple[str, Vec3]]]] = [
        ("char_root", None, (0.0, 1.0, 0.0), None),
        ("hips", "char_root", (0.0, 0.9, 0.0), ("torso_mesh", (0.0, 0.6, 0.0))),
        ("chest", "hips", (0.0, 1.15, 0.0), None),
        ("neck", "chest", (0.0, 0.1, 0.0), ("head_mesh", (0.0, 0.32, 0.0))),
        ("l_shoulder", "chest", (-0.68, 0.05, 0.0), ("l_upperarm_mesh", (0.0, -0.45, 0.0))),
        ("r_shoulder", "chest", (0.68, 0.05, 0.0), ("r_upperarm_mesh", (0.0, -0.45, 0.0))),
        ("l_elbow", "l_shoulder", (0.0, -0.85, 0.0), ("l_forearm_mesh", (0.0, -0.38, 0.0))),
        ("r_elbow", "r_shoulder", (0.0, -0.85, 0.0), ("r_forearm_mesh", (0.0, -0.38, 0.0))),
        ("l_wrist", "l_elbow", (0.0, -0.78, 0.0), ("l_hand_mesh", (0.0, -0.11, 0.10))),
        ("r_wrist", "r_elbow", (0.0, -0.78, 0.0), ("r_hand_mesh", (0.0, -0.11, 0.10))),
        ("l_hip", "hips", (-0.28, 0.02, 0.0), ("l_thigh_mesh", (0.0, -0.48, 0.0))),
        ("r_hip", "hips", (0.28, 0.02, 0.0), ("r_thigh_mesh", (0.0, -0.48, 0.0))),
        ("l_knee", "l_hip", (0.0, -0.95, 0.0), ("l_shin_mesh", (0.0, -0.42, 0.0))),
        ("r_knee", "r_hip", (0.0, -0.95, 0.0), ("r_shin_mesh", (0.0, -0.42, 0.0))),
        ("l_ankle", "l_knee", (0.0, -0.92, 0.0), ("l_foot_mesh", (0.0, -0.09, 0.28))),
        ("r_ankle", "r_knee", (0.0, -0.92, 0.0), ("r_foot_mesh", (0.0, -0.09, 0.28))),
    ]

    def __init__(self, registry: EntityRegistry):
        self.registry = registry
        self._joints: List[Joint] = []
        self._by_name: Dict[str, Joint] = {}

    @property
    def built(self) -> bool:
        return bool(self._joints)

    @property
    def root(self) -> Optional[Joint]:
        return self._joints[0] if self._joints else None

    @property
    def joints(self) -> List[Joint]:
        return list(self._joints)

    @property
    def names(self) -> List[str]:
        return [joint.name for joint in self._joints]

    def build(self) -> List[Joint]:
        """
        Construct the joint hierarchy, discarding any previous tree.

        Returns:
            The joints in build order (parents before children)
        """
        self.clear()

        for name, parent_name, position, part_spec in self.SKELETON:
            parent = self._by_name[parent_name] if parent_name else None
            joint = self.registry.create_joint(name, Transform(position=position), parent)
            self._joints.append(joint)
            self._by_name[name] = joint

            if part_spec is not None:
                part_name, offset = part_spec
                part = self.registry.attach_part(joint, part_name, Transform(position=offset))
                joint.part = part.handle

        logger.info("Built rig with {} joints", len(self._joints))
        return self.joints

    def clear(self) -> None:
        if self._joints:
            removed = self.registry.discard_joint_tree(self._joints[0])
            logger.debug("Discarded previous rig ({} entities)", removed)
        self._joints = []
        self._by_name = {}

    def joint(self, name: str) -> Optional[Joint]:
        return self._by_name.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def part_of(self, joint: Joint) -> Optional[Part]:
        """First visible part of a joint, or None when it has none."""
        if joint.part is None:
            return None
        return self.registry.get(joint.part)

    def reset_rotations(self) -> None:
        """Set every joint rotation to identity. Position and scale are left alone."""
        for joint in self._joints:
            joint.transform.rotation[:] = IDENTITY_QUATERNION
