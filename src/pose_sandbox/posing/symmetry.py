"""
Symmetry Module

Mirrors joint edits across the rig's sagittal (YZ) plane onto the opposite
side. Counterparts are found by swapping the left/right name prefix.
"""

from typing import Callable, Optional, Sequence, Tuple

import numpy as np
from loguru import logger
from scipy.spatial.transform import Rotation as R

from pose_sandbox.posing.rig_model import RigModel
from pose_sandbox.posing.types import EditMode, EntityKind, Joint, Selection


SIDE_PREFIXES: Tuple[Tuple[str, str], ...] = (
    ("l_", "r_"),
    ("left_", "right_"),
)

# Reflection across the YZ plane
SAGITTAL_REFLECTION = np.diag([-1.0, 1.0, 1.0])


def counterpart_name(name: str) -> Optional[str]:
    """
    Opposite-side joint name, or None for joints on the centre line.

    >>> counterpart_name("l_shoulder")
    'r_shoulder'
    """
    for left, right in SIDE_PREFIXES:
        if name.startswith(left):
            return right + name[len(left):]
        if name.startswith(right):
            return left + name[len(right):]
    return None


def mirror_quaternion(quaternion: Sequence[float]) -> np.ndarray:
    """
    Reflect a rotation across the sagittal plane.

    Computes M @ R @ M with M = diag(-1, 1, 1). The result is renormalized
    since the round trip through a matrix can leave a small scale error.

    Args:
        quaternion: Rotation as ``[x, y, z, w]``

    Returns:
        Mirrored unit quaternion as ``[x, y, z, w]``
    """
    matrix = R.from_quat(np.asarray(quaternion, dtype=np.float64)).as_matrix()
    mirrored = SAGITTAL_REFLECTION @ matrix @ SAGITTAL_REFLECTION
    result = R.from_matrix(mirrored).as_quat()
    return result / np.linalg.norm(result)


class SymmetryEngine:
    """
    Propagates rotation and part-scale edits from a joint to its counterpart.

    Only joints are mirrored. Props and imported models are never touched.
    """

    def __init__(
        self,
        rig: RigModel,
        enabled: bool = False,
        on_mirrored: Optional[Callable[[Joint], None]] = None,
    ):
        """
        Args:
            rig: Rig whose joints are mirrored
            enabled: Initial symmetry state
            on_mirrored: Called with the counterpart after each mirror write,
                while the write is still in progress. A listener that raises
                another handle-change notification from here is ignored.
        """
        self.rig = rig
        self.enabled = enabled
        self.on_mirrored = on_mirrored
        self._mirroring = False

    def toggle(self) -> bool:
        self.enabled = not self.enabled
        logger.info("Symmetry {}", "enabled" if self.enabled else "disabled")
        return self.enabled

    def set_enabled(self, enabled: bool) -> bool:
        self.enabled = bool(enabled)
        return self.enabled

    def counterpart(self, joint: Joint) -> Optional[Joint]:
        name = counterpart_name(joint.name)
        if name is None:
            return None
        return self.rig.joint(name)

    def on_handle_change(self, mode: EditMode, selection: Optional[Selection]) -> Optional[Joint]:
        """
        Mirror the edit just made through the transform handle.

        Called once per handle-change notification. A notification raised
        while the counterpart is being written is ignored, so a single edit
        mirrors at most once.

        Returns:
            The counterpart joint that was written, or None if nothing was mirrored
        """
        if not self.enabled or self._mirroring:
            return None
        if selection is None or selection.kind != EntityKind.JOINT:
            return None

        joint = self.rig.registry.get(selection.handle)
        if joint is None or joint.kind != EntityKind.JOINT:
            return None

        other = self.counterpart(joint)
        if other is None:
            logger.debug("No counterpart for {}", joint.name)
            return None

        self._mirroring = True
        try:
            if mode == EditMode.ROTATE:
                other.transform.rotation[:] = mirror_quaternion(joint.transform.rotation)
                self._notify(other)
                return other

            if mode == EditMode.SCALE:
                source = self.rig.part_of(joint)
                target = self.rig.part_of(other)
                if source is None or target is None:
                    return None
                target.transform.scale[:] = source.transform.scale
                self._notify(other)
                return other
        finally:
            self._mirroring = False

        return None

    def _notify(self, counterpart: Joint) -> None:
        if self.on_mirrored is not None:
            self.on_mirrored(counterpart)
