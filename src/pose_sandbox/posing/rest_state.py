"""
Rest State Module

Captures the rig's authored pose right after it is built and restores it on
demand. Restoring is the only way to undo scale-mode edits; resetting
rotations leaves scales alone.
"""

from typing import Dict

from loguru import logger

from pose_sandbox.posing.rig_model import RigModel
from pose_sandbox.posing.types import RestEntry


class RestState:
    """Snapshot of every joint's transform and its part's scale."""

    def __init__(self, rig: RigModel):
        self.rig = rig
        self.entries: Dict[str, RestEntry] = {}

    @property
    def captured(self) -> bool:
        return bool(self.entries)

    def snapshot(self) -> Dict[str, RestEntry]:
        """
        Record the current transform of every joint.

        Returns:
            Dictionary mapping joint name to its rest entry
        """
        entries: Dict[str, RestEntry] = {}
        for joint in self.rig.joints:
            part = self.rig.part_of(joint)
            entries[joint.name] = RestEntry(
                position=joint.transform.position.copy(),
                rotation=joint.transform.rotation.copy(),
                scale=joint.transform.scale.copy(),
                part_scale=part.transform.scale.copy() if part is not None else None,
            )

        self.entries = entries
        logger.debug("Captured rest pose for {} joints", len(entries))
        return entries

    def restore(self) -> int:
        """
        Write the snapshot back onto the rig.

        Joints that are no longer present are skipped.

        Returns:
            Number of joints restored
        """
        restored = 0
        for name, entry in self.entries.items():
            joint = self.rig.joint(name)
            if joint is None:
                continue

            joint.transform.position[:] = entry.position
            joint.transform.rotation[:] = entry.rotation
            joint.transform.scale[:] = entry.scale

            part = self.rig.part_of(joint)
            if part is not None and entry.part_scale is not None:
                part.transform.scale[:] = entry.part_scale
            restored += 1

        logger.info("Restored rest pose on {} joints", restored)
        return restored
