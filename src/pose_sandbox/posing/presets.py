"""
Built-in pose presets.

Presets are joints-only pose documents. They are applied with
``PoseCodec.apply_joints_only`` so scene props stay where they are.
"""

from typing import Dict, Tuple

from scipy.spatial.transform import Rotation as R

from pose_sandbox.posing.types import PoseDocument


# Euler angles in degrees, XYZ order. Arms hang along -Y at rest, so a
# rotation about Z raises them sideways: negative for the left arm (-X side).
PRESET_ROTATIONS: Dict[str, Dict[str, Tuple[float, float, float]]] = {
    "t_pose": {
        "l_shoulder": (0.0, 0.0, -90.0),
        "r_shoulder": (0.0, 0.0, 90.0),
    },
    "a_pose": {
        "l_shoulder": (0.0, 0.0, -45.0),
        "r_shoulder": (0.0, 0.0, 45.0),
    },
    "relaxed": {
        "l_shoulder": (0.0, 0.0, -8.0),
        "r_shoulder": (0.0, 0.0, 8.0),
        "l_elbow": (-12.0, 0.0, 0.0),
        "r_elbow": (-12.0, 0.0, 0.0),
        "neck": (5.0, 0.0, 0.0),
    },
    "wave": {
        "l_shoulder": (0.0, 0.0, -10.0),
        "r_shoulder": (0.0, 0.0, 150.0),
        "r_elbow": (0.0, 0.0, 30.0),
        "neck": (0.0, -10.0, 0.0),
    },
    "think": {
        "chest": (5.0, 0.0, 0.0),
        "neck": (15.0, 0.0, 0.0),
        "r_shoulder": (-60.0, 0.0, 20.0),
        "r_elbow": (-120.0, 0.0, 0.0),
    },
}

PRESET_LABELS: Dict[str, str] = {
    "t_pose": "T-Pose",
    "a_pose": "A-Pose",
    "relaxed": "Relaxed",
    "wave": "Wave",
    "think": "Thinking",
}


def create_presets() -> Dict[str, PoseDocument]:
    """Build the preset documents, keyed by preset name."""
    presets: Dict[str, PoseDocument] = {}
    for name, rotations in PRESET_ROTATIONS.items():
        joints = {
            joint: R.from_euler("xyz", angles, degrees=True).as_quat().tolist()
            for joint, angles in rotations.items()
        }
        presets[name] = PoseDocument(notes=PRESET_LABELS.get(name, name), joints=joints)
    return presets


def get_preset(name: str) -> PoseDocument:
    """
    Look up a preset by name.

    Raises:
        KeyError: if no preset has that name
    """
    presets = create_presets()
    if name not in presets:
        raise KeyError(f"Unknown preset: {name}")
    return presets[name]
