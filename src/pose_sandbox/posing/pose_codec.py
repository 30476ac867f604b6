"""
Pose Codec Module

Serializes the current pose to a PoseDocument and applies documents back
onto the rig and prop set.

Documents are validated in full before anything is written, so a malformed
document never leaves a half-rebuilt prop set behind. Individual joint
entries are more forgiving: unknown joint names and malformed rotations are
skipped rather than rejected.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Mapping, Optional, Union

import numpy as np
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, ValidationError, field_validator

from pose_sandbox.posing.entity_registry import EntityRegistry
from pose_sandbox.posing.rig_model import RigModel
from pose_sandbox.posing.types import PoseDocument, PropType, Transform


POSE_DOCUMENT_VERSION = 1

Vector3 = Annotated[List[FiniteFloat], Field(min_length=3, max_length=3)]
Quaternion = Annotated[List[FiniteFloat], Field(min_length=4, max_length=4)]


class PoseValidationError(ValueError):
    """Raised when a pose document is not a well-formed object."""


class PropDescriptor(BaseModel):
    """Transform descriptor for a single prop inside a pose document."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    type: Optional[PropType] = None
    position: Vector3 = Field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: Quaternion = Field(default_factory=lambda: [0.0, 0.0, 0.0, 1.0])
    scale: Vector3 = Field(default_factory=lambda: [1.0, 1.0, 1.0])

    @field_validator("type", mode="before")
    @classmethod
    def normalise_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @field_validator("rotation")
    @classmethod
    def validate_rotation(cls, value: List[float]) -> List[float]:
        norm = math.sqrt(sum(component * component for component in value))
        if not math.isfinite(norm) or norm < 1e-12:
            msg = "rotation must be a non-zero quaternion"
            raise ValueError(msg)
        return value


class PoseDocumentPayload(BaseModel):
    """Incoming pose document, before it is applied."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    version: int = POSE_DOCUMENT_VERSION
    notes: Optional[str] = None
    joints: Optional[Dict[str, Any]] = None
    props: Optional[List[PropDescriptor]] = None
    saved_at: Optional[str] = Field(default=None, alias="savedAt")


@dataclass
class ApplySummary:
    """What an apply call actually changed."""

    joints_applied: int = 0
    joints_skipped: int = 0
    props_created: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "joints_applied": self.joints_applied,
            "joints_skipped": self.joints_skipped,
            "props_created": self.props_created,
        }


def resolve_prop_type(descriptor: PropDescriptor) -> PropType:
    """
    Pick the prop type for a descriptor.

    The explicit ``type`` field wins. Older documents carry no type, so the
    type is guessed from a known type name appearing in the prop's name,
    falling back to a cube.
    """
    if descriptor.type is not None:
        return descriptor.type

    name = descriptor.name.lower()
    for prop_type in PropType:
        if prop_type.value in name:
            return prop_type
    return PropType.CUBE


def unit_quaternion(quaternion: np.ndarray, norm: Optional[float] = None) -> np.ndarray:
    """Normalize a quaternion, leaving values that are already unit length bit-for-bit unchanged."""
    norm = np.linalg.norm(quaternion) if norm is None else norm
    if abs(norm - 1.0) <= 1e-12:
        return quaternion
    return quaternion / norm


def parse_rotation(value: Any) -> Optional[np.ndarray]:
    """Return a unit quaternion from a ``[x, y, z, w]`` list, or None if malformed."""
    if not isinstance(value, (list, tuple)) or len(value) != 4:
        return None
    try:
        quaternion = np.asarray([float(component) for component in value], dtype=np.float64)
    except (TypeError, ValueError):
        return None

    norm = np.linalg.norm(quaternion)
    if not np.isfinite(norm) or norm < 1e-12:
        return None
    return unit_quaternion(quaternion, norm)


class PoseCodec:
    """Reads and writes pose documents for a rig and its prop registry."""

    def __init__(self, rig: RigModel, registry: EntityRegistry, notes: str = ""):
        self.rig = rig
        self.registry = registry
        self.notes = notes

    def serialize(self) -> PoseDocument:
        """
        Capture the current pose.

        Returns:
            PoseDocument with every joint rotation and every prop transform
        """
        joints = {joint.name: joint.transform.rotation.tolist() for joint in self.rig.joints}
        props = [
            {
                "name": prop.name,
                "type": prop.prop_type.value,
                "position": prop.transform.position.tolist(),
                "rotation": prop.transform.rotation.tolist(),
                "scale": prop.transform.scale.tolist(),
            }
            for prop in self.registry.props
        ]
        saved_at = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

        return PoseDocument(
            version=POSE_DOCUMENT_VERSION,
            notes=self.notes,
            joints=joints,
            props=props,
            saved_at=saved_at,
        )

    def apply_full(self, document: Union[PoseDocument, Mapping[str, Any]]) -> ApplySummary:
        """
        Apply joint rotations, replace the prop set and restore notes.

        Props are only replaced when the document has a ``props`` field;
        without it the current props are kept.

        Raises:
            PoseValidationError: if the document is malformed
        """
        payload = self.validate(document)

        summary = self._apply_joints(payload)

        if payload.props is not None:
            self.registry.clear_props()
            for descriptor in payload.props:
                self.registry.add_prop(
                    resolve_prop_type(descriptor),
                    name=descriptor.name or None,
                    transform=Transform(
                        position=descriptor.position,
                        rotation=unit_quaternion(np.asarray(descriptor.rotation, dtype=np.float64)),
                        scale=descriptor.scale,
                    ),
                )
            summary.props_created = len(payload.props)

        if payload.notes is not None:
            self.notes = payload.notes

        logger.info(
            "Applied pose: {} joint(s), {} skipped, props {}",
            summary.joints_applied,
            summary.joints_skipped,
            "kept" if summary.props_created is None else f"replaced ({summary.props_created})",
        )
        return summary

    def apply_joints_only(self, document: Union[PoseDocument, Mapping[str, Any]]) -> ApplySummary:
        """
        Reset every joint rotation, then apply the document's joints.

        Props and notes are not touched.

        Raises:
            PoseValidationError: if the document is malformed
        """
        payload = self.validate(document)
        self.rig.reset_rotations()
        summary = self._apply_joints(payload)
        logger.info("Applied joints-only pose: {} joint(s)", summary.joints_applied)
        return summary

    def validate(self, document: Union[PoseDocument, Mapping[str, Any]]) -> PoseDocumentPayload:
        if isinstance(document, PoseDocument):
            document = document.to_dict()
        if not isinstance(document, Mapping):
            raise PoseValidationError(f"Pose document must be an object, got {type(document).__name__}")

        try:
            return PoseDocumentPayload.model_validate(dict(document))
        except ValidationError as exc:
            raise PoseValidationError(f"Invalid pose document: {exc}") from exc

    def _apply_joints(self, payload: PoseDocumentPayload) -> ApplySummary:
        summary = ApplySummary()
        for name, value in (payload.joints or {}).items():
            joint = self.rig.joint(name)
            if joint is None:
                logger.debug("Skipping unknown joint {}", name)
                summary.joints_skipped += 1
                continue

            rotation = parse_rotation(value)
            if rotation is None:
                logger.debug("Skipping malformed rotation for {}: {!r}", name, value)
                summary.joints_skipped += 1
                continue

            joint.transform.rotation[:] = rotation
            summary.joints_applied += 1
        return summary
