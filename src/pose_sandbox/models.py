import math
from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field, FiniteFloat, field_validator

from pose_sandbox.posing.types import EditMode, PropType


class StoredArtifact(BaseModel):
    uri: str
    content_type: str


class ModelImportRequest(BaseModel):
    source_uri: str = Field(description="S3 URI or absolute local path to a .gltf/.glb asset")
    name: Optional[str] = Field(default=None, description="Optional display name for the model root")

    @field_validator("source_uri")
    @classmethod
    def validate_source_uri(cls, value: str) -> str:
        if not value:
            msg = "source_uri must not be empty"
            raise ValueError(msg)
        return value


class PoseExportRequest(BaseModel):
    output_uri: Optional[str] = Field(
        default=None,
        description="Optional S3 URI or local directory for the exported pose document",
    )
    filename: str = Field(default="pose.json")

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            msg = "filename must be a plain file name"
            raise ValueError(msg)
        return value


class PoseLoadRequest(BaseModel):
    source_uri: str = Field(description="S3 URI or local path of a pose document")
    joints_only: bool = Field(default=False)


class PropRequest(BaseModel):
    type: PropType = Field(default=PropType.CUBE)


class ScatterRequest(BaseModel):
    count: int = Field(default=5, ge=1, le=50)


class HitRequest(BaseModel):
    handle: int
    distance: float = 0.0


class ModeRequest(BaseModel):
    mode: EditMode


class SymmetryRequest(BaseModel):
    enabled: bool


class NotesRequest(BaseModel):
    notes: str = ""


Vector3 = Annotated[list[FiniteFloat], Field(min_length=3, max_length=3)]
Quaternion = Annotated[list[FiniteFloat], Field(min_length=4, max_length=4)]


class EditRequest(BaseModel):
    position: Optional[Vector3] = None
    rotation: Optional[Quaternion] = None
    scale: Optional[Vector3] = None

    @field_validator("rotation")
    @classmethod
    def validate_rotation(cls, value: Optional[list[float]]) -> Optional[list[float]]:
        if value is not None and math.sqrt(sum(component * component for component in value)) < 1e-12:
            msg = "rotation must be a non-zero quaternion"
            raise ValueError(msg)
        return value


class ApplyResponse(BaseModel):
    joints_applied: int
    joints_skipped: int
    props_created: Optional[int] = None


class SessionState(BaseModel):
    mode: EditMode
    symmetry: bool
    selection: Optional[dict[str, Any]] = None
    target: Optional[dict[str, Any]] = None
    notes: str = ""


class EntityResponse(BaseModel):
    handle: int
    kind: str
    name: str
    position: list[float]
    rotation: list[float]
    scale: list[float]
    type: Optional[str] = None
    source: Optional[str] = None
