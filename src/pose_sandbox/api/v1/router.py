from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool

from pose_sandbox.models import (
    ApplyResponse,
    EditRequest,
    EntityResponse,
    HitRequest,
    ModeRequest,
    ModelImportRequest,
    NotesRequest,
    PoseExportRequest,
    PoseLoadRequest,
    PropRequest,
    ScatterRequest,
    SessionState,
    StoredArtifact,
    SymmetryRequest,
)
from pose_sandbox.posing.pose_codec import PoseValidationError
from pose_sandbox.posing.presets import create_presets, get_preset
from pose_sandbox.posing.selection import Hit
from pose_sandbox.posing.session import PoseSession
from pose_sandbox.services.model_import import ModelImporter, ModelImportError
from pose_sandbox.services.pose_export import PoseExportService
from pose_sandbox.services.storage import StorageError

router = APIRouter()


@lru_cache(maxsize=1)
def get_session() -> PoseSession:
    """The single scene this process edits."""
    return PoseSession()


def _state(session: PoseSession) -> SessionState:
    return SessionState(**session.describe())


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    """Simple liveness probe."""
    return {"status": "ok"}


@router.get("/state", response_model=SessionState)
def state(session: PoseSession = Depends(get_session)) -> SessionState:
    return _state(session)


# Poses ------------------------------------------------------------------


@router.get("/pose")
def get_pose(session: PoseSession = Depends(get_session)) -> dict[str, Any]:
    """Serialize the current pose document."""
    return session.serialize().to_dict()


@router.put("/pose", response_model=ApplyResponse)
def apply_pose(
    document: Any = Body(...),
    session: PoseSession = Depends(get_session),
) -> ApplyResponse:
    """Apply a full pose document: joint rotations, props and notes."""
    try:
        summary = session.apply_full(document)
    except PoseValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ApplyResponse(**summary.to_dict())


@router.put("/pose/notes", response_model=SessionState)
def set_notes(request: NotesRequest, session: PoseSession = Depends(get_session)) -> SessionState:
    session.codec.notes = request.notes
    return _state(session)


@router.post("/pose/reset", response_model=SessionState)
def reset_pose(session: PoseSession = Depends(get_session)) -> SessionState:
    """Zero every joint rotation."""
    session.reset_pose()
    return _state(session)


@router.post("/pose/restore", response_model=SessionState)
def restore_rest_pose(session: PoseSession = Depends(get_session)) -> SessionState:
    """Restore the authored rest pose, including part scales."""
    session.restore_rest_pose()
    return _state(session)


@router.post("/pose/random", response_model=SessionState)
def random_pose(session: PoseSession = Depends(get_session)) -> SessionState:
    session.random_pose()
    return _state(session)


@router.post("/pose/export", response_model=StoredArtifact, status_code=status.HTTP_201_CREATED)
async def export_pose(
    request: PoseExportRequest,
    session: PoseSession = Depends(get_session),
) -> StoredArtifact:
    """Write the current pose document to local storage or S3."""
    service = PoseExportService()
    document = session.serialize()
    try:
        return await run_in_threadpool(service.export, document, request.output_uri, request.filename)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.post("/pose/load", response_model=ApplyResponse)
async def load_pose(
    request: PoseLoadRequest,
    session: PoseSession = Depends(get_session),
) -> ApplyResponse:
    """Read a pose document from local storage or S3 and apply it."""
    service = PoseExportService()
    try:
        document = await run_in_threadpool(service.load, request.source_uri)
        if request.joints_only:
            summary = session.apply_joints_only(document)
        else:
            summary = session.apply_full(document)
    except (FileNotFoundError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return ApplyResponse(**summary.to_dict())


# Presets ----------------------------------------------------------------


@router.get("/presets")
def list_presets() -> dict[str, Any]:
    return {name: document.to_dict() for name, document in create_presets().items()}


@router.post("/presets/{name}/apply", response_model=ApplyResponse)
def apply_preset(name: str, session: PoseSession = Depends(get_session)) -> ApplyResponse:
    """Apply a built-in preset to the joints only."""
    try:
        get_preset(name)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown preset: {name}") from exc
    return ApplyResponse(**session.apply_preset(name).to_dict())


# Props ------------------------------------------------------------------


@router.get("/props", response_model=list[EntityResponse])
def list_props(session: PoseSession = Depends(get_session)) -> list[EntityResponse]:
    return [EntityResponse(**prop.to_dict()) for prop in session.registry.props]


@router.post("/props", response_model=EntityResponse, status_code=status.HTTP_201_CREATED)
def add_prop(request: PropRequest, session: PoseSession = Depends(get_session)) -> EntityResponse:
    prop = session.add_prop(request.type)
    return EntityResponse(**prop.to_dict())


@router.post("/props/scatter", response_model=list[EntityResponse], status_code=status.HTTP_201_CREATED)
def scatter_props(request: ScatterRequest, session: PoseSession = Depends(get_session)) -> list[EntityResponse]:
    return [EntityResponse(**prop.to_dict()) for prop in session.scatter_props(request.count)]


@router.delete("/props/{handle}", status_code=status.HTTP_204_NO_CONTENT)
def delete_prop(handle: int, session: PoseSession = Depends(get_session)) -> None:
    if not session.remove_prop(handle):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No prop with handle {handle}")


# Imported models --------------------------------------------------------


@router.post("/models", response_model=EntityResponse, status_code=status.HTTP_201_CREATED)
async def import_model(
    request: ModelImportRequest,
    session: PoseSession = Depends(get_session),
) -> EntityResponse:
    """Import a glTF model and register its root as a selectable entity."""
    importer = ModelImporter()
    try:
        model = await importer.import_model(session.registry, request.source_uri, name=request.name)
    except ModelImportError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if model is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Scene was replaced during import")
    return EntityResponse(**model.to_dict())


@router.delete("/models/{handle}", status_code=status.HTTP_204_NO_CONTENT)
def delete_model(handle: int, session: PoseSession = Depends(get_session)) -> None:
    if not session.registry.remove_imported_model(handle):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No model with handle {handle}")
    session.refresh_target()


# Interaction ------------------------------------------------------------


@router.post("/selection/hit", response_model=SessionState)
def pick(request: HitRequest, session: PoseSession = Depends(get_session)) -> SessionState:
    """Resolve a ray-cast hit to a selection and attach the handle."""
    session.pick(Hit(handle=request.handle, distance=request.distance))
    return _state(session)


@router.put("/selection/{handle}", response_model=SessionState)
def select(handle: int, session: PoseSession = Depends(get_session)) -> SessionState:
    if handle not in session.registry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No entity with handle {handle}")
    session.select(handle)
    return _state(session)


@router.delete("/selection", response_model=SessionState)
def clear_selection(session: PoseSession = Depends(get_session)) -> SessionState:
    session.clear_selection()
    return _state(session)


@router.put("/mode", response_model=SessionState)
def set_mode(request: ModeRequest, session: PoseSession = Depends(get_session)) -> SessionState:
    session.set_mode(request.mode)
    return _state(session)


@router.put("/symmetry", response_model=SessionState)
def set_symmetry(request: SymmetryRequest, session: PoseSession = Depends(get_session)) -> SessionState:
    session.symmetry.set_enabled(request.enabled)
    return _state(session)


@router.post("/edit", response_model=SessionState)
def edit(request: EditRequest, session: PoseSession = Depends(get_session)) -> SessionState:
    """Apply a transform-handle edit to the current target."""
    try:
        target = session.apply_edit(position=request.position, rotation=request.rotation, scale=request.scale)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if target is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No transform target in the current mode")
    return _state(session)
