from __future__ import annotations

import weakref
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import trimesh
from fastapi.concurrency import run_in_threadpool
from loguru import logger
from scipy.spatial.transform import Rotation as R

from pose_sandbox.config import AppSettings, get_settings
from pose_sandbox.posing.entity_registry import EntityRegistry
from pose_sandbox.posing.types import ImportedModel, ModelNode, Transform
from pose_sandbox.services.storage import ArtifactStore


SUPPORTED_SUFFIXES = (".gltf", ".glb")

ModelLoader = Callable[[Path], ModelNode]


class ModelImportError(RuntimeError):
    """Raised when an asset cannot be fetched or parsed."""


def matrix_to_transform(matrix: Any) -> Transform:
    """Split a 4x4 homogeneous matrix into position, rotation and scale."""
    matrix = np.asarray(matrix, dtype=np.float64).reshape(4, 4)
    linear = matrix[:3, :3]
    scale = np.linalg.norm(linear, axis=0)
    rotation = R.from_matrix(linear / np.where(scale > 0.0, scale, 1.0)).as_quat()
    return Transform(position=matrix[:3, 3], rotation=rotation, scale=scale)


def load_gltf_node_tree(path: Path) -> ModelNode:
    """
    Build a node tree from the scene graph of a ``.gltf`` or ``.glb`` file.

    Only the node hierarchy and local transforms are kept; meshes stay with
    the rendering side.
    """
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported input type: {path.suffix}")

    scene = trimesh.load(str(path), force="scene", process=False)
    graph = scene.graph

    children: Dict[str, List[str]] = {}
    local: Dict[str, Any] = {}
    for parent, child, attributes in graph.to_edgelist():
        children.setdefault(parent, []).append(child)
        local[child] = attributes.get("matrix", np.eye(4))

    def convert(frame: str) -> ModelNode:
        return ModelNode(
            name=str(frame),
            transform=matrix_to_transform(local[frame]),
            children=[convert(child) for child in children.get(frame, [])],
        )

    return ModelNode(name=path.stem, children=[convert(frame) for frame in children.get(graph.base_frame, [])])


class ModelImporter:
    """
    Fetches and parses external models, then registers them.

    Nothing is registered until the node tree is fully built. Temporary
    downloads are released whether or not the import succeeds.
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        loader: Optional[ModelLoader] = None,
        store: Optional[ArtifactStore] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.loader = loader or load_gltf_node_tree
        self.store = store or ArtifactStore(self.settings)

    async def import_model(
        self,
        registry: EntityRegistry,
        source_uri: str,
        name: Optional[str] = None,
    ) -> Optional[ImportedModel]:
        """
        Load ``source_uri`` and register it with ``registry``.

        Only a weak reference to the registry is kept while loading. If the
        registry is gone by the time the model is ready the result is
        dropped and None is returned.

        Raises:
            ModelImportError: if the asset cannot be fetched or parsed
        """
        registry_ref = weakref.ref(registry)
        del registry

        logger.info("Importing model from {source}", source=source_uri)
        try:
            with TemporaryDirectory(prefix="pose-sandbox-import-") as temp_dir:
                root = await run_in_threadpool(self._load, source_uri, Path(temp_dir))
        except Exception as exc:
            logger.error("Model import failed for {}: {}", source_uri, exc)
            raise ModelImportError(f"Failed to import {source_uri}: {exc}") from exc

        if name:
            root.name = name

        registry = registry_ref()
        if registry is None:
            logger.warning("Registry released before import of {} finished; dropping model", source_uri)
            return None

        return registry.register_imported_model(root, source=source_uri)

    def _load(self, source_uri: str, working_dir: Path) -> ModelNode:
        path = self.store.fetch(source_uri, working_dir)
        return self.loader(path)


__all__ = [
    "ModelImportError",
    "ModelImporter",
    "load_gltf_node_tree",
    "matrix_to_transform",
]
