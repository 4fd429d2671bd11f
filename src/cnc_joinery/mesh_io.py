"""Mesh loading and export for the solid-based components."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Sequence

import trimesh

logger = logging.getLogger(__name__)


def load_mesh(mesh_path) -> trimesh.Trimesh:
    """Load a mesh file as a single Trimesh (scenes are concatenated)."""
    mesh_path = Path(mesh_path)
    if not mesh_path.is_file():
        raise FileNotFoundError(f"Mesh file not found: {mesh_path}")
    loaded = trimesh.load(mesh_path, force="mesh")
    if isinstance(loaded, trimesh.Scene):
        if not loaded.geometry:
            raise ValueError(f"Scene contains no geometry: {mesh_path}")
        meshes = [g for g in loaded.geometry.values() if isinstance(g, trimesh.Trimesh)]
        if not meshes:
            raise ValueError(f"Scene has no mesh geometry: {mesh_path}")
        return trimesh.util.concatenate(meshes)
    if not isinstance(loaded, trimesh.Trimesh):
        raise ValueError(f"Unsupported mesh type from {mesh_path}")
    if len(loaded.faces) == 0:
        raise ValueError(f"Empty mesh: {mesh_path}")
    return loaded


def export_meshes(
    meshes: Sequence[trimesh.Trimesh],
    output_dir: str,
    stem: str,
    file_type: str = "stl",
) -> List[str]:
    """Write each mesh to ``<output_dir>/<stem>_<index>.<file_type>``."""
    os.makedirs(output_dir, exist_ok=True)
    paths = []
    for i, mesh in enumerate(meshes):
        path = os.path.join(output_dir, f"{stem}_{i:03d}.{file_type}")
        mesh.export(path, file_type=file_type)
        paths.append(path)
    logger.info("Exported %d meshes to %s", len(paths), output_dir)
    return paths
