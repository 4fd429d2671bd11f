"""
Core geometry types shared by the kernel and the generators.

Built on Shapely for 2D polygon operations and numpy for 3D frames.
Provides Plane (an orthonormal frame), PlanarRegion (a flat surface patch
stored as a 2D polygon in its own frame) and the conversion from a planar
trimesh panel to a PlanarRegion.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import trimesh
from shapely.geometry import MultiPolygon, Polygon
from shapely.ops import unary_union


@dataclass(frozen=True)
class Plane:
    """An oriented plane with an orthonormal (u, v, n) frame."""
    origin: np.ndarray    # (3,)
    basis_u: np.ndarray   # (3,) unit
    basis_v: np.ndarray   # (3,) unit
    normal: np.ndarray    # (3,) unit, u x v

    @classmethod
    def from_normal(cls, origin, normal) -> "Plane":
        n = np.asarray(normal, dtype=float)
        n = n / np.linalg.norm(n)
        u, v = _make_2d_basis(n)
        return cls(
            origin=np.asarray(origin, dtype=float),
            basis_u=u,
            basis_v=v,
            normal=np.cross(u, v),
        )

    @classmethod
    def world_xy(cls) -> "Plane":
        return cls(
            origin=np.zeros(3),
            basis_u=np.array([1.0, 0.0, 0.0]),
            basis_v=np.array([0.0, 1.0, 0.0]),
            normal=np.array([0.0, 0.0, 1.0]),
        )

    def to_local(self, points) -> np.ndarray:
        """Project (N, 3) world points to (N, 2) plane coordinates."""
        d = np.asarray(points, dtype=float) - self.origin
        return np.column_stack([d @ self.basis_u, d @ self.basis_v])

    def to_world(self, coords) -> np.ndarray:
        """Lift (N, 2) plane coordinates back to (N, 3) world points."""
        c = np.asarray(coords, dtype=float).reshape(-1, 2)
        return self.origin + np.outer(c[:, 0], self.basis_u) + np.outer(c[:, 1], self.basis_v)

    def distance_to(self, points) -> np.ndarray:
        d = np.asarray(points, dtype=float) - self.origin
        return d @ self.normal

    def transformed(self, matrix: np.ndarray) -> "Plane":
        rot = matrix[:3, :3]
        origin = rot @ self.origin + matrix[:3, 3]
        return Plane(
            origin=origin,
            basis_u=rot @ self.basis_u,
            basis_v=rot @ self.basis_v,
            normal=rot @ self.normal,
        )


@dataclass
class PlanarRegion:
    """A flat surface patch: a polygon in the local frame of ``plane``.

    This is the surface-like body the trim and mutual-edge operations work
    on. Rigid transforms move the frame and leave the polygon untouched.
    """
    polygon: Polygon
    plane: Plane

    @property
    def area(self) -> float:
        return float(self.polygon.area)

    def boundary_points_3d(self) -> List[np.ndarray]:
        """Exterior ring first, then interior rings, as closed (N, 3) arrays."""
        if self.polygon.is_empty:
            return []
        rings = [self.polygon.exterior] + list(self.polygon.interiors)
        return [self.plane.to_world(np.asarray(r.coords)) for r in rings]

    def vertices_3d(self) -> np.ndarray:
        rings = self.boundary_points_3d()
        if not rings:
            return np.zeros((0, 3))
        return np.vstack(rings)

    def transformed(self, matrix: np.ndarray) -> "PlanarRegion":
        return PlanarRegion(polygon=self.polygon, plane=self.plane.transformed(matrix))


# ─── Conversion functions ────────────────────────────────────────────────────

def fit_plane(points, tolerance: Optional[float] = None) -> Optional[Plane]:
    """Best-fit plane through ``points`` by SVD.

    Returns None when there are fewer than three points, when the points
    are collinear, or when any point is further than ``tolerance`` from
    the fitted plane.
    """
    pts = np.asarray(points, dtype=float)
    if pts.ndim != 2 or len(pts) < 3:
        return None
    centroid = pts.mean(axis=0)
    centered = pts - centroid
    _, singular, vt = np.linalg.svd(centered, full_matrices=False)
    if len(singular) < 2 or singular[1] < 1e-9:
        return None
    normal = vt[2]
    if tolerance is not None:
        deviation = np.abs(centered @ normal)
        if float(deviation.max()) > tolerance:
            return None
    u = vt[0] / np.linalg.norm(vt[0])
    n = normal / np.linalg.norm(normal)
    # Keep the normal pointing to +Z (or the first positive axis) so
    # orientation is stable across calls.
    for axis in (2, 1, 0):
        if abs(n[axis]) > 1e-9:
            if n[axis] < 0:
                n = -n
            break
    v = np.cross(n, u)
    return Plane(origin=centroid, basis_u=u, basis_v=v / np.linalg.norm(v), normal=n)


def planar_region_from_mesh(mesh, tolerance: float = 0.01) -> Optional[PlanarRegion]:
    """Project a flat (or thin, panel-like) trimesh onto its plane.

    Faces whose normal is parallel to the fitted plane normal are projected
    into the plane's (u, v) frame and unioned. Returns None when the mesh
    has no usable faces.
    """
    if mesh is None or len(mesh.faces) == 0:
        return None
    plane = fit_plane(mesh.vertices)
    if plane is None:
        return None

    normals = np.asarray(mesh.face_normals)
    face_indices = np.nonzero(np.abs(normals @ plane.normal) > 0.99)[0]
    if len(face_indices) == 0:
        return None

    triangles_3d = mesh.vertices[mesh.faces[face_indices]]  # (N, 3, 3)

    polygons_2d = []
    for tri in triangles_3d:
        p = Polygon(plane.to_local(tri))
        if p.is_valid and p.area > 0:
            polygons_2d.append(p)

    if not polygons_2d:
        return None

    merged = unary_union(polygons_2d)
    if isinstance(merged, MultiPolygon):
        merged = max(merged.geoms, key=lambda g: g.area)

    return PlanarRegion(polygon=merged.simplify(tolerance, preserve_topology=True), plane=plane)


# ─── Internal helpers ────────────────────────────────────────────────────────

def _make_2d_basis(normal: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Build an orthonormal (u, v) basis perpendicular to normal."""
    n = normal / np.linalg.norm(normal)
    if abs(n[2]) < 0.9:
        ref = np.array([0.0, 0.0, 1.0])
    else:
        ref = np.array([1.0, 0.0, 0.0])
    u = np.cross(n, ref)
    u /= np.linalg.norm(u)
    v = np.cross(n, u)
    v /= np.linalg.norm(v)
    return u, v


def rotation_about_axis(angle_rad: float, axis, center) -> np.ndarray:
    """4x4 rigid rotation by ``angle_rad`` about ``axis`` through ``center``."""
    return trimesh.transformations.rotation_matrix(
        angle_rad, np.asarray(axis, dtype=float), np.asarray(center, dtype=float),
    )
