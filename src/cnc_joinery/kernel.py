"""
Geometry kernel interface and its trimesh/shapely implementation.

The generators never touch trimesh or shapely directly for the heavy
operations (offset, boolean, split, surface intersection); they go through
a GeometryKernel so layout math can be tested against a fake kernel.
MeshKernel is the production implementation:
  - solids are trimesh.Trimesh, booleans run on the manifold3d engine
  - flat surfaces are PlanarRegion, split/offset run in shapely
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import manifold3d
import numpy as np
import trimesh
from shapely.geometry import LineString, MultiPolygon, Polygon
from shapely.ops import polygonize, unary_union

from cnc_joinery.curves import CircleCurve, Curve, PolylineCurve
from cnc_joinery.geometry_primitives import (
    PlanarRegion,
    Plane,
    fit_plane,
    planar_region_from_mesh,
)

logger = logging.getLogger(__name__)

Body = Union[trimesh.Trimesh, PlanarRegion]

CORNER_SHARP = "sharp"
CORNER_ROUND = "round"
CORNER_SMOOTH = "smooth"

_JOIN_STYLES = {
    CORNER_SHARP: "mitre",
    CORNER_ROUND: "round",
    CORNER_SMOOTH: "bevel",
}


class KernelError(Exception):
    """Base exception for geometry kernel errors."""
    pass


class KernelOperationFailed(KernelError):
    """An offset/boolean/split/intersection produced no usable result."""
    pass


class UnsupportedBodyError(KernelError):
    """The kernel cannot handle this kind of body for the operation."""
    pass


@dataclass(frozen=True)
class KernelConfig:
    """Tolerances and offset settings for MeshKernel."""
    absolute_tolerance: float = 0.01
    offset_tolerance: float = 0.001
    split_tolerance: float = 0.01
    planarity_tolerance: float = 0.01
    circle_segments: int = 64
    mitre_limit: float = 1e6


class GeometryKernel(ABC):
    """Capabilities the joinery generators need from a geometry kernel.

    Every operation either returns a result or raises KernelError; none of
    them mutate their inputs.
    """

    def __init__(self, config: Optional[KernelConfig] = None):
        self.config = config or KernelConfig()

    @abstractmethod
    def offset(self, curve: Curve, plane: Plane, distance: float,
               tolerance: float, corner_style: str = CORNER_SHARP) -> List[Curve]:
        """Offset a closed planar curve; positive grows, negative shrinks."""
        ...

    @abstractmethod
    def try_get_plane(self, curve: Curve) -> Optional[Plane]:
        """Plane containing ``curve``, or None if it is not planar."""
        ...

    @abstractmethod
    def surface_surface_intersection(
        self, surface_a: Body, surface_b: Body, tolerance: float,
    ) -> Tuple[List[Curve], List[np.ndarray]]:
        ...

    @abstractmethod
    def boolean_intersection(self, bodies_a: Sequence[Body], bodies_b: Sequence[Body],
                             tolerance: float) -> List[Body]:
        """Pieces common to both sets; an empty list when they do not overlap."""
        ...

    @abstractmethod
    def split(self, body: Body, curves: Sequence[Curve], tolerance: float) -> List[Body]:
        ...

    @abstractmethod
    def area(self, body: Body) -> float:
        ...

    @abstractmethod
    def bounding_box(self, body: Body) -> np.ndarray:
        """Axis-aligned bounds as a (2, 3) array [min, max]."""
        ...

    @abstractmethod
    def box(self, bounds) -> Body:
        ...

    @abstractmethod
    def transform(self, body: Body, matrix: np.ndarray) -> Body:
        """A transformed copy of ``body``."""
        ...


class MeshKernel(GeometryKernel):
    """GeometryKernel on top of trimesh (solids) and shapely (planar work)."""

    # ─── Curves ──────────────────────────────────────────────────────────────

    def try_get_plane(self, curve: Curve) -> Optional[Plane]:
        if isinstance(curve, CircleCurve):
            return curve.plane
        return fit_plane(curve.sample_points(), tolerance=self.config.planarity_tolerance)

    def offset(self, curve: Curve, plane: Plane, distance: float,
               tolerance: float, corner_style: str = CORNER_SHARP) -> List[Curve]:
        if not curve.is_closed:
            raise KernelOperationFailed("Only closed curves can be offset")
        join_style = _JOIN_STYLES.get(corner_style)
        if join_style is None:
            raise ValueError(f"Unknown corner style: {corner_style}")

        points = self._curve_points(curve)
        polygon = Polygon(plane.to_local(points))
        if not polygon.is_valid:
            polygon = polygon.buffer(0)
        if polygon.is_empty:
            raise KernelOperationFailed("Curve does not enclose an area")

        result = polygon.buffer(
            distance, join_style=join_style, mitre_limit=self.config.mitre_limit,
        )
        if tolerance > 0:
            result = result.simplify(tolerance, preserve_topology=True)
        if result.is_empty:
            raise KernelOperationFailed(f"Offset by {distance:.4f} collapsed the curve")

        polys = list(result.geoms) if isinstance(result, MultiPolygon) else [result]
        return [
            PolylineCurve(plane.to_world(np.asarray(p.exterior.coords)), closed=True)
            for p in polys
            if not p.is_empty
        ]

    # ─── Surfaces ────────────────────────────────────────────────────────────

    def surface_surface_intersection(
        self, surface_a: Body, surface_b: Body, tolerance: float,
    ) -> Tuple[List[Curve], List[np.ndarray]]:
        region_a = self._as_region(surface_a)
        region_b = self._as_region(surface_b)
        na = region_a.plane.normal
        nb = region_b.plane.normal

        line_dir = np.cross(na, nb)
        dir_norm = float(np.linalg.norm(line_dir))
        if dir_norm < 1e-8:
            raise KernelOperationFailed("Surfaces are parallel")
        line_dir = line_dir / dir_norm

        # Point on the plane-plane line via least squares
        a_mat = np.vstack([na, nb])
        b_vec = np.array([
            float(np.dot(na, region_a.plane.origin)),
            float(np.dot(nb, region_b.plane.origin)),
        ])
        line_point, _, _, _ = np.linalg.lstsq(a_mat, b_vec, rcond=None)

        reach = self._reach(region_a, region_b, line_point)
        spans_a = self._clip_line(region_a, line_point, line_dir, reach, tolerance)
        spans_b = self._clip_line(region_b, line_point, line_dir, reach, tolerance)

        curves: List[Curve] = []
        points: List[np.ndarray] = []
        for a0, a1 in spans_a:
            for b0, b1 in spans_b:
                lo, hi = max(a0, b0), min(a1, b1)
                if hi - lo > tolerance:
                    curves.append(PolylineCurve(
                        [line_point + line_dir * lo, line_point + line_dir * hi],
                        closed=False,
                    ))
                elif hi - lo >= -tolerance:
                    points.append(line_point + line_dir * ((lo + hi) / 2.0))

        if not curves and not points:
            raise KernelOperationFailed("Surfaces do not intersect")
        return curves, points

    def split(self, body: Body, curves: Sequence[Curve], tolerance: float) -> List[Body]:
        region = self._as_region(body)
        rings = []
        for curve in curves:
            pts = self._curve_points(curve)
            if len(pts) < 2:
                continue
            local = region.plane.to_local(pts)
            if curve.is_closed:
                local = np.vstack([local, local[:1]])
            rings.append(LineString(local))
        if not rings:
            raise KernelOperationFailed("No usable split curves")

        poly = region.polygon
        linework = [LineString(poly.exterior.coords)]
        linework.extend(LineString(r.coords) for r in poly.interiors)
        noded = unary_union(linework + rings)

        keep_zone = poly.buffer(tolerance)
        faces = [
            f for f in polygonize(getattr(noded, "geoms", [noded]))
            if f.area > tolerance * tolerance and keep_zone.contains(f.representative_point())
        ]
        if len(faces) < 2:
            raise KernelOperationFailed("Curves do not split the surface")
        return [PlanarRegion(polygon=f, plane=region.plane) for f in faces]

    # ─── Solids ──────────────────────────────────────────────────────────────

    def boolean_intersection(self, bodies_a: Sequence[Body], bodies_b: Sequence[Body],
                             tolerance: float) -> List[Body]:
        solid_a = self._merged_solid(bodies_a)
        solid_b = self._merged_solid(bodies_b)
        try:
            result = solid_a ^ solid_b
        except Exception as exc:
            raise KernelOperationFailed(f"Boolean intersection failed: {exc}") from exc

        if result.is_empty():
            return []
        # Pieces touching only along a face come back joined by a zero-volume
        # web; decompose separates them and the volume filter drops the web.
        pieces = []
        for part in result.decompose():
            mesh = _to_trimesh(part)
            if abs(mesh.volume) > tolerance:
                pieces.append(mesh)
        return pieces

    def area(self, body: Body) -> float:
        if isinstance(body, PlanarRegion):
            return body.area
        if isinstance(body, trimesh.Trimesh):
            return float(body.area)
        raise UnsupportedBodyError(f"Cannot compute area of {type(body).__name__}")

    def bounding_box(self, body: Body) -> np.ndarray:
        if isinstance(body, PlanarRegion):
            verts = body.vertices_3d()
            if len(verts) == 0:
                raise KernelOperationFailed("Empty region has no bounding box")
            return np.vstack([verts.min(axis=0), verts.max(axis=0)])
        if isinstance(body, trimesh.Trimesh):
            if len(body.vertices) == 0:
                raise KernelOperationFailed("Empty mesh has no bounding box")
            return np.asarray(body.bounds, dtype=float)
        raise UnsupportedBodyError(f"Cannot bound {type(body).__name__}")

    def box(self, bounds) -> Body:
        return trimesh.creation.box(bounds=np.asarray(bounds, dtype=float))

    def transform(self, body: Body, matrix: np.ndarray) -> Body:
        if isinstance(body, PlanarRegion):
            return body.transformed(matrix)
        if isinstance(body, trimesh.Trimesh):
            moved = body.copy()
            moved.apply_transform(matrix)
            return moved
        raise UnsupportedBodyError(f"Cannot transform {type(body).__name__}")

    # ─── Internal ────────────────────────────────────────────────────────────

    def _curve_points(self, curve: Curve) -> np.ndarray:
        if isinstance(curve, CircleCurve):
            return curve.sample_points(self.config.circle_segments)
        return curve.sample_points()

    def _as_region(self, body: Body) -> PlanarRegion:
        if isinstance(body, PlanarRegion):
            if body.polygon.is_empty:
                raise KernelOperationFailed("Region is empty")
            return body
        if isinstance(body, trimesh.Trimesh):
            region = planar_region_from_mesh(body, tolerance=self.config.absolute_tolerance)
            if region is None:
                raise KernelOperationFailed("Mesh has no planar faces")
            return region
        raise UnsupportedBodyError(f"Expected a planar surface, got {type(body).__name__}")

    def _merged_solid(self, bodies: Sequence[Body]) -> manifold3d.Manifold:
        solids = []
        for body in bodies:
            if not isinstance(body, trimesh.Trimesh):
                raise UnsupportedBodyError(
                    f"Boolean operations need solids, got {type(body).__name__}"
                )
            solids.append(_to_manifold(body))
        if not solids:
            raise KernelOperationFailed("No solids given")
        merged = solids[0]
        try:
            for solid in solids[1:]:
                merged = merged + solid
        except Exception as exc:
            raise KernelOperationFailed(f"Boolean union failed: {exc}") from exc
        return merged

    @staticmethod
    def _reach(region_a: PlanarRegion, region_b: PlanarRegion, line_point: np.ndarray) -> float:
        verts = np.vstack([region_a.vertices_3d(), region_b.vertices_3d()])
        return float(np.linalg.norm(verts - line_point, axis=1).max()) + 1.0

    @staticmethod
    def _clip_line(region: PlanarRegion, line_point: np.ndarray, line_dir: np.ndarray,
                   reach: float, tolerance: float) -> List[Tuple[float, float]]:
        """Parameter spans (along ``line_dir``) where the line lies on ``region``."""
        ends = np.vstack([line_point - line_dir * reach, line_point + line_dir * reach])
        local = region.plane.to_local(ends)
        line = LineString(local)
        clipped = region.polygon.buffer(tolerance).intersection(line)
        if clipped.is_empty:
            return []
        parts = getattr(clipped, "geoms", [clipped])

        start = local[0]
        direction = (local[1] - local[0]) / (2.0 * reach)
        spans = []
        for part in parts:
            if not isinstance(part, LineString):
                continue
            coords = np.asarray(part.coords)
            t = (coords - start) @ direction / float(direction @ direction) - reach
            spans.append((float(t.min()), float(t.max())))
        return sorted(spans)


def _to_manifold(mesh: trimesh.Trimesh) -> manifold3d.Manifold:
    return manifold3d.Manifold(manifold3d.Mesh(
        vert_properties=np.asarray(mesh.vertices, dtype=np.float32),
        tri_verts=np.asarray(mesh.faces, dtype=np.uint32),
    ))


def _to_trimesh(solid: manifold3d.Manifold) -> trimesh.Trimesh:
    out = solid.to_mesh()
    return trimesh.Trimesh(
        vertices=np.asarray(out.vert_properties, dtype=float)[:, :3],
        faces=np.asarray(out.tri_verts, dtype=np.int64),
    )
