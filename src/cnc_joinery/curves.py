"""
Curve types used as generator inputs and outputs.

Curves are immutable and arc-length addressable: every curve exposes its
parameter ``domain``, ``length()``, ``point_at(t)``, ``tangent_at(t)`` and
``length_parameter(s)`` (arc length -> parameter). PolylineCurve uses the
vertex index as its parameter, so parameter ``k`` is vertex ``k``.
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np

from cnc_joinery.geometry_primitives import Plane

_EPS = 1e-12


class Curve(ABC):
    """Abstract parametric curve in 3D."""

    @property
    @abstractmethod
    def domain(self) -> Tuple[float, float]:
        ...

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        ...

    @abstractmethod
    def length(self) -> float:
        ...

    @abstractmethod
    def point_at(self, t: float) -> np.ndarray:
        ...

    @abstractmethod
    def tangent_at(self, t: float) -> np.ndarray:
        """Unit tangent at ``t``; the zero vector where it is undefined."""
        ...

    @abstractmethod
    def length_parameter(self, arc_length: float) -> float:
        ...

    @abstractmethod
    def sample_points(self) -> np.ndarray:
        """(N, 3) points describing the curve, without a closing duplicate."""
        ...

    @abstractmethod
    def transformed(self, matrix: np.ndarray) -> "Curve":
        ...

    @property
    def mid_parameter(self) -> float:
        t0, t1 = self.domain
        return (t0 + t1) / 2.0

    def point_at_normalized_length(self, fraction: float) -> np.ndarray:
        return self.point_at(self.length_parameter(fraction * self.length()))


class PolylineCurve(Curve):
    """An open or closed polyline.

    A trailing vertex equal to the first one is dropped and the curve is
    marked closed; the closing segment is then implicit.
    """

    def __init__(self, points, closed: Optional[bool] = None):
        pts = np.asarray(points, dtype=float)
        if pts.ndim != 2 or pts.shape[1] not in (2, 3):
            raise ValueError(f"Expected (N, 2) or (N, 3) points, got shape {pts.shape}")
        if pts.shape[1] == 2:
            pts = np.column_stack([pts, np.zeros(len(pts))])

        repeats_start = len(pts) > 1 and np.allclose(pts[0], pts[-1])
        if repeats_start:
            pts = pts[:-1]
        if closed is None:
            closed = bool(repeats_start)

        pts = pts.copy()
        pts.setflags(write=False)
        self._points = pts
        self._closed = bool(closed)

        ends = np.roll(pts, -1, axis=0) if self._closed else pts[1:]
        starts = pts if self._closed else pts[:-1]
        self._seg_start = starts
        self._seg_vec = ends - starts
        self._seg_len = np.linalg.norm(self._seg_vec, axis=1)
        self._cumulative = np.concatenate([[0.0], np.cumsum(self._seg_len)])

    def __repr__(self) -> str:
        return f"PolylineCurve(count={len(self._points)}, closed={self._closed})"

    @property
    def points(self) -> np.ndarray:
        return self._points

    @property
    def point_count(self) -> int:
        return len(self._points)

    @property
    def segment_count(self) -> int:
        return len(self._seg_len)

    @property
    def domain(self) -> Tuple[float, float]:
        return (0.0, float(self.segment_count))

    @property
    def is_closed(self) -> bool:
        return self._closed

    def length(self) -> float:
        return float(self._cumulative[-1])

    def _segment(self, t: float) -> Tuple[int, float]:
        n = self.segment_count
        if n == 0:
            raise ValueError("Polyline has no segments")
        t = min(max(float(t), 0.0), float(n))
        k = min(int(math.floor(t)), n - 1)
        return k, t - k

    def point_at(self, t: float) -> np.ndarray:
        k, frac = self._segment(t)
        return self._seg_start[k] + frac * self._seg_vec[k]

    def tangent_at(self, t: float) -> np.ndarray:
        k, _ = self._segment(t)
        seg_len = self._seg_len[k]
        if seg_len < _EPS:
            return np.zeros(3)
        return self._seg_vec[k] / seg_len

    def length_parameter(self, arc_length: float) -> float:
        total = self.length()
        s = min(max(float(arc_length), 0.0), total)
        k = int(np.searchsorted(self._cumulative, s, side="right")) - 1
        k = min(max(k, 0), self.segment_count - 1)
        seg_len = self._seg_len[k]
        if seg_len < _EPS:
            return float(k)
        return k + (s - self._cumulative[k]) / seg_len

    def sample_points(self) -> np.ndarray:
        return self._points

    def closed_points(self) -> np.ndarray:
        """Vertices with the first repeated at the end when closed."""
        if self._closed:
            return np.vstack([self._points, self._points[:1]])
        return self._points

    def transformed(self, matrix: np.ndarray) -> "PolylineCurve":
        homogeneous = np.column_stack([self._points, np.ones(len(self._points))])
        moved = (homogeneous @ np.asarray(matrix, dtype=float).T)[:, :3]
        return PolylineCurve(moved, closed=self._closed)


class CircleCurve(Curve):
    """A full circle, parameterized by angle over ``[0, 2*pi]``."""

    def __init__(self, center, radius: float, normal=(0.0, 0.0, 1.0)):
        if radius <= 0:
            raise ValueError(f"Circle radius must be positive, got {radius}")
        self.radius = float(radius)
        self.plane = Plane.from_normal(np.asarray(center, dtype=float), normal)

    def __repr__(self) -> str:
        c = self.center
        return f"CircleCurve(center=({c[0]:.3f}, {c[1]:.3f}, {c[2]:.3f}), radius={self.radius:.3f})"

    @classmethod
    def _from_plane(cls, plane: Plane, radius: float) -> "CircleCurve":
        circle = cls.__new__(cls)
        circle.radius = float(radius)
        circle.plane = plane
        return circle

    @property
    def center(self) -> np.ndarray:
        return self.plane.origin

    @property
    def domain(self) -> Tuple[float, float]:
        return (0.0, 2.0 * math.pi)

    @property
    def is_closed(self) -> bool:
        return True

    def length(self) -> float:
        return 2.0 * math.pi * self.radius

    def point_at(self, t: float) -> np.ndarray:
        return self.center + self.radius * (
            math.cos(t) * self.plane.basis_u + math.sin(t) * self.plane.basis_v
        )

    def tangent_at(self, t: float) -> np.ndarray:
        return -math.sin(t) * self.plane.basis_u + math.cos(t) * self.plane.basis_v

    def length_parameter(self, arc_length: float) -> float:
        s = min(max(float(arc_length), 0.0), self.length())
        return s / self.radius

    def sample_points(self, segments: int = 32) -> np.ndarray:
        angles = np.linspace(0.0, 2.0 * math.pi, segments, endpoint=False)
        return np.array([self.point_at(a) for a in angles])

    def to_polyline(self, segments: int = 32) -> PolylineCurve:
        return PolylineCurve(self.sample_points(segments), closed=True)

    def transformed(self, matrix: np.ndarray) -> "CircleCurve":
        return CircleCurve._from_plane(self.plane.transformed(np.asarray(matrix, dtype=float)), self.radius)


# ─── Corners ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Corner:
    """A polyline vertex with its two unit edge directions.

    ``v1`` points back to the previous vertex, ``v2`` forward to the next.
    Both are zero vectors when an adjacent edge has zero length.
    """
    index: int
    point: np.ndarray
    v1: np.ndarray
    v2: np.ndarray

    @property
    def is_degenerate(self) -> bool:
        return not (np.any(self.v1) and np.any(self.v2))

    @property
    def cross_z(self) -> float:
        return float(self.v1[0] * self.v2[1] - self.v1[1] * self.v2[0])

    @property
    def is_concave(self) -> bool:
        """Inner corner for a counter-clockwise, Z-up polygon."""
        return self.cross_z > 0

    def bisector(self) -> Optional[np.ndarray]:
        """Unit interior-angle bisector, or None when it is undefined."""
        b = self.v1 + self.v2
        b_len = float(np.linalg.norm(b))
        if b_len < 1e-9:
            return None
        return b / b_len


def _unit(v: np.ndarray) -> np.ndarray:
    n = float(np.linalg.norm(v))
    if n < 1e-9:
        return np.zeros(3)
    return v / n


def iter_corners(polyline: PolylineCurve) -> Iterator[Corner]:
    """Yield every vertex of a closed polyline as a Corner, in order."""
    pts = polyline.points
    n = len(pts)
    for i in range(n):
        current = pts[i]
        prev = pts[(i - 1) % n]
        nxt = pts[(i + 1) % n]
        yield Corner(
            index=i,
            point=current,
            v1=_unit(prev - current),
            v2=_unit(nxt - current),
        )

