"""
Shared test fixtures for the joinery generators.
"""
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pytest
import trimesh

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cnc_joinery.curves import PolylineCurve
from cnc_joinery.geometry_primitives import Plane
from cnc_joinery.kernel import GeometryKernel, KernelOperationFailed


@dataclass
class FakeBody:
    """Opaque stand-in for a solid or surface; carries what the fake kernel reports."""
    name: str
    area: float = 0.0
    bounds: Optional[np.ndarray] = None
    transforms: Tuple[np.ndarray, ...] = ()


class FakeKernel(GeometryKernel):
    """Deterministic kernel returning canned geometry.

    Each operation is driven by an attribute set by the test; operations
    left unset raise KernelOperationFailed. Calls are recorded in
    ``calls`` as ``(operation, args)``.
    """

    def __init__(self, config=None):
        super().__init__(config)
        self.calls: List[tuple] = []
        self.plane: Optional[Plane] = Plane.world_xy()
        self.offsets = None
        self.intersection = None
        self.split_pieces = None
        self.boolean_results = None  # callable(bodies_a, bodies_b) -> list

    def offset(self, curve, plane, distance, tolerance, corner_style="sharp"):
        self.calls.append(("offset", (curve, plane, distance, tolerance, corner_style)))
        if self.offsets is None:
            raise KernelOperationFailed("offset")
        return list(self.offsets)

    def try_get_plane(self, curve):
        self.calls.append(("try_get_plane", (curve,)))
        return self.plane

    def surface_surface_intersection(self, surface_a, surface_b, tolerance):
        self.calls.append(("surface_surface_intersection", (surface_a, surface_b, tolerance)))
        if self.intersection is None:
            raise KernelOperationFailed("intersection")
        curves, points = self.intersection
        return list(curves), list(points)

    def boolean_intersection(self, bodies_a, bodies_b, tolerance):
        self.calls.append(("boolean_intersection", (bodies_a, bodies_b, tolerance)))
        if self.boolean_results is None:
            raise KernelOperationFailed("boolean")
        return list(self.boolean_results(bodies_a, bodies_b))

    def split(self, body, curves, tolerance):
        self.calls.append(("split", (body, curves, tolerance)))
        if self.split_pieces is None:
            raise KernelOperationFailed("split")
        return list(self.split_pieces)

    def area(self, body):
        return body.area

    def bounding_box(self, body):
        if body.bounds is None:
            raise KernelOperationFailed("no bounds")
        return np.asarray(body.bounds, dtype=float)

    def box(self, bounds):
        return FakeBody("box", bounds=np.asarray(bounds, dtype=float))

    def transform(self, body, matrix):
        self.calls.append(("transform", (body, matrix)))
        return FakeBody(
            body.name, body.area, body.bounds, body.transforms + (np.asarray(matrix),),
        )

    def called(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)


@pytest.fixture
def fake_kernel():
    return FakeKernel()


@pytest.fixture
def box_mesh():
    """A 20x20x10mm box with its bottom at z=0."""
    mesh = trimesh.creation.box(extents=[20, 20, 10])
    mesh.apply_translation([0, 0, 5])
    return mesh


@pytest.fixture
def panel_xy():
    """A 100x50mm panel, 3mm thick, lying flat on z=0."""
    return trimesh.creation.box(bounds=[[0, 0, -1.5], [100, 50, 1.5]])


@pytest.fixture
def panel_xz():
    """A 100x40mm upright panel along X, standing on the far edge of panel_xy."""
    return trimesh.creation.box(bounds=[[0, 48.5, 0], [100, 51.5, 40]])


@pytest.fixture
def square_polyline():
    """Counter-clockwise 10x10 square (convex)."""
    return PolylineCurve([(0, 0), (10, 0), (10, 10), (0, 10)], closed=True)


@pytest.fixture
def l_polyline():
    """Counter-clockwise L-shape with one reflex corner at (5, 5)."""
    return PolylineCurve(
        [(0, 0), (10, 0), (10, 5), (5, 5), (5, 10), (0, 10)], closed=True,
    )


@pytest.fixture
def straight_edge():
    """A 40mm straight intersection curve along +X."""
    return PolylineCurve([(0, 0, 0), (40, 0, 0)], closed=False)
