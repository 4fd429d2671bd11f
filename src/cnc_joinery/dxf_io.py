"""
DXF reading and writing for joinery curves.

Uses ezdxf. Output layers (one per result slot) are created on demand with
colors from DXFExportConfig; CUT (red, ACI 1) is the default layer.
Flat curves in an XY plane are written as LWPOLYLINE/CIRCLE with an
elevation; anything else as a 3D POLYLINE.

Units: millimeters. Format: R2010.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import ezdxf
import numpy as np

from cnc_joinery.curves import CircleCurve, Curve, PolylineCurve
from cnc_joinery.geometry_primitives import PlanarRegion

logger = logging.getLogger(__name__)

_FLAT_TOL = 1e-9


@dataclass
class DXFExportConfig:
    """Configuration for DXF export."""
    default_layer: str = "CUT"
    layer_colors: Dict[str, int] = field(default_factory=lambda: {
        "CUT": 1,          # red
        "DOGBONE": 4,      # cyan
        "CUTOUTS_A": 3,    # green
        "CUTOUTS_B": 6,    # magenta
        "OFFSET": 1,
        "EDGE": 2,         # yellow
        "SOURCE": 8,       # gray
    })
    fallback_color: int = 7


def curves_to_dxf(
    layers: Mapping[str, Sequence[object]],
    filepath: str,
    config: Optional[DXFExportConfig] = None,
) -> str:
    """Write curves (and planar regions' boundaries) to a DXF file.

    Args:
        layers: layer name -> curves/regions to draw on that layer.
        filepath: Output DXF file path.
        config: Layer colors.

    Returns:
        Path to created DXF file.
    """
    if config is None:
        config = DXFExportConfig()

    doc = ezdxf.new("R2010")
    doc.units = ezdxf.units.MM
    msp = doc.modelspace()

    count = 0
    for layer, items in layers.items():
        _ensure_layer(doc, layer or config.default_layer, config)
        for item in items:
            count += _add_item(msp, item, layer or config.default_layer)

    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    doc.saveas(filepath)
    logger.info("Exported DXF: %s (%d entities)", filepath, count)
    return filepath


def read_curves(filepath: str, layer: Optional[str] = None) -> List[Curve]:
    """Read LWPOLYLINE, POLYLINE, CIRCLE and LINE entities as curves.

    Polyline bulges (arc segments) are ignored; only vertices are kept.
    Other entity types are skipped.
    """
    doc = ezdxf.readfile(filepath)
    msp = doc.modelspace()

    curves: List[Curve] = []
    for entity in msp.query("LWPOLYLINE POLYLINE CIRCLE LINE"):
        if layer is not None and entity.dxf.layer != layer:
            continue
        curve = _entity_to_curve(entity)
        if curve is not None:
            curves.append(curve)

    logger.debug("Read %d curves from %s", len(curves), filepath)
    return curves


# ─── Internal helpers ────────────────────────────────────────────────────────

def _ensure_layer(doc, layer: str, config: DXFExportConfig) -> None:
    if layer not in doc.layers:
        doc.layers.add(layer, color=config.layer_colors.get(layer, config.fallback_color))


def _add_item(msp, item, layer: str) -> int:
    attribs = {"layer": layer}
    if isinstance(item, CircleCurve):
        normal = item.plane.normal
        if abs(abs(normal[2]) - 1.0) < _FLAT_TOL:
            msp.add_circle(tuple(item.center), item.radius, dxfattribs=attribs)
            return 1
        return _add_points(msp, item.sample_points(), True, attribs)
    if isinstance(item, PolylineCurve):
        return _add_points(msp, item.points, item.is_closed, attribs)
    if isinstance(item, PlanarRegion):
        added = 0
        for ring in item.boundary_points_3d():
            added += _add_points(msp, ring[:-1], True, attribs)
        return added
    logger.warning("Skipping unsupported DXF item: %s", type(item).__name__)
    return 0


def _add_points(msp, points, closed: bool, attribs: Dict[str, object]) -> int:
    pts = np.asarray(points, dtype=float)
    if len(pts) < 2:
        return 0
    z = pts[:, 2]
    if float(z.max() - z.min()) < _FLAT_TOL:
        msp.add_lwpolyline(
            [(float(x), float(y)) for x, y in pts[:, :2]],
            close=closed,
            dxfattribs={**attribs, "elevation": float(z[0])},
        )
    else:
        msp.add_polyline3d(
            [tuple(map(float, p)) for p in pts],
            close=closed,
            dxfattribs=attribs,
        )
    return 1


def _entity_to_curve(entity) -> Optional[Curve]:
    kind = entity.dxftype()
    if kind == "LWPOLYLINE":
        xy = np.asarray(entity.get_points(format="xy"), dtype=float)
        if len(xy) < 2:
            return None
        elevation = float(entity.dxf.elevation)
        pts = np.column_stack([xy, np.full(len(xy), elevation)])
        return PolylineCurve(pts, closed=bool(entity.closed) or None)
    if kind == "POLYLINE":
        pts = np.asarray([tuple(p) for p in entity.points()], dtype=float)
        if len(pts) < 2:
            return None
        return PolylineCurve(pts, closed=bool(entity.is_closed) or None)
    if kind == "CIRCLE":
        return CircleCurve(
            tuple(entity.dxf.center),
            float(entity.dxf.radius),
            normal=tuple(entity.dxf.extrusion),
        )
    if kind == "LINE":
        return PolylineCurve([tuple(entity.dxf.start), tuple(entity.dxf.end)], closed=False)
    return None
