"""
Dogbone relief placement for CNC-routed box and finger joints.

A round end mill cannot cut a sharp inside corner; it leaves a fillet of
material. For every concave corner of a closed polyline this places a
circle of the bit's diameter on the corner's angle bisector, one radius
away from the corner, so the cutter clears the joint completely.

Winding convention: counter-clockwise in XY with Z up. A corner is
concave when ``cross(prev - p, next - p).z > 0``.
"""
import logging
from typing import Optional

from cnc_joinery.contracts import DogboneResult, ErrorKind
from cnc_joinery.curves import CircleCurve, Curve, PolylineCurve, iter_corners

logger = logging.getLogger(__name__)


def generate_dogbones(curve: Optional[Curve], bit_diameter: Optional[float]) -> DogboneResult:
    """Place dogbone relief circles at the concave corners of ``curve``.

    Args:
        curve: Closed polyline, planar in XY, wound counter-clockwise. Open
            polylines are rejected.
        bit_diameter: Cutter diameter; circles get radius ``bit_diameter / 2``.

    Returns:
        DogboneResult with one circle per concave corner, in traversal
        order. Degenerate corners are skipped with a warning.
    """
    result = DogboneResult()

    if curve is None or bit_diameter is None:
        result.error(ErrorKind.INPUT_MISSING, "Polyline and bit diameter are required.")
        return result
    if not isinstance(curve, PolylineCurve):
        result.error(ErrorKind.INPUT_INVALID, "Input must be a polyline.")
        return result
    if curve.point_count < 3:
        result.error(ErrorKind.INPUT_INVALID, "Invalid polyline.")
        return result
    if not curve.is_closed:
        result.error(ErrorKind.INPUT_INVALID, "Polyline must be closed.")
        return result
    if bit_diameter <= 0:
        result.error(
            ErrorKind.INPUT_INVALID,
            f"Bit diameter must be positive, got {bit_diameter}.",
        )
        return result

    radius = bit_diameter / 2.0
    circles = []

    for corner in iter_corners(curve):
        if corner.is_degenerate:
            result.warn(
                ErrorKind.DEGENERATE_GEOMETRY,
                f"Corner {corner.index} has a zero-length edge; skipped.",
                index=corner.index,
            )
            logger.debug("Skipping corner %d: zero-length edge", corner.index)
            continue
        if not corner.is_concave:
            continue

        bisector = corner.bisector()
        if bisector is None:
            result.warn(
                ErrorKind.DEGENERATE_GEOMETRY,
                f"Corner {corner.index} has no bisector; skipped.",
                index=corner.index,
            )
            continue

        center = corner.point + bisector * radius
        circles.append(CircleCurve(center, radius))

    result.circles = tuple(circles)
    logger.info(
        "Placed %d dogbones on %d corners (bit %.3f)",
        len(circles), curve.point_count, bit_diameter,
    )
    return result

