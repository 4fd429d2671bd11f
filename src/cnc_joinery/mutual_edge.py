"""
Mutual edge detection between two panels.

Finds the curve along which two panel surfaces meet; that curve is the
input the finger joint generator lays its fingers along. The kernel
intersects the two panel planes and clips the line to both panels.
"""
import logging
from typing import Optional

from cnc_joinery.contracts import ErrorKind, MutualEdgeResult
from cnc_joinery.kernel import Body, GeometryKernel, KernelError, MeshKernel

logger = logging.getLogger(__name__)


def find_mutual_edge(
    surface_a: Optional[Body],
    surface_b: Optional[Body],
    kernel: Optional[GeometryKernel] = None,
) -> MutualEdgeResult:
    """Intersection curves (and isolated touch points) of two surfaces."""
    if kernel is None:
        kernel = MeshKernel()
    result = MutualEdgeResult()

    if surface_a is None or surface_b is None:
        result.error(ErrorKind.INPUT_MISSING, "Invalid input surfaces")
        return result

    try:
        curves, points = kernel.surface_surface_intersection(
            surface_a, surface_b, kernel.config.absolute_tolerance,
        )
    except KernelError as exc:
        logger.debug("Surface intersection failed: %s", exc)
        result.warn(ErrorKind.KERNEL_OPERATION_FAILED, "No intersection found")
        return result

    if not curves:
        result.warn(ErrorKind.KERNEL_OPERATION_FAILED, "No intersection found")
        result.points = tuple(points)
        return result

    result.curves = tuple(curves)
    result.points = tuple(points)
    logger.info(
        "Mutual edge: %d curves, total length %.3f",
        len(curves), sum(c.length() for c in curves),
    )
    return result
