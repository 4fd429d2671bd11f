"""
Kerf compensation for laser/CNC cut paths.

The kerf (width of material the beam or bit removes) is looked up from the
material thickness, and the cut path is offset by half of it: inward for
inside cuts (holes, slots), outward for outside cuts (part outlines).
Corners stay sharp so straight-edged lap and finger joints keep their fit.
"""
import logging
from typing import Optional, Sequence, Tuple

from cnc_joinery.contracts import ErrorKind, KerfOffsetResult
from cnc_joinery.curves import Curve
from cnc_joinery.kernel import CORNER_SHARP, GeometryKernel, KernelError, MeshKernel

logger = logging.getLogger(__name__)

# (max thickness mm, kerf mm); thicker than the last bound uses DEFAULT_KERF_MM
KERF_STEPS: Tuple[Tuple[float, float], ...] = (
    (1.5, 0.12),
    (2.0, 0.15),
    (2.5, 0.18),
)
DEFAULT_KERF_MM = 0.20


def kerf_for_thickness(
    thickness: float,
    steps: Sequence[Tuple[float, float]] = KERF_STEPS,
    default: float = DEFAULT_KERF_MM,
) -> float:
    """Kerf width for a sheet of ``thickness`` (step function, inclusive bounds)."""
    for upper, kerf in steps:
        if thickness <= upper:
            return kerf
    return default


def kerf_offset_distance(thickness: float, inside_cut: bool) -> float:
    """Signed offset: ``-kerf/2`` for inside cuts, ``+kerf/2`` otherwise."""
    kerf = kerf_for_thickness(thickness)
    return -kerf / 2.0 if inside_cut else kerf / 2.0


def kerf_offset(
    curve: Optional[Curve],
    thickness: Optional[float],
    inside_cut: bool = False,
    kernel: Optional[GeometryKernel] = None,
) -> KerfOffsetResult:
    """Offset a closed planar cut path by half the kerf.

    Returns:
        KerfOffsetResult with the first offset curve and the kerf used.
        Open curves, non-planar curves and failed offsets are reported as
        warnings with no output.
    """
    if kernel is None:
        kernel = MeshKernel()
    result = KerfOffsetResult()

    if curve is None or thickness is None:
        result.error(ErrorKind.INPUT_MISSING, "Curve and thickness are required.")
        return result
    if not curve.is_closed:
        result.warn(ErrorKind.INPUT_INVALID, "Invalid or open curve!")
        return result

    kerf = kerf_for_thickness(thickness)
    distance = kerf_offset_distance(thickness, inside_cut)

    plane = kernel.try_get_plane(curve)
    if plane is None:
        result.warn(ErrorKind.INPUT_INVALID, "Could not determine curve plane!")
        return result

    try:
        offsets = kernel.offset(
            curve, plane, distance, kernel.config.offset_tolerance, CORNER_SHARP,
        )
    except KernelError as exc:
        logger.debug("Offset failed: %s", exc)
        offsets = []

    if not offsets:
        result.warn(ErrorKind.KERNEL_OPERATION_FAILED, "Offset operation failed!")
        return result

    result.offset_curve = offsets[0]
    result.kerf = kerf
    logger.info(
        "Kerf %.2f for %.2fmm stock, offset %+.3f (%s cut)",
        kerf, thickness, distance, "inside" if inside_cut else "outside",
    )
    return result
