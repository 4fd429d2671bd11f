"""
Thickness slicer: decompose a solid into a stack of sheet-thick slabs.

The solid's Z span is cut into ``ceil(height / thickness)`` bands, each as
thick as the available stock (the top band takes whatever is left). Every
band becomes a box over the solid's full XY extent, which is intersected
with the solid. The pieces can be cut from flat sheet and stacked back
along Z to rebuild the model.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from cnc_joinery.contracts import ErrorKind, SliceResult
from cnc_joinery.kernel import Body, GeometryKernel, KernelError, MeshKernel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slab:
    """One Z band of the slab stack."""
    index: int
    z_min: float
    z_max: float

    @property
    def height(self) -> float:
        return self.z_max - self.z_min


def plan_slabs(z_min: float, z_max: float, thickness: float) -> Tuple[Slab, ...]:
    """Z bands covering ``[z_min, z_max]`` in steps of ``thickness``."""
    if thickness <= 0:
        raise ValueError(f"Slab thickness must be positive, got {thickness}")
    count = int(math.ceil((z_max - z_min) / thickness))
    slabs = []
    for i in range(max(count, 0)):
        lo = z_min + i * thickness
        hi = min(lo + thickness, z_max)
        slabs.append(Slab(index=i, z_min=lo, z_max=hi))
    return tuple(slabs)


def slice_solid(
    solid: Optional[Body],
    material_thickness: Optional[float] = 1.0,
    kernel: Optional[GeometryKernel] = None,
) -> SliceResult:
    """Cut ``solid`` into thickness-bounded slabs.

    Returns:
        SliceResult with the pieces ordered by slab index, then in the
        order the kernel returned them within a slab.
    """
    if kernel is None:
        kernel = MeshKernel()
    result = SliceResult()

    if solid is None or material_thickness is None:
        result.error(ErrorKind.INPUT_MISSING, "Solid and material thickness are required.")
        return result
    if material_thickness <= 0:
        result.error(
            ErrorKind.INPUT_INVALID,
            f"Material thickness must be positive, got {material_thickness}.",
        )
        return result

    try:
        bounds = kernel.bounding_box(solid)
    except KernelError as exc:
        result.error(ErrorKind.INPUT_INVALID, f"Solid has no extent: {exc}")
        return result

    (x_min, y_min, z_min), (x_max, y_max, z_max) = bounds
    if z_max - z_min <= 0:
        result.error(ErrorKind.DEGENERATE_GEOMETRY, "Solid has no height to slice.")
        return result

    slabs = plan_slabs(z_min, z_max, material_thickness)
    result.slab_count = len(slabs)
    tol = kernel.config.absolute_tolerance

    pieces = []
    for slab in slabs:
        if slab.height <= 0:
            logger.debug("Slab %d has no height; skipped", slab.index)
            continue
        cutter = kernel.box([[x_min, y_min, slab.z_min], [x_max, y_max, slab.z_max]])
        try:
            found = kernel.boolean_intersection([solid], [cutter], tol)
        except KernelError as exc:
            result.warn(
                ErrorKind.KERNEL_OPERATION_FAILED,
                f"Slab {slab.index} intersection failed: {exc}",
                index=slab.index,
            )
            continue
        pieces.extend(found)

    result.slices = tuple(pieces)
    logger.info(
        "Sliced %.3f of height into %d slabs, %d pieces",
        z_max - z_min, len(slabs), len(pieces),
    )
    return result
