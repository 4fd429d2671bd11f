"""Trim panels by their finger cutouts.

A panel surface is split by its cutout curves and the largest remaining
region is kept; that is the panel with its fingers cut in. Area ties go to
the region the kernel returned first.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from cnc_joinery.contracts import ErrorKind, TrimPairResult, TrimResult
from cnc_joinery.curves import Curve
from cnc_joinery.kernel import Body, GeometryKernel, KernelError, MeshKernel

logger = logging.getLogger(__name__)


def largest_region(pieces: Sequence[Body], kernel: GeometryKernel) -> Optional[Body]:
    """First piece with the strictly greatest area; None if all are empty."""
    largest = None
    max_area = 0.0
    for piece in pieces:
        area = kernel.area(piece)
        if area > max_area:
            max_area = area
            largest = piece
    return largest


def trim_to_largest_region(
    body: Optional[Body],
    cutouts: Sequence[Curve],
    kernel: Optional[GeometryKernel] = None,
) -> TrimResult:
    """Split ``body`` by ``cutouts`` and keep the largest resulting region."""
    if kernel is None:
        kernel = MeshKernel()
    result = TrimResult()

    if body is None:
        result.error(ErrorKind.INPUT_MISSING, "A surface to trim is required.")
        return result
    if not cutouts:
        result.error(ErrorKind.INPUT_MISSING, "No cutout curves given.")
        return result

    try:
        pieces = kernel.split(body, list(cutouts), kernel.config.split_tolerance)
    except KernelError as exc:
        result.error(ErrorKind.KERNEL_OPERATION_FAILED, f"Split failed: {exc}")
        return result

    region = largest_region(pieces, kernel)
    if region is None:
        result.error(ErrorKind.KERNEL_OPERATION_FAILED, "Split produced no regions.")
        return result

    result.region = region
    logger.info("Trimmed surface into %d pieces, kept area %.3f", len(pieces), kernel.area(region))
    return result


def trim_pair(
    surface_a: Optional[Body],
    surface_b: Optional[Body],
    cutouts_a: Optional[Sequence[Curve]],
    cutouts_b: Optional[Sequence[Curve]],
    kernel: Optional[GeometryKernel] = None,
) -> TrimPairResult:
    """Trim both panels of a finger joint by their own cutouts.

    A side whose trim fails is left empty and reported as a warning; the
    other side is still returned.
    """
    if kernel is None:
        kernel = MeshKernel()
    result = TrimPairResult()

    if surface_a is None or surface_b is None:
        result.error(ErrorKind.INPUT_MISSING, "Invalid input surfaces!")
        return result

    cutouts_a = list(cutouts_a or [])
    cutouts_b = list(cutouts_b or [])
    if not cutouts_a and not cutouts_b:
        result.warn(ErrorKind.INPUT_MISSING, "No cutouts provided!")
        return result

    trimmed: List[Optional[Body]] = []
    for label, surface, cutouts in (("A", surface_a, cutouts_a), ("B", surface_b, cutouts_b)):
        side = trim_to_largest_region(surface, cutouts, kernel)
        for diag in side.diagnostics:
            result.warn(diag.kind, f"Surface {label}: {diag.message}")
        trimmed.append(side.region)

    result.trimmed_a, result.trimmed_b = trimmed
    return result
