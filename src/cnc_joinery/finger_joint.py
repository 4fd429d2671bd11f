"""
Finger (box) joint cutouts along a shared intersection curve.

The curve is divided into ``num_fingers`` arc-length segments. Even
segments are widened by half the finger gap and odd ones narrowed by the
same amount, so mating fingers fit with ``finger_gap`` clearance. Each
segment yields a rectangular cutout of ``finger_depth`` straddling the
curve at the segment midpoint:

  - even segments go to side A and follow rotation A
  - odd segments are turned 90 degrees about the local tangent onto the
    mating face, then follow rotation B

Both solids rotate about the same axis (tangent at the curve's parametric
midpoint, through the point at half its length) by their own angle, so the
joint can be opened up for inspection while the cutouts stay registered
to their solid.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from cnc_joinery.contracts import ErrorKind, FingerJointConfig, FingerJointResult
from cnc_joinery.curves import Curve, PolylineCurve
from cnc_joinery.geometry_primitives import rotation_about_axis
from cnc_joinery.kernel import Body, GeometryKernel, KernelError, MeshKernel

logger = logging.getLogger(__name__)

_MIN_VECTOR = 1e-9


@dataclass(frozen=True)
class FingerSegment:
    """One finger's arc-length span along the intersection curve."""
    index: int
    start_length: float
    width: float

    @property
    def end_length(self) -> float:
        return self.start_length + self.width

    @property
    def side(self) -> str:
        return "a" if self.index % 2 == 0 else "b"


def plan_finger_segments(
    total_length: float,
    num_fingers: int,
    finger_gap: float,
) -> Tuple[FingerSegment, ...]:
    """Lay out finger spans along a curve of ``total_length``.

    Widths alternate ``w0 + gap/2`` (even index) and ``w0 - gap/2`` (odd),
    with ``w0 = total_length / num_fingers``. A segment that would run past
    the end is clamped to the remaining length; once nothing remains the
    layout stops, so fewer than ``num_fingers`` segments may come back.
    """
    if num_fingers <= 0 or total_length <= 0:
        return ()

    base_width = total_length / num_fingers
    half_gap = finger_gap / 2.0
    segments: List[FingerSegment] = []
    cursor = 0.0

    for i in range(num_fingers):
        width = base_width + (half_gap if i % 2 == 0 else -half_gap)
        if cursor + width > total_length:
            width = total_length - cursor
        if width <= 0:
            break
        segments.append(FingerSegment(index=i, start_length=cursor, width=width))
        cursor += width

    return tuple(segments)


def finger_profile(
    curve: Curve,
    segment: FingerSegment,
    finger_depth: float,
    flip_direction: bool = False,
) -> Optional[Tuple[PolylineCurve, np.ndarray, np.ndarray]]:
    """Rectangular cutout for ``segment`` in the curve's own frame.

    Returns ``(profile, mid_point, tangent)`` or None when the tangent is
    zero or vertical (no in-plane normal exists).
    """
    t_start = curve.length_parameter(segment.start_length)
    t_end = curve.length_parameter(segment.end_length)
    t_mid = (t_start + t_end) / 2.0

    mid_pt = curve.point_at(t_mid)
    tangent = curve.tangent_at(t_mid)
    tan_len = float(np.linalg.norm(tangent))
    if tan_len < _MIN_VECTOR:
        return None
    tangent = tangent / tan_len

    normal = np.array([-tangent[1], tangent[0], 0.0])
    normal_len = float(np.linalg.norm(normal))
    if normal_len < _MIN_VECTOR:
        return None
    normal = normal / normal_len * finger_depth
    if flip_direction:
        normal = -normal

    half = (curve.point_at(t_end) - curve.point_at(t_start)) / 2.0
    pt1 = mid_pt - half
    pt2 = pt1 + normal
    pt3 = mid_pt + half + normal
    pt4 = mid_pt + half
    return PolylineCurve([pt1, pt2, pt3, pt4], closed=True), mid_pt, tangent


def generate_finger_joint(
    solid_a: Optional[Body],
    solid_b: Optional[Body],
    curve: Optional[Curve],
    config: Optional[FingerJointConfig] = None,
    kernel: Optional[GeometryKernel] = None,
) -> FingerJointResult:
    """Generate finger cutouts for both sides of a joint.

    Args:
        solid_a: Body receiving the even fingers.
        solid_b: Body receiving the odd fingers.
        curve: Shared intersection curve; not modified.
        config: Gap, depth, count, flip and per-side rotations.
        kernel: Geometry kernel used to rotate the solids.

    Returns:
        FingerJointResult with ``cutouts_a``/``cutouts_b`` (disjoint by
        parity), the two rotated solids and the emitted segments.
    """
    if config is None:
        config = FingerJointConfig()
    if kernel is None:
        kernel = MeshKernel()

    result = FingerJointResult()

    if solid_a is None or solid_b is None or curve is None:
        result.error(ErrorKind.INPUT_MISSING, "Solids A, B and the intersection curve are required.")
        return result
    if config.num_fingers < 2:
        result.error(
            ErrorKind.INPUT_INVALID,
            f"Number of fingers must be at least 2, got {config.num_fingers}.",
        )
        return result
    if config.finger_depth <= 0:
        result.error(
            ErrorKind.INPUT_INVALID,
            f"Finger depth must be positive, got {config.finger_depth}.",
        )
        return result

    total_length = curve.length()
    if total_length <= 0:
        result.error(ErrorKind.DEGENERATE_GEOMETRY, "Intersection curve has zero length.")
        return result

    rotation_center = curve.point_at_normalized_length(0.5)
    axis = curve.tangent_at(curve.mid_parameter)
    axis_len = float(np.linalg.norm(axis))
    if axis_len < _MIN_VECTOR:
        result.error(ErrorKind.DEGENERATE_GEOMETRY, "Curve tangent at its midpoint is zero.")
        return result
    axis = axis / axis_len

    rotation_a = rotation_about_axis(math.radians(config.rotation_a_deg), axis, rotation_center)
    rotation_b = rotation_about_axis(math.radians(config.rotation_b_deg), axis, rotation_center)

    try:
        rotated_a = kernel.transform(solid_a, rotation_a)
        rotated_b = kernel.transform(solid_b, rotation_b)
    except KernelError as exc:
        result.error(ErrorKind.KERNEL_OPERATION_FAILED, f"Could not rotate solids: {exc}")
        return result

    segments = plan_finger_segments(total_length, config.num_fingers, config.finger_gap)

    cutouts_a = []
    cutouts_b = []
    emitted = []
    for segment in segments:
        framed = finger_profile(curve, segment, config.finger_depth, config.flip_direction)
        if framed is None:
            result.warn(
                ErrorKind.DEGENERATE_GEOMETRY,
                f"Finger {segment.index} has no in-plane normal; skipped.",
                index=segment.index,
            )
            logger.debug("Skipping finger %d: degenerate tangent", segment.index)
            continue
        profile, mid_pt, tangent = framed

        if segment.index % 2 == 0:
            cutouts_a.append(profile.transformed(rotation_a))
        else:
            onto_mating_face = rotation_about_axis(math.pi / 2.0, tangent, mid_pt)
            cutouts_b.append(profile.transformed(onto_mating_face).transformed(rotation_b))
        emitted.append(segment)

    result.cutouts_a = tuple(cutouts_a)
    result.cutouts_b = tuple(cutouts_b)
    result.rotated_a = rotated_a
    result.rotated_b = rotated_b
    result.segments = tuple(emitted)

    logger.info(
        "Finger joint: %d fingers over %.3f (A=%d, B=%d)",
        len(emitted), total_length, len(cutouts_a), len(cutouts_b),
    )
    return result
