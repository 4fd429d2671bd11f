"""Public API for CNC/laser joinery geometry generation."""

from cnc_joinery.contracts import (
    Diagnostic,
    ErrorKind,
    FingerJointConfig,
)
from cnc_joinery.dogbone import generate_dogbones
from cnc_joinery.finger_joint import generate_finger_joint, plan_finger_segments
from cnc_joinery.kerf import kerf_for_thickness, kerf_offset
from cnc_joinery.kernel import GeometryKernel, KernelConfig, MeshKernel
from cnc_joinery.mutual_edge import find_mutual_edge
from cnc_joinery.slicer import plan_slabs, slice_solid
from cnc_joinery.trim import trim_pair, trim_to_largest_region

__all__ = [
    "Diagnostic",
    "ErrorKind",
    "FingerJointConfig",
    "GeometryKernel",
    "KernelConfig",
    "MeshKernel",
    "find_mutual_edge",
    "generate_dogbones",
    "generate_finger_joint",
    "kerf_for_thickness",
    "kerf_offset",
    "plan_finger_segments",
    "plan_slabs",
    "slice_solid",
    "trim_pair",
    "trim_to_largest_region",
]
