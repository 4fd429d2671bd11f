"""Command-line front end: one joinery component per invocation.

Curves are read from DXF and solids from mesh files; results are written
as DXF (curves, one layer per output) and STL (solids). Diagnostics are
logged at error/warning level; the exit code is 1 when any error was
reported.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

import ezdxf

from cnc_joinery.contracts import SEVERITY_ERROR, ComponentResult, FingerJointConfig
from cnc_joinery.dogbone import generate_dogbones
from cnc_joinery.dxf_io import curves_to_dxf, read_curves
from cnc_joinery.finger_joint import generate_finger_joint
from cnc_joinery.kerf import kerf_offset
from cnc_joinery.kernel import KernelConfig, MeshKernel
from cnc_joinery.mesh_io import export_meshes, load_mesh
from cnc_joinery.mutual_edge import find_mutual_edge
from cnc_joinery.slicer import slice_solid
from cnc_joinery.trim import trim_pair

logger = logging.getLogger("cnc_joinery")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cnc-joinery",
        description="CNC/laser joinery geometry: dogbones, finger joints, kerf offsets, slicing",
    )
    parser.add_argument(
        "--tolerance", type=float, default=0.01, help="Model absolute tolerance (mm)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("dogbone", help="Dogbone reliefs at concave polyline corners")
    p.add_argument("--curve", required=True, help="DXF with closed polylines")
    p.add_argument("--layer", default=None, help="Only read curves on this layer")
    p.add_argument("--bit-diameter", type=float, required=True, help="Cutter diameter (mm)")
    p.add_argument("--output", required=True, help="Output DXF path")

    p = sub.add_parser("fingers", help="Finger joint cutouts along an intersection curve")
    p.add_argument("--mesh-a", required=True, help="Panel A mesh")
    p.add_argument("--mesh-b", required=True, help="Panel B mesh")
    p.add_argument(
        "--curve", default=None,
        help="DXF with the intersection curve (default: mutual edge of A and B)",
    )
    defaults = FingerJointConfig()
    p.add_argument("--gap", type=float, default=defaults.finger_gap, help="Finger gap")
    p.add_argument("--depth", type=float, default=defaults.finger_depth, help="Finger depth")
    p.add_argument("--count", type=int, default=defaults.num_fingers, help="Number of fingers")
    p.add_argument("--flip", action="store_true", help="Flip finger direction")
    p.add_argument("--rotate-a", type=float, default=defaults.rotation_a_deg, help="Rotation of A (deg)")
    p.add_argument("--rotate-b", type=float, default=defaults.rotation_b_deg, help="Rotation of B (deg)")
    p.add_argument("--output-dir", required=True, help="Directory for cutouts DXF and rotated STLs")

    p = sub.add_parser("trim", help="Trim two panels by their finger cutouts")
    p.add_argument("--mesh-a", required=True, help="Panel A mesh")
    p.add_argument("--mesh-b", required=True, help="Panel B mesh")
    p.add_argument("--cutouts", required=True, help="DXF with CUTOUTS_A / CUTOUTS_B layers")
    p.add_argument("--output", required=True, help="Output DXF path")

    p = sub.add_parser("kerf", help="Kerf-compensated offset of closed curves")
    p.add_argument("--curve", required=True, help="DXF with closed curves")
    p.add_argument("--layer", default=None, help="Only read curves on this layer")
    p.add_argument("--thickness", type=float, required=True, help="Material thickness (mm)")
    p.add_argument("--inside", action="store_true", help="Inside cut (offset inward)")
    p.add_argument("--output", required=True, help="Output DXF path")

    p = sub.add_parser("slice", help="Slice a solid into sheet-thick slabs")
    p.add_argument("--mesh", required=True, help="Solid mesh to slice")
    p.add_argument("--thickness", type=float, default=1.0, help="Material thickness (mm)")
    p.add_argument("--output-dir", required=True, help="Directory for slab STLs")

    p = sub.add_parser("edge", help="Shared edge of two panels")
    p.add_argument("--mesh-a", required=True, help="Panel A mesh")
    p.add_argument("--mesh-b", required=True, help="Panel B mesh")
    p.add_argument("--output", required=True, help="Output DXF path")

    return parser


def report(result: ComponentResult, context: str) -> bool:
    """Log a result's diagnostics; True when it carries no error."""
    for diag in result.diagnostics:
        level = logging.ERROR if diag.severity == SEVERITY_ERROR else logging.WARNING
        logger.log(level, "%s: [%s] %s", context, diag.kind.value, diag.message)
    return result.ok


def run_dogbone(args, kernel: MeshKernel) -> int:
    curves = read_curves(args.curve, layer=args.layer)
    if not curves:
        logger.error("No curves found in %s", args.curve)
        return 1

    ok = True
    circles = []
    for i, curve in enumerate(curves):
        result = generate_dogbones(curve, args.bit_diameter)
        ok = report(result, f"curve {i}") and ok
        circles.extend(result.circles)

    layers = {"SOURCE": curves, "DOGBONE": circles}
    curves_to_dxf(layers, args.output)
    print(f"{len(circles)} dogbones -> {args.output}")
    return 0 if ok else 1


def run_fingers(args, kernel: MeshKernel) -> int:
    solid_a = load_mesh(args.mesh_a)
    solid_b = load_mesh(args.mesh_b)

    if args.curve:
        curves = read_curves(args.curve)
        if not curves:
            logger.error("No curves found in %s", args.curve)
            return 1
        curve = curves[0]
    else:
        edge = find_mutual_edge(solid_a, solid_b, kernel)
        if not report(edge, "mutual edge") or not edge.curves:
            return 1
        curve = max(edge.curves, key=lambda c: c.length())

    config = FingerJointConfig(
        finger_gap=args.gap,
        finger_depth=args.depth,
        num_fingers=args.count,
        flip_direction=args.flip,
        rotation_a_deg=args.rotate_a,
        rotation_b_deg=args.rotate_b,
    )
    result = generate_finger_joint(solid_a, solid_b, curve, config, kernel)
    if not report(result, "finger joint"):
        return 1

    os.makedirs(args.output_dir, exist_ok=True)
    dxf_path = os.path.join(args.output_dir, "cutouts.dxf")
    curves_to_dxf(
        {"EDGE": [curve], "CUTOUTS_A": result.cutouts_a, "CUTOUTS_B": result.cutouts_b},
        dxf_path,
    )
    export_meshes([result.rotated_a], args.output_dir, "rotated_a")
    export_meshes([result.rotated_b], args.output_dir, "rotated_b")
    print(
        f"{len(result.cutouts_a)} + {len(result.cutouts_b)} fingers -> {args.output_dir}"
    )
    return 0


def run_trim(args, kernel: MeshKernel) -> int:
    surface_a = load_mesh(args.mesh_a)
    surface_b = load_mesh(args.mesh_b)
    cutouts_a = read_curves(args.cutouts, layer="CUTOUTS_A")
    cutouts_b = read_curves(args.cutouts, layer="CUTOUTS_B")

    result = trim_pair(surface_a, surface_b, cutouts_a, cutouts_b, kernel)
    ok = report(result, "trim")
    trimmed = [r for r in (result.trimmed_a, result.trimmed_b) if r is not None]
    if not trimmed:
        return 1
    curves_to_dxf({"CUT": trimmed}, args.output)
    print(f"{len(trimmed)} trimmed surfaces -> {args.output}")
    return 0 if ok else 1


def run_kerf(args, kernel: MeshKernel) -> int:
    curves = read_curves(args.curve, layer=args.layer)
    if not curves:
        logger.error("No curves found in %s", args.curve)
        return 1

    ok = True
    offsets = []
    kerf = None
    for i, curve in enumerate(curves):
        result = kerf_offset(curve, args.thickness, args.inside, kernel)
        ok = report(result, f"curve {i}") and ok
        if result.offset_curve is not None:
            offsets.append(result.offset_curve)
            kerf = result.kerf
    if not offsets:
        return 1

    curves_to_dxf({"SOURCE": curves, "OFFSET": offsets}, args.output)
    print(f"kerf {kerf:.2f}: {len(offsets)} offset curves -> {args.output}")
    return 0 if ok else 1


def run_slice(args, kernel: MeshKernel) -> int:
    solid = load_mesh(args.mesh)
    result = slice_solid(solid, args.thickness, kernel)
    ok = report(result, "slicer")
    if not result.slices:
        return 1
    export_meshes(list(result.slices), args.output_dir, "slice")
    print(f"{result.slab_count} slabs, {len(result.slices)} pieces -> {args.output_dir}")
    return 0 if ok else 1


def run_edge(args, kernel: MeshKernel) -> int:
    result = find_mutual_edge(load_mesh(args.mesh_a), load_mesh(args.mesh_b), kernel)
    report(result, "mutual edge")
    if not result.curves:
        return 1
    curves_to_dxf({"EDGE": result.curves}, args.output)
    print(f"{len(result.curves)} edge curves -> {args.output}")
    return 0


_COMMANDS = {
    "dogbone": run_dogbone,
    "fingers": run_fingers,
    "trim": run_trim,
    "kerf": run_kerf,
    "slice": run_slice,
    "edge": run_edge,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    kernel = MeshKernel(KernelConfig(absolute_tolerance=args.tolerance))
    try:
        return _COMMANDS[args.command](args, kernel)
    except (ValueError, OSError, ezdxf.DXFStructureError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
