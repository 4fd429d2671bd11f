"""Contracts shared by the joinery generators: configs, diagnostics, results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"


class ErrorKind(Enum):
    """Why a component produced no (or partial) output."""
    INPUT_MISSING = "input_missing"
    INPUT_INVALID = "input_invalid"
    KERNEL_OPERATION_FAILED = "kernel_operation_failed"
    DEGENERATE_GEOMETRY = "degenerate_geometry"


@dataclass(frozen=True)
class Diagnostic:
    """A user-facing message attached to a component result.

    ``severity`` is ``"error"`` (output withheld) or ``"warning"``
    (output withheld for one slot, or partial).
    """

    kind: ErrorKind
    severity: str
    message: str
    index: Optional[int] = None


@dataclass
class ComponentResult:
    """Base for all component results."""

    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(d.severity == SEVERITY_ERROR for d in self.diagnostics)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == SEVERITY_ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == SEVERITY_WARNING]

    def error(self, kind: ErrorKind, message: str, index: Optional[int] = None) -> None:
        self.diagnostics.append(Diagnostic(kind, SEVERITY_ERROR, message, index))

    def warn(self, kind: ErrorKind, message: str, index: Optional[int] = None) -> None:
        self.diagnostics.append(Diagnostic(kind, SEVERITY_WARNING, message, index))


@dataclass(frozen=True)
class FingerJointConfig:
    """Finger joint parameters. Angles are in degrees."""

    finger_gap: float = 1.0
    finger_depth: float = 5.0
    num_fingers: int = 5
    flip_direction: bool = False
    rotation_a_deg: float = 0.0
    rotation_b_deg: float = 0.0


@dataclass
class DogboneResult(ComponentResult):
    circles: Tuple[object, ...] = ()


@dataclass
class FingerJointResult(ComponentResult):
    cutouts_a: Tuple[object, ...] = ()
    cutouts_b: Tuple[object, ...] = ()
    rotated_a: Optional[object] = None
    rotated_b: Optional[object] = None
    segments: Tuple[object, ...] = ()


@dataclass
class KerfOffsetResult(ComponentResult):
    offset_curve: Optional[object] = None
    kerf: Optional[float] = None


@dataclass
class SliceResult(ComponentResult):
    slices: Tuple[object, ...] = ()
    slab_count: int = 0


@dataclass
class TrimResult(ComponentResult):
    region: Optional[object] = None


@dataclass
class TrimPairResult(ComponentResult):
    trimmed_a: Optional[object] = None
    trimmed_b: Optional[object] = None


@dataclass
class MutualEdgeResult(ComponentResult):
    curves: Tuple[object, ...] = ()
    points: Tuple[object, ...] = ()

