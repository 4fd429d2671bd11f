"""Tests for finger joint segmentation and cutout generation."""
import math

import numpy as np
import pytest
import trimesh

from cnc_joinery.contracts import ErrorKind, FingerJointConfig
from cnc_joinery.curves import PolylineCurve
from cnc_joinery.finger_joint import (
    FingerSegment,
    finger_profile,
    generate_finger_joint,
    plan_finger_segments,
)
from cnc_joinery.kernel import MeshKernel

from conftest import FakeBody


class TestPlanFingerSegments:
    """Test the pure arc-length layout."""

    def test_four_equal_fingers(self):
        segments = plan_finger_segments(40.0, 4, 0.0)
        assert [s.width for s in segments] == pytest.approx([10.0] * 4)
        assert [s.start_length for s in segments] == pytest.approx([0, 10, 20, 30])
        assert [s.side for s in segments] == ["a", "b", "a", "b"]

    def test_gap_alternates_widths(self):
        segments = plan_finger_segments(40.0, 4, 1.0)
        assert [s.width for s in segments] == pytest.approx([10.5, 9.5, 10.5, 9.5])

    def test_last_finger_clamped(self):
        segments = plan_finger_segments(40.0, 5, 1.0)
        assert len(segments) == 5
        assert segments[-1].width == pytest.approx(8.0)
        assert segments[-1].end_length == pytest.approx(40.0)

    @pytest.mark.parametrize("length,count,gap", [
        (40.0, 4, 0.0),
        (40.0, 5, 1.0),
        (123.4, 7, 2.5),
        (10.0, 3, 2.0),
        (55.0, 2, 0.3),
    ])
    def test_widths_cover_length(self, length, count, gap):
        segments = plan_finger_segments(length, count, gap)
        assert sum(s.width for s in segments) == pytest.approx(length)
        assert len(segments) <= count
        for prev, nxt in zip(segments, segments[1:]):
            assert nxt.start_length == pytest.approx(prev.end_length)

    def test_layout_stops_when_nothing_remains(self):
        segments = plan_finger_segments(10.0, 2, 20.0)
        assert len(segments) == 1
        assert segments[0].width == pytest.approx(10.0)

    def test_degenerate_inputs(self):
        assert plan_finger_segments(0.0, 4, 0.0) == ()
        assert plan_finger_segments(10.0, 0, 0.0) == ()


class TestFingerProfile:

    def test_rectangle_straddles_curve(self, straight_edge):
        profile, mid, tangent = finger_profile(straight_edge, FingerSegment(0, 0.0, 10.0), 5.0)
        np.testing.assert_allclose(mid, [5, 0, 0])
        np.testing.assert_allclose(tangent, [1, 0, 0])
        np.testing.assert_allclose(
            profile.points, [[0, 0, 0], [0, 5, 0], [10, 5, 0], [10, 0, 0]], atol=1e-12,
        )
        assert profile.is_closed

    def test_flip_direction(self, straight_edge):
        profile, _, _ = finger_profile(straight_edge, FingerSegment(0, 0.0, 10.0), 5.0, True)
        np.testing.assert_allclose(profile.points[1], [0, -5, 0], atol=1e-12)

    def test_vertical_tangent_has_no_profile(self):
        vertical = PolylineCurve([(0, 0, 0), (0, 0, 10)], closed=False)
        assert finger_profile(vertical, FingerSegment(0, 0.0, 5.0), 5.0) is None


class TestGenerateFingerJoint:
    """Test cutout routing and solid rotation."""

    def test_parity_routing(self, fake_kernel, straight_edge):
        config = FingerJointConfig(finger_gap=0.0, num_fingers=4)
        result = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), straight_edge, config, fake_kernel,
        )
        assert result.ok
        assert len(result.cutouts_a) == 2
        assert len(result.cutouts_b) == 2
        assert [s.index for s in result.segments] == [0, 1, 2, 3]

        # Even fingers lie in the curve plane, starting at 0 and 20
        starts = sorted(c.points[0][0] for c in result.cutouts_a)
        assert starts == pytest.approx([0.0, 20.0])
        for cutout in result.cutouts_a:
            np.testing.assert_allclose(cutout.points[:, 2], 0.0, atol=1e-12)

    def test_odd_fingers_turned_onto_mating_face(self, fake_kernel, straight_edge):
        config = FingerJointConfig(finger_gap=0.0, finger_depth=5.0, num_fingers=4)
        result = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), straight_edge, config, fake_kernel,
        )
        first_b = result.cutouts_b[0].points
        np.testing.assert_allclose(first_b[:, 1], 0.0, atol=1e-9)
        assert sorted(np.round(first_b[:, 2], 9)) == pytest.approx([0, 0, 5, 5])
        assert first_b[:, 0].min() == pytest.approx(10.0)
        assert first_b[:, 0].max() == pytest.approx(20.0)

    def test_rotations_about_curve_midpoint(self, fake_kernel, straight_edge):
        config = FingerJointConfig(num_fingers=4, rotation_a_deg=90.0, rotation_b_deg=-90.0)
        result = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), straight_edge, config, fake_kernel,
        )
        rot_a = result.rotated_a.transforms[-1]
        rot_b = result.rotated_b.transforms[-1]

        center = np.array([20.0, 0.0, 0.0, 1.0])
        np.testing.assert_allclose(rot_a @ center, center, atol=1e-9)
        np.testing.assert_allclose(rot_a @ [20.0, 1.0, 0.0, 1.0], [20, 0, 1, 1], atol=1e-9)
        np.testing.assert_allclose(rot_b @ [20.0, 1.0, 0.0, 1.0], [20, 0, -1, 1], atol=1e-9)

        # Cutouts for side A follow rotation A out of the XY plane
        first_a = result.cutouts_a[0].points
        np.testing.assert_allclose(first_a[1], [0, 0, 5], atol=1e-9)

    def test_inputs_not_modified(self, fake_kernel, straight_edge):
        solid_a = FakeBody("a")
        before = straight_edge.points.copy()
        generate_finger_joint(solid_a, FakeBody("b"), straight_edge, FingerJointConfig(), fake_kernel)
        assert solid_a.transforms == ()
        np.testing.assert_array_equal(straight_edge.points, before)

    def test_repeated_calls_identical(self, fake_kernel, straight_edge):
        config = FingerJointConfig(finger_gap=0.5, num_fingers=5, rotation_a_deg=45.0)
        first = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), straight_edge, config, fake_kernel,
        )
        second = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), straight_edge, config, fake_kernel,
        )
        assert first.segments == second.segments
        for side in ("cutouts_a", "cutouts_b"):
            ours, theirs = getattr(first, side), getattr(second, side)
            assert len(ours) == len(theirs)
            for a, b in zip(ours, theirs):
                np.testing.assert_array_equal(a.points, b.points)
        np.testing.assert_array_equal(
            first.rotated_a.transforms[-1], second.rotated_a.transforms[-1],
        )

    def test_segment_count_never_exceeds_request(self, fake_kernel, straight_edge):
        config = FingerJointConfig(finger_gap=1.0, num_fingers=5)
        result = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), straight_edge, config, fake_kernel,
        )
        assert len(result.cutouts_a) + len(result.cutouts_b) == len(result.segments)
        assert len(result.segments) <= 5
        assert len(result.cutouts_a) == 3

    def test_vertical_curve_fingers_skipped(self, fake_kernel):
        vertical = PolylineCurve([(0, 0, 0), (0, 0, 10)], closed=False)
        result = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), vertical, FingerJointConfig(num_fingers=2), fake_kernel,
        )
        assert result.ok
        assert result.cutouts_a == () and result.cutouts_b == ()
        assert len(result.warnings) == 2
        assert all(w.kind == ErrorKind.DEGENERATE_GEOMETRY for w in result.warnings)

    def test_with_mesh_kernel(self, panel_xy, panel_xz):
        edge = PolylineCurve([(0, 50, 0), (100, 50, 0)], closed=False)
        config = FingerJointConfig(num_fingers=5, rotation_a_deg=30.0)
        result = generate_finger_joint(panel_xy, panel_xz, edge, config, MeshKernel())
        assert result.ok
        assert isinstance(result.rotated_a, trimesh.Trimesh)
        assert result.rotated_a is not panel_xy
        assert result.rotated_a.volume == pytest.approx(panel_xy.volume)
        np.testing.assert_allclose(result.rotated_b.vertices, panel_xz.vertices, atol=1e-9)


class TestFingerJointInputs:
    """Test input validation."""

    def test_missing_solid(self, fake_kernel, straight_edge):
        result = generate_finger_joint(None, FakeBody("b"), straight_edge, kernel=fake_kernel)
        assert not result.ok
        assert result.errors[0].kind == ErrorKind.INPUT_MISSING
        assert fake_kernel.called("transform") == 0

    def test_missing_curve(self, fake_kernel):
        result = generate_finger_joint(FakeBody("a"), FakeBody("b"), None, kernel=fake_kernel)
        assert result.errors[0].kind == ErrorKind.INPUT_MISSING

    def test_too_few_fingers(self, fake_kernel, straight_edge):
        result = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), straight_edge,
            FingerJointConfig(num_fingers=1), fake_kernel,
        )
        assert result.errors[0].kind == ErrorKind.INPUT_INVALID
        assert result.cutouts_a == ()

    @pytest.mark.parametrize("depth", [0.0, -1.0])
    def test_non_positive_depth(self, fake_kernel, straight_edge, depth):
        result = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), straight_edge,
            FingerJointConfig(finger_depth=depth), fake_kernel,
        )
        assert result.errors[0].kind == ErrorKind.INPUT_INVALID

    def test_zero_length_curve(self, fake_kernel):
        point = PolylineCurve([(1, 1, 0), (1, 1, 0)], closed=False)
        result = generate_finger_joint(FakeBody("a"), FakeBody("b"), point, kernel=fake_kernel)
        assert result.errors[0].kind == ErrorKind.DEGENERATE_GEOMETRY

    def test_degrees_converted(self, fake_kernel, straight_edge):
        config = FingerJointConfig(rotation_a_deg=180.0)
        result = generate_finger_joint(
            FakeBody("a"), FakeBody("b"), straight_edge, config, fake_kernel,
        )
        rot_a = result.rotated_a.transforms[-1]
        assert rot_a[1, 1] == pytest.approx(math.cos(math.pi))
