"""Unit tests for the Pose2 and Point2 value types."""

import dataclasses

import numpy as np
import pytest

from planar_slam.slam import Point2, Pose2
from planar_slam.utils import wrap_angle


class TestPoint2:
    """Test suite for Point2."""

    def test_to_array(self):
        np.testing.assert_array_equal(Point2(2.0, 1.0).to_array(), [2.0, 1.0])

    def test_from_array(self):
        assert Point2.from_array(np.array([2.0, 1.0])) == Point2(2.0, 1.0)

    def test_from_array_wrong_shape(self):
        with pytest.raises(ValueError, match="shape"):
            Point2.from_array(np.zeros(3))

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            Point2(np.nan, 0.0)

    def test_immutable(self):
        q = Point2(1.0, 2.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            q.x = 3.0

    def test_str(self):
        assert str(Point2(2.0, -0.5)) == "(2, -0.5)"

    def test_asarray(self):
        np.testing.assert_array_equal(np.asarray(Point2(1.0, 2.0)), [1.0, 2.0])


class TestPose2:
    """Test suite for Pose2."""

    def test_identity(self):
        assert Pose2.identity() == Pose2(0.0, 0.0, 0.0)

    def test_heading_not_normalized_on_construction(self):
        assert Pose2(0.0, 0.0, 4.0).yaw == 4.0

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError, match="yaw must be finite"):
            Pose2(0.0, 0.0, np.inf)

    def test_oplus(self):
        """1m forward and a left turn from the origin."""
        b = Pose2.identity().oplus(Pose2(1.0, 0.0, np.pi / 2))
        assert b == Pose2(1.0, 0.0, np.pi / 2)

    def test_oplus_normalizes_heading(self):
        b = Pose2(0.0, 0.0, 3.0).oplus(Pose2(0.0, 0.0, 1.0))
        assert -np.pi < b.yaw <= np.pi

    def test_ominus_is_pose_in_first_frame(self):
        """b expressed in a's frame."""
        a = Pose2(1.0, 1.0, np.pi / 2)
        b = Pose2(1.0, 3.0, np.pi / 2)
        rel = a.ominus(b)
        np.testing.assert_allclose(rel.to_array(), [2.0, 0.0, 0.0], atol=1e-12)

    def test_oplus_ominus_round_trip(self):
        rng = np.random.default_rng(3)
        for _ in range(20):
            a = Pose2(*rng.uniform(-5.0, 5.0, 2), rng.uniform(-np.pi, np.pi))
            b = Pose2(*rng.uniform(-5.0, 5.0, 2), rng.uniform(-np.pi, np.pi))
            for result in (a.ominus(a.oplus(b)), a.oplus(a.ominus(b))):
                np.testing.assert_allclose(
                    [result.x, result.y], [b.x, b.y], atol=1e-9
                )
                assert abs(wrap_angle(result.yaw - b.yaw)) < 1e-9

    def test_inverse(self):
        p = Pose2(1.0, 2.0, 0.3)
        result = p.oplus(p.inverse())
        np.testing.assert_allclose(result.to_array(), np.zeros(3), atol=1e-12)

    def test_transform_round_trip(self):
        p = Pose2(-1.0, 4.0, 2.2)
        q = Point2(0.5, -3.0)
        back = p.transform_to(p.transform_from(q))
        np.testing.assert_allclose(back.to_array(), q.to_array(), atol=1e-12)

    def test_transform_from_identity(self):
        assert Pose2.identity().transform_from(Point2(2.0, 1.0)) == Point2(2.0, 1.0)

    def test_translation(self):
        assert Pose2(1.0, 2.0, 0.5).translation() == Point2(1.0, 2.0)

    def test_str(self):
        assert str(Pose2(1.0, 0.0, 0.25)) == "(1, 0, 0.25)"
