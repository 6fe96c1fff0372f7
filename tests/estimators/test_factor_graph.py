"""Unit tests for planar_slam.estimators.factor_graph module.

Tests the generic building blocks (numerical Jacobian, Jacobian container,
factor base class) and the incremental construction of a planar SLAM graph.
"""

import io

import numpy as np
import pytest

from planar_slam.estimators import Factor, FactorGraph, Jacobian, numerical_jacobian
from planar_slam.slam import (
    Point2,
    Point2Node,
    Pose2,
    Pose2Node,
    create_landmark_factor,
    create_loop_closure_factor,
    create_odometry_factor,
    create_prior_factor,
)


class TestNumericalJacobian:
    """Test suite for numerical_jacobian."""

    def test_linear_function(self):
        A = np.array([[1.0, 2.0, 3.0], [-1.0, 0.5, 4.0]])
        J = numerical_jacobian(lambda x: A @ x, np.array([0.3, -0.2, 1.0]))
        np.testing.assert_allclose(J, A, atol=1e-8)

    def test_nonlinear_function(self):
        def f(x):
            return np.array([np.sin(x[0]) * x[1], x[0] ** 2])

        x = np.array([0.5, 2.0])
        expected = np.array([
            [np.cos(0.5) * 2.0, np.sin(0.5)],
            [1.0, 0.0],
        ])
        np.testing.assert_allclose(numerical_jacobian(f, x), expected, atol=1e-8)

    def test_does_not_modify_input(self):
        x = np.array([1.0, 2.0])
        numerical_jacobian(lambda v: v * 2.0, x)
        np.testing.assert_array_equal(x, [1.0, 2.0])


class TestJacobian:
    """Test suite for the Jacobian container."""

    def test_add_and_lookup(self):
        node = Point2Node()
        jac = Jacobian(np.zeros(2))
        jac.add_term(node, np.eye(2))
        np.testing.assert_array_equal(jac.block(node), np.eye(2))

    def test_block_shape_checked(self):
        node = Pose2Node()
        jac = Jacobian(np.zeros(2))
        with pytest.raises(ValueError, match="must have shape"):
            jac.add_term(node, np.eye(2))

    def test_missing_block(self):
        jac = Jacobian(np.zeros(2))
        with pytest.raises(KeyError):
            jac.block(Point2Node())


class _ScaleFactor(Factor):
    """Minimal factor without analytic derivatives: e = 2 * point."""

    def __init__(self, point):
        super().__init__("Scale_Factor", 2, np.eye(2), [point])

    def initialize(self):
        pass

    def basic_error(self, vectors):
        return 2.0 * np.asarray(vectors[0])


class TestFactorBase:
    """Test suite for behaviour shared by all factors."""

    def test_numerical_fallback(self):
        point = Point2Node()
        point.init(Point2(1.0, -1.0))
        jac = _ScaleFactor(point).jacobian()
        np.testing.assert_allclose(jac.residual, [2.0, -2.0])
        np.testing.assert_allclose(jac.block(point), 2.0 * np.eye(2), atol=1e-8)

    def test_error_current_vs_linpoint(self):
        point = Point2Node()
        point.init(Point2(1.0, 0.0))
        point.update(Point2(3.0, 0.0))
        factor = _ScaleFactor(point)
        np.testing.assert_allclose(factor.error(), [6.0, 0.0])
        np.testing.assert_allclose(factor.error(linpoint=True), [2.0, 0.0])

    def test_chi2(self):
        point = Point2Node()
        point.init(Point2(1.0, 1.0))
        assert _ScaleFactor(point).chi2() == pytest.approx(8.0)

    def test_unique_ids(self):
        point = Point2Node()
        assert _ScaleFactor(point).unique_id != _ScaleFactor(point).unique_id

    def test_base_write(self):
        point = Point2Node()
        factor = _ScaleFactor(point)
        assert str(factor) == f"Scale_Factor {factor.unique_id} {point.unique_id}"

    def test_abstract_hooks(self):
        factor = Factor("Bare", 2, np.eye(2), [Point2Node()])
        with pytest.raises(NotImplementedError):
            factor.initialize()
        with pytest.raises(NotImplementedError):
            factor.basic_error([np.zeros(2)])


def _build_square_world():
    """
    Robot drives a unit square with a landmark in the middle.

    Returns graph, poses, landmark and the loop closure factor.
    """
    graph = FactorGraph()
    poses = [graph.add_node(Pose2Node()) for _ in range(4)]
    landmark = graph.add_node(Point2Node())

    graph.add_factor(create_prior_factor(poses[0], np.zeros(3)))
    step = np.array([1.0, 0.0, np.pi / 2])
    for i in range(3):
        graph.add_factor(create_odometry_factor(poses[i], poses[i + 1], step))
    graph.add_factor(create_landmark_factor(poses[0], landmark, np.array([0.5, 0.5])))
    loop = graph.add_factor(create_loop_closure_factor(poses[3], poses[0], step))
    return graph, poses, landmark, loop


class TestFactorGraph:
    """Test suite for FactorGraph."""

    def test_empty_graph(self):
        graph = FactorGraph()
        assert graph.compute_error() == 0.0
        assert graph.weighted_errors().shape == (0,)
        assert graph.linearize() == []

    def test_add_node_twice_fails(self):
        graph = FactorGraph()
        node = graph.add_node(Pose2Node())
        with pytest.raises(ValueError, match="already in graph"):
            graph.add_node(node)

    def test_add_factor_unknown_node_fails(self):
        graph = FactorGraph()
        pose = Pose2Node()
        with pytest.raises(ValueError, match="not in graph"):
            graph.add_factor(create_prior_factor(pose, np.zeros(3)))
        assert not pose.initialized
        assert graph.factors == []

    def test_add_factor_before_reference_fails(self):
        graph = FactorGraph()
        pose1 = graph.add_node(Pose2Node())
        pose2 = graph.add_node(Pose2Node())
        with pytest.raises(RuntimeError):
            graph.add_factor(create_odometry_factor(pose1, pose2, [1.0, 0.0, 0.0]))
        assert graph.factors == []

    def test_incremental_initialization(self):
        graph, poses, landmark, _ = _build_square_world()
        assert all(pose.initialized for pose in poses)
        np.testing.assert_allclose(poses[1].vector(), [1.0, 0.0, np.pi / 2], atol=1e-12)
        np.testing.assert_allclose(poses[2].vector(), [1.0, 1.0, np.pi], atol=1e-12)
        np.testing.assert_allclose(poses[3].vector(), [0.0, 1.0, -np.pi / 2], atol=1e-12)
        np.testing.assert_allclose(landmark.vector(), [0.5, 0.5], atol=1e-12)

    def test_consistent_measurements_have_zero_error(self):
        graph, _, _, _ = _build_square_world()
        assert graph.compute_error() == pytest.approx(0.0, abs=1e-20)
        assert graph.weighted_errors().shape == (3 + 3 * 3 + 2 + 3,)

    def test_inconsistent_loop_closure(self):
        graph, poses, _, loop = _build_square_world()
        graph.remove_factor(loop)
        graph.add_factor(
            create_loop_closure_factor(poses[3], poses[0], [1.1, 0.0, np.pi / 2])
        )
        assert graph.compute_error() == pytest.approx(0.01, rel=1e-9)

    def test_remove_factor(self):
        graph, _, _, loop = _build_square_world()
        graph.remove_factor(loop)
        assert loop not in graph.factors
        assert len(graph.factors) == 5
        with pytest.raises(ValueError, match="not in graph"):
            graph.remove_factor(loop)

    def test_linearize(self):
        graph, poses, landmark, _ = _build_square_world()
        jacobians = graph.linearize()
        assert len(jacobians) == len(graph.factors)
        landmark_jac = jacobians[4]
        np.testing.assert_allclose(landmark_jac.block(landmark), np.eye(2), atol=1e-12)
        assert [node for node, _ in landmark_jac.terms] == [poses[0], landmark]

    def test_estimate_to_linpoint(self):
        graph, poses, _, _ = _build_square_world()
        poses[1].update(Pose2(1.0, 0.1, np.pi / 2))
        assert poses[1].value0() == Pose2(1.0, 0.0, np.pi / 2)
        graph.estimate_to_linpoint()
        assert poses[1].value0() == Pose2(1.0, 0.1, np.pi / 2)

    def test_write(self):
        graph = FactorGraph()
        pose = graph.add_node(Pose2Node())
        factor = graph.add_factor(create_prior_factor(pose, np.array([1.0, 2.0, 0.5])))
        out = io.StringIO()
        graph.write(out)
        assert out.getvalue() == (
            f"Pose2d_Node {pose.unique_id} (1, 2, 0.5)\n"
            f"Pose2d_Factor {factor.unique_id} {pose.unique_id} "
            "(1, 2, 0.5) {1,0,0,1,0,1}\n"
        )
        assert str(graph) == out.getvalue()
