"""
Factor graph framework.

Nodes (unknown variables), factors (cost terms) and the graph container that
initializes and linearizes them for an external sparse solver.
"""

from planar_slam.estimators.factor_graph import (
    Factor,
    FactorGraph,
    Jacobian,
    Node,
    numerical_jacobian,
)

__all__ = [
    "Node",
    "Factor",
    "Jacobian",
    "FactorGraph",
    "numerical_jacobian",
]
