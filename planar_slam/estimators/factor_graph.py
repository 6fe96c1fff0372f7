"""
Factor graph building blocks for incremental nonlinear least squares.

A factor graph holds unknown variables (nodes) and the measurements that
constrain them (factors). Each factor contributes a whitened residual

    r = R · e(x₁, ..., xₖ)

where e is the factor's basic error and R its upper-triangular square-root
information matrix (Rᵀ R = Λ, the measurement information). The objective
minimized by the solver is Σ ‖rᵢ‖².

Implements:
    - Node: unknown variable with current value and linearization point,
      initialized exactly once
    - Jacobian: whitened residual plus one Jacobian block per node
    - Factor: cost term with initialization hook, basic error and an
      analytic-or-numerical Jacobian
    - FactorGraph: owns nodes and factors, runs initialization hooks as
      factors are added and linearizes every factor for an external solver

The solver itself (assembly and factorization of the sparse system,
iteration, convergence) lives outside this package.
"""

import io
import itertools
import warnings
from typing import Callable, Dict, List, Optional, Sequence, TextIO, Tuple

import numpy as np


# Central-difference step of the fallback Jacobian
NUMERICAL_JACOBIAN_EPSILON = 1e-6

# Tolerance for entries below the diagonal of a square-root information matrix
SQRTINF_TRIANGULAR_TOL = 1e-12

_node_ids = itertools.count()
_factor_ids = itertools.count()


def numerical_jacobian(
    f: Callable[[np.ndarray], np.ndarray],
    x: np.ndarray,
    epsilon: float = NUMERICAL_JACOBIAN_EPSILON,
) -> np.ndarray:
    """
    Compute Jacobian numerically using central differences.

    Args:
        f: Function that takes x and returns y.
        x: Point at which to compute Jacobian.
        epsilon: Step size for finite differences.

    Returns:
        Numerical Jacobian, shape (len(y), len(x)).
    """
    x = np.asarray(x, dtype=float)
    y0 = np.asarray(f(x))

    J = np.zeros((len(y0), len(x)))

    for i in range(len(x)):
        x_plus = x.copy()
        x_minus = x.copy()

        x_plus[i] += epsilon
        x_minus[i] -= epsilon

        # Central difference
        J[:, i] = (np.asarray(f(x_plus)) - np.asarray(f(x_minus))) / (2 * epsilon)

    return J


class Node:
    """
    Unknown variable of a factor graph.

    A node holds two values: the current estimate and the linearization
    point, i.e. the value at which factor Jacobians are evaluated. The
    linearization point may lag the estimate during incremental solving.

    A node starts uninitialized. Factors seed it through init() exactly once,
    from the values of already-initialized neighbours; the external solver
    then moves it with update() / update0().

    Subclasses set value_type (a class with to_array() / from_array()) and
    name.

    Attributes:
        unique_id: Process-wide unique identifier.
        name: Type tag used in the text representation.
        dim: Dimension of the vector form of the value.
    """

    value_type: type = None
    name: str = "Node"

    def __init__(self):
        if self.value_type is None:
            raise TypeError(f"{type(self).__name__} must define value_type")
        self.unique_id = next(_node_ids)
        self.dim = self.value_type.dim
        self._value = None
        self._value0 = None

    @property
    def initialized(self) -> bool:
        """Whether init() has been called."""
        return self._value is not None

    def _check_value(self, value) -> None:
        if not isinstance(value, self.value_type):
            raise TypeError(
                f"{self.name} node {self.unique_id} expects "
                f"{self.value_type.__name__}, got {type(value).__name__}"
            )

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise RuntimeError(
                f"{self.name} node {self.unique_id} is not initialized"
            )

    def init(self, value) -> None:
        """
        Initialize estimate and linearization point.

        Args:
            value: Initial value, an instance of value_type.

        Raises:
            RuntimeError: If the node is already initialized.
            TypeError: If value is not an instance of value_type.
        """
        if self.initialized:
            raise RuntimeError(
                f"{self.name} node {self.unique_id} is already initialized"
            )
        self._check_value(value)
        self._value = value
        self._value0 = value

    def value(self):
        """Current estimate."""
        self._require_initialized()
        return self._value

    def value0(self):
        """Linearization point."""
        self._require_initialized()
        return self._value0

    def vector(self) -> np.ndarray:
        """Current estimate in vector form."""
        return self.value().to_array()

    def vector0(self) -> np.ndarray:
        """Linearization point in vector form."""
        return self.value0().to_array()

    def update(self, value) -> None:
        """Overwrite the current estimate of an initialized node."""
        self._require_initialized()
        self._check_value(value)
        self._value = value

    def update0(self, value) -> None:
        """Overwrite the linearization point of an initialized node."""
        self._require_initialized()
        self._check_value(value)
        self._value0 = value

    def estimate_to_linpoint(self) -> None:
        """Move the linearization point to the current estimate."""
        self._require_initialized()
        self._value0 = self._value

    def linpoint_to_estimate(self) -> None:
        """Reset the current estimate to the linearization point."""
        self._require_initialized()
        self._value = self._value0

    def write(self, out: TextIO) -> None:
        """Write "<name>_Node <id>" and, if initialized, the estimate."""
        out.write(f"{self.name}_Node {self.unique_id}")
        if self.initialized:
            out.write(f" {self._value}")

    def __str__(self) -> str:
        buffer = io.StringIO()
        self.write(buffer)
        return buffer.getvalue()


class Jacobian:
    """
    Linearization of one factor: whitened residual and Jacobian blocks.

    Attributes:
        residual: Whitened residual R · e at the linearization point, (d,).
        terms: List of (node, block) pairs, block of shape (d, node.dim),
            in the factor's node order.
    """

    def __init__(self, residual: np.ndarray):
        self.residual = np.asarray(residual, dtype=np.float64)
        self.terms: List[Tuple[Node, np.ndarray]] = []

    def add_term(self, node: Node, block: np.ndarray) -> None:
        """Append the Jacobian block with respect to node."""
        block = np.asarray(block, dtype=np.float64)
        if block.shape != (len(self.residual), node.dim):
            raise ValueError(
                f"Jacobian block for {node.name} node {node.unique_id} must "
                f"have shape {(len(self.residual), node.dim)}, got {block.shape}"
            )
        self.terms.append((node, block))

    def block(self, node: Node) -> np.ndarray:
        """Return the Jacobian block of node."""
        for term_node, block in self.terms:
            if term_node is node:
                return block
        raise KeyError(f"No Jacobian term for {node.name} node {node.unique_id}")


class Factor:
    """
    Cost term of a factor graph.

    A factor couples a fixed, ordered tuple of nodes through a measurement.
    Subclasses implement:
        - initialize(): seed uninitialized nodes from initialized ones
        - basic_error(vectors): unwhitened residual, one vector per node in
          node order
    and may override jacobian() with analytic derivatives. The default
    jacobian() differentiates the whitened basic error numerically at the
    nodes' linearization points.

    Attributes:
        unique_id: Process-wide unique identifier.
        name: Type tag used in the text representation.
        dim: Residual dimension.
        sqrtinf: Upper-triangular square-root information matrix (dim, dim).
        nodes: Tuple of coupled nodes.
    """

    jacobian_epsilon = NUMERICAL_JACOBIAN_EPSILON

    def __init__(
        self,
        name: str,
        dim: int,
        sqrtinf: np.ndarray,
        nodes: Sequence[Node],
    ):
        """
        Initialize Factor.

        Args:
            name: Type tag of the factor.
            dim: Residual dimension.
            sqrtinf: Square-root information matrix, upper triangular,
                shape (dim, dim).
            nodes: Nodes coupled by this factor.

        Raises:
            ValueError: If sqrtinf is not square, not (dim, dim) or not
                upper triangular.
        """
        sqrtinf = np.array(sqrtinf, dtype=np.float64)
        if sqrtinf.ndim != 2 or sqrtinf.shape[0] != sqrtinf.shape[1]:
            raise ValueError(f"{name}: sqrtinf must be square, got shape {sqrtinf.shape}")
        if sqrtinf.shape != (dim, dim):
            raise ValueError(
                f"{name}: sqrtinf must have shape {(dim, dim)}, got {sqrtinf.shape}"
            )
        if np.any(np.abs(np.tril(sqrtinf, k=-1)) > SQRTINF_TRIANGULAR_TOL):
            raise ValueError(f"{name}: sqrtinf must be upper triangular")
        if np.any(np.diag(sqrtinf) <= 0.0):
            warnings.warn(
                f"{name}: sqrtinf has non-positive diagonal entries "
                f"{np.diag(sqrtinf)}; the factor leaves some directions "
                "unconstrained.",
                RuntimeWarning,
            )
        sqrtinf.setflags(write=False)

        self.unique_id = next(_factor_ids)
        self.name = name
        self.dim = dim
        self.sqrtinf = sqrtinf
        self._nodes = tuple(nodes)

    @property
    def nodes(self) -> Tuple[Node, ...]:
        """Coupled nodes, in fixed order."""
        return self._nodes

    def initialize(self) -> None:
        """Seed uninitialized nodes; called once when the factor is added."""
        raise NotImplementedError

    def basic_error(self, vectors: List[np.ndarray]) -> np.ndarray:
        """Unwhitened residual given one vector per node, in node order."""
        raise NotImplementedError

    def error(self, linpoint: bool = False) -> np.ndarray:
        """
        Whitened residual R · e.

        Args:
            linpoint: Evaluate at the linearization points instead of the
                current estimates.

        Returns:
            Residual of shape (dim,).
        """
        if linpoint:
            vectors = [node.vector0() for node in self._nodes]
        else:
            vectors = [node.vector() for node in self._nodes]
        return self.sqrtinf @ self.basic_error(vectors)

    def chi2(self) -> float:
        """Squared norm of the whitened residual at the current estimates."""
        r = self.error()
        return float(r @ r)

    def jacobian(self) -> Jacobian:
        """
        Linearize the factor at the linearization points of its nodes.

        Default: central differences of the whitened basic error, one node
        at a time.

        Returns:
            Jacobian with residual and one block per node.
        """
        vectors = [node.vector0() for node in self._nodes]
        jac = Jacobian(self.sqrtinf @ self.basic_error(vectors))

        for i, node in enumerate(self._nodes):
            def error_at(x, i=i):
                perturbed = list(vectors)
                perturbed[i] = x
                return self.sqrtinf @ self.basic_error(perturbed)

            jac.add_term(
                node, numerical_jacobian(error_at, vectors[i], self.jacobian_epsilon)
            )
        return jac

    def _write_header(self, out: TextIO, nodes: Optional[Sequence[Node]] = None) -> None:
        if nodes is None:
            nodes = self._nodes
        out.write(f"{self.name} {self.unique_id}")
        for node in nodes:
            out.write(f" {node.unique_id}")

    def write(self, out: TextIO) -> None:
        """Write factor type, id and node ids; subclasses append measurements."""
        self._write_header(out)

    def __str__(self) -> str:
        buffer = io.StringIO()
        self.write(buffer)
        return buffer.getvalue()


class FactorGraph:
    """
    Factor graph owning nodes and factors.

    The graph is the construction authority of the problem: nodes are added
    first (usually uninitialized), then factors in measurement order. Adding
    a factor runs its initialization hook, so reference nodes must be
    initialized before factors that depend on them are added.

    Attributes:
        nodes: Dictionary mapping node id to node
        factors: List of factors in insertion order
    """

    def __init__(self):
        """Initialize empty Factor Graph."""
        self.nodes: Dict[int, Node] = {}
        self.factors: List[Factor] = []

    def add_node(self, node: Node) -> Node:
        """
        Add a node to the graph.

        Args:
            node: Node to add.

        Returns:
            The node, for chaining.

        Raises:
            ValueError: If the node is already in the graph.
        """
        if node.unique_id in self.nodes:
            raise ValueError(f"Node {node.unique_id} already in graph")
        self.nodes[node.unique_id] = node
        return node

    def add_factor(self, factor: Factor) -> Factor:
        """
        Add a factor to the graph and run its initialization hook.

        Args:
            factor: Factor connecting nodes of this graph.

        Returns:
            The factor, for chaining.

        Raises:
            ValueError: If any node of the factor is not in the graph.
            RuntimeError: If a node the factor initializes from is not
                initialized yet.
        """
        for node in factor.nodes:
            if self.nodes.get(node.unique_id) is not node:
                raise ValueError(f"Node {node.unique_id} not in graph")
        factor.initialize()
        self.factors.append(factor)
        return factor

    def remove_factor(self, factor: Factor) -> None:
        """
        Remove a factor. Node values are left untouched.

        Raises:
            ValueError: If the factor is not in the graph.
        """
        for i, candidate in enumerate(self.factors):
            if candidate is factor:
                del self.factors[i]
                return
        raise ValueError(f"Factor {factor.unique_id} not in graph")

    def weighted_errors(self) -> np.ndarray:
        """
        Stack the whitened residuals of all factors at the current estimates.

        Returns:
            Residual vector of length Σ factor.dim.
        """
        if not self.factors:
            return np.zeros(0)
        return np.concatenate([factor.error() for factor in self.factors])

    def compute_error(self) -> float:
        """
        Compute total error over all factors.

            error = Σ ‖Rᵢ eᵢ‖²

        Returns:
            Total squared error.
        """
        total_error = 0.0
        for factor in self.factors:
            total_error += factor.chi2()
        return total_error

    def linearize(self) -> List[Jacobian]:
        """
        Linearize every factor at the current linearization points.

        Returns:
            One Jacobian per factor, in factor order.
        """
        return [factor.jacobian() for factor in self.factors]

    def estimate_to_linpoint(self) -> None:
        """Move the linearization point of every initialized node to its estimate."""
        for node in self.nodes.values():
            if node.initialized:
                node.estimate_to_linpoint()

    def write(self, out: TextIO) -> None:
        """Write all nodes, then all factors, one per line."""
        for node in self.nodes.values():
            node.write(out)
            out.write("\n")
        for factor in self.factors:
            factor.write(out)
            out.write("\n")

    def __str__(self) -> str:
        buffer = io.StringIO()
        self.write(buffer)
        return buffer.getvalue()
