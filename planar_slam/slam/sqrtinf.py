"""Square-root information (weighting) matrices and their text form.

Every factor whitens its residual with an upper-triangular matrix R whose
product Rᵀ R is the information matrix (inverse measurement covariance) of
the measurement. This module derives R from an information or covariance
matrix, and provides the compact text encoding that every factor appends to
its textual representation:

    {R[0,0],R[0,1],...,R[0,n-1],R[1,1],...,R[n-1,n-1]}

i.e. the upper-triangular entries in row-major order. It also parses the
"(x, y)" / "(x, y, yaw)" value text forms back into values.
"""

import re

import numpy as np
from scipy import linalg

from ..utils.formatting import format_scalar
from .types import Point2, Pose2


def sqrtinf_to_string(sqrtinf: np.ndarray) -> str:
    """
    Encode an upper-triangular square matrix as "{a,b,...}".

    Args:
        sqrtinf: Square matrix of shape (n, n). Entries below the diagonal
            are not encoded.

    Returns:
        Brace-delimited, comma-separated upper-triangular entries in
        row-major order.

    Raises:
        ValueError: If the matrix is not square.

    Examples:
        >>> sqrtinf_to_string(np.array([[1.0, 2.0], [0.0, 0.5]]))
        '{1,2,0.5}'
    """
    sqrtinf = np.asarray(sqrtinf, dtype=np.float64)
    if sqrtinf.ndim != 2 or sqrtinf.shape[0] != sqrtinf.shape[1]:
        raise ValueError(f"sqrtinf must be square, got shape {sqrtinf.shape}")

    rows, cols = np.triu_indices(sqrtinf.shape[0])
    entries = sqrtinf[rows, cols]
    return "{" + ",".join(format_scalar(v) for v in entries) + "}"


def sqrtinf_from_string(text: str) -> np.ndarray:
    """
    Decode the "{a,b,...}" form produced by sqrtinf_to_string().

    The side length n is recovered from the entry count n(n+1)/2.

    Args:
        text: Encoded matrix.

    Returns:
        Upper-triangular matrix of shape (n, n).

    Raises:
        ValueError: If the text is malformed or the entry count is not a
            triangular number.

    Examples:
        >>> sqrtinf_from_string("{1,2,0.5}")
        array([[1. , 2. ],
               [0. , 0.5]])
    """
    text = text.strip()
    if not (text.startswith("{") and text.endswith("}")):
        raise ValueError(f"sqrtinf text must be enclosed in braces, got {text!r}")

    body = text[1:-1].strip()
    if not body:
        raise ValueError("sqrtinf text contains no entries")
    try:
        entries = [float(token) for token in body.split(",")]
    except ValueError as exc:
        raise ValueError(f"Invalid sqrtinf entry in {text!r}") from exc

    m = len(entries)
    n = int(round((np.sqrt(8 * m + 1) - 1) / 2))
    if n * (n + 1) // 2 != m:
        raise ValueError(
            f"sqrtinf text has {m} entries, which is not n(n+1)/2 for any n"
        )

    sqrtinf = np.zeros((n, n), dtype=np.float64)
    sqrtinf[np.triu_indices(n)] = entries
    return sqrtinf


def sqrtinf_from_information(information: np.ndarray) -> np.ndarray:
    """
    Compute the square-root information matrix R with Rᵀ R = information.

    R is the upper Cholesky factor of the information matrix.

    Args:
        information: Symmetric positive definite matrix of shape (n, n).

    Returns:
        Upper-triangular matrix of shape (n, n).

    Raises:
        ValueError: If the matrix is not square or not positive definite.

    Examples:
        >>> sqrtinf_from_information(np.diag([4.0, 100.0]))
        array([[ 2.,  0.],
               [ 0., 10.]])
    """
    information = np.asarray(information, dtype=np.float64)
    if information.ndim != 2 or information.shape[0] != information.shape[1]:
        raise ValueError(
            f"information must be square, got shape {information.shape}"
        )
    try:
        return linalg.cholesky(information, lower=False)
    except linalg.LinAlgError as exc:
        raise ValueError("information matrix must be positive definite") from exc


def sqrtinf_from_covariance(covariance: np.ndarray) -> np.ndarray:
    """
    Compute the square-root information matrix of a measurement covariance.

    Args:
        covariance: Symmetric positive definite covariance of shape (n, n).

    Returns:
        Upper-triangular R with Rᵀ R = covariance⁻¹.

    Raises:
        ValueError: If the matrix is not square or not positive definite.

    Examples:
        >>> cov = np.diag([0.01, 0.04])  # 10cm and 20cm standard deviation
        >>> np.allclose(sqrtinf_from_covariance(cov), np.diag([10.0, 5.0]))
        True
    """
    covariance = np.asarray(covariance, dtype=np.float64)
    if covariance.ndim != 2 or covariance.shape[0] != covariance.shape[1]:
        raise ValueError(
            f"covariance must be square, got shape {covariance.shape}"
        )
    try:
        information = linalg.inv(covariance)
    except linalg.LinAlgError as exc:
        raise ValueError("covariance matrix must be positive definite") from exc
    # Symmetrize against round-off from the inversion
    return sqrtinf_from_information(0.5 * (information + information.T))


_VECTOR_PATTERN = re.compile(r"^\(\s*(.*?)\s*\)$")


def _parse_vector(text: str, n: int, kind: str) -> np.ndarray:
    match = _VECTOR_PATTERN.match(text.strip())
    if match is None:
        raise ValueError(f"{kind} text must be enclosed in parentheses, got {text!r}")
    tokens = [token.strip() for token in match.group(1).split(",")]
    if len(tokens) != n:
        raise ValueError(f"{kind} text must have {n} components, got {text!r}")
    try:
        return np.array([float(token) for token in tokens], dtype=np.float64)
    except ValueError as exc:
        raise ValueError(f"Invalid {kind} component in {text!r}") from exc


def parse_point2(text: str) -> Point2:
    """
    Parse the "(x, y)" text form of a Point2.

    Examples:
        >>> parse_point2("(2, -0.5)")
        Point2(x=2.0, y=-0.5)
    """
    return Point2.from_array(_parse_vector(text, 2, "Point2"))


def parse_pose2(text: str) -> Pose2:
    """
    Parse the "(x, y, yaw)" text form of a Pose2.

    Examples:
        >>> parse_pose2("(1, 0, 0.25)")
        Pose2(x=1.0, y=0.0, yaw=0.25)
    """
    return Pose2.from_array(_parse_vector(text, 3, "Pose2"))
