"""
Dense matrix inversion for the class covariance statistics.

The covariance matrices of the optical water type statistics are inverted
once when the auxiliary data is loaded. The Mahalanobis distances computed
from them are sensitive to the accuracy of the inverse, so the inversion is
done by LU decomposition with partial pivoting and every pivot is checked.
"""

import numpy as np
from typing import Tuple

from correct_watertype.exceptions import ConfigurationError, SingularMatrixError

#: Relative pivot tolerance (with respect to the largest matrix element)
PIVOT_TOLERANCE: float = 1.0e-13


def _as_square(matrix) -> np.ndarray:
    a = np.array(matrix, dtype=np.float64)
    if a.ndim != 2 or a.shape[0] != a.shape[1] or a.shape[0] == 0:
        raise ConfigurationError(
            "Matrix must be square and non-empty", {"shape": a.shape}
        )
    return a


def lu_decompose(
    matrix,
    tolerance: float = PIVOT_TOLERANCE,
) -> Tuple[np.ndarray, np.ndarray, int]:
    """
    LU decomposition with partial pivoting (Doolittle form).

    Parameters
    ----------
    matrix : array_like
        Square matrix of shape (n, n).
    tolerance : float, optional
        Relative pivot tolerance. A pivot whose magnitude is below
        ``tolerance * max|A|`` is treated as zero.

    Returns
    -------
    lu : ndarray
        Combined factors: strictly lower part holds L (unit diagonal
        implied), upper part holds U.
    pivots : ndarray of int
        Row permutation; row ``i`` of ``P A`` is row ``pivots[i]`` of A.
    sign : int
        Sign of the permutation (+1 or -1).

    Raises
    ------
    SingularMatrixError
        If a zero or near-zero pivot is encountered.
    """
    lu = _as_square(matrix)
    n = lu.shape[0]
    pivots = np.arange(n)
    sign = 1

    scale = np.max(np.abs(lu))
    if scale == 0.0 or not np.isfinite(scale):
        raise SingularMatrixError("Matrix is zero or contains non-finite values")
    threshold = tolerance * scale

    for k in range(n):
        p = k + int(np.argmax(np.abs(lu[k:, k])))
        if abs(lu[p, k]) <= threshold:
            raise SingularMatrixError(
                "Matrix is singular", {"column": k, "pivot": float(lu[p, k])}
            )
        if p != k:
            lu[[k, p]] = lu[[p, k]]
            pivots[[k, p]] = pivots[[p, k]]
            sign = -sign
        lu[k + 1:, k] /= lu[k, k]
        lu[k + 1:, k + 1:] -= np.outer(lu[k + 1:, k], lu[k, k + 1:])

    return lu, pivots, sign


def lu_solve(lu: np.ndarray, pivots: np.ndarray, rhs) -> np.ndarray:
    """
    Solve ``A x = b`` from the factors returned by :func:`lu_decompose`.

    ``rhs`` may be a vector of length n or a matrix with n rows.
    """
    b = np.array(rhs, dtype=np.float64)[pivots]
    n = lu.shape[0]

    # forward substitution, L has a unit diagonal
    for i in range(1, n):
        b[i] -= lu[i, :i] @ b[:i]
    # back substitution
    for i in range(n - 1, -1, -1):
        b[i] = (b[i] - lu[i, i + 1:] @ b[i + 1:]) / lu[i, i]
    return b


def invert(matrix) -> np.ndarray:
    """
    Invert a square matrix.

    Parameters
    ----------
    matrix : array_like
        Square matrix of shape (n, n).

    Returns
    -------
    ndarray
        The inverse matrix, shape (n, n).

    Raises
    ------
    ConfigurationError
        If the matrix is not square.
    SingularMatrixError
        If the matrix is not invertible.

    Examples
    --------
    >>> inv = invert([[4.0, 7.0], [2.0, 6.0]])
    >>> np.allclose(inv, [[0.6, -0.7], [-0.2, 0.4]])
    True
    """
    lu, pivots, _ = lu_decompose(matrix)
    return lu_solve(lu, pivots, np.eye(lu.shape[0]))


def invert_stack(matrices) -> np.ndarray:
    """
    Invert every matrix of a stack of shape (n_classes, n, n).

    Raises
    ------
    SingularMatrixError
        If one of the matrices is singular. ``details['index']`` holds the
        index of the offending matrix.
    """
    stack = np.asarray(matrices, dtype=np.float64)
    if stack.ndim != 3:
        raise ConfigurationError(
            "Expected a stack of square matrices", {"shape": stack.shape}
        )
    result = np.empty_like(stack)
    for i in range(stack.shape[0]):
        try:
            result[i] = invert(stack[i])
        except SingularMatrixError as e:
            raise SingularMatrixError(e.message, {**e.details, "index": i}) from e
    return result
