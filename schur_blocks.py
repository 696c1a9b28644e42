import logging

import numpy as np
from scipy.linalg import schur

from lyaperr import NumericalFailure


_LOG = logging.getLogger(__name__)


def scipy_schur(M):
    """Real Schur form M = U @ T @ U.T from LAPACK (via scipy)."""
    try:
        T, U = schur(M, output='real')
    except (np.linalg.LinAlgError, ValueError) as err:
        raise NumericalFailure("real Schur decomposition failed: %s" % err) from err
    return T, U


def schur_blocks(T, tol):
    """
    Partition the diagonal of a quasi upper-triangular T into 1x1 and 2x2
    blocks. Returns a list of half-open (start, stop) ranges.

    A sub-diagonal entry |T[k+1, k]| > tol opens a 2x2 block (complex pair).
    """
    n = T.shape[0]
    blocks = []

    k = 0
    while k < n:
        if k + 1 < n and abs(T[k+1, k]) > tol:
            # two non-negligible sub-diagonal entries in a row: not quasi-triangular
            if k + 2 < n and abs(T[k+2, k+1]) > tol:
                raise NumericalFailure(
                    "Schur factor is not quasi-triangular at rows %d..%d" % (k, k + 2))
            blocks.append((k, k + 2))
            k += 2
        else:
            blocks.append((k, k + 1))
            k += 1

    return blocks


def schur_reduce(M, tol, schur_fn=None):
    """
    Reduce M to real Schur form.

    Args:
        M: (n,n) real array
        tol: absolute tolerance for negligible sub-diagonal entries
        schur_fn: callable returning (T, U) where M = U @ T @ U.T
            (default: scipy_schur)

    Returns:
        T: (n,n) quasi upper-triangular, U: (n,n) orthogonal,
        blocks: diagonal block partition of T
    """
    if schur_fn is None:
        schur_fn = scipy_schur

    n = M.shape[0]

    try:
        T, U = schur_fn(M)
    except NumericalFailure:
        raise
    except (np.linalg.LinAlgError, ValueError, RuntimeError) as err:
        raise NumericalFailure("real Schur decomposition failed: %s" % err) from err
    T = np.array(T, dtype=float)
    U = np.array(U, dtype=float)

    if T.shape != (n, n) or U.shape != (n, n):
        raise NumericalFailure(
            "Schur factors have shapes %s and %s, expected %s" % (T.shape, U.shape, (n, n)))
    if not (np.all(np.isfinite(T)) and np.all(np.isfinite(U))):
        raise NumericalFailure("Schur factors contain non-finite entries")

    # Flip signs to make diag(U) nonnegative (where possible)
    # M = U T U^T = (U S) (S T S) (U S)^T with S = diag(+-1)
    s = np.sign(np.diag(U))
    s[s == 0] = 1
    U = U * s[None, :]
    T = s[:, None] * T * s[None, :]

    # anything below the sub-diagonal is rounding noise
    T = np.triu(T, -1)

    blocks = schur_blocks(T, tol)

    # zero the sub-diagonal between blocks
    for start, _ in blocks[1:]:
        T[start, start-1] = 0.0

    _LOG.debug("Schur blocks (n=%d, tol=%.3g): %s", n, tol, blocks)

    return T, U, blocks
