import logging

import numpy as np

from lyapchk import check_lyap_args, lyap_tol
from schur_blocks import schur_reduce
from lyapslv_blocks import quasitri_lyap


_LOG = logging.getLogger(__name__)


def lyapslv(A, Q, rtol=None, schur_fn=None):
    """
    Solve the real continuous Lyapunov equation

        A^T X + X A = -Q

    for the unique symmetric X (Bartels-Stewart on the real Schur form).

    Args:
        A: (n,n) real array
        Q: (n,n) real symmetric array
        rtol: relative tolerance, see lyapchk.lyap_tol
        schur_fn: callable returning (T, U) where M = U @ T @ U.T (real Schur);
            defaults to scipy

    Returns:
        X: (n,n) symmetric array

    Raises:
        InvalidArgument: A or Q not square, or sizes differ
        NumericalFailure: Schur decomposition failed
        SingularSystem: lambda_i + lambda_j ~ 0 for some eigenvalues of A
    """
    A, Q = check_lyap_args(A, Q)
    n = A.shape[0]

    if n == 0:
        return np.zeros((0, 0))

    tol = lyap_tol(A, rtol)

    # Real Schur of A^T: A^T = U T U^T, so with Y = U^T X U
    #   T Y + Y T^T = -U^T Q U
    # and the blocks of Y depend only on blocks below/right of them
    T, U, blocks = schur_reduce(A.T, tol, schur_fn)

    C = U.T @ Q @ U
    C = 0.5 * (C + C.T)

    Y = quasitri_lyap(T, C, blocks, tol)

    # Transform back
    X = U @ Y @ U.T
    X = 0.5 * (X + X.T)

    if _LOG.isEnabledFor(logging.DEBUG):
        _LOG.debug("lyapslv: n=%d, tol=%.3g, relerr=%.3g", n, tol, lyap_residual(A, X, Q))

    return X


real_continuous_lyapunov_equation = lyapslv


def lyap_residual(A, X, Q):
    """Relative residual ||A^T X + X A + Q||_F / ||Q||_F."""
    A = np.asarray(A, dtype=float)
    X = np.asarray(X, dtype=float)
    Q = np.asarray(Q, dtype=float)

    res = A.T @ X + X @ A + Q
    return float(np.linalg.norm(res) / max(np.linalg.norm(Q), np.finfo(float).tiny))
