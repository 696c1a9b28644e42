import numpy as np

from lyaperr import InvalidArgument


# relative tolerance, scaled by ||A||_F in lyap_tol. Being relative to the
# whole of A, it rejects eigenvalues small next to the largest ones:
# diag(-1e6, -1e-4) raises SingularSystem unless rtol is lowered.
LYAP_RTOL = 1e6 * np.finfo(float).eps


def check_lyap_args(A, Q):
    """
    Shape checks for A^T X + X A = -Q. Returns float copies of A and Q.
    Q is assumed symmetric; only its shape is checked.
    """
    if np.iscomplexobj(A) or np.iscomplexobj(Q):
        raise InvalidArgument("A and Q must be real")

    A = np.array(A, dtype=float)
    Q = np.array(Q, dtype=float)

    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise InvalidArgument("A must be square, got shape %s" % (A.shape,))
    if Q.ndim != 2 or Q.shape[0] != Q.shape[1]:
        raise InvalidArgument("Q must be square, got shape %s" % (Q.shape,))
    if A.shape != Q.shape:
        raise InvalidArgument(
            "A and Q must have the same size, got %s and %s" % (A.shape, Q.shape))

    return A, Q


def lyap_tol(M, rtol=None):
    """
    Absolute tolerance used for both the 1x1/2x2 block classification and
    the singularity checks of one solve.

    A larger rtol classifies more sub-diagonal entries as zero (risk of
    splitting a complex pair into two 1x1 blocks) and rejects more nearly
    singular problems; a smaller one does the opposite.
    """
    if rtol is None:
        rtol = LYAP_RTOL
    if rtol < 0:
        raise InvalidArgument("rtol must be nonnegative")
    return float(rtol * np.linalg.norm(M))
