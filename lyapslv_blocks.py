import logging

import numpy as np

from lyaperr import InvalidArgument, SingularSystem
from lyapchk import lyap_tol


_LOG = logging.getLogger(__name__)


def _as_block(M, size, name):
    M = np.asarray(M, dtype=float)
    if M.shape != (size, size):
        raise InvalidArgument("%s must be %dx%d, got shape %s" % (name, size, size, M.shape))
    return M


def _eig_sum_gap(Ti, Tj):
    # min |lambda_a(Ti) + lambda_b(Tj)|, zero iff the block equation is singular
    li = np.linalg.eigvals(Ti)
    lj = np.linalg.eigvals(Tj)
    return float(np.min(np.abs(li[:, None] + lj[None, :])))


def solve_1by1_lyap(a, q, tol=None):
    """
    Solve a^T x + x a = -q for 1x1 a, q, i.e. 2 a x = -q.
    """
    a = _as_block(a, 1, "a")
    q = _as_block(q, 1, "q")
    if tol is None:
        tol = lyap_tol(a)

    t2 = 2.0 * a[0, 0]
    if abs(t2) <= tol:
        raise SingularSystem("eigenvalue %.3g is within %.3g of zero" % (a[0, 0], tol / 2))

    return np.array([[-q[0, 0] / t2]])


def solve_2by2_lyap(A, Q, tol=None):
    """
    Solve A^T X + X A = -Q for 2x2 A and symmetric 2x2 X.

    Only the upper triangle of Q is read. Writing A = [[a, b], [c, d]] and
    X = [[x, y], [y, z]], the three independent entries of the equation give

        [2a   2c    0 ] [x]     [q11]
        [b   a+d    c ] [y] = - [q12]
        [0    2b   2d ] [z]     [q22]

    whose eigenvalues are 2*l1, l1 + l2, 2*l2 for the eigenvalues l1, l2
    of A. For a complex pair a +- bi the system is singular iff a == 0.
    """
    A = _as_block(A, 2, "A")
    Q = _as_block(Q, 2, "Q")
    if tol is None:
        tol = lyap_tol(A)

    gap = _eig_sum_gap(A, A)
    if gap <= tol:
        raise SingularSystem(
            "eigenvalues of 2x2 block sum to %.3g, within %.3g of zero" % (gap, tol))

    a, b = A[0, 0], A[0, 1]
    c, d = A[1, 0], A[1, 1]
    M = np.array([
        [2*a, 2*c,   0.0],
        [b,   a + d, c  ],
        [0.0, 2*b,   2*d],
    ])
    rhs = -np.array([Q[0, 0], Q[0, 1], Q[1, 1]])

    try:
        x, y, z = np.linalg.solve(M, rhs)
    except np.linalg.LinAlgError as err:
        raise SingularSystem("2x2 Lyapunov system is singular") from err

    return np.array([[x, y], [y, z]])


def solve_small_sylvester(Ti, Tj, R, tol):
    """
    Solve Ti Y + Y Tj^T = -R for an off-diagonal block Y (Ti, Tj of size 1 or 2).
    """
    p = Ti.shape[0]
    q = Tj.shape[0]

    gap = _eig_sum_gap(Ti, Tj)
    if gap <= tol:
        raise SingularSystem(
            "eigenvalues of two diagonal blocks sum to %.3g, within %.3g of zero" % (gap, tol))

    # Kronecker system: (kron(I, Ti) + kron(Tj, I)) vec(Y) = -vec(R)
    K = np.kron(np.eye(q), Ti) + np.kron(Tj, np.eye(p))
    rhs = R.reshape((p*q,), order='F')

    try:
        v = -np.linalg.solve(K, rhs)
    except np.linalg.LinAlgError as err:
        raise SingularSystem("off-diagonal Sylvester block is singular") from err

    return v.reshape((p, q), order='F')


def quasitri_lyap(T, C, blocks, tol):
    """
    Block back-substitution for T Y + Y T^T = -C with T quasi upper-triangular.

    Block columns are processed from the bottom-right block to the top-left
    one. In each column the diagonal block is solved first (1x1 or 2x2
    kernel), then the blocks above it (Sylvester kernel); every off-diagonal
    block is mirrored so Y is symmetric.

    Args:
        T: (n,n) quasi upper-triangular
        C: (n,n) symmetric
        blocks: diagonal partition of T, as from schur_blocks
        tol: absolute singularity tolerance

    Returns:
        Y: (n,n) symmetric
    """
    n = T.shape[0]
    Y = np.zeros((n, n), dtype=float)

    for jb in range(len(blocks) - 1, -1, -1):
        j0, j1 = blocks[jb]
        Tjj = T[j0:j1, j0:j1]

        for ib in range(jb, -1, -1):
            i0, i1 = blocks[ib]

            # coupling to blocks below row block i and right of column block j
            R = (C[i0:i1, j0:j1]
                 + T[i0:i1, i1:] @ Y[i1:, j0:j1]
                 + Y[i0:i1, j1:] @ T[j0:j1, j1:].T)

            if ib == jb:
                # T_jj Y + Y T_jj^T = A^T Y + Y A with A = T_jj^T
                if j1 - j0 == 1:
                    Y[j0:j1, j0:j1] = solve_1by1_lyap(Tjj.T, R, tol)
                else:
                    Y[j0:j1, j0:j1] = solve_2by2_lyap(Tjj.T, R, tol)
            else:
                Yij = solve_small_sylvester(T[i0:i1, i0:i1], Tjj, R, tol)
                Y[i0:i1, j0:j1] = Yij
                Y[j0:j1, i0:i1] = Yij.T

    _LOG.debug("solved quasi-triangular Lyapunov equation, n=%d, %d blocks", n, len(blocks))

    return Y
