import logging
from typing import Optional, Tuple

import numpy as np
import torch

from lyaperr import InvalidArgument, NumericalFailure
from lyapslv import lyapslv


_LOG = logging.getLogger(__name__)


@torch.no_grad()
def _hessenberg_torch(A: torch.Tensor):
    """Unblocked Householder Hessenberg reduction.
    Returns H, Q with A = Q @ H @ Q.T, H upper-Hessenberg, Q orthogonal.
    Works on CPU or GPU depending on A.device. A must be real square.
    """
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise InvalidArgument(
            "Hessenberg reduction needs a square matrix, got shape %s" % (tuple(A.shape),))
    n = A.shape[0]
    H = A.clone()
    Q = torch.eye(n, dtype=A.dtype, device=A.device)

    for k in range(n - 2):
        x = H[k+1:, k]
        normx = torch.linalg.norm(x)
        if normx == 0:
            continue
        # Householder vector
        sign = torch.sign(x[0]) if x[0] != 0 else x.new_tensor(1.0)
        v = x.clone()
        v[0] = v[0] + sign * normx
        v = v / torch.linalg.norm(v)

        # Apply from left: H[k+1:, k:] -= 2 v (v^T H[k+1:, k:])
        H[k+1:, k:] -= 2.0 * (v[:, None] @ (v[None, :] @ H[k+1:, k:]))

        # Apply from right: H[:, k+1:] -= 2 (H[:, k+1:] v) v^T
        H[:, k+1:] -= 2.0 * ((H[:, k+1:] @ v[:, None]) @ v[None, :])

        # Accumulate Q: Q[:, k+1:] -= 2 (Q[:, k+1:] v) v^T
        Q[:, k+1:] -= 2.0 * ((Q[:, k+1:] @ v[:, None]) @ v[None, :])

    return torch.triu(H, diagonal=-1), Q


def _wilkinson_shift_2x2(B: torch.Tensor) -> float:
    """Wilkinson shift for the trailing 2x2 block B."""
    a, b = float(B[0, 0]), float(B[0, 1])
    c, d = float(B[1, 0]), float(B[1, 1])
    tr = a + d
    det = a*d - b*c
    disc = tr*tr - 4*det
    if disc >= 0:
        s = np.sqrt(disc)
        mu1 = 0.5*(tr + s)
        mu2 = 0.5*(tr - s)
        # choose the eigenvalue closer to B[1,1]
        return mu1 if abs(mu1 - d) < abs(mu2 - d) else mu2
    # complex pair: real part of the pair
    return 0.5*tr


def _has_complex_pair(B: torch.Tensor) -> bool:
    a, b = float(B[0, 0]), float(B[0, 1])
    c, d = float(B[1, 0]), float(B[1, 1])
    return (a - d)**2 + 4*b*c < 0


def _deflate(T: torch.Tensor, m: int, tol: float, floor: float) -> int:
    """
    Peel converged 1x1 blocks and complex 2x2 blocks off the bottom of the
    active window T[:m, :m]. Returns the new active size.
    """
    def tiny(k):
        # sub-diagonal entry T[k, k-1]
        sub = abs(float(T[k, k-1]))
        return sub <= floor or sub <= tol*(abs(float(T[k-1, k-1])) + abs(float(T[k, k])))

    while m > 0:
        if m == 1:
            return 0
        if tiny(m-1):
            T[m-1, m-2] = 0.0
            m -= 1
        elif (m == 2 or tiny(m-2)) and _has_complex_pair(T[m-2:m, m-2:m]):
            if m > 2:
                T[m-2, m-3] = 0.0
            m -= 2
        else:
            break
    return m


@torch.no_grad()
def schur_torch(M, tol: Optional[float] = None,
                max_iters: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Real Schur decomposition via:
      1) Hessenberg reduction
      2) Shifted QR with deflation (Wilkinson shift, exceptional shift
         every 10 steps without progress)
    Returns T (quasi upper-triangular) and U with M ~ U @ T @ U.T, both as
    float64 numpy arrays so it can be passed as schur_fn to lyapslv.

    Raises NumericalFailure if the iteration does not converge in max_iters
    QR steps.
    """
    A = torch.as_tensor(M).detach().to(torch.float64)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise NumericalFailure("schur_torch needs a square matrix, got shape %s" % (tuple(A.shape),))
    if not bool(torch.isfinite(A).all()):
        raise NumericalFailure("schur_torch input contains non-finite entries")
    n = A.shape[0]

    if n <= 1:
        return A.cpu().numpy().copy(), np.eye(n)

    if tol is None:
        tol = torch.finfo(A.dtype).eps * 10
    if max_iters is None:
        max_iters = 30 * max(10, n) * n
    floor = torch.finfo(A.dtype).eps * float(torch.linalg.norm(A))

    T, U = _hessenberg_torch(A)
    I = torch.eye(n, dtype=A.dtype, device=A.device)

    m = _deflate(T, n, tol, floor)
    it = 0
    stall = 0

    while m > 0:
        if it >= max_iters:
            raise NumericalFailure("QR iteration did not converge in %d steps" % max_iters)

        if stall > 0 and stall % 10 == 0:
            # exceptional shift
            mu = float(T[m-1, m-1]) + 0.75*abs(float(T[m-1, m-2]))
        else:
            mu = _wilkinson_shift_2x2(T[m-2:m, m-2:m])

        # Shifted QR step on leading m x m block
        Qk, Rk = torch.linalg.qr(T[:m, :m] - mu * I[:m, :m])
        T[:m, :m] = torch.triu(Rk @ Qk + mu * I[:m, :m], diagonal=-1)
        T[:m, m:] = Qk.T @ T[:m, m:]
        U[:, :m] = U[:, :m] @ Qk

        it += 1
        m_new = _deflate(T, m, tol, floor)
        stall = 0 if m_new < m else stall + 1
        m = m_new

    _LOG.debug("schur_torch: n=%d converged in %d QR steps", n, it)

    return T.cpu().numpy(), U.cpu().numpy()


def lyapslv_torch(A: torch.Tensor, Q: torch.Tensor, rtol: Optional[float] = None) -> torch.Tensor:
    """
    Solve A^T X + X A = -Q for tensors, with schur_torch as the Schur
    decomposition and the same block back-substitution as lyapslv.

    Args:
        A: (n,n) real tensor
        Q: (n,n) real symmetric tensor
        rtol: relative tolerance, see lyapchk.lyap_tol

    Returns:
        X: (n,n) tensor with A's dtype (float64 for integer input) and device
    """
    A = torch.as_tensor(A)
    Q = torch.as_tensor(Q)
    device = A.device
    dtype = A.dtype if A.is_floating_point() else torch.float64

    X = lyapslv(A.detach().cpu().numpy(), Q.detach().cpu().numpy(),
                rtol=rtol, schur_fn=schur_torch)

    return torch.as_tensor(X, dtype=dtype, device=device)
