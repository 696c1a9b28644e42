import numpy as np


class LyapunovError(Exception):
    """Base class for failures of the Lyapunov solve."""


class InvalidArgument(LyapunovError, ValueError):
    """A or Q is not square, or their sizes differ."""


class NumericalFailure(LyapunovError, np.linalg.LinAlgError):
    """The real Schur decomposition failed or did not converge."""


class SingularSystem(LyapunovError, np.linalg.LinAlgError):
    """
    Some pair of eigenvalues of A sums to (numerically) zero, so the
    solution of A^T X + X A = -Q is not unique.
    """
