"""
Unit tests for argument checks and the solve tolerance.
"""

import numpy as np
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lyapchk import LYAP_RTOL, check_lyap_args, lyap_tol
from lyaperr import InvalidArgument


class TestCheckLyapArgs:
    """Tests for check_lyap_args."""

    def test_returns_float_copies(self):
        """Test inputs are converted to float and copied."""
        A = np.array([[1, 2], [3, 4]])
        Q = np.eye(2)

        A1, Q1 = check_lyap_args(A, Q)

        assert A1.dtype == float
        assert Q1 is not Q
        Q1[0, 0] = 5.0
        assert Q[0, 0] == 1.0

    def test_lists(self):
        """Test nested lists are accepted."""
        A, Q = check_lyap_args([[-1.0]], [[1.0]])
        assert A.shape == Q.shape == (1, 1)

    @pytest.mark.parametrize("A_shape, Q_shape", [
        ((1, 2), (2, 2)),
        ((2, 2), (1, 2)),
        ((2, 2), (1, 1)),
        ((2, 2, 1), (2, 2)),
        ((3,), (3, 3)),
    ])
    def test_bad_shapes(self, A_shape, Q_shape):
        """Test non-square or mismatched shapes raise InvalidArgument."""
        with pytest.raises(InvalidArgument):
            check_lyap_args(np.ones(A_shape), np.ones(Q_shape))

    @pytest.mark.parametrize("A, Q", [
        (np.array([[-1 + 5j]]), [[1.0]]),
        ([[-1.0]], np.array([[1 + 0j]])),
    ])
    def test_complex_rejected(self, A, Q):
        """Test complex input raises InvalidArgument instead of being truncated."""
        with pytest.raises(InvalidArgument):
            check_lyap_args(A, Q)


class TestLyapTol:
    """Tests for lyap_tol."""

    def test_default(self):
        """Test default tolerance is LYAP_RTOL * ||A||_F."""
        A = np.array([[3.0, 0.0], [0.0, 4.0]])
        assert lyap_tol(A) == pytest.approx(5.0 * LYAP_RTOL)

    def test_explicit(self):
        """Test explicit rtol."""
        assert lyap_tol(np.eye(4), rtol=1e-3) == pytest.approx(2e-3)

    def test_negative(self):
        """Test negative rtol is rejected."""
        with pytest.raises(InvalidArgument):
            lyap_tol(np.eye(2), rtol=-1.0)

    def test_magnitude(self):
        """Test the default sits between machine precision and 1e-9."""
        assert np.finfo(float).eps < LYAP_RTOL < 1e-9
