"""Algebraic routines."""

from typing import Tuple
import warnings

import numpy as np
import scipy.linalg

from .basics import Array
from .. import options


def compute_condition_number(x: Array) -> float:
    """Compute the condition number of a square matrix."""
    if x.size == 0:
        return 0
    if not np.isfinite(x).all():
        return np.nan
    try:
        return np.linalg.cond(x.astype(np.float64))
    except (np.linalg.LinAlgError, scipy.linalg.LinAlgError):
        return np.nan


def precisely_identify_psd(x: Array) -> Tuple[bool, bool]:
    """Compute the SVD of a matrix and use it to identify whether the matrix is PSD with absolute and relative
    tolerances.
    """
    psd = successful = True
    if x.size > 0 and np.isfinite([options.psd_atol, options.psd_rtol]).any():
        try:
            with warnings.catch_warnings():
                warnings.filterwarnings('error')
                _, s, v = scipy.linalg.svd(x)
                psd = np.allclose((v.T * s) @ v, x, atol=options.psd_atol, rtol=options.psd_rtol)
        except (ValueError, scipy.linalg.LinAlgError, scipy.linalg.LinAlgWarning):
            psd = successful = False

    return psd, successful


def precisely_cholesky_solve(a: Array, b: Array) -> Tuple[Array, bool]:
    """Attempt to solve a symmetric positive definite system of equations with a Cholesky factorization. The
    factorization fails if the matrix is not positive definite.
    """
    try:
        with warnings.catch_warnings():
            warnings.filterwarnings('error')
            solved = scipy.linalg.cho_solve(scipy.linalg.cho_factor(a), b) if b.size > 0 else b
            successful = True
    except (ValueError, scipy.linalg.LinAlgError, scipy.linalg.LinAlgWarning):
        solved = np.full_like(b, np.nan)
        successful = False

    return solved, successful


def precisely_cholesky_invert(x: Array) -> Tuple[Array, bool]:
    """Attempt to invert a symmetric positive definite matrix with a Cholesky factorization."""
    inverted, successful = precisely_cholesky_solve(x, np.eye(x.shape[0], dtype=x.dtype))
    if successful:
        inverted = (inverted + inverted.T) / 2
    return inverted, successful
