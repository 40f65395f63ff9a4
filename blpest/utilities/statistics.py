"""Standard statistical routines."""

from typing import Tuple

import numpy as np

from .algebra import precisely_cholesky_invert, precisely_cholesky_solve
from .basics import Array
from .. import exceptions


class IV(object):
    """Simple model for instrumental variables estimation of linear parameters with a fixed weighting matrix."""

    X: Array
    Z: Array
    W: Array
    projection: Array

    def __init__(self, X: Array, Z: Array, W: Array) -> None:
        """Pre-compute the projection that maps the dependent variable into parameters with a Cholesky solve of the
        normal equations.
        """
        self.X = X
        self.Z = Z
        self.W = W

        # attempt to solve X'ZWZ'X against X'ZWZ'
        XZ = X.T @ Z
        XZW = XZ @ W
        covariances_inverse = XZW @ XZ.T
        covariances_inverse = (covariances_inverse + covariances_inverse.T) / 2
        self.projection, successful = precisely_cholesky_solve(covariances_inverse, XZW @ Z.T)
        if not successful:
            raise exceptions.SingularMatrixError("X'ZWZX", covariances_inverse)

    def estimate(self, y: Array) -> Tuple[Array, Array]:
        """Estimate parameters and compute residuals."""
        parameters = self.projection @ y
        residuals = y - self.X @ parameters
        return parameters, residuals


def compute_gmm_weights(Z: Array) -> Array:
    """Compute the 2SLS weighting matrix, which is the inverse of Z'Z."""
    ZZ = Z.T @ Z
    W, successful = precisely_cholesky_invert(ZZ)
    if not successful:
        raise exceptions.SingularMatrixError("Z'Z", ZZ)
    return W


def compute_gmm_objective(xi: Array, Z: Array, W: Array) -> float:
    """Compute the GMM objective, xi'ZWZ'xi, which is nonnegative when W is positive semidefinite."""
    moments = Z.T @ xi
    return float(np.squeeze(moments.T @ W @ moments))
