"""Market underlying the BLP model."""

from typing import Any

import numpy as np

from .. import exceptions
from ..partition import MarketSegment
from ..utilities.basics import Array


class Market(object):
    """A market underlying the BLP model, which holds only the data needed to predict shares of its products so that it
    can be cheaply passed to worker processes.
    """

    t: Any
    J: int
    I: int
    K2: int
    X2: Array
    nodes: Array
    weights: Array
    sigma: Array
    delta: Array

    def __init__(self, economy: Any, segment: MarketSegment, delta: Array, sigma: Array) -> None:
        """Slice product data and mean utilities for this market and store the draws and parameters."""
        self.t = segment.market_id
        self.X2 = economy.products.X2[segment.indices]
        self.delta = delta[segment.indices]
        self.nodes = economy.draws.nodes
        self.weights = economy.draws.weights
        self.sigma = sigma

        # count dimensions
        self.J = segment.size
        self.I = self.nodes.shape[0]
        self.K2 = economy.K2

    def compute_random_coefficients(self) -> Array:
        """Compute the K2 x I matrix of random coefficients, which are the tastes of each draw."""
        return self.sigma @ self.nodes.T

    def compute_mu(self) -> Array:
        """Compute the J x I matrix of draw-specific deviations from mean utilities."""
        return self.X2 @ self.compute_random_coefficients()

    def compute_probabilities(self) -> Array:
        """Compute choice probabilities. Without heterogeneity, this is a single column of simple logit probabilities.
        Otherwise, there is one column for each draw.
        """
        utilities = self.delta if self.K2 == 0 else self.delta + self.compute_mu()
        with np.errstate(all='ignore'):
            exp_utilities = np.exp(utilities)
            if not np.isfinite(exp_utilities).all():
                raise exceptions.UtilityOverflowError("share prediction")
            return exp_utilities / (1 + exp_utilities.sum(axis=0, keepdims=True))

    def compute_shares(self, minimum_share: float) -> Array:
        """Compute market shares by integrating over draws. With heterogeneity, the weighted share of each draw must
        be at least the minimum share before it is added up. Otherwise, the simple logit shares themselves must be.
        """
        probabilities = self.compute_probabilities()
        if self.K2 == 0:
            if (probabilities < minimum_share).any():
                raise exceptions.ShareUnderflowError("share prediction")
            return probabilities
        with np.errstate(all='ignore'):
            weighted_probabilities = probabilities * self.weights.T
        if (weighted_probabilities < minimum_share).any():
            raise exceptions.ShareUnderflowError("share prediction")
        return weighted_probabilities.sum(axis=1, keepdims=True)
