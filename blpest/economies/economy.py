"""Economy underlying the BLP model."""

from typing import Any, List, Optional

import numpy as np

from .. import exceptions, options
from ..configurations.iteration import Iteration
from ..markets.market import Market
from ..primitives import Products, SimulationDraws
from ..utilities.algebra import precisely_identify_psd
from ..utilities.basics import Array, StringRepresentation, format_table, generate_items, warn


class Economy(StringRepresentation):
    """An economy underlying the BLP model, which consists of validated product data and simulation draws."""

    products: Products
    draws: SimulationDraws
    iteration: Iteration
    T: int
    N: int
    I: int
    K1: int
    K2: int
    MD: int

    def __init__(self, products: Products, draws: SimulationDraws, iteration: Optional[Iteration] = None) -> None:
        """Validate and store data and the configuration for iterating over the mean utility."""
        if products is None:
            raise exceptions.MissingComponentError("product data")
        if draws is None:
            raise exceptions.MissingComponentError("simulation draws")
        if not isinstance(products, Products):
            raise TypeError("products must be a Products instance.")
        if not isinstance(draws, SimulationDraws):
            raise TypeError("draws must be a SimulationDraws instance.")
        self.products = products
        self.draws = draws
        self.iteration = self._coerce_optional_iteration(iteration)

        # count dimensions
        self.T = len(products.partition)
        self.N = products.N
        self.I = draws.I
        self.K1 = products.K1
        self.K2 = products.K2
        self.MD = products.MD

        # draws must have a column for each nonlinear characteristic
        if draws.dimensions != self.K2:
            raise exceptions.DimensionMismatchError("simulation draws dimensions", self.K2, draws.dimensions)

    def __str__(self) -> str:
        """Format economy information as a string."""
        return "\n\n".join([self._format_dimensions(), str(self.iteration)])

    def _format_dimensions(self) -> str:
        """Format information about the nonzero dimensions of the economy as a string."""
        header: List[str] = []
        values: List[str] = []
        for key in ['T', 'N', 'I', 'K1', 'K2', 'MD']:
            value = getattr(self, key)
            if value > 0:
                header.append(f" {key} ")
                values.append(str(value))

        return format_table(header, values, title="Dimensions")

    @staticmethod
    def _coerce_optional_iteration(iteration: Optional[Iteration]) -> Iteration:
        """Validate or choose a default configuration for iterating over the mean utility."""
        if iteration is None:
            iteration = Iteration('simple')
        elif not isinstance(iteration, Iteration):
            raise TypeError("iteration must be None or an Iteration instance.")
        return iteration

    def _coerce_sigma(self, sigma: Optional[Any]) -> Array:
        """Coerce array-like sigma into a K2 x K2 matrix and validate it. Without any nonlinear characteristics, sigma
        is ignored. By default, sigma is a matrix of zeros.
        """
        if self.K2 == 0 or sigma is None:
            return np.zeros((self.K2, self.K2), options.dtype)
        sigma = np.atleast_2d(np.array(sigma, options.dtype))
        if sigma.ndim != 2:
            raise exceptions.DimensionMismatchError("sigma dimensions", 2, sigma.ndim)
        if sigma.shape[0] != self.K2:
            raise exceptions.DimensionMismatchError("sigma rows", self.K2, sigma.shape[0])
        if sigma.shape[1] != self.K2:
            raise exceptions.DimensionMismatchError("sigma columns", self.K2, sigma.shape[1])
        return sigma

    def _coerce_delta(self, delta: Any) -> Array:
        """Coerce array-like delta into a column vector and validate it."""
        delta = np.asarray(delta, options.dtype)
        if delta.ndim > 2 or (delta.ndim == 2 and delta.shape[1] != 1):
            raise exceptions.DimensionMismatchError("delta columns", 1, delta.shape[-1])
        delta = delta.reshape(-1, 1)
        if delta.shape[0] != self.N:
            raise exceptions.DimensionMismatchError("delta", self.N, delta.shape[0])
        return delta

    def _coerce_optional_W(self, W: Optional[Any]) -> Optional[Array]:
        """Coerce an optional array-like weighting matrix into an MD x MD matrix and validate its shape. A matrix that
        does not seem to be PSD is used anyway, but a warning is raised.
        """
        if W is None:
            return None
        W = np.atleast_2d(np.array(W, options.dtype))
        if W.ndim != 2:
            raise exceptions.DimensionMismatchError("W dimensions", 2, W.ndim)
        if W.shape[0] != self.MD:
            raise exceptions.DimensionMismatchError("W rows", self.MD, W.shape[0])
        if W.shape[1] != self.MD:
            raise exceptions.DimensionMismatchError("W columns", self.MD, W.shape[1])
        psd, successful = precisely_identify_psd(W)
        if not successful:
            warn("Failed to compute the SVD of W while checking that it is PSD.")
        elif not psd:
            warn("W does not seem to be a PSD matrix. It will be used anyway.")
        return W

    def _compute_logit_delta(self) -> Array:
        """Compute the mean utility that solves the simple logit model."""
        return np.log(self.products.shares) - np.log(self.products.outside_shares)

    def _compute_shares(self, delta: Array, sigma: Array, minimum_share: float) -> Array:
        """Compute market shares market by market. If a process pool has been initialized, markets are distributed
        among processes, but since shares are placed by market, results are the same as with serial processing.
        """
        shares = np.zeros((self.N, 1), options.dtype)
        segments = self.products.partition.segments

        def market_factory(s: int) -> tuple:
            """Build a market along with the arguments used to compute its shares."""
            return Market(self, segments[s], delta, sigma), minimum_share

        generator = generate_items(range(len(segments)), market_factory, Market.compute_shares)
        for s, shares_s in generator:
            shares[segments[s].indices] = shares_s

        return shares
