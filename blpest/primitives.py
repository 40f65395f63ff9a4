"""Primitive data structures that constitute the foundation of the BLP model."""

from typing import Any, Hashable, Optional

import numpy as np

from . import exceptions, options
from .configurations.integration import Integration
from .partition import MarketPartition, partition_markets
from .utilities.basics import Array, StringRepresentation, format_table


class Products(StringRepresentation):
    r"""Validated, immutable product data.

    Products are grouped into markets, which must be contiguous blocks of rows. Observed shares must be positive and the
    shares in each market must sum to strictly less than one, so that every market has a positive outside share.

    Parameters
    ----------
    market_ids : `array-like`
        IDs that associate products with markets.
    shares : `array-like`
        Observed market shares, :math:`s`.
    X1 : `array-like`
        Linear product characteristics, :math:`X_1`.
    X2 : `array-like, optional`
        Nonlinear product characteristics, :math:`X_2`. By default, there are no nonlinear characteristics, in which
        case the model reduces to the simple logit model.
    Z : `array-like, optional`
        Instruments, :math:`Z`. By default, :math:`X_1` is used, which corresponds to all linear characteristics being
        exogenous.

    Attributes
    ----------
    market_ids : `ndarray`
        IDs that associate products with markets.
    shares : `ndarray`
        Observed market shares, :math:`s`.
    X1 : `ndarray`
        Linear product characteristics, :math:`X_1`.
    X2 : `ndarray`
        Nonlinear product characteristics, :math:`X_2`.
    Z : `ndarray`
        Instruments, :math:`Z`.
    partition : `MarketPartition`
        Contiguous market segments, each of which carries its outside share.

    """

    market_ids: Array
    shares: Array
    X1: Array
    X2: Array
    Z: Array
    partition: MarketPartition

    def __init__(
            self, market_ids: Any, shares: Any, X1: Any, X2: Optional[Any] = None, Z: Optional[Any] = None) -> None:
        """Validate and structure product data."""

        # coerce the data into matrices
        self.market_ids = np.c_[np.asarray(market_ids, np.object_)]
        self.shares = np.c_[np.asarray(shares, options.dtype)]
        if X1 is None:
            raise ValueError("X1 must be specified.")
        self.X1 = np.c_[np.asarray(X1, options.dtype)]
        N = self.market_ids.shape[0]
        self.X2 = np.zeros((N, 0), options.dtype) if X2 is None else np.c_[np.asarray(X2, options.dtype)]
        self.Z = self.X1.copy() if Z is None else np.c_[np.asarray(Z, options.dtype)]

        # validate dimensions
        if self.market_ids.shape[1] != 1:
            raise exceptions.DimensionMismatchError("market IDs columns", 1, self.market_ids.shape[1])
        if self.shares.shape[1] != 1:
            raise exceptions.DimensionMismatchError("shares columns", 1, self.shares.shape[1])
        for name, matrix in [("shares", self.shares), ("X1", self.X1), ("X2", self.X2), ("Z", self.Z)]:
            if matrix.shape[0] != N:
                raise exceptions.DimensionMismatchError(f"{name} rows", N, matrix.shape[0])

        # shares must be positive before markets are partitioned
        for index, share in enumerate(self.shares.flat):
            if not share > 0:
                raise exceptions.NonpositiveShareError(index, share)

        # partition products into markets and prevent the data from being modified
        self.partition = partition_markets(self.market_ids, self.shares)
        for matrix in [self.market_ids, self.shares, self.X1, self.X2, self.Z]:
            matrix.setflags(write=False)

    def __str__(self) -> str:
        """Format product dimensions as a string."""
        header = [" N ", " T ", " K1 ", " K2 ", " MD "]
        values = [self.N, len(self.partition), self.K1, self.K2, self.MD]
        return format_table(header, values, title="Products")

    @property
    def N(self) -> int:
        """Number of products."""
        return self.shares.shape[0]

    @property
    def K1(self) -> int:
        """Number of linear product characteristics."""
        return self.X1.shape[1]

    @property
    def K2(self) -> int:
        """Number of nonlinear product characteristics."""
        return self.X2.shape[1]

    @property
    def MD(self) -> int:
        """Number of instruments."""
        return self.Z.shape[1]

    @property
    def outside_shares(self) -> Array:
        """Outside share of each product's market as a column vector."""
        return np.c_[self.partition.outside_shares]

    def outside_share_for_product(self, index: int) -> float:
        """Get the outside share of the market that contains a product."""
        return self.partition.segment_for_product(index).outside_share

    def market_id(self, index: int) -> Hashable:
        """Get the ID of the market that contains a product."""
        return self.market_ids[index, 0]


class SimulationDraws(StringRepresentation):
    r"""Validated, immutable integration nodes and weights used to simulate consumer heterogeneity.

    Parameters
    ----------
    nodes : `array-like`
        Integration nodes, :math:`\nu`, with one row for each draw and one column for each nonlinear product
        characteristic. There may be zero columns, which corresponds to no heterogeneity.
    weights : `array-like`
        Integration weights, :math:`w`, which must be strictly positive and sum to one within ``options.weights_tol``.

    Attributes
    ----------
    nodes : `ndarray`
        Integration nodes, :math:`\nu`.
    weights : `ndarray`
        Integration weights, :math:`w`, as a column vector.

    """

    nodes: Array
    weights: Array

    def __init__(self, nodes: Any, weights: Any) -> None:
        """Validate and store nodes and weights."""
        nodes = np.array(nodes, options.dtype)
        self.nodes = nodes[:, None] if nodes.ndim == 1 else nodes
        self.weights = np.c_[np.asarray(weights, options.dtype).flatten()]

        # validate dimensions
        if self.nodes.ndim != 2 or self.nodes.shape[0] == 0:
            raise exceptions.DimensionMismatchError("simulation draws", 1, 0)
        if self.weights.shape[0] != self.nodes.shape[0]:
            raise exceptions.DimensionMismatchError("draw weights", self.nodes.shape[0], self.weights.shape[0])

        # validate nodes
        nonfinite = np.flatnonzero(~np.isfinite(self.nodes).all(axis=1))
        if nonfinite.size > 0:
            raise exceptions.NonfiniteNodesError(int(nonfinite[0]))

        # validate weights
        for weight in self.weights.flat:
            if not weight > 0:
                raise exceptions.InvalidWeightsError(weight)
        slack = abs(self.weights.sum() - 1)
        if not slack <= options.weights_tol:
            raise exceptions.InvalidWeightsError(slack)

        self.nodes.setflags(write=False)
        self.weights.setflags(write=False)

    def __str__(self) -> str:
        """Format draw dimensions as a string."""
        return format_table([" I ", " Dimensions "], [self.I, self.dimensions], title="Simulation Draws")

    @classmethod
    def standard_normal(cls, size: int, dimensions: int, seed: Optional[int] = None) -> 'SimulationDraws':
        """Draw i.i.d. standard normal nodes with uniform weights. The same seed always gives the same draws."""
        integration = Integration('monte_carlo', size, None if seed is None else {'seed': seed})
        return cls(*integration._build(dimensions))

    @property
    def I(self) -> int:
        """Number of draws."""
        return self.nodes.shape[0]

    @property
    def dimensions(self) -> int:
        """Number of columns of nodes."""
        return self.nodes.shape[1]
