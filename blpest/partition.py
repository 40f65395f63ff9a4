"""Grouping of flat product data into contiguous markets."""

from typing import Hashable, Iterator, List, Sequence, Set

import numpy as np

from . import exceptions, options
from .utilities.basics import Array, StringRepresentation, format_number, format_table


class MarketSegment(StringRepresentation):
    """A contiguous block of products that belong to the same market.

    Attributes
    ----------
    market_id : `object`
        ID of the market.
    start : `int`
        Index of the first product in the market.
    end : `int`
        Index one past the last product in the market.
    outside_share : `float`
        Share of the outside good, which is one minus the sum of the observed shares of products in the market.

    """

    market_id: Hashable
    start: int
    end: int
    outside_share: float

    def __init__(self, market_id: Hashable, start: int, end: int, outside_share: float) -> None:
        """Store the segment."""
        self.market_id = market_id
        self.start = start
        self.end = end
        self.outside_share = outside_share

    def __str__(self) -> str:
        """Format the segment as a string."""
        return f"{self.market_id}: [{self.start}, {self.end}), outside share {format_number(self.outside_share)}"

    @property
    def size(self) -> int:
        """Number of products in the market."""
        return self.end - self.start

    @property
    def indices(self) -> slice:
        """Slice that selects products in the market."""
        return slice(self.start, self.end)


class MarketPartition(StringRepresentation):
    """Immutable collection of market segments in the order in which they appear in product data.

    Attributes
    ----------
    segments : `tuple of MarketSegment`
        Market segments ordered by the position of their products.
    product_segments : `ndarray`
        Read-only vector that maps each product to the index of its segment in ``segments``.

    """

    segments: Sequence[MarketSegment]
    product_segments: Array

    def __init__(self, segments: Sequence[MarketSegment], size: int) -> None:
        """Store the segments and map products back to them."""
        self.segments = tuple(segments)
        self.product_segments = np.zeros(size, np.int64)
        for index, segment in enumerate(self.segments):
            self.product_segments[segment.indices] = index
        self.product_segments.setflags(write=False)

    def __str__(self) -> str:
        """Format the partition as a string."""
        header = ["Market", "Start", "End", "Outside Share"]
        data = [[s.market_id, s.start, s.end, format_number(s.outside_share)] for s in self.segments]
        return format_table(header, *data, title="Market Partition")

    def __len__(self) -> int:
        """Count the number of markets."""
        return len(self.segments)

    def __iter__(self) -> Iterator[MarketSegment]:
        """Iterate over segments."""
        return iter(self.segments)

    def __getitem__(self, index: int) -> MarketSegment:
        """Get a segment by its position."""
        return self.segments[index]

    @property
    def market_ids(self) -> List[Hashable]:
        """Market IDs in order of appearance."""
        return [s.market_id for s in self.segments]

    @property
    def outside_shares(self) -> Array:
        """Outside share of each product's market."""
        return np.array([s.outside_share for s in self.segments], options.dtype)[self.product_segments]

    def segment_for_product(self, index: int) -> MarketSegment:
        """Get the segment of the market to which a product belongs."""
        return self.segments[self.product_segments[index]]


def partition_markets(market_ids: Array, shares: Array) -> MarketPartition:
    """Scan market IDs from left to right, starting a new segment whenever the ID changes, and compute the outside share
    of each market.

    Parameters
    ----------
    market_ids : `array-like`
        IDs that associate products with markets. Products in the same market must be adjacent.
    shares : `array-like`
        Observed market shares, which should already be known to be positive.

    Returns
    -------
    `MarketPartition`
        The partition of products into market segments.

    """
    market_ids = np.asarray(market_ids).flatten().tolist()
    shares = np.asarray(shares, options.dtype).flatten()
    if len(market_ids) != shares.size:
        raise exceptions.DimensionMismatchError("market IDs", shares.size, len(market_ids))

    segments: List[MarketSegment] = []
    closed: Set[Hashable] = set()
    start = 0
    for index in range(1, len(market_ids) + 1):
        if index < len(market_ids) and market_ids[index] == market_ids[start]:
            continue

        # close the current segment and make sure that its market has not been seen before
        market_id = market_ids[start]
        if market_id in closed:
            raise exceptions.NonContiguousMarketError(market_id)
        closed.add(market_id)

        # compute the outside share
        with np.errstate(all='ignore'):
            inside_share = shares[start:index].sum()
        if not np.isfinite(inside_share):
            raise exceptions.SharesNumericalError("market partitioning")
        outside_share = 1 - inside_share
        if outside_share <= 0:
            raise exceptions.NonpositiveOutsideShareError(market_id, outside_share)

        segments.append(MarketSegment(market_id, start, index, outside_share))
        start = index

    return MarketPartition(segments, len(market_ids))
