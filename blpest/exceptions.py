"""BLP-specific exceptions."""

from typing import Hashable

from .utilities.basics import Error, InversionError, NumericalError, format_number


class DimensionMismatchError(Error):
    """Arrays or matrices have dimensions that are incompatible with one another.

    Shapes are checked before any iteration begins. Make sure that mean utilities have one row for each product, that
    the nonlinear parameter matrix and integration nodes conform to the number of nonlinear product characteristics,
    and that any weighting matrix conforms to the number of instruments.

    """

    context: str
    expected: int
    found: int

    def __init__(self, context: str, expected: int, found: int) -> None:
        """Store the dimensions."""
        super().__init__(context, expected, found)
        self.context = context
        self.expected = expected
        self.found = found

    def __str__(self) -> str:
        """Supplement the error with the dimensions."""
        return f"{super().__str__()} Dimension of {self.context}: expected {self.expected} but found {self.found}."


class NonpositiveShareError(Error):
    """Encountered a missing or nonpositive market share.

    Every observed share must be a positive number.

    """

    index: int
    share: float

    def __init__(self, index: int, share: float) -> None:
        """Store the index of the offending product and its share."""
        super().__init__(index, share)
        self.index = index
        self.share = share

    def __str__(self) -> str:
        """Supplement the error with the product index and share."""
        return f"{super().__str__()} Product index: {self.index}. Share: {format_number(self.share)}."


class NonContiguousMarketError(Error):
    """Products in the same market do not appear in one contiguous block.

    Products should be sorted so that all products in a market are adjacent to one another.

    """

    market_id: Hashable

    def __init__(self, market_id: Hashable) -> None:
        """Store the ID of the market that is split."""
        super().__init__(market_id)
        self.market_id = market_id

    def __str__(self) -> str:
        """Supplement the error with the market ID."""
        return f"{super().__str__()} Market '{self.market_id}' is split."


class NonpositiveOutsideShareError(Error):
    """Encountered a nonpositive outside share.

    Observed shares in each market must sum to strictly less than one.

    """

    market_id: Hashable
    share: float

    def __init__(self, market_id: Hashable, share: float) -> None:
        """Store the ID of the market and its outside share."""
        super().__init__(market_id, share)
        self.market_id = market_id
        self.share = share

    def __str__(self) -> str:
        """Supplement the error with the market ID and outside share."""
        return f"{super().__str__()} Market '{self.market_id}' has an outside share of {format_number(self.share)}."


class InvalidWeightsError(Error):
    """Integration weights must be strictly positive and sum to one.

    The tolerance for the sum of weights can be configured with ``options.weights_tol``.

    """

    slack: float

    def __init__(self, slack: float) -> None:
        """Store the slack, which is the absolute difference between the sum of weights and one, or the offending
        weight if a weight is nonpositive.
        """
        super().__init__(slack)
        self.slack = slack

    def __str__(self) -> str:
        """Supplement the error with the slack."""
        return f"{super().__str__()} Slack: {format_number(self.slack)}."


class NonfiniteNodesError(Error):
    """Integration nodes must be finite.

    Nodes built from quasi-random sequences can be infinite when a sequence value is exactly zero, which can sometimes
    be avoided by discarding the first values of the sequence.

    """

    index: int

    def __init__(self, index: int) -> None:
        """Store the index of the first draw with a non-finite node."""
        super().__init__(index)
        self.index = index

    def __str__(self) -> str:
        """Supplement the error with the index of the draw."""
        return f"{super().__str__()} Draw index: {self.index}."


class MissingComponentError(Error):
    """A component required to assemble the problem was not provided."""

    component: str

    def __init__(self, component: str) -> None:
        """Store the name of the missing component."""
        super().__init__(component)
        self.component = component

    def __str__(self) -> str:
        """Supplement the error with the name of the component."""
        return f"{super().__str__()} Missing: {self.component}."


class SharesNumericalError(NumericalError):
    """Encountered a non-finite market share.

    Observed shares must be finite numbers.

    """


class UtilityOverflowError(NumericalError):
    r"""Encountered a non-finite exponentiated utility when computing market shares.

    This problem is often due to overflow and can sometimes be mitigated by choosing smaller values of :math:`\sigma`,
    rescaling nonlinear product characteristics, or using a smaller damping factor.

    """


class ShareUnderflowError(NumericalError):
    r"""Encountered a predicted market share below the minimum share.

    Taking the logarithm of such a share is unreliable. This problem can sometimes be mitigated by choosing smaller
    values of :math:`\sigma`, rescaling nonlinear product characteristics, or configuring a smaller minimum share.

    """


class SingularMatrixError(InversionError):
    """Failed to compute the Cholesky factorization of a matrix that should be positive definite.

    For :math:`X_1'ZWZ'X_1`, there may be fewer valid instruments than linear parameters or collinear product
    characteristics. For :math:`Z'Z`, instruments may be collinear. A custom weighting matrix may not be positive
    definite.

    """


class DeltaConvergenceError(Error):
    r"""The fixed point computation of :math:`\delta` failed to converge.

    This problem can sometimes be mitigated by increasing the maximum number of fixed point iterations, increasing the
    fixed point tolerance, choosing more reasonable values of :math:`\sigma`, or using a different damping factor.

    """

    iterations: int
    max_gap: float

    def __init__(self, iterations: int, max_gap: float) -> None:
        """Store iteration diagnostics."""
        super().__init__(iterations, max_gap)
        self.iterations = iterations
        self.max_gap = max_gap

    def __str__(self) -> str:
        """Supplement the error with iteration diagnostics."""
        return f"{super().__str__()} Iterations: {self.iterations}. Last max gap: {format_number(self.max_gap)}."


__all__ = [
    'Error', 'NumericalError', 'InversionError', 'DimensionMismatchError', 'NonpositiveShareError',
    'NonContiguousMarketError', 'NonpositiveOutsideShareError', 'InvalidWeightsError', 'NonfiniteNodesError',
    'MissingComponentError', 'SharesNumericalError', 'UtilityOverflowError', 'ShareUnderflowError',
    'SingularMatrixError', 'DeltaConvergenceError'
]
