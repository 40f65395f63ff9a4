"""Structuring of solved BLP problem results."""

from typing import Any, List, Optional, Sequence, TYPE_CHECKING

from ..configurations.iteration import Iteration
from ..utilities.algebra import compute_condition_number
from ..utilities.basics import Array, SolverStats, StringRepresentation, format_number, format_seconds, format_table


# only import objects that create import cycles when checking types
if TYPE_CHECKING:
    from ..economies.problem import Problem  # noqa


class ProblemResults(StringRepresentation):
    r"""Results of a solved BLP problem.

    Results are immutable. Arrays are column vectors or matrices that cannot be modified in place.

    Attributes
    ----------
    problem : `Problem`
        :class:`Problem` that created these results.
    sigma : `ndarray`
        Matrix of nonlinear parameters, :math:`\Sigma`, at which the problem was solved.
    delta : `ndarray`
        Mean utility, :math:`\delta`, that equates predicted market shares to observed shares.
    beta : `ndarray`
        Estimated linear parameters, :math:`\hat{\beta}`.
    xi : `ndarray`
        Unobserved product characteristics, :math:`\xi = \delta - X_1\hat{\beta}`.
    shares : `ndarray`
        Market shares predicted at :math:`\delta` and :math:`\Sigma`, which reproduce observed shares up to the
        tolerance of the fixed point.
    objective : `float`
        GMM objective value, :math:`\xi'ZWZ'\xi`.
    W : `ndarray`
        Weighting matrix, :math:`W`, used to estimate :math:`\hat{\beta}` and compute the objective.
    W_type : `str`
        How the weighting matrix was chosen: ``'inverse_ztz'`` if it is the inverse of :math:`Z'Z` and ``'supplied'``
        if it was passed to :meth:`Problem.solve`.
    fp_converged : `bool`
        Whether the fixed point iteration routine converged.
    fp_iterations : `int`
        Number of major iterations completed by the fixed point iteration routine.
    contraction_evaluations : `int`
        Number of times the contraction used to compute :math:`\delta` was evaluated.
    fp_max_gap : `float`
        Gap of the last fixed point iteration, which is below the tolerance.
    iteration : `Iteration`
        :class:`Iteration` configuration used to compute :math:`\delta`.
    total_time : `float`
        Number of seconds it took to solve the problem.

    """

    problem: 'Problem'
    sigma: Array
    delta: Array
    beta: Array
    xi: Array
    shares: Array
    objective: float
    W: Array
    W_type: str
    fp_converged: bool
    fp_iterations: int
    contraction_evaluations: int
    fp_max_gap: float
    iteration: Iteration
    total_time: float

    def __init__(
            self, problem: 'Problem', sigma: Array, delta: Array, beta: Array, xi: Array, shares: Array,
            objective: float, W: Array, W_type: str, stats: SolverStats, iteration: Iteration,
            start_time: float, end_time: float) -> None:
        """Store solved values and statistics."""
        self.problem = problem
        self.sigma = sigma
        self.delta = delta
        self.beta = beta
        self.xi = xi
        self.shares = shares
        self.objective = objective
        self.W = W
        self.W_type = W_type
        self.fp_converged = stats.converged
        self.fp_iterations = stats.iterations
        self.contraction_evaluations = stats.evaluations
        self.fp_max_gap = stats.max_gap
        self.iteration = iteration
        self.total_time = end_time - start_time

        # prevent arrays from being modified
        for array in [self.sigma, self.delta, self.beta, self.xi, self.shares, self.W]:
            array.setflags(write=False)

    def __str__(self) -> str:
        """Format problem results as a string."""
        sections = [self._format_summary(), self._format_statistics(), self._format_estimates()]
        return "\n\n".join(sections)

    def _format_summary(self) -> str:
        """Format a summary table of problem results."""
        header = [("Objective", "Value"), ("Weighting Matrix", "Type"), ("Weighting Matrix", "Condition Number")]
        values = [
            format_number(self.objective),
            "Inverse Z'Z" if self.W_type == 'inverse_ztz' else "Supplied",
            format_number(compute_condition_number(self.W))
        ]
        return format_table(header, values, title="Problem Results Summary")

    def _format_statistics(self) -> str:
        """Format a table of fixed point statistics."""
        header = [
            ("Computation", "Time"), ("Fixed Point", "Converged"), ("Fixed Point", "Iterations"),
            ("Contraction", "Evaluations"), ("Last", "Max Gap")
        ]
        values = [
            format_seconds(self.total_time),
            "Yes" if self.fp_converged else "No",
            str(self.fp_iterations),
            str(self.contraction_evaluations),
            format_number(self.fp_max_gap)
        ]
        return format_table(header, values, title="Fixed Point Statistics")

    def _format_estimates(self) -> str:
        """Format tables of nonlinear parameters and estimated linear parameters."""
        tables: List[str] = []
        if self.problem.K2 > 0:
            header = ["Sigma:"] + [f" {k} " for k in range(self.problem.K2)]
            rows = [[f" {k} "] + [format_number(x) for x in row] for k, row in enumerate(self.sigma)]
            tables.append(format_table(header, *rows, title="Nonlinear Parameters"))
        header = [f" {k} " for k in range(self.problem.K1)]
        values = [format_number(x) for x in self.beta.flat]
        tables.append(format_table(header, values, title="Beta Estimates"))
        return "\n\n".join(tables)

    def to_dict(
            self, attributes: Sequence[str] = (
                'sigma', 'delta', 'beta', 'xi', 'shares', 'objective', 'W', 'W_type', 'fp_converged', 'fp_iterations',
                'contraction_evaluations', 'fp_max_gap', 'total_time'
            )) -> dict:
        """Convert these results into a dictionary that maps attribute names to values.

        Parameters
        ----------
        attributes : `sequence of str, optional`
            Name of attributes that will be added to the dictionary. By default, all :class:`ProblemResults` attributes
            are added except for :attr:`ProblemResults.problem` and :attr:`ProblemResults.iteration`.

        Returns
        -------
        `dict`
            Mapping from attribute names to values.

        """
        return {k: getattr(self, k) for k in attributes}

    def compute_shares(self, delta: Optional[Any] = None, minimum_share: Optional[float] = None) -> Array:
        r"""Predict market shares at the solved :math:`\Sigma`.

        Parameters
        ----------
        delta : `array-like, optional`
            Mean utility at which shares will be predicted. By default, the solved :math:`\delta` is used, in which
            case predicted shares are the same as :attr:`ProblemResults.shares`.
        minimum_share : `float, optional`
            Smallest share that can be predicted without raising an exception. By default, the minimum share of the
            :class:`Iteration` configuration used to solve the problem is used.

        Returns
        -------
        `ndarray`
            Predicted market shares.

        """
        if delta is None:
            delta = self.delta
        if minimum_share is None:
            minimum_share = self.iteration.minimum_share
        return self.problem.predict_shares(delta, self.sigma, minimum_share)
