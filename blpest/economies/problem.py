"""Economy-level BLP problem functionality."""

import time
from typing import Any, Optional

import numpy as np

from .economy import Economy
from .. import exceptions
from ..configurations.iteration import Iteration
from ..primitives import Products, SimulationDraws
from ..results.problem_results import ProblemResults
from ..utilities.basics import Array, format_number, format_seconds, output
from ..utilities.statistics import IV, compute_gmm_objective, compute_gmm_weights


class Problem(Economy):
    r"""A BLP problem.

    This class is initialized with validated product data and simulation draws, and solved with :meth:`Problem.solve`.

    Parameters
    ----------
    products : `Products`
        Validated product data, which can be built with :func:`build_products`.
    draws : `SimulationDraws`
        Validated simulation draws, which can be built with :func:`build_draws`. Draws must have one column for each
        nonlinear product characteristic. Without any nonlinear characteristics, draws must have zero columns.
    iteration : `Iteration, optional`
        :class:`Iteration` configuration for how to solve the fixed point problem that recovers the mean utility. By
        default, ``Iteration('simple')`` is used, which has an absolute tolerance of ``1e-9``, at most ``1000``
        iterations, no damping, and a minimum share of ``1e-16``.

    Attributes
    ----------
    products : `Products`
        Product data.
    draws : `SimulationDraws`
        Simulation draws.
    iteration : `Iteration`
        Default :class:`Iteration` configuration.
    T : `int`
        Number of markets, :math:`T`.
    N : `int`
        Number of products across all markets, :math:`N`.
    I : `int`
        Number of simulation draws, :math:`I`.
    K1 : `int`
        Number of linear product characteristics, :math:`K_1`.
    K2 : `int`
        Number of nonlinear product characteristics, :math:`K_2`.
    MD : `int`
        Number of instruments, :math:`M_D`.

    Examples
    --------
    Solve a problem with two random coefficients at a diagonal :math:`\Sigma`::

        products = build_products([Formulation('1 + prices + x'), Formulation('0 + prices + x')], product_data)
        draws = build_draws(Integration('monte_carlo', 200, {'seed': 0}), 2)
        results = Problem(products, draws).solve(np.diag([0.5, 1.0]))

    """

    def __init__(
            self, products: Products, draws: SimulationDraws, iteration: Optional[Iteration] = None) -> None:
        """Validate and store product data, draws, and the default iteration configuration."""

        # keep track of how long it takes to initialize the problem
        output("Initializing the problem ...")
        start_time = time.time()
        super().__init__(products, draws, iteration)

        # output information about the initialized problem
        output(f"Initialized the problem after {format_seconds(time.time() - start_time)}.")
        output("")
        output(self)

    def solve(
            self, sigma: Optional[Any] = None, W: Optional[Any] = None,
            iteration: Optional[Iteration] = None) -> ProblemResults:
        r"""Solve the problem at a matrix of nonlinear parameters.

        The mean utility :math:`\delta` is recovered by iterating over the contraction

        .. math:: \delta \leftarrow \delta + \kappa(\log s - \log \sigma(\delta, \Sigma)),

        starting from the simple logit solution. Once the fixed point has converged, linear parameters are estimated
        with IV-GMM, which solves :math:`X_1'ZWZ'X_1\hat{\beta} = X_1'ZWZ'\delta` with a Cholesky factorization. The
        unobserved product characteristics are :math:`\xi = \delta - X_1\hat{\beta}` and the GMM objective is
        :math:`\xi'ZWZ'\xi`.

        Parameters
        ----------
        sigma : `array-like, optional`
            Matrix of nonlinear parameters, :math:`\Sigma`, which should be :math:`K_2 \times K_2`. It is ignored when
            there are no nonlinear product characteristics. By default, it is a matrix of zeros.
        W : `array-like, optional`
            Weighting matrix, :math:`W`, which should be :math:`M_D \times M_D` and positive definite. It is used as
            given, although a warning is raised if it does not seem to be positive semidefinite. By default,
            :math:`W = (Z'Z)^{-1}`.
        iteration : `Iteration, optional`
            :class:`Iteration` configuration that overrides the one passed to :class:`Problem`.

        Returns
        -------
        `ProblemResults`
            :class:`ProblemResults` of the solved problem.

        Raises
        ------
        `DimensionMismatchError`
            If :math:`\Sigma` or :math:`W` has the wrong shape. Shapes are checked before any iteration.
        `DeltaConvergenceError`
            If the fixed point does not converge within the configured number of iterations.
        `ShareUnderflowError`
            If a share predicted during the contraction is below the minimum share or is exactly zero.
        `SingularMatrixError`
            If :math:`Z'Z` or :math:`X_1'ZWZ'X_1` cannot be factorized.

        """

        # keep track of how long it takes to solve the problem
        output("Solving the problem ...")
        start_time = time.time()

        # validate settings
        sigma = self._coerce_sigma(sigma)
        W = self._coerce_optional_W(W)
        W_type = 'inverse_ztz' if W is None else 'supplied'
        iteration = self.iteration if iteration is None else self._coerce_optional_iteration(iteration)
        output("")
        output(iteration)
        output("Weighting matrix: inverse of Z'Z." if W is None else "Weighting matrix: supplied.")
        output("")

        # solve the fixed point problem
        output("Solving for the mean utility ...")
        delta, stats = self._compute_delta(sigma, iteration)
        if not stats.converged:
            raise exceptions.DeltaConvergenceError(stats.iterations, stats.max_gap)
        output(
            f"Converged after {stats.iterations} iterations and {stats.evaluations} contraction evaluations with a "
            f"last max gap of {format_number(stats.max_gap).strip()}."
        )

        # estimate linear parameters and compute the objective
        Z = self.products.Z
        if W is None:
            W = compute_gmm_weights(Z)
        iv = IV(self.products.X1, Z, W)
        beta, xi = iv.estimate(delta)
        objective = compute_gmm_objective(xi, Z, W)

        # predict shares at the solution and structure results
        shares = self._compute_shares(delta, sigma, iteration.minimum_share)
        results = ProblemResults(
            self, sigma, delta, beta, xi, shares, objective, W, W_type, stats, iteration, start_time, time.time()
        )
        output(f"Computed results after {format_seconds(results.total_time)}.")
        output("")
        output(results)
        return results

    def predict_shares(self, delta: Any, sigma: Optional[Any] = None, minimum_share: Optional[float] = None) -> Array:
        r"""Predict market shares at a mean utility and a matrix of nonlinear parameters.

        For each draw :math:`i` with weight :math:`w_i`, tastes are :math:`\Sigma\nu_i` and the share of product
        :math:`j` in market :math:`t` is the logit probability

        .. math:: s_{jti} = \frac{\exp(\delta_{jt} + x_{jt}'\Sigma\nu_i)}{1 + \sum_{k \in J_t} \exp(\delta_{kt} +
           x_{kt}'\Sigma\nu_i)},

        which is integrated over draws. Without nonlinear characteristics, this is the simple logit model. Shares are
        computed market by market and support :func:`parallel` processing.

        Parameters
        ----------
        delta : `array-like`
            Mean utility, :math:`\delta`, with one value for each product.
        sigma : `array-like, optional`
            Matrix of nonlinear parameters, :math:`\Sigma`. By default, it is a matrix of zeros.
        minimum_share : `float, optional`
            Smallest share that can be predicted without raising an exception. By default, the minimum share of the
            problem's :class:`Iteration` configuration is used.

        Returns
        -------
        `ndarray`
            Predicted market shares.

        Raises
        ------
        `DimensionMismatchError`
            If :math:`\delta` or :math:`\Sigma` has the wrong shape.
        `UtilityOverflowError`
            If an exponentiated utility is not finite.
        `ShareUnderflowError`
            If a predicted share, or with heterogeneity the weighted share of any draw, is below the minimum share.

        """
        delta = self._coerce_delta(delta)
        sigma = self._coerce_sigma(sigma)
        if minimum_share is None:
            minimum_share = self.iteration.minimum_share
        elif not isinstance(minimum_share, (float, int)) or minimum_share < 0:
            raise ValueError("minimum_share must be None or a nonnegative float.")
        return self._compute_shares(delta, sigma, minimum_share)

    def _compute_delta(self, sigma: Array, iteration: Iteration) -> tuple:
        """Iterate over the contraction from the simple logit solution. The contraction fails as soon as a predicted
        share is below the minimum share or has no finite logarithm, which can happen with a minimum share of zero.
        """
        log_shares = np.log(self.products.shares)

        def contraction(x: Array) -> Array:
            """Compute the next mean utility."""
            shares = self._compute_shares(x, sigma, iteration.minimum_share)
            with np.errstate(divide='ignore'):
                log_predicted = np.log(shares)
            if not np.isfinite(log_predicted).all():
                raise exceptions.ShareUnderflowError("mean utility contraction")
            return x + log_shares - log_predicted

        delta, stats = iteration._iterate(self._compute_logit_delta(), contraction)
        return delta, stats


class ProblemBuilder(object):
    """Step-by-step assembly of a :class:`Problem`.

    Components are supplied with the ``with_*`` methods, each of which returns the builder itself so that calls can be
    chained. Product data and simulation draws are required; a missing one raises a :class:`MissingComponentError`
    when :meth:`ProblemBuilder.build` is called, before any numerical work is done.

    Examples
    --------
    Assemble a problem with a custom tolerance::

        problem = ProblemBuilder().with_products(products).with_draws(draws).with_iteration(
            Iteration('simple', {'atol': 1e-12})
        ).build()

    """

    _products: Optional[Products]
    _draws: Optional[SimulationDraws]
    _iteration: Optional[Iteration]

    def __init__(self) -> None:
        """Start without any components."""
        self._products = None
        self._draws = None
        self._iteration = None

    def with_products(self, products: Products) -> 'ProblemBuilder':
        """Supply validated product data."""
        self._products = products
        return self

    def with_draws(self, draws: SimulationDraws) -> 'ProblemBuilder':
        """Supply validated simulation draws."""
        self._draws = draws
        return self

    def with_iteration(self, iteration: Iteration) -> 'ProblemBuilder':
        """Supply the configuration for iterating over the mean utility."""
        self._iteration = iteration
        return self

    def build(self) -> Problem:
        """Validate that all required components are present and initialize the problem."""
        if self._products is None:
            raise exceptions.MissingComponentError("product data")
        if self._draws is None:
            raise exceptions.MissingComponentError("simulation draws")
        return Problem(self._products, self._draws, self._iteration)
