"""Fixtures used by tests."""

from typing import Dict, Iterator, Tuple

import numpy as np
import pytest

from blpest import Formulation, Integration, Iteration, Problem, ProblemResults, build_draws, build_products, options
from blpest.utilities.basics import Array, Data


# define common types
SimulatedProblemFixture = Tuple[Problem, Dict[str, Array], Data, ProblemResults]


@pytest.fixture(scope='session', autouse=True)
def configure() -> Iterator[None]:
    """Configure NumPy so that it raises all warnings as exceptions and silence progress output."""
    old_error = np.seterr(all='raise')
    old_verbose = options.verbose
    options.verbose = False
    yield
    options.verbose = old_verbose
    np.seterr(**old_error)


@pytest.fixture(scope='session')
def three_product_data() -> Data:
    """Two markets with three products, a constant, and one covariate."""
    return {
        'market_ids': np.array(['m1', 'm1', 'm2'], np.object_),
        'shares': np.array([0.3, 0.2, 0.4]),
        'x': np.array([1.0, 2.0, 4.0])
    }


@pytest.fixture(scope='session')
def simulated_problem() -> SimulatedProblemFixture:
    """Simulate shares from a model with ten markets, a linear constant, endogenous prices, and a characteristic with a
    random coefficient. Shares are simulated with the same draws that are used to solve the problem, so the true mean
    utility solves the fixed point problem exactly.
    """
    state = np.random.RandomState(0)
    T, J = 10, 8
    N = T * J

    # simulate exogenous variables, unobserved characteristics, and prices that are correlated with them
    x = state.uniform(size=N)
    z = state.uniform(size=N)
    w = state.uniform(size=N)
    xi = 0.2 * state.normal(size=N)
    prices = 1 + 0.5 * z + 0.5 * w + 0.3 * xi + 0.1 * state.normal(size=N)

    # structure product data with placeholder shares that will be replaced
    product_data = {
        'market_ids': np.repeat(np.arange(T), J),
        'shares': np.full(N, 1 / (2 * J)),
        'prices': prices,
        'x': x,
        'z': z,
        'w': w
    }
    formulations = (Formulation('1 + prices + x'), Formulation('0 + x'), Formulation('1 + x + z + w'))
    draws = build_draws(Integration('product', 7), 1)

    # simulate shares at the true parameters
    beta = np.c_[[-1.0, -2.0, 1.0]]
    sigma = np.array([[0.5]])
    placeholder = Problem(build_products(formulations, product_data), draws)
    delta = placeholder.products.X1 @ beta + np.c_[xi]
    product_data['shares'] = placeholder.predict_shares(delta, sigma).flatten()

    # solve the problem with simulated shares
    problem = Problem(build_products(formulations, product_data), draws, Iteration('simple', {'atol': 1e-13}))
    results = problem.solve(sigma)
    truth = {'beta': beta, 'sigma': sigma, 'delta': delta, 'xi': np.c_[xi]}
    return problem, truth, product_data, results
