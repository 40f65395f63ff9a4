"""Construction of simulation draws for integrating over consumer heterogeneity."""

import functools
import itertools
from typing import Optional, Tuple

import numpy as np
import scipy.special
import scipy.stats

from ..utilities.basics import Array, Options, StringRepresentation, format_options


class Integration(StringRepresentation):
    r"""Configuration for building simulation draws, which are integration nodes :math:`\nu` and weights :math:`w`.

    Every specification produces strictly positive weights that sum to one, so the resulting draws always pass
    validation.

    Parameters
    ----------
    specification : `str`
        How to build nodes and weights. One of the following:

            - ``'monte_carlo'`` - Draw from a pseudo-random standard multivariate normal distribution. Integration
              weights are ``1 / size``. The ``seed`` field of ``specification_options`` seeds the random number
              generator, so the same seed always gives the same draws.

            - ``'halton'`` - Generate nodes according to the Halton sequence. A different prime (starting with 2, 3,
              5, etc.) is used for each dimension of integration. To eliminate correlation between dimensions, the
              first ``1000`` values are by default discarded in each dimension. Sequences are also by default
              scrambled with random digit permutations. The ``discard``, ``scramble``, and ``seed`` fields of
              ``specification_options`` configure these settings.

            - ``'lhs'`` - Generate nodes according to Latin Hypercube Sampling (LHS). Integration weights are
              ``1 / size``.

            - ``'mlhs'`` - Generate nodes according to Modified Latin Hypercube Sampling (MLHS), which shifts each
              dimension's grid by a single uniform draw. Integration weights are ``1 / size``.

            - ``'product'`` - Generate nodes and weights according to the level-``size`` Gauss-Hermite product rule.
              There are ``size ** dimensions`` nodes.

    size : `int`
        The number of draws if ``specification`` is ``'monte_carlo'``, ``'halton'``, ``'lhs'``, or ``'mlhs'``, and the
        level of the quadrature rule otherwise.
    specification_options : `dict, optional`
        Options for the integration specification. The ``'monte_carlo'``, ``'halton'``, ``'lhs'``, and ``'mlhs'``
        specifications support the following option:

            - **seed** : (`int`) - Passed to :class:`numpy.random.RandomState` to seed the random number generator
              before building nodes. By default, a seed is not passed to the random number generator.

        The ``'halton'`` specification supports the following options:

            - **discard** : (`int`) - How many values at the beginning of each dimension's sequence to discard. By
              default, the first ``1000`` values in each dimension are discarded.

            - **scramble** : (`bool`) - Whether to scramble the sequences. By default, sequences are scrambled.

    Examples
    --------
    Build reproducible Monte Carlo draws for two random coefficients::

        integration = Integration('monte_carlo', 200, {'seed': 0})
        draws = build_draws(integration, 2)

    """

    _size: int
    _specification: str
    _description: str
    _builder: functools.partial
    _specification_options: Options

    def __init__(self, specification: str, size: int, specification_options: Optional[Options] = None) -> None:
        """Validate the specification and identify the builder."""
        specifications = {
            'monte_carlo': (functools.partial(monte_carlo), "with Monte Carlo simulation"),
            'halton': (functools.partial(halton), "with Halton sequences"),
            'lhs': (functools.partial(lhs), "with Latin Hypercube Sampling (LHS)"),
            'mlhs': (functools.partial(lhs, modified=True), "with Modified Latin Hypercube Sampling (MLHS)"),
            'product': (functools.partial(product_rule), f"according to the level-{size} Gauss-Hermite product rule")
        }

        # validate the configuration
        if specification not in specifications:
            raise ValueError(f"specification must be one of {list(specifications.keys())}.")
        if not isinstance(size, int) or size < 1:
            raise ValueError("size must be a positive integer.")
        if specification_options is not None and not isinstance(specification_options, dict):
            raise ValueError("specification_options must be None or a dict.")

        # initialize class attributes
        self._size = size
        self._specification = specification
        self._builder, self._description = specifications[specification]

        # set default options
        self._specification_options = {}
        if specification == 'halton':
            self._specification_options.update({
                'discard': 1000,
                'scramble': True,
            })

        # update and validate options
        self._specification_options.update(specification_options or {})
        if specification in {'monte_carlo', 'halton', 'lhs', 'mlhs'}:
            if not isinstance(self._specification_options.get('seed', 0), int):
                raise ValueError("The specification option seed must be an integer.")
        if specification == 'halton':
            discard = self._specification_options['discard']
            if not isinstance(discard, int) or discard < 0:
                raise ValueError("The specification option discard must be a nonnegative integer.")

    def __str__(self) -> str:
        """Format the configuration as a string."""
        return (
            f"Configured to construct nodes and weights {self._description} with options "
            f"{format_options(self._specification_options)}."
        )

    def _build(self, dimensions: int) -> Tuple[Array, Array]:
        """Build nodes and weights."""
        if not isinstance(dimensions, int) or dimensions < 0:
            raise ValueError("dimensions must be a nonnegative integer.")
        builder = self._builder
        if self._specification in {'monte_carlo', 'halton', 'lhs', 'mlhs'}:
            builder = functools.partial(builder, state=np.random.RandomState(self._specification_options.get('seed')))
        if self._specification == 'halton':
            start = self._specification_options['discard']
            return builder(dimensions, self._size, start, self._specification_options['scramble'])
        return builder(dimensions, self._size)


def monte_carlo(dimensions: int, size: int, state: np.random.RandomState) -> Tuple[Array, Array]:
    """Draw from a pseudo-random standard multivariate normal distribution."""
    nodes = state.normal(size=(size, dimensions))
    weights = np.repeat(1 / size, size)
    return nodes, weights


def halton(dimensions: int, size: int, start: int, scramble: bool, state: np.random.RandomState) -> Tuple[Array, Array]:
    """Generate nodes and weights for integration according to the Halton sequence."""

    # generate Halton sequences
    sequences = np.zeros((size, dimensions))
    for dimension in range(dimensions):
        base = get_prime(dimension)
        factor = 1 / base
        indices = np.arange(start, start + size)
        while 1 - factor < 1:
            indices, remainders = np.divmod(indices, base)
            if scramble:
                remainders = state.permutation(base)[remainders]
            sequences[:, dimension] += factor * remainders
            factor /= base

    # transform the sequences and construct weights
    nodes = scipy.stats.norm().ppf(sequences)
    weights = np.repeat(1 / size, size)
    return nodes, weights


def get_prime(dimension: int) -> int:
    """Return the prime number that serves as the base of a dimension's Halton sequence."""
    primes = [
        2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71, 73, 79, 83, 89, 97, 101, 103, 107,
        109, 113, 127, 131, 137, 139, 149, 151, 157, 163, 167, 173, 179, 181, 191, 193, 197, 199
    ]
    try:
        return primes[dimension]
    except IndexError:
        raise ValueError(f"Halton sequences are only available for {len(primes)} dimensions here.")


def lhs(dimensions: int, size: int, state: np.random.RandomState, modified: bool = False) -> Tuple[Array, Array]:
    """Use Latin Hypercube Sampling to generate nodes and weights for integration."""

    # generate the samples
    samples = np.zeros((size, dimensions))
    for dimension in range(dimensions):
        samples[:, dimension] = state.permutation(np.arange(size) + state.uniform(size=1 if modified else size)) / size

    # transform the samples and construct weights
    nodes = scipy.stats.norm().ppf(samples)
    weights = np.repeat(1 / size, size)
    return nodes, weights


@functools.lru_cache()
def product_rule(dimensions: int, level: int) -> Tuple[Array, Array]:
    """Generate nodes and weights for integration according to the Gauss-Hermite product rule for the standard normal
    distribution. With zero dimensions, there is a single node with unit weight.
    """
    base_nodes, base_weights = scipy.special.roots_hermitenorm(level)
    base_weights = base_weights / base_weights.sum()
    nodes = np.array(list(itertools.product(base_nodes, repeat=dimensions)), np.float64)
    nodes = nodes.reshape(base_nodes.size**dimensions, dimensions)
    weights = functools.reduce(np.kron, itertools.repeat(base_weights, dimensions), np.ones(1))
    return nodes, weights
