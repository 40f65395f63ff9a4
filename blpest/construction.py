"""Data construction."""

from typing import Mapping, Optional, Sequence

from .configurations.formulation import Formulation
from .configurations.integration import Integration
from .primitives import Products, SimulationDraws
from .utilities.basics import Array, extract_matrix


def build_draws(integration: Integration, dimensions: int) -> SimulationDraws:
    r"""Build validated simulation draws, which are nodes and weights for integration over consumer heterogeneity.

    Parameters
    ----------
    integration : `Integration`
        :class:`Integration` configuration for how to build nodes and weights for integration.
    dimensions : `int`
        Number of dimensions over which to integrate, or equivalently, the number of columns of integration nodes. This
        should be the number of nonlinear product characteristics, :math:`K_2`. Zero dimensions are allowed, which
        corresponds to no consumer heterogeneity.

    Returns
    -------
    `SimulationDraws`
        Nodes and weights for integration.

    Examples
    --------
    Build a level-5 Gauss-Hermite product rule for two random coefficients, which has 25 nodes::

        draws = build_draws(Integration('product', 5), 2)

    """
    if not isinstance(integration, Integration):
        raise TypeError("integration must be an Integration instance.")
    if not isinstance(dimensions, int) or dimensions < 0:
        raise ValueError("dimensions must be a nonnegative integer.")
    nodes, weights = integration._build(dimensions)
    return SimulationDraws(nodes, weights)


def build_matrix(formulation: Formulation, data: Mapping) -> Array:
    r"""Construct a matrix according to a formulation.

    Parameters
    ----------
    formulation : `Formulation`
        :class:`Formulation` configuration for the matrix. Variable names should correspond to fields in ``data``.
    data : `structured array-like`
        Fields can be used as variables in ``formulation``.

    Returns
    -------
    `ndarray`
        The built matrix.

    """
    if not isinstance(formulation, Formulation):
        raise TypeError("formulation must be a Formulation instance.")
    return formulation._build_matrix(data)[0]


def build_products(product_formulations: Sequence[Optional[Formulation]], product_data: Mapping) -> Products:
    r"""Construct validated product data from formulations and a structured array-like object.

    Parameters
    ----------
    product_formulations : `Formulation or sequence of Formulation`
        :class:`Formulation` configuration or a sequence of up to three :class:`Formulation` configurations for the
        matrix of linear product characteristics, :math:`X_1`, for the matrix of nonlinear product characteristics,
        :math:`X_2`, and for the matrix of instruments, :math:`Z`. If the formulation for :math:`X_2` is not specified
        or is ``None``, the model reduces to the simple logit model. If the formulation for :math:`Z` is not specified
        or is ``None``, instruments are loaded from ``demand_instruments`` fields of ``product_data``, and if there are
        none, :math:`X_1` is used.
    product_data : `structured array-like`
        Each row corresponds to a product. Markets can have differing numbers of products, but products in the same
        market must be adjacent. The following fields are required:

            - **market_ids** : (`object`) - IDs that associate products with markets.

            - **shares** : (`numeric`) - Market shares, :math:`s`.

        Instruments can be specified with ``demand_instruments0``, ``demand_instruments1``, and so on, or with a
        single ``demand_instruments`` field. Along with ``market_ids`` and ``shares``, the names of any additional
        fields can be used as variables in ``product_formulations``.

    Returns
    -------
    `Products`
        Validated product data.

    """
    if isinstance(product_formulations, Formulation):
        product_formulations = [product_formulations]
    elif not isinstance(product_formulations, Sequence) or not 1 <= len(product_formulations) <= 3:
        raise TypeError("product_formulations must be a Formulation instance or a sequence of up to three of them.")
    if not all(isinstance(f, Formulation) or f is None for f in product_formulations):
        raise TypeError("Each formulation in product_formulations must be a Formulation instance or None.")
    if product_formulations[0] is None:
        raise ValueError("The formulation for X1 must be specified.")
    product_formulations = list(product_formulations) + [None] * (3 - len(product_formulations))

    # load the required fields
    market_ids = extract_matrix(product_data, 'market_ids')
    shares = extract_matrix(product_data, 'shares')
    if market_ids is None:
        raise KeyError("product_data must have market_ids.")
    if shares is None:
        raise KeyError("product_data must have shares.")

    # build the matrices
    X1 = build_matrix(product_formulations[0], product_data)
    X2 = None if product_formulations[1] is None else build_matrix(product_formulations[1], product_data)
    if product_formulations[2] is not None:
        Z = build_matrix(product_formulations[2], product_data)
    else:
        Z = extract_matrix(product_data, 'demand_instruments')

    return Products(market_ids, shares, X1, X2, Z)
