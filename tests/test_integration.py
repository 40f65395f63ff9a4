"""Tests of construction of nodes and weights for integration."""

import numpy as np
import pytest

from blpest import Integration, SimulationDraws, build_draws, exceptions, options


@pytest.mark.parametrize(['dimensions', 'specification', 'size', 'naive_specification'], [
    pytest.param(1, 'monte_carlo', 100000, None, id="1D Monte Carlo"),
    pytest.param(2, 'monte_carlo', 150000, None, id="2D Monte Carlo"),
    pytest.param(1, 'halton', 50000, None, id="1D Halton"),
    pytest.param(2, 'halton', 100000, None, id="2D Halton"),
    pytest.param(1, 'lhs', 100000, None, id="1D LHS"),
    pytest.param(3, 'lhs', 200000, None, id="3D LHS"),
    pytest.param(1, 'mlhs', 50000, None, id="1D MLHS"),
    pytest.param(1, 'product', 6, 'monte_carlo', id="1D product rule and Monte Carlo"),
    pytest.param(3, 'product', 3, 'monte_carlo', id="3D product rule and Monte Carlo"),
])
def test_hermite_integral(dimensions: int, specification: str, size: int, naive_specification: str) -> None:
    """Test if approximations of a simple Gauss-Hermite integral (product of squared variables of integration with
    respect to the standard normal density) are reasonably correct. Then, if a naive specification is given, tests that
    it performs worse, even with an order of magnitude more nodes.
    """
    integral = lambda n, w: w.T @ (n**2).prod(axis=1)
    specification_options = {'seed': 0}
    nodes, weights = Integration(specification, size, specification_options)._build(dimensions)
    simulated = integral(nodes, weights)
    np.testing.assert_allclose(simulated, 1, rtol=0, atol=0.01)
    if naive_specification:
        naive = integral(*Integration(naive_specification, 10 * weights.size, specification_options)._build(dimensions))
        np.testing.assert_array_less(np.linalg.norm(simulated - 1), np.linalg.norm(naive - 1))


@pytest.mark.parametrize('dimensions', [
    pytest.param(0, id="0D"),
    pytest.param(1, id="1D"),
    pytest.param(3, id="3D"),
])
@pytest.mark.parametrize(['specification', 'size'], [
    pytest.param('monte_carlo', 100, id="Monte Carlo"),
    pytest.param('halton', 20, id="Halton"),
    pytest.param('lhs', 30, id="LHS"),
    pytest.param('product', 1, id="small product rule"),
    pytest.param('product', 5, id="large product rule"),
])
def test_weights_and_formatting(dimensions: int, specification: str, size: int) -> None:
    """Test that weights sum to one, that nodes have one column for each dimension, that the draws pass validation,
    and that the configurations can be formatted.
    """
    integration = Integration(specification, size)
    assert str(integration)
    draws = build_draws(integration, dimensions)
    assert str(draws)
    assert draws.dimensions == dimensions
    np.testing.assert_allclose(draws.weights.sum(), 1, rtol=0, atol=1e-12)


def test_seeded_draws() -> None:
    """Test that the same seed gives the same standard normal draws and that each draw has the same weight."""
    draws1 = SimulationDraws.standard_normal(50, 2, seed=1)
    draws2 = SimulationDraws.standard_normal(50, 2, seed=1)
    np.testing.assert_array_equal(draws1.nodes, draws2.nodes)
    np.testing.assert_allclose(draws1.weights, 1 / 50, rtol=0, atol=1e-16)
    assert draws1.nodes.shape == (50, 2)


def test_immutable_draws() -> None:
    """Test that validated draws are immutable and that validation does not freeze arrays supplied by the caller."""
    nodes = np.zeros((2, 1))
    draws = SimulationDraws(nodes, [0.5, 0.5])
    assert nodes.flags.writeable
    with pytest.raises(ValueError):
        draws.nodes[0, 0] = 1


def test_weight_slack() -> None:
    """Test that weights that sum to 1.02 are rejected with the slack reported."""
    with pytest.raises(exceptions.InvalidWeightsError) as info:
        SimulationDraws(np.zeros((2, 1)), [0.51, 0.51])
    np.testing.assert_allclose(info.value.slack, 0.02, rtol=0, atol=1e-12)
    assert "Slack" in str(info.value)


def test_weight_tolerance() -> None:
    """Test that slack within the configured tolerance is accepted."""
    SimulationDraws(np.zeros((2, 1)), [0.5, 0.5 + options.weights_tol / 2])


@pytest.mark.parametrize('weights', [
    pytest.param([1.5, -0.5], id="negative"),
    pytest.param([1.0, 0.0], id="zero"),
])
def test_nonpositive_weights(weights: list) -> None:
    """Test that every weight must be positive."""
    with pytest.raises(exceptions.InvalidWeightsError):
        SimulationDraws(np.zeros((2, 1)), weights)


@pytest.mark.parametrize('node', [
    pytest.param(-np.inf, id="negative infinity"),
    pytest.param(np.inf, id="positive infinity"),
    pytest.param(np.nan, id="NaN"),
])
def test_nonfinite_nodes(node: float) -> None:
    """Test that draws with non-finite nodes are rejected and that the first such draw is identified."""
    nodes = np.array([[0.0, 1.0], [0.5, node], [node, 0.0]])
    with pytest.raises(exceptions.NonfiniteNodesError) as info:
        SimulationDraws(nodes, [0.2, 0.3, 0.5])
    assert info.value.index == 1


@pytest.mark.parametrize(['nodes', 'weights'], [
    pytest.param(np.zeros((0, 1)), [], id="no draws"),
    pytest.param(np.zeros((3, 1)), [0.5, 0.5], id="mismatched weights"),
])
def test_draw_dimensions(nodes: np.ndarray, weights: list) -> None:
    """Test that draws without any rows and weights without one value per draw are rejected."""
    with pytest.raises(exceptions.DimensionMismatchError):
        SimulationDraws(nodes, weights)


@pytest.mark.parametrize(['specification', 'size', 'specification_options'], [
    pytest.param('unknown', 10, None, id="unknown specification"),
    pytest.param('monte_carlo', 0, None, id="zero size"),
    pytest.param('halton', 10, {'discard': -1}, id="negative discard"),
])
def test_invalid_configurations(specification: str, size: int, specification_options: dict) -> None:
    """Test that invalid configurations are rejected."""
    with pytest.raises((TypeError, ValueError)):
        Integration(specification, size, specification_options)
