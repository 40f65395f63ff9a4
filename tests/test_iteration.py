"""Tests of fixed point iteration routines."""

from typing import Callable, Tuple

import numpy as np
import pytest

from blpest import Iteration
from blpest.utilities.basics import Array, Options


def contraction(x: Array) -> Array:
    """Evaluate the example fixed point problem from scipy.optimize.fixed_point."""
    c1 = np.array([10, 12])
    c2 = np.array([3, 5])
    return np.sqrt(c1 / (x + c2))


@pytest.mark.parametrize('method_options', [
    pytest.param({}, id="default"),
    pytest.param({'norm': lambda x: np.linalg.norm(x, 2)}, id="Euclidean norm"),
    pytest.param({'damping': 0.5}, id="damping"),
    pytest.param({'atol': 1e-12, 'minimum_share': 0}, id="tight tolerance"),
])
@pytest.mark.parametrize('universal_display', [
    pytest.param(True, id="universal display"),
    pytest.param(False, id="no universal display")
])
def test_scipy(method_options: Options, universal_display: bool) -> None:
    """Test that the solution to the example fixed point problem from scipy.optimize.fixed_point is reasonably close to
    the exact solution. Also verify that the configuration can be formatted and that each iteration evaluates the
    contraction exactly once.
    """
    iteration = Iteration('simple', method_options, universal_display)
    assert str(iteration)
    exact_values = np.array([1.4920333, 1.37228132])
    computed_values, stats = iteration._iterate(np.ones_like(exact_values), contraction)
    assert stats.converged
    assert stats.iterations == stats.evaluations > 0
    assert stats.max_gap < method_options.get('atol', 1e-9)
    np.testing.assert_allclose(exact_values, computed_values, rtol=0, atol=1e-5)


def test_zero_evaluations() -> None:
    """Test that iteration without any allowed evaluations fails to converge without evaluating the contraction."""
    def failing_contraction(x: Array) -> Array:
        """Fail if evaluated."""
        raise AssertionError("The contraction should not be evaluated.")

    initial = np.array([1.0, 2.0])
    final, stats = Iteration('simple', {'max_evaluations': 0})._iterate(initial, failing_contraction)
    assert not stats.converged
    assert stats.iterations == stats.evaluations == 0
    assert stats.max_gap == np.inf
    np.testing.assert_array_equal(final, initial)


def test_last_iteration_convergence() -> None:
    """Test that converging on the last allowed iteration counts as convergence."""
    stats = Iteration('simple', {'max_evaluations': 1})._iterate(np.zeros(3), lambda x: x)[1]
    assert stats.converged
    assert stats.iterations == 1


def test_damping() -> None:
    """Test that a damped update moves only part of the way to the contraction's value and that the gap is the norm of
    the damped step.
    """
    steps = []
    iteration = Iteration('simple', {'max_evaluations': 1, 'damping': 0.25})
    final, stats = iteration._iterate(np.array([0.0, 0.0]), lambda x: steps.append(x.copy()) or x + 4)
    assert len(steps) == 1
    np.testing.assert_allclose(final, [1.0, 1.0], rtol=0, atol=1e-14)
    np.testing.assert_allclose(stats.max_gap, 1.0, rtol=0, atol=1e-14)
    assert not stats.converged


def test_nonfinite_values() -> None:
    """Test that iteration stops without converging if the contraction returns non-finite values, and that the last
    finite values are returned.
    """
    initial = np.array([1.0, 2.0])
    final, stats = Iteration('simple')._iterate(initial, lambda x: np.full_like(x, np.nan))
    assert not stats.converged
    assert stats.evaluations == 1 and stats.iterations == 0
    np.testing.assert_array_equal(final, initial)


def test_shapes() -> None:
    """Test that column vectors keep their shape."""
    initial = np.c_[[1.0, 1.0]]
    final = Iteration('simple')._iterate(initial, lambda x: np.c_[contraction(x.flatten())])[0]
    assert final.shape == initial.shape


def test_custom_method() -> None:
    """Test that a custom method is given the contraction, a callback, and its options."""
    def custom(
            initial: Array, contraction_: Callable[[Array], Array], callback: Callable[[float], None],
            **options: float) -> Tuple[Array, bool]:
        """Take a fixed number of simple steps."""
        x = initial
        for _ in range(int(options['steps'])):
            x0, x = x, contraction_(x)
            callback(np.abs(x - x0).max())
        return x, True

    iteration = Iteration(custom, {'steps': 3, 'minimum_share': 1e-10})
    assert iteration.minimum_share == 1e-10
    assert str(iteration)
    stats = iteration._iterate(np.ones(2), contraction)[1]
    assert stats.converged
    assert stats.iterations == stats.evaluations == 3


@pytest.mark.parametrize(['method', 'method_options'], [
    pytest.param('unknown', {}, id="unknown method"),
    pytest.param('simple', {'atol': 0}, id="zero tolerance"),
    pytest.param('simple', {'max_evaluations': -1}, id="negative evaluations"),
    pytest.param('simple', {'max_evaluations': 1.5}, id="fractional evaluations"),
    pytest.param('simple', {'damping': 0}, id="zero damping"),
    pytest.param('simple', {'norm': 1}, id="invalid norm"),
    pytest.param('simple', {'minimum_share': -1e-16}, id="negative minimum share"),
])
def test_invalid_configurations(method: str, method_options: Options) -> None:
    """Test that invalid configurations are rejected."""
    with pytest.raises(ValueError):
        Iteration(method, method_options)
