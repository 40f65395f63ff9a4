"""Tests of formulation of data matrices."""

import pickle
from typing import Callable, Iterable

import numpy as np
import patsy
import pytest

from blpest import Formulation, build_matrix
from blpest.utilities.basics import Array, Data


@pytest.fixture(scope='module')
def formula_data() -> Data:
    """Simulate continuous and categorical variables."""
    state = np.random.RandomState(0)
    return {
        'x': state.uniform(1, 2, size=10),
        'y': state.uniform(1, 2, size=10),
        'a': np.array(['a1', 'a2'] * 5, np.object_)
    }


@pytest.mark.parametrize(['formulas', 'build_columns'], [
    pytest.param(['', '1', '0 + I(1)', 'I(1) - 1'], lambda d: [np.ones_like(d['x'])], id="intercept"),
    pytest.param(['0 + x', 'I(x) - 1'], lambda d: [d['x']], id="continuous variable"),
    pytest.param(['1 + x', 'x'], lambda d: [np.ones_like(d['x']), d['x']], id="intercept and continuous variable"),
    pytest.param(
        ['0 + a', '0 + C(a)'],
        lambda d: [(d['a'] == 'a1').astype(np.float64), (d['a'] == 'a2').astype(np.float64)],
        id="full-rank coding of categorical variable"
    ),
    pytest.param(
        ['0 + log(2 * x * y) + I(1 + x ** -0.5 * exp(y))'],
        lambda d: [np.log(2 * d['x'] * d['y']), 1 + d['x'] ** -0.5 * np.exp(d['y'])],
        id="functions"
    ),
    pytest.param(
        ['0 + x * y', '0 + x + y + x:y'],
        lambda d: [d['x'], d['y'], d['x'] * d['y']],
        id="product short-hands"
    ),
])
def test_matrices(
        formula_data: Data, formulas: Iterable[str], build_columns: Callable[[Data], Iterable[Array]]) -> None:
    """Test that equivalent formulas build the same matrices and that the configurations can be formatted."""
    expected = np.column_stack(list(build_columns(formula_data)))
    for formula in formulas:
        formulation = Formulation(formula)
        assert str(formulation)
        matrix = build_matrix(formulation, formula_data)
        np.testing.assert_allclose(matrix, expected, rtol=0, atol=1e-14, err_msg=formula)


@pytest.mark.parametrize('formula', [
    pytest.param('y ~ x', id="left-hand side"),
    pytest.param('0', id="no terms"),
])
def test_invalid_formulas(formula: str) -> None:
    """Test that formulas that cannot design a matrix of characteristics are rejected."""
    with pytest.raises(patsy.PatsyError):
        Formulation(formula)


def test_unknown_variable(formula_data: Data) -> None:
    """Test that referencing a variable that is not in the data raises an exception."""
    with pytest.raises(patsy.PatsyError):
        build_matrix(Formulation('0 + z'), formula_data)


def test_pickling(formula_data: Data) -> None:
    """Test that formulations survive pickling, which is needed to pass them to worker processes."""
    formulation = Formulation('1 + x + C(a)')
    unpickled = pickle.loads(pickle.dumps(formulation))
    assert str(unpickled) == str(formulation)
    np.testing.assert_array_equal(build_matrix(unpickled, formula_data), build_matrix(formulation, formula_data))
