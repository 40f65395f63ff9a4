"""Formulation of product data matrices."""

import collections.abc
from typing import Iterator, List, Mapping, Tuple, Type

import numpy as np
import patsy
import patsy.build
import patsy.desc
import patsy.design_info
import patsy.highlevel
import patsy.origin

from .. import options
from ..utilities.basics import Array, StringRepresentation, extract_size


class Formulation(StringRepresentation):
    r"""Configuration for designing matrices of product characteristics or instruments.

    Internally, the `patsy <https://patsy.readthedocs.io/en/stable/>`_ package is used to convert data and R-style
    formulas into matrices. All of the standard
    `binary operators <https://patsy.readthedocs.io/en/stable/formulas.html#operators>`_ can be used to design complex
    matrices of factor interactions:

        - ``+`` - Set union of terms.
        - ``-`` - Set difference of terms.
        - ``*`` - Short-hand. The formula ``a * b`` is the same as ``a + b + a:b``.
        - ``/`` - Short-hand. The formula ``a / b`` is the same as ``a + a:b``.
        - ``:`` - Interactions between two sets of terms.
        - ``**`` - Interactions up to an integer degree.

    The following functions are also available:

        - ``C`` - Mark a variable as categorical. See :func:`patsy.builtins.C`.
        - ``I`` - Encapsulate mathematical operations. See :func:`patsy.builtins.I`.
        - ``log`` - Natural logarithm function.
        - ``exp`` - Natural exponential function.

    Variables with non-numeric data are treated as categorical and are coded with indicators.

    Parameters
    ----------
    formula : `str`
        R-style formula used to design a matrix. Variable names will be validated when this formulation and data are
        passed to a function that uses them. By default, an intercept is included, which can be removed with ``0`` or
        ``-1``.

    Examples
    --------
    Design linear characteristics that include an intercept, prices, and a categorical product characteristic::

        formulation = Formulation('1 + prices + C(brand)')
        X1 = build_matrix(formulation, product_data)

    """

    _formula: str
    _terms: List[patsy.desc.Term]

    def __init__(self, formula: str) -> None:
        """Parse the formula into patsy terms. In the process, validate it as much as possible without any data."""
        if not isinstance(formula, str):
            raise TypeError("formula must be a str.")
        self._formula = formula
        self._terms = parse_terms(formula)
        if not self._terms:
            raise patsy.PatsyError("formula has no terms.", patsy.origin.Origin(formula, 0, len(formula)))

    def __reduce__(self) -> Tuple[Type['Formulation'], Tuple]:
        """Handle pickling."""
        return (self.__class__, (self._formula,))

    def __str__(self) -> str:
        """Format the terms as a string."""
        return ' + '.join('1' if t == patsy.desc.INTERCEPT else t.name() for t in self._terms)

    def _build_matrix(self, data: Mapping) -> Tuple[Array, List[str]]:
        """Convert a mapping from variable names to arrays into the designed matrix and the names of its columns."""
        namespace = DataNamespace(data)
        design = design_matrix(self._terms, namespace)
        return build_matrix(design, namespace, extract_size(data)), list(design.column_names)


class DataNamespace(collections.abc.Mapping):
    """Read-only view of a structured array-like object that flattens each variable into a NumPy array and raises a
    KeyError for unknown variables, which is what patsy expects from a namespace.
    """

    def __init__(self, data: Mapping) -> None:
        """Store the underlying data."""
        self._data = data

    def __getitem__(self, name: str) -> Array:
        """Load and flatten a variable."""
        try:
            return np.asarray(self._data[name]).flatten()
        except Exception as exception:
            raise KeyError(name) from exception

    def __iter__(self) -> Iterator[str]:
        """Iterate over variable names."""
        names = getattr(getattr(self._data, 'dtype', None), 'names', None)
        return iter(names if names is not None else self._data.keys())

    def __len__(self) -> int:
        """Count the number of variables."""
        return sum(1 for _ in self)


def parse_terms(formula: str) -> List[patsy.desc.Term]:
    """Parse patsy terms from a string. Validate that the string contains only right-hand side terms."""
    description = patsy.highlevel.ModelDesc.from_formula(formula)
    if description.lhs_termlist:
        end = formula.index('~') + 1 if '~' in formula else len(formula)
        raise patsy.PatsyError("Formulas should not have left-hand sides.", patsy.origin.Origin(formula, 0, end))
    return description.rhs_termlist


def design_matrix(terms: List[patsy.desc.Term], data: Mapping) -> patsy.design_info.DesignInfo:
    """Design a patsy matrix. Functions other than patsy's built-in ones are limited to log and exp."""
    environment = patsy.EvalEnvironment([{'log': np.log, 'exp': np.exp}])
    return patsy.build.design_matrix_builders([terms], lambda: iter([data]), environment)[0]


def build_matrix(design: patsy.design_info.DesignInfo, data: Mapping, size: int) -> Array:
    """Build a matrix according to its design and data mapping variable names to arrays."""

    # if the design lacks factors, it must consist of only an intercept term
    if not design.factor_infos:
        return np.ones((size, 1), options.dtype)

    # build the matrix and raise an exception if there are any null values
    matrix = patsy.build.build_design_matrices([design], data, NA_action='raise')[0].base

    # if the design did not use any data, the matrix may be a single row that needs to be stacked to the proper height
    matrix = matrix if matrix.shape[0] == size else np.repeat(matrix[[0]], size, axis=0)
    return matrix.astype(options.dtype, copy=False)
