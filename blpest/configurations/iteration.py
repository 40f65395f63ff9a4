"""Fixed-point iteration routines."""

import functools
from typing import Any, Callable, List, Optional, Tuple, Union

import numpy as np

from ..utilities.basics import (
    Array, Options, SolverStats, StringRepresentation, format_number, format_options, format_table, output
)


# define contraction function types
ContractionFunction = Callable[[Array], Array]
IterationCallback = Callable[[float], None]


class Iteration(StringRepresentation):
    r"""Configuration for solving the fixed point problem that recovers the mean utility :math:`\delta`.

    Parameters
    ----------
    method : `str or callable, optional`
        The fixed point iteration routine that will be used. The following routine is supported:

            - ``'simple'`` - Damped iteration with no acceleration. Each iteration evaluates the contraction
              :math:`f(\delta) = \delta + \log s - \log \sigma(\delta)` exactly once and updates
              :math:`\delta \leftarrow \delta + \kappa (f(\delta) - \delta)` where :math:`\kappa` is the damping
              factor. The gap of an iteration is the norm of :math:`\kappa (f(\delta) - \delta)`, and iteration is
              considered to have converged once this gap falls below the absolute tolerance.

        Also accepted is a custom callable method with the following form::

            method(initial, contraction, callback, **options) -> (final, converged)

        where ``initial`` is an array of initial values, ``contraction`` is a callable contraction mapping of the form
        ``contraction(x0) -> x1``, ``callback`` is a function that should be called with the gap of each major
        iteration (it is used to record the number of iterations and the last gap), ``options`` are the configured
        ``method_options``, ``final`` is an array of final values, and ``converged`` is a flag for whether the routine
        converged.

    method_options : `dict, optional`
        Options for the fixed point iteration routine. The ``'simple'`` method supports the following options:

            - **atol** : (`float`) - Absolute tolerance for convergence of the configured norm. The default value is
              ``1e-9``.

            - **max_evaluations** : (`int`) - Maximum number of contraction mapping evaluations, which for the
              ``'simple'`` method is the same as the number of iterations. The default value is ``1000``. A value of
              zero is allowed, in which case iteration always fails to converge.

            - **damping** : (`float`) - The damping factor :math:`\kappa` that scales each update. The default value is
              ``1.0``, which corresponds to the standard BLP contraction.

            - **norm** : (`callable`) - The norm to be used. By default, the :math:`\ell^\infty`-norm is used. If
              specified, this should be a function that accepts an array of differences and that returns a scalar norm.

        For all methods, the following option configures the contraction itself:

            - **minimum_share** : (`float`) - The smallest predicted market share whose logarithm is taken. With
              consumer heterogeneity, the floor applies to the weighted share of each draw. Predicted shares below
              this floor raise an exception instead of being clipped. The default value is ``1e-16``.

    universal_display : `bool, optional`
        Whether to output a table of iteration progress, which includes the gap of each iteration and its improvement
        over the smallest gap so far. By default, iteration progress is not displayed. Setting this to ``True`` can be
        helpful for debugging iteration issues. For example, iteration may get stuck above the configured tolerance.

    Examples
    --------
    Configure iteration with a tighter tolerance and a dampened update::

        iteration = Iteration('simple', {'atol': 1e-12, 'damping': 0.5})

    """

    _iterator: functools.partial
    _description: str
    _method_options: Options
    _minimum_share: float
    _universal_display: bool

    def __init__(
            self, method: Union[str, Callable] = 'simple', method_options: Optional[Options] = None,
            universal_display: bool = False) -> None:
        """Validate the method and configure default options."""
        methods = {
            'simple': (functools.partial(simple_iterator), "damped iteration with no acceleration"),
        }

        # validate the configuration
        if method not in methods and not callable(method):
            raise ValueError(f"method must be one of {list(methods.keys())} or a callable object.")
        if method_options is not None and not isinstance(method_options, dict):
            raise ValueError("method_options must be None or a dict.")

        # initialize class attributes
        self._universal_display = universal_display

        # options are by default empty, and the minimum share is shared by all methods
        method_options = (method_options or {}).copy()
        self._minimum_share = method_options.pop('minimum_share', 1e-16)
        if not isinstance(self._minimum_share, (float, int)) or self._minimum_share < 0:
            raise ValueError("The iteration option minimum_share must be a nonnegative float.")

        # options are simply passed along to custom methods
        if callable(method):
            self._iterator = functools.partial(method)
            self._description = "a custom method"
            self._method_options = method_options
            return

        # identify the non-custom iterator and set default options
        self._iterator, self._description = methods[method]
        self._method_options = {
            'atol': 1e-9,
            'max_evaluations': 1000,
            'damping': 1.0,
            'norm': infinity_norm
        }

        # update the default options
        self._method_options.update(method_options)

        # validate options
        if not isinstance(self._method_options['atol'], (float, int)) or self._method_options['atol'] <= 0:
            raise ValueError("The iteration option atol must be a positive float.")
        max_evaluations = self._method_options['max_evaluations']
        if not isinstance(max_evaluations, int) or isinstance(max_evaluations, bool):
            raise ValueError("The iteration option max_evaluations must be an int.")
        if max_evaluations < 0:
            raise ValueError("The iteration option max_evaluations must be a nonnegative int.")
        if not isinstance(self._method_options['damping'], (float, int)) or self._method_options['damping'] <= 0:
            raise ValueError("The iteration option damping must be a positive float.")
        if not callable(self._method_options['norm']):
            raise ValueError("The iteration option norm must be callable.")

    def __str__(self) -> str:
        """Format the configuration as a string."""
        mapping = {**self._method_options, 'minimum_share': float(self._minimum_share)}
        return f"Configured to iterate using {self._description} with options {format_options(mapping)}."

    @property
    def minimum_share(self) -> float:
        """Smallest predicted share that the contraction accepts."""
        return self._minimum_share

    def _iterate(self, initial: Array, contraction: ContractionFunction) -> Tuple[Array, SolverStats]:
        """Solve a fixed point iteration problem."""

        # initialize counters
        iterations = evaluations = 0
        max_gap = np.inf
        smallest_gap = np.inf

        def iteration_callback(gap: float) -> None:
            """Count the number of major iterations, record the last gap, and optionally display progress."""
            nonlocal iterations, max_gap, smallest_gap
            iterations += 1
            max_gap = gap
            if not self._universal_display:
                return

            # format the row of the progress table
            header = [
                ("", "Iterations"),
                ("Contraction", "Evaluations"),
                ("Delta", "Max Norm"),
                ("Max Norm", "Improvement"),
            ]
            values: List[Any] = [iterations, evaluations, format_number(gap)]
            improvement = smallest_gap - gap
            if np.isfinite(improvement) and improvement > 0:
                values.append(format_number(improvement))
            else:
                values.append(" " * len(format_number(improvement)))
            if improvement > 0:
                smallest_gap = gap

            # add a space and an extra header every 50 iterations
            include_header = (iterations - 1) % 50 == 0
            if include_header and iterations > 1:
                output("")
            output(format_table(header, values, include_border=False, include_header=include_header))

        def contraction_wrapper(raw_values: Any) -> Array:
            """Normalize arrays so they work with all types of routines. Also count the total number of contraction
            evaluations.
            """
            nonlocal evaluations
            evaluations += 1
            if not isinstance(raw_values, np.ndarray):
                raw_values = np.asarray(raw_values)
            values = raw_values.reshape(initial.shape).astype(initial.dtype, copy=False)
            values = contraction(values)
            return values.astype(raw_values.dtype, copy=False).reshape(raw_values.shape)

        # normalize the starting values
        raw_initial = initial.astype(np.float64, copy=False).flatten()

        # add padding around the universal display
        if self._universal_display:
            output("")

        # solve the problem and convert the raw final values to the same data type and shape as the initial values
        raw_final, converged = self._iterator(
            raw_initial, contraction_wrapper, iteration_callback, **self._method_options
        )
        final = np.asarray(raw_final).astype(initial.dtype, copy=False).reshape(initial.shape)
        if self._universal_display:
            output("")

        stats = SolverStats(bool(converged), iterations, evaluations, max_gap)
        return final, stats


def infinity_norm(x: Array) -> float:
    """Compute the infinity norm of a vector. The norm of an empty vector is zero."""
    return np.abs(x).max() if x.size > 0 else 0.0


def simple_iterator(
        initial: Array, contraction: ContractionFunction, iteration_callback: IterationCallback, max_evaluations: int,
        atol: float, damping: float, norm: Callable[[Array], float]) -> Tuple[Array, bool]:
    """Apply damped fixed point iteration with no acceleration. Each iteration evaluates the contraction once."""
    x = initial
    converged = False
    evaluations = 0
    while evaluations < max_evaluations:
        # contraction step
        evaluations += 1
        x0, x = x, contraction(x)
        if not all_finite(x):
            x = x0
            break

        # damped update
        step = damping * (x - x0)
        x = x0 + step

        # record the completion of a major iteration and check for convergence
        gap = norm(step)
        iteration_callback(gap)
        if gap < atol:
            converged = True
            break

    return x, converged


def all_finite(*arrays: Optional[Array]) -> bool:
    """Validate that multiple arrays are either None or all finite."""
    return all(a is None or np.isfinite(a).all() for a in arrays)
