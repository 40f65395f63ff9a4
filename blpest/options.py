r"""Global options.

Attributes
----------
digits : `int`
    Number of digits displayed by status updates. The default number of digits is ``7``. The number of digits can be
    changed to, for example, ``2``, with ``blpest.options.digits = 2``.
verbose : `bool`
    Whether to output status updates. By default, verbosity is turned on. Verbosity can be turned off with
    ``blpest.options.verbose = False``.
verbose_tracebacks : `bool`
    Whether to include full tracebacks in error messages. By default, full tracebacks are turned off. These can be
    useful when attempting to find the source of an error message. Tracebacks can be turned on with
    ``blpest.options.verbose_tracebacks = True``.
verbose_output : `callable`
    Function used to output status updates. The default function is simply ``print``. The function can be changed, for
    example, to include an indicator that statuses are from this package, with
    ``blpest.options.verbose_output = lambda x: print(f"blpest: {x}")``.
flush_output : `bool`
    Whether to call ``sys.stdout.flush()`` after outputting a status update. By default, output is not flushed to
    standard output. To force standard output flushes after every status update, set
    ``blpest.options.flush_output = True``.
dtype : `dtype`
    The data type used for internal calculations, which is by default ``numpy.float64``. Product data, integration
    nodes and weights, mean utilities, and parameters are all converted to this type.
weights_tol : `float`
    Absolute tolerance for detecting integration weights that do not sum to one, which is by default ``1e-8``. Weights
    whose sum differs from one by more than this tolerance are rejected when :class:`SimulationDraws` are built.
psd_atol : `float`
    Absolute tolerance for detecting non-positive semidefinite matrices. This check is applied to any custom weighting
    matrix, :math:`W`, passed to :meth:`Problem.solve`.

    Singular value decomposition factorizes the matrix into :math:`U \Sigma V` and a warning is displayed if any element
    in the original matrix differs in absolute value from :math:`V' \Sigma V` by more than ``psd_atol + psd_rtol * abs``
    where ``abs`` is the element's absolute value. A matrix that is not positive definite will still cause estimation
    to fail when linear parameters are computed.

    The default tolerance is ``1e-8``. To disable positive semidefinite checks, set
    ``blpest.options.psd_atol = blpest.options.psd_rtol = numpy.inf``.

psd_rtol : `float`
    Relative tolerance for detecting non-positive semidefinite matrices, which is by default also ``1e-8``.

"""

import numpy as _np


digits = 7
verbose = True
verbose_tracebacks = False
verbose_output = print
flush_output = False
dtype = _np.float64
weights_tol = 1e-8
psd_atol = psd_rtol = 1e-8
