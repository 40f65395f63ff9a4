"""Basic functionality."""

import contextlib
import inspect
import multiprocessing.pool
import re
import sys
import time
import traceback
from typing import Any, Callable, Container, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple
import warnings

import numpy as np

from .. import options


# define common types
Array = Any
Data = Dict[str, Array]
Options = Dict[str, Any]

# define pools managed by parallel and used by generate_items
pool: Any = None


@contextlib.contextmanager
def parallel(processes: int, use_pathos: bool = False) -> Iterator[None]:
    r"""Context manager used for parallel processing in a ``with`` statement context.

    This manager creates a context in which a pool of Python processes will be used to compute market shares market by
    market. Share computation in different markets is distributed among the processes and results are reassembled
    market by market, so predicted shares are identical to those computed without multiprocessing. After the context
    created by the ``with`` statement ends, all worker processes in the pool will be terminated. Outside this context,
    shares are computed serially.

    Importantly, multiprocessing will only improve speed if gains from parallelization outweigh overhead from
    serializing and passing data between processes. Since the contraction mapping computes shares once per iteration,
    multiprocessing is typically only worthwhile with many markets, products, or integration nodes.

    Arguments
    ---------
    processes : `int`
        Number of Python processes that will be created and used by any method that supports parallel processing.
    use_pathos : `bool, optional`
        Whether to use `pathos <https://pathos.readthedocs.io/en/latest/>`_ (which will need to be installed) instead of
        the default, built-in :mod:`multiprocessing` module.

    """

    # validate the number of processes
    if not isinstance(processes, int):
        raise TypeError("processes must be an int.")
    if processes < 2:
        raise ValueError("processes must be at least 2.")

    # start the process pool, wait for work to be done, and then terminate it
    output(f"Starting a pool of {processes} processes ...")
    start_time = time.time()
    global pool
    if use_pathos:
        try:
            from pathos.multiprocessing import ProcessPool
        except ImportError as exception:
            if "pathos" not in str(exception):
                raise
            raise ImportError("pathos must be installed when use_pathos is True.") from exception
        try:
            pool = ProcessPool(nodes=processes)
            output(f"Started the process pool after {format_seconds(time.time() - start_time)}.")
            yield
        finally:
            output(f"Terminating the pool of {processes} processes ...")
            terminate_time = time.time()
            pool.close()
            pool.join()
            pool.clear()
            pool = None
    else:
        try:
            with multiprocessing.pool.Pool(processes) as pool:
                output(f"Started the process pool after {format_seconds(time.time() - start_time)}.")
                yield
                output(f"Terminating the pool of {processes} processes ...")
                terminate_time = time.time()
        finally:
            pool = None
    output(f"Terminated the process pool after {format_seconds(time.time() - terminate_time)}.")


def generate_items(keys: Iterable, factory: Callable[[Any], tuple], method: Callable) -> Iterator:
    """Generate (key, method(*factory(key))) tuples for each key. The first element returned by factory is an instance
    of the class to which method is attached. If a process pool has been initialized, use multiprocessing; otherwise,
    use serial processing.
    """
    if pool is None:
        return (generate_items_worker((k, factory(k), method)) for k in keys)
    try:
        return pool.imap_unordered(generate_items_worker, ((k, factory(k), method) for k in keys))
    except AttributeError:
        # a pathos ProcessPool uses uimap instead of imap_unordered
        return pool.uimap(generate_items_worker, ((k, factory(k), method) for k in keys))


def generate_items_worker(args: Tuple[Any, tuple, Callable]) -> Tuple[Any, Any]:
    """Call the specified method of a class instance with any additional arguments. Return the associated key along with
    the returned object.
    """
    key, (instance, *method_args), method = args
    return key, method(instance, *method_args)


def extract_matrix(structured_array_like: Mapping, key: Any) -> Optional[Array]:
    """Attempt to extract a field from a structured array-like object or horizontally stack field0, field1, and so on,
    into a full matrix. The extracted array will have at least two dimensions.
    """
    try:
        matrix = np.c_[structured_array_like[key]]
        return matrix if matrix.size > 0 else None
    except Exception:
        index = 0
        parts: List[Array] = []
        while True:
            try:
                part = np.c_[structured_array_like[f'{key}{index}']]
            except Exception:
                # warn if there's a 1 but no 0 (this is a common mistake)
                if index == 0:
                    try:
                        structured_array_like[f'{key}1']
                    except Exception:
                        pass
                    else:
                        warn(f"'{key}1' was specified but not '{key}0'.")
                break
            index += 1
            if part.size > 0:
                parts.append(part)

        return np.hstack(parts) if parts else None


def extract_size(structured_array_like: Mapping) -> int:
    """Attempt to extract the number of rows from a structured array-like object."""
    size = 0
    getters = [
        lambda m: m.shape[0],
        lambda m: next(iter(structured_array_like.values())).shape[0],
        lambda m: len(next(iter(structured_array_like.values()))),
        lambda m: len(m)
    ]
    for get in getters:
        try:
            size = get(structured_array_like)
            break
        except Exception:
            pass
    if size > 0:
        return size
    raise TypeError(
        f"Failed to get the number of rows in the structured array-like object of type {type(structured_array_like)}. "
        f"Try using a dictionary, a NumPy structured array, a Pandas DataFrame, or any other standard type."
    )


def warn(message: Any) -> None:
    """Output a warning."""
    old_formatwarning = warnings.formatwarning
    warnings.formatwarning = lambda x, *_, **__: f"{x}\n"
    warnings.warn(message)
    warnings.formatwarning = old_formatwarning


def output(message: Any) -> None:
    """Print a message if verbosity is turned on."""
    if options.verbose:
        if not callable(options.verbose_output):
            raise TypeError("options.verbose_output should be callable.")
        options.verbose_output(str(message))
        if options.flush_output:
            sys.stdout.flush()


def format_seconds(seconds: float) -> str:
    """Prepare a number of seconds to be displayed as a string."""
    hours, remainder = divmod(int(round(seconds)), 60**2)
    minutes, seconds = divmod(remainder, 60)
    return f'{hours:02}:{minutes:02}:{seconds:02}'


def format_number(number: Any) -> str:
    """Prepare a number to be displayed as a string."""
    if not isinstance(options.digits, int):
        raise TypeError("options.digits must be an int.")
    template = f"{{:^+{options.digits + 6}.{options.digits - 1}E}}"
    formatted = template.format(float(number))
    if "NAN" in formatted:
        formatted = formatted.replace("+", " ")
    return formatted


def format_options(mapping: Options) -> str:
    """Prepare a mapping of options to be displayed as a string."""
    strings: List[str] = []
    for key, value in mapping.items():
        if callable(value):
            value = f'{value.__module__}.{value.__qualname__}'
        elif isinstance(value, float):
            value = format_number(value)
        strings.append(f'{key}: {value}')

    joined = ', '.join(strings)
    return f'{{{joined}}}'


def format_table(
        header: Sequence, *data: Sequence, title: Optional[str] = None, include_border: bool = True,
        include_header: bool = True, line_indices: Container[int] = ()) -> str:
    """Format table information as a string, which has fixed widths, vertical lines after any specified indices, and
    optionally a title, border, and header.
    """

    # construct the header rows
    row_index = -1
    header_rows: List[List[str]] = []
    header = [[c] if isinstance(c, str) else c for c in header]
    while True:
        header_row = ["" if len(c) < -row_index else c[row_index] for c in header]
        if not any(header_row):
            break
        header_rows.insert(0, header_row)
        row_index -= 1

    # construct the data rows
    data_rows = [[str(c) for c in r] + [""] * (len(header) - len(r)) for r in data]

    # compute column widths
    widths = []
    for column_index in range(len(header)):
        widths.append(max(len(r[column_index]) for r in header_rows + data_rows))

    # build the template
    template = "  " .join("{{:^{}}}{}".format(w, "  |" if i in line_indices else "") for i, w in enumerate(widths))

    # build the table
    lines = []
    if title is not None:
        lines.append(f"{title}:")
    if include_border:
        lines.append("=" * len(template.format(*[""] * len(widths))))
    if include_header:
        lines.extend([template.format(*r) for r in header_rows])
        lines.append(template.format(*("-" * w for w in widths)))
    lines.extend([template.format(*r) for r in data_rows])
    if include_border:
        lines.append("=" * len(template.format(*[""] * len(widths))))
    return "\n".join(lines)


class SolverStats(object):
    """Structured statistics returned by a fixed point routine."""

    converged: bool
    iterations: int
    evaluations: int
    max_gap: float

    def __init__(
            self, converged: bool = True, iterations: int = 0, evaluations: int = 0, max_gap: float = np.inf) -> None:
        """Structure the statistics."""
        self.converged = converged
        self.iterations = iterations
        self.evaluations = evaluations
        self.max_gap = max_gap


class StringRepresentation(object):
    """Object that defers to its string representation."""

    def __repr__(self) -> str:
        """Defer to the string representation."""
        return str(self)


class Error(Exception):
    """Errors that are indistinguishable from others with the same message, which is parsed from the docstring."""

    stack: Optional[str]

    def __init__(self, *args: Any) -> None:
        """Keep arguments so that errors raised in worker processes can be pickled. Optionally store the full current
        traceback for debugging purposes.
        """
        super().__init__(*args)
        if options.verbose_tracebacks:
            self.stack = ''.join(traceback.format_stack())
        else:
            self.stack = None

    def __eq__(self, other: Any) -> bool:
        """Defer to hashes."""
        return hash(self) == hash(other)

    def __hash__(self) -> int:
        """Hash this instance such that in collections it is indistinguishable from others with the same message."""
        return hash((type(self).__name__, str(self)))

    def __repr__(self) -> str:
        """Defer to the string representation."""
        return str(self)

    def __str__(self) -> str:
        """Replace docstring markdown with simple text."""
        doc = inspect.getdoc(self)
        assert doc is not None

        # normalize LaTeX
        while True:
            match = re.search(r':math:`([^`]+)`', doc)
            if match is None:
                break
            start, end = match.span()
            doc = doc[:start] + re.sub(r'\s+', ' ', re.sub(r'[\\{}]', ' ', match.group(1))).lower() + doc[end:]

        # remove all remaining domains and compress whitespace
        doc = re.sub(r'[\s\n]+', ' ', re.sub(r':[a-z\-]+:|`', '', doc))

        # optionally add the full traceback
        if self.stack is not None:
            doc = f"{doc} Traceback:\n\n{self.stack}\n"
        return doc


class NumericalError(Error):
    """Floating point issues."""

    context: str

    def __init__(self, context: str) -> None:
        """Store the computation during which the issue was encountered."""
        super().__init__(context)
        self.context = context

    def __str__(self) -> str:
        """Supplement the error with the context."""
        return f"{super().__str__()} Encountered during {self.context}."


class InversionError(Error):
    """Problems with factorizing or inverting a matrix."""

    context: str
    condition: float

    def __init__(self, context: str, matrix: Array) -> None:
        """Store the name of the matrix and compute its condition number."""
        super().__init__(context, matrix)
        from .algebra import compute_condition_number
        self.context = context
        self.condition = compute_condition_number(matrix)

    def __str__(self) -> str:
        """Supplement the error with the matrix name and its condition number."""
        return f"{super().__str__()} Matrix: {self.context}. Condition number: {format_number(self.condition)}."
