"""General functionality."""

from .statistics import IV, compute_gmm_objective, compute_gmm_weights
from .basics import (
    parallel, generate_items, extract_matrix, extract_size, output, warn, format_seconds, format_number,
    format_options, format_table, Array, Data, Options, SolverStats, StringRepresentation
)
from .algebra import (
    compute_condition_number, precisely_identify_psd, precisely_cholesky_solve, precisely_cholesky_invert
)
