"""Public-facing objects."""

from . import exceptions, options
from .configurations.formulation import Formulation
from .configurations.integration import Integration
from .configurations.iteration import Iteration
from .construction import build_draws, build_matrix, build_products
from .economies.problem import Problem, ProblemBuilder
from .partition import MarketPartition, MarketSegment, partition_markets
from .primitives import Products, SimulationDraws
from .results.problem_results import ProblemResults
from .utilities.basics import parallel
from .version import __version__

__all__ = [
    'exceptions', 'options', 'Formulation', 'Integration', 'Iteration', 'build_draws', 'build_matrix', 'build_products',
    'Problem', 'ProblemBuilder', 'MarketPartition', 'MarketSegment', 'partition_markets', 'Products',
    'SimulationDraws', 'ProblemResults', 'parallel', '__version__'
]
