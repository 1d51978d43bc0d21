"""
AI module for the perfect clear solver.
Contains the probability model, memoization cache, branch expansion, decision
selection and the solver entry point.
"""

from .cache import SolverCache
from .probability import ProbabilityModel
from .search import BranchExpander
from .selector import DecisionSelector, Selection
from .solver import PerfectClearSolver, SolveResult, solve
from .tree import Cleared, DecisionTree, Failed, FailureReason, Placement

__all__ = [
    'BranchExpander', 'Cleared', 'DecisionSelector', 'DecisionTree', 'Failed', 'FailureReason',
    'PerfectClearSolver', 'Placement', 'ProbabilityModel', 'Selection', 'SolveResult', 'SolverCache',
    'solve',
]
