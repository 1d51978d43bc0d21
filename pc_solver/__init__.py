"""
PC Solver: searches for the most likely perfect clear in a falling-block
puzzle game, modelling unknown queue pieces with the randomizer's bag.
"""

from .core import Action, BagType, Board, GameState, Piece, PieceType, Position, SolverConfig
from .ai import PerfectClearSolver, SolveResult, SolverCache, solve

__version__ = "1.0.0"

__all__ = [
    'Action', 'BagType', 'Board', 'GameState', 'PerfectClearSolver', 'Piece', 'PieceType',
    'Position', 'SolveResult', 'SolverCache', 'SolverConfig', 'solve',
]
