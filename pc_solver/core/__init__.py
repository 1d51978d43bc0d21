"""
Core module for the perfect clear solver.
Contains piece geometry, kick tables, the bitboard, game state reducers and
the placement search.
"""

from .board import Board
from .config import BagType, SolverConfig
from .exceptions import (
    GameOverError, IllegalMoveError, InvalidConfigurationError, InvalidStateError, SolverError,
)
from .finesse import FinesseEngine, FinessePath, PlacementGraph
from .game_state import Action, GameState
from .kicks import KickTable, get_kick_table
from .pieces import Orientation, Piece, PieceType, Position, Rotation

__all__ = [
    'Action', 'BagType', 'Board', 'FinesseEngine', 'FinessePath', 'GameOverError', 'GameState',
    'IllegalMoveError', 'InvalidConfigurationError', 'InvalidStateError', 'KickTable',
    'Orientation', 'Piece', 'PieceType', 'PlacementGraph', 'Position', 'Rotation',
    'SolverConfig', 'SolverError', 'get_kick_table',
]
