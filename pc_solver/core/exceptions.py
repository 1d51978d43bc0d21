# PC Solver - Perfect clear search for falling-block puzzles
# exceptions.py - Custom exceptions for the solving engine

class SolverError(Exception):
    """Base class for all solver exceptions."""
    pass

class InvalidConfigurationError(SolverError):
    """Unknown bag type, kick table or move name in a solve request."""
    pass

class InvalidStateError(SolverError):
    """Malformed game state data (bad piece letter, bad board rows, overlapping piece)."""
    pass

class IllegalMoveError(SolverError):
    """A move or rotation that is not available from the current piece state."""
    pass

class GameOverError(SolverError):
    """A piece could not be spawned because the spawn area is occupied."""
    pass
